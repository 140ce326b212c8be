"""
taintflow: May-Taint Dataflow Analysis over IR Control-Flow Graphs
==================================================================

This package computes, for every program point of a function's CFG, which
locals *may* carry a value derived from a taint source, so that a later
sink-checking pass can flag tainted values reaching a sink.

Core modules
------------
bitset
    ``LocalBitSet``: the fixed-size bit-vector domain.
ir
    The IR shapes the analysis consumes (operands, rvalues, statements,
    terminators, bodies).
genkill
    The gen/kill accumulator interface seen by the transfer function.
transfer
    The per-instruction propagation rules.
engine
    The forward worklist fixpoint engine.
analysis
    ``MaybeTaintedLocals`` and the ``analyze`` entry points.
results
    Per-block facts, per-location queries and the results cursor.
config
    ``AnalysisConfig`` and logging setup.
errors
    The error hierarchy.

Quick start
-----------
>>> from taintflow import Body, BasicBlockData, Assign, Use, Copy, Return, Location, analyze
>>> body = Body(2, [BasicBlockData([Assign(1, Use(Copy(0)))], Return())])
>>> analyze(body, seed=[0]).is_possibly_tainted(1, Location(0, 1))
True
"""

from __future__ import annotations

import importlib
import logging
import sys
from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "MIT"
__all__: List[str] = []          # populated incrementally below

_log = logging.getLogger(__name__)
_log.addHandler(logging.NullHandler())

# ---------------------------------------------------------------------------
# Internal registry: (module_name, list_of_names_to_import)
# ---------------------------------------------------------------------------

_CORE_MODULES = {
    "errors": [
        "ErrorCode",
        "TaintFlowError",
        "UnsupportedConstructError",
        "LocalIndexError",
        "DomainMismatchError",
        "MalformedBodyError",
        "InternalInvariantError",
        "NonConvergenceError",
        "MonotonicityError",
    ],
    "config": [
        "AnalysisConfig",
        "CallReturnPolicy",
        "configure_logging",
    ],
    "bitset": [
        "LocalBitSet",
    ],
    "ir": [
        "Constant", "Copy", "Move",
        "Use", "BinaryOp", "CheckedBinaryOp", "UnaryOp", "Ref", "AddressOf",
        "Cast", "Aggregate", "Repeat", "Len", "Discriminant", "NullaryOp",
        "Assign", "StorageLive", "StorageDead", "Nop",
        "Goto", "SwitchInt", "Return", "Call", "Assert", "Drop",
        "Unreachable", "Resume",
        "EdgeKind", "BasicBlockData", "Body", "Location",
    ],
    "genkill": [
        "GenKill",
        "StateAccumulator",
        "GenKillSet",
    ],
    "transfer": [
        "TransferFunction",
        "UnsupportedConstruct",
        "UnsupportedKind",
    ],
    "results": [
        "TaintResults",
        "ResultsCursor",
    ],
    "engine": [
        "GenKillAnalysis",
        "FixpointEngine",
    ],
    "analysis": [
        "MaybeTaintedLocals",
        "analyze",
        "analyze_bodies",
    ],
    "render": [
        "format_results",
        "to_dot",
    ],
}


def _import_names(module_rel_name: str, names: List[str]) -> None:
    """Import *names* from a submodule and bind them in the package namespace."""
    fq_name = f"{__name__}.{module_rel_name}"
    try:
        mod = importlib.import_module(fq_name)
    except ImportError as exc:
        raise ImportError(
            f"taintflow: required submodule '{module_rel_name}' "
            f"failed to import: {exc}"
        ) from exc

    current_module = sys.modules[__name__]
    for name in names:
        obj = getattr(mod, name, None)
        if obj is None:
            raise AttributeError(f"taintflow.{module_rel_name} does not export '{name}'")
        setattr(current_module, name, obj)
        __all__.append(name)

    setattr(current_module, module_rel_name, mod)
    if module_rel_name not in __all__:
        __all__.append(module_rel_name)


for _mod, _names in _CORE_MODULES.items():
    _import_names(_mod, _names)

del _mod, _names


def list_submodules() -> List[str]:
    """Return the names of all submodules in the package."""
    return sorted(_CORE_MODULES)


__all__ += ["list_submodules", "__version__"]
