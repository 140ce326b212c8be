"""
taintflow.analysis
==================

``MaybeTaintedLocals``: a forward may-analysis tracking which locals may
carry a value derived from a taint source.

Taints are introduced through sources and consumed by sinks.  Which locals
are sources is decided by the caller and passed in as the seed; whether a
sink receives a tainted value is decided by the caller through
:meth:`TaintResults.is_possibly_tainted`.  A sink should never consume a
tainted value.

Call returns
------------
The effect of a call on its destination local is not modelled.  By default
(``CallReturnPolicy.NO_EFFECT``) the destination keeps its previous state
and the call site is recorded in ``TaintResults.unsupported``; this misses
taint flowing from arguments to the result and calls that are themselves
sources.  ``CallReturnPolicy.FAIL`` refuses such bodies, and
``AnalysisConfig.call_return_hook`` plugs in a real model.

Usage
-----
::

    from taintflow import analyze, Location

    results = analyze(body, seed=[1])
    if results.is_possibly_tainted(3, Location(2, 0)):
        ...
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .bitset import LocalBitSet
from .config import DEFAULT_CONFIG, AnalysisConfig, CallReturnPolicy
from .engine import BlockObserver, FixpointEngine, GenKillAnalysis
from .errors import ErrorCode, UnsupportedConstructError
from .genkill import GenKill
from .ir import BlockId, Body, Call, Location, Statement, Terminator
from .results import TaintResults
from .transfer import TransferFunction, UnsupportedConstruct, UnsupportedKind

logger = logging.getLogger(__name__)


class AuditLog:
    """Unsupported constructs seen during one run, once per location."""

    def __init__(self, body_name: str = "<body>") -> None:
        self.body_name = body_name
        self._records: Dict[Tuple[Location, UnsupportedKind], UnsupportedConstruct] = {}

    def record(self, location: Location, kind: UnsupportedKind, detail: str) -> None:
        key = (location, kind)
        if key in self._records:
            return
        entry = UnsupportedConstruct(location, kind, detail)
        self._records[key] = entry
        logger.warning("%s: %s", self.body_name, entry)

    def entries(self) -> Tuple[UnsupportedConstruct, ...]:
        return tuple(
            sorted(self._records.values(), key=lambda e: (e.location, e.kind.value))
        )

    def __len__(self) -> int:
        return len(self._records)


class MaybeTaintedLocals(GenKillAnalysis):
    """The may-taint analysis.

    Parameters
    ----------
    seed : iterable of int
        Locals tainted on entry to the body.
    config : AnalysisConfig, optional
        Strictness and call-return settings.
    """

    name = "MaybeTaintedLocals"

    def __init__(
        self,
        seed: Iterable[int] = (),
        config: Optional[AnalysisConfig] = None,
    ) -> None:
        self.seed: Tuple[int, ...] = tuple(seed)
        self.config = config or DEFAULT_CONFIG
        self.audit = AuditLog()

    def bottom_value(self, body: Body) -> LocalBitSet:
        # bottom = untainted
        return LocalBitSet.bottom(body.local_count)

    def initialize_start_block(self, body: Body, state: LocalBitSet) -> None:
        # one log per run
        self.audit = AuditLog(body.name)
        for local in self.seed:
            state.insert(local)

    def transfer_function(self, trans: GenKill) -> TransferFunction:
        return TransferFunction(trans, self._report)

    def _report(self, location: Location, kind: UnsupportedKind, detail: str) -> None:
        if self.config.strict:
            raise UnsupportedConstructError(
                detail, code=ErrorCode.UNSUPPORTED_RVALUE, location=location
            )
        self.audit.record(location, kind, detail)

    def statement_effect(
        self, trans: GenKill, statement: Statement, location: Location
    ) -> None:
        self.transfer_function(trans).statement_effect(statement, location)

    def terminator_effect(
        self, trans: GenKill, terminator: Terminator, location: Location
    ) -> None:
        self.transfer_function(trans).terminator_effect(terminator, location)

    def call_return_effect(
        self, trans: GenKill, block: BlockId, call: Call, location: Location
    ) -> None:
        hook = self.config.call_return_hook
        if hook is not None:
            hook(trans, call, location)
            return
        if self.config.call_return is CallReturnPolicy.FAIL:
            raise UnsupportedConstructError(
                f"call-return effect of `{call}` is not modelled",
                code=ErrorCode.UNSUPPORTED_CALL_RETURN,
                location=location,
            )
        self.audit.record(
            location,
            UnsupportedKind.CALL_RETURN,
            f"return value of `{call}` is assumed to keep its previous taint state",
        )

    def quiet_copy(self) -> "MaybeTaintedLocals":
        copy = MaybeTaintedLocals(self.seed, replace(self.config, strict=False))
        copy.audit = self.audit
        return copy

    def unsupported_constructs(self) -> Tuple[UnsupportedConstruct, ...]:
        return self.audit.entries()


def analyze(
    body: Body,
    seed: Iterable[int] = (),
    config: Optional[AnalysisConfig] = None,
    observer: Optional[BlockObserver] = None,
) -> TaintResults:
    """Run :class:`MaybeTaintedLocals` on ``body`` to its fixed point.

    Raises
    ------
    LocalIndexError
        A seed or instruction names a local outside the body.
    MalformedBodyError
        The body is empty or has an edge to a missing block.
    UnsupportedConstructError
        Only with ``strict`` or ``CallReturnPolicy.FAIL``.
    InternalInvariantError
        The iteration cap was hit or an exit state shrank.
    """
    config = config or DEFAULT_CONFIG
    analysis = MaybeTaintedLocals(seed, config)
    return FixpointEngine(body, analysis, config, observer).iterate_to_fixpoint()


def analyze_bodies(
    bodies: Iterable[Body],
    seeds: Optional[Mapping[str, Iterable[int]]] = None,
    config: Optional[AnalysisConfig] = None,
) -> Dict[str, TaintResults]:
    """Analyse independent bodies, each with its own domain and engine.

    ``seeds`` maps a body name to its pre-tainted locals.  Nothing is shared
    between runs, so callers may also spread bodies across threads or
    processes themselves.
    """
    seeds = seeds or {}
    results: Dict[str, TaintResults] = {}
    for body in bodies:
        if body.name in results:
            raise ValueError(f"duplicate body name {body.name!r}")
        results[body.name] = analyze(body, seeds.get(body.name, ()), config)
    unknown = sorted(set(seeds) - set(results))
    if unknown:
        logger.warning("seeds given for unknown bodies: %s", ", ".join(unknown))
    return results
