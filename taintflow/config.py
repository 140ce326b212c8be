"""
taintflow.config
================

Run-time settings for one analysis run, plus the package logging setup.

Public API
----------
    CallReturnPolicy   - what to do on a call's normal-return edge
    AnalysisConfig     - frozen settings object passed to ``analyze``
    configure_logging  - attach a stderr handler to the ``taintflow`` logger
"""

from __future__ import annotations

import enum
import logging
import sys
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional


class CallReturnPolicy(enum.Enum):
    """Default behaviour of the call-return effect.

    ``NO_EFFECT``
        The destination local keeps whatever state it had.  This is unsound
        by omission: a call whose result derives from a tainted argument, or
        a call that is itself a source, is not modelled.  Every call site hit
        this way is recorded in ``TaintResults.unsupported``.
    ``FAIL``
        Raise :class:`~taintflow.errors.UnsupportedConstructError` on the
        first call terminator reached.
    """

    NO_EFFECT = "no-effect"
    FAIL = "fail"


# hook(trans, call, location) -> None
CallReturnHook = Callable[..., None]


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings for a single fixed-point run.

    Attributes
    ----------
    max_iterations : int, optional
        Cap on worklist pops.  ``None`` derives a bound from the body that a
        monotone transfer function can never reach.
    strict : bool
        Raise on rvalue shapes the rule table does not cover instead of
        recording them as unsupported.
    call_return : CallReturnPolicy
        Default call-return behaviour when no hook is installed.
    call_return_hook : callable, optional
        ``hook(trans, call, location)`` applied on the normal-return edge of
        every call.  Overrides ``call_return``.
    check_monotonicity : bool
        Raise :class:`~taintflow.errors.MonotonicityError` when a block's exit
        state loses a bit between iterations.
    """

    max_iterations: Optional[int] = None
    strict: bool = False
    call_return: CallReturnPolicy = CallReturnPolicy.NO_EFFECT
    call_return_hook: Optional[CallReturnHook] = None
    check_monotonicity: bool = True

    def __post_init__(self) -> None:
        if self.max_iterations is not None and self.max_iterations < 1:
            raise ValueError(
                f"max_iterations must be positive, got {self.max_iterations}"
            )
        if not isinstance(self.call_return, CallReturnPolicy):
            object.__setattr__(
                self, "call_return", CallReturnPolicy(self.call_return)
            )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "AnalysisConfig":
        """Build a config from a plain mapping (e.g. a host's settings file).

        ``call_return`` may be given by value (``"no-effect"`` / ``"fail"``).
        Unknown keys are rejected.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(mapping) - known)
        if unknown:
            raise ValueError(f"unknown analysis settings: {', '.join(unknown)}")
        return cls(**dict(mapping))

    def iteration_bound(self, blocks: int, edges: int, local_count: int) -> int:
        """The effective worklist cap for a body of the given shape."""
        if self.max_iterations is not None:
            return self.max_iterations
        return blocks + edges * (local_count + 1) + 1


DEFAULT_CONFIG = AnalysisConfig()


_HANDLER_NAME = "taintflow.stderr"

_VERBOSITY_LEVELS = (logging.WARNING, logging.INFO, logging.DEBUG)


def configure_logging(verbosity: int) -> logging.Logger:
    """Route ``taintflow`` log records to stderr at the given verbosity.

    0 shows warnings (unsupported constructs), 1 adds the per-body
    fixed-point summary, 2 or more adds per-block states.  Calling it again
    only changes the level.
    """
    level = _VERBOSITY_LEVELS[min(max(verbosity, 0), len(_VERBOSITY_LEVELS) - 1)]
    logger = logging.getLogger("taintflow")
    logger.setLevel(level)
    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter("taintflow: %(levelname)s: %(message)s"))
        logger.addHandler(handler)
    return logger
