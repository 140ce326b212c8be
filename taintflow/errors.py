# taintflow/errors.py
"""
Error types raised by the taint analysis.

Error Hierarchy:
────────────────
┌─────────────────────────────────────────────────────────────────────────┐
│  TaintFlowError (base)                                                  │
│  ├── UnsupportedConstructError - shape not covered by the rule table    │
│  ├── LocalIndexError           - local outside [0, local_count)         │
│  ├── DomainMismatchError       - bit-sets of different domain sizes     │
│  ├── MalformedBodyError        - body fails structural validation       │
│  └── InternalInvariantError    - analysis bugs (should never happen)    │
│      ├── NonConvergenceError   - iteration cap exceeded                 │
│      └── MonotonicityError     - exit state lost a bit                  │
└─────────────────────────────────────────────────────────────────────────┘

Error Codes:
────────────
  - 1000-1999: Unsupported constructs
  - 2000-2999: Precondition violations (domain / IR provider bugs)
  - 9000-9999: Internal invariant failures

An analysis run either reaches a fixed point or raises one of these; a
caller must never use state from a failed run.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .ir import Location


@unique
class ErrorCode(Enum):
    """Stable identifiers for every error the analysis can raise."""

    # 1000-1999: unsupported constructs
    UNSUPPORTED_RVALUE = "TF-1001"
    UNSUPPORTED_CALL_RETURN = "TF-1002"

    # 2000-2999: precondition violations
    LOCAL_OUT_OF_RANGE = "TF-2001"
    DOMAIN_MISMATCH = "TF-2002"
    MALFORMED_BODY = "TF-2101"

    # 9000-9999: internal invariants
    NON_CONVERGENCE = "TF-9001"
    NON_MONOTONE = "TF-9002"


class TaintFlowError(Exception):
    """Base class for all taint analysis errors."""

    default_code: ErrorCode = ErrorCode.MALFORMED_BODY

    def __init__(
        self,
        message: str,
        *,
        code: Optional[ErrorCode] = None,
        location: Optional["Location"] = None,
    ) -> None:
        self.message = message
        self.code = code if code is not None else self.default_code
        self.location = location
        super().__init__(self.format())

    def format(self) -> str:
        text = f"[{self.code.value}] {self.message}"
        if self.location is not None:
            text += f" (at {self.location})"
        return text


class UnsupportedConstructError(TaintFlowError):
    """An instruction shape the rule table does not cover was encountered
    while the analysis was configured to fail on such shapes."""

    default_code = ErrorCode.UNSUPPORTED_RVALUE


class LocalIndexError(TaintFlowError, IndexError):
    """A local index outside ``[0, local_count)`` reached the domain."""

    default_code = ErrorCode.LOCAL_OUT_OF_RANGE

    def __init__(self, local: int, domain_size: int) -> None:
        self.local = local
        self.domain_size = domain_size
        super().__init__(
            f"local _{local} is outside the domain [0, {domain_size})"
        )


class DomainMismatchError(TaintFlowError, ValueError):
    """Two bit-sets over different local counts were combined."""

    default_code = ErrorCode.DOMAIN_MISMATCH

    def __init__(self, left: int, right: int) -> None:
        self.left = left
        self.right = right
        super().__init__(
            f"cannot combine bit-sets of domain size {left} and {right}"
        )


class MalformedBodyError(TaintFlowError, ValueError):
    """The IR provider handed over a body that is not a well-formed CFG."""

    default_code = ErrorCode.MALFORMED_BODY


class InternalInvariantError(TaintFlowError):
    """The analysis itself misbehaved.  Not a user-facing condition."""

    default_code = ErrorCode.NON_CONVERGENCE


class NonConvergenceError(InternalInvariantError):
    """The worklist was still non-empty after the iteration cap."""

    default_code = ErrorCode.NON_CONVERGENCE

    def __init__(self, body_name: str, max_iterations: int) -> None:
        self.body_name = body_name
        self.max_iterations = max_iterations
        super().__init__(
            f"taint analysis of {body_name!r} did not converge "
            f"in {max_iterations} iterations"
        )


class MonotonicityError(InternalInvariantError):
    """A block's exit state shrank between two successive iterations."""

    default_code = ErrorCode.NON_MONOTONE

    def __init__(self, body_name: str, block: int, lost: list) -> None:
        self.body_name = body_name
        self.block = block
        self.lost = lost
        names = ", ".join(f"_{local}" for local in lost)
        super().__init__(
            f"exit state of bb{block} in {body_name!r} lost {{{names}}}; "
            f"the transfer function is not monotone"
        )
