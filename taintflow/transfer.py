"""
taintflow.transfer
==================

Per-instruction taint propagation rules.

Statement rules
---------------

=======================================  ===================================
Shape                                    Effect on ``target``
=======================================  ===================================
``Use(Constant)``                        kill
``Use(Copy | Move)``                     propagate from the source local
``BinaryOp(Constant, Constant)``         kill
``BinaryOp(local, local)``               gen if either is tainted, else kill
``BinaryOp(local, Constant)`` and flip   gen if the local is tainted, else kill
``UnaryOp(Copy | Move)``                 propagate from the operand local
any other rvalue                         none; reported as unsupported
non-assignment statement                 none
=======================================  ===================================

"Propagate ``s → t``" means ``gen(t)`` if ``s`` is tainted, else ``kill(t)``.
A move does not clear its source.

Terminators never change the state.  What happens to a call's destination
on its return edge is decided by the analysis (see
:meth:`taintflow.analysis.MaybeTaintedLocals.call_return_effect`).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Optional

from .genkill import GenKill
from .ir import (
    AddressOf,
    Aggregate,
    Assert,
    Assign,
    BinaryOp,
    Call,
    Cast,
    CheckedBinaryOp,
    Discriminant,
    Drop,
    Goto,
    Len,
    Local,
    Location,
    Nop,
    NullaryOp,
    Ref,
    Repeat,
    Resume,
    Return,
    Rvalue,
    Statement,
    StorageDead,
    StorageLive,
    SwitchInt,
    Terminator,
    UnaryOp,
    Unreachable,
    Use,
    operand_local,
)


class UnsupportedKind(enum.Enum):
    RVALUE = "rvalue"
    CALL_RETURN = "call-return"


@dataclass(frozen=True, order=True)
class UnsupportedConstruct:
    """An instruction the rules left untouched.  Kept for audit."""

    location: Location
    kind: UnsupportedKind
    detail: str

    def __str__(self) -> str:
        return f"{self.location}: unsupported {self.kind.value}: {self.detail}"


# report(location, kind, detail)
UnsupportedReporter = Callable[[Location, UnsupportedKind, str], None]


def _ignore_unsupported(location: Location, kind: UnsupportedKind, detail: str) -> None:
    pass


class TransferFunction:
    """Applies the rule table to one instruction at a time.

    Parameters
    ----------
    trans : GenKill
        Where gen/kill requests go; also answers membership queries.
    report : callable, optional
        Called for every rvalue shape without a rule.
    """

    def __init__(
        self,
        trans: GenKill,
        report: Optional[UnsupportedReporter] = None,
    ) -> None:
        self.trans = trans
        self.report = report or _ignore_unsupported

    def is_tainted(self, local: Local) -> bool:
        return self.trans.contains(local)

    def propagate(self, old: Local, new: Local) -> None:
        if self.is_tainted(old):
            self.trans.gen(new)
        else:
            self.trans.kill(new)

    def _gen_if(self, tainted: bool, target: Local) -> None:
        if tainted:
            self.trans.gen(target)
        else:
            self.trans.kill(target)

    # ----- statements -------------------------------------------------------

    def statement_effect(self, statement: Statement, location: Location) -> None:
        if isinstance(statement, Assign):
            self._handle_assignment(statement, location)
        elif isinstance(statement, (StorageLive, StorageDead, Nop)):
            pass
        else:
            raise TypeError(f"not a statement: {statement!r}")

    def _handle_assignment(self, assign: Assign, location: Location) -> None:
        target = assign.target
        rval = assign.rvalue

        if isinstance(rval, Use):
            source = operand_local(rval.operand)
            if source is None:
                # A constant is always clean.
                self.trans.kill(target)
            else:
                self.propagate(source, target)

        elif isinstance(rval, BinaryOp):
            self._handle_binary(rval, target)

        elif isinstance(rval, UnaryOp):
            source = operand_local(rval.operand)
            if source is None:
                self._unsupported(location, rval)
            else:
                self.propagate(source, target)

        elif isinstance(
            rval,
            (CheckedBinaryOp, Ref, AddressOf, Cast, Aggregate, Repeat,
             Len, Discriminant, NullaryOp),
        ):
            self._unsupported(location, rval)

        else:
            raise TypeError(f"not an rvalue: {rval!r}")

    def _handle_binary(self, rval: BinaryOp, target: Local) -> None:
        lhs = operand_local(rval.lhs)
        rhs = operand_local(rval.rhs)
        if lhs is None and rhs is None:
            self.trans.kill(target)
            return
        tainted = (lhs is not None and self.is_tainted(lhs)) or (
            rhs is not None and self.is_tainted(rhs)
        )
        self._gen_if(tainted, target)

    def _unsupported(self, location: Location, rval: Rvalue) -> None:
        self.report(
            location,
            UnsupportedKind.RVALUE,
            f"{type(rval).__name__} rvalue `{rval}` leaves its target unchanged",
        )

    # ----- terminators ------------------------------------------------------

    def terminator_effect(self, terminator: Terminator, location: Location) -> None:
        """No terminator generates or kills taint by itself."""
        if isinstance(terminator, Goto):
            pass
        elif isinstance(terminator, SwitchInt):
            pass
        elif isinstance(terminator, Return):
            pass
        elif isinstance(terminator, Call):
            # The destination is written on the return edge, not here.
            pass
        elif isinstance(terminator, Assert):
            pass
        elif isinstance(terminator, (Drop, Unreachable, Resume)):
            pass
        else:
            raise TypeError(f"not a terminator: {terminator!r}")
