"""
taintflow.genkill
=================

The interface the transfer function writes through.  It declares intent
("this local becomes tainted" / "becomes clean") and may ask whether a
local is tainted *right now*, i.e. after every gen/kill already issued for
the current instruction sequence.  It never sees the engine's per-block
tables.

Two implementations:

``StateAccumulator``
    Applies each request to a working ``LocalBitSet`` immediately.  This is
    what the engine uses when it replays a block.
``GenKillSet``
    Records requests as a pair of gen / kill sets over a read-only base
    state, last write per local winning.  ``apply()`` folds them into a
    state later.  Used to report what a single instruction did.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .bitset import LocalBitSet


@runtime_checkable
class GenKill(Protocol):
    """Gen/kill sink with a first-class membership query."""

    def gen(self, local: int) -> None:
        """``local`` becomes tainted here."""
        ...

    def kill(self, local: int) -> None:
        """``local`` becomes untainted here."""
        ...

    def contains(self, local: int) -> bool:
        """Is ``local`` possibly tainted given the requests so far?"""
        ...


class StateAccumulator:
    """Applies gen/kill requests directly to ``state``."""

    __slots__ = ("state",)

    def __init__(self, state: LocalBitSet) -> None:
        self.state = state

    def gen(self, local: int) -> None:
        self.state.insert(local)

    def kill(self, local: int) -> None:
        self.state.remove(local)

    def contains(self, local: int) -> bool:
        return self.state.contains(local)


class GenKillSet:
    """Batched gen/kill record over an unmodified base state.

    ``gen_set`` and ``kill_set`` are always disjoint: a later request for the
    same local overrides an earlier one.
    """

    __slots__ = ("base", "gen_set", "kill_set")

    def __init__(self, base: LocalBitSet) -> None:
        self.base = base
        self.gen_set = LocalBitSet.bottom(base.domain_size)
        self.kill_set = LocalBitSet.bottom(base.domain_size)

    def gen(self, local: int) -> None:
        self.gen_set.insert(local)
        self.kill_set.remove(local)

    def kill(self, local: int) -> None:
        self.kill_set.insert(local)
        self.gen_set.remove(local)

    def contains(self, local: int) -> bool:
        if self.gen_set.contains(local):
            return True
        if self.kill_set.contains(local):
            return False
        return self.base.contains(local)

    def is_identity(self) -> bool:
        return self.gen_set.is_empty() and self.kill_set.is_empty()

    def apply(self, state: LocalBitSet) -> None:
        """``state := (state \\ kill) ∪ gen``, in place."""
        state.overwrite(state.difference(self.kill_set).join(self.gen_set))

    def result(self) -> LocalBitSet:
        """The base state with the recorded effect applied, as a new set."""
        out = self.base.copy()
        self.apply(out)
        return out

    def __repr__(self) -> str:
        return f"GenKillSet(gen={self.gen_set!r}, kill={self.kill_set!r})"
