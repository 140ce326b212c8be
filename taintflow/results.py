"""
taintflow.results
=================

Read-only view over a completed fixed-point run.

Only block entry and exit states are stored.  Anything finer is recomputed
on demand by replaying a block prefix from its entry state;
:class:`ResultsCursor` keeps its position so that a forward scan over a
block costs one replay in total.

"At" a location always means *before* the instruction there runs, which is
what a sink check on a call terminator needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

from .bitset import LocalBitSet
from .ir import BlockId, Body, Location

if TYPE_CHECKING:
    from .transfer import UnsupportedConstruct


@dataclass
class TaintResults:
    """Per-block taint facts of one body.

    Attributes
    ----------
    body : Body
        The analysed body.
    analysis : GenKillAnalysis
        Used to replay block prefixes.
    entry_sets, exit_sets : dict
        Block id → state.  Blocks the engine never reached are absent.
    iterations : int
        Worklist pops performed.
    unsupported : tuple of UnsupportedConstruct
        Every instruction the rules left untouched, once per location.
    """

    body: Body
    analysis: Any
    entry_sets: Dict[BlockId, LocalBitSet] = field(default_factory=dict)
    exit_sets: Dict[BlockId, LocalBitSet] = field(default_factory=dict)
    iterations: int = 0
    unsupported: Tuple["UnsupportedConstruct", ...] = ()

    @property
    def visited_blocks(self) -> List[BlockId]:
        return sorted(self.exit_sets)

    def was_reached(self, bb: BlockId) -> bool:
        return bb in self.exit_sets

    def _bottom(self) -> LocalBitSet:
        return self.analysis.bottom_value(self.body)

    def entry_set(self, bb: BlockId) -> LocalBitSet:
        """Locals possibly tainted on entry to ``bb`` (a copy)."""
        self.body.validate_location(Location(bb, 0))
        state = self.entry_sets.get(bb)
        return state.copy() if state is not None else self._bottom()

    def exit_set(self, bb: BlockId) -> LocalBitSet:
        """Locals possibly tainted after ``bb``'s terminator (a copy)."""
        self.body.validate_location(Location(bb, 0))
        state = self.exit_sets.get(bb)
        return state.copy() if state is not None else self._bottom()

    def state_before(self, location: Location) -> LocalBitSet:
        cursor = self.cursor()
        cursor.seek_before(location)
        return cursor.get()

    def state_after(self, location: Location) -> LocalBitSet:
        cursor = self.cursor()
        cursor.seek_after(location)
        return cursor.get()

    def is_possibly_tainted(self, local: int, location: Location) -> bool:
        """May ``local`` hold a tainted value just before ``location``?"""
        return self.state_before(location).contains(local)

    def cursor(self) -> "ResultsCursor":
        return ResultsCursor(self)

    def summary(self) -> Dict[str, Any]:
        return {
            "body": self.body.name,
            "analysis": self.analysis.name,
            "locals": self.body.local_count,
            "blocks": len(self.body),
            "visited_blocks": len(self.exit_sets),
            "iterations": self.iterations,
            "unsupported": len(self.unsupported),
        }


class ResultsCursor:
    """Walks the per-instruction states of a :class:`TaintResults`."""

    def __init__(self, results: TaintResults) -> None:
        self.results = results
        self._block: Optional[BlockId] = None
        # number of instructions of ``_block`` already applied to ``_state``
        self._applied = 0
        self._state: Optional[LocalBitSet] = None

    def _reset(self, bb: BlockId) -> LocalBitSet:
        self._block = bb
        self._applied = 0
        self._state = self.results.entry_set(bb)
        return self._state

    def _seek(self, bb: BlockId, applied: int) -> None:
        state = self._state
        if state is None or self._block != bb or self._applied > applied:
            state = self._reset(bb)
        self.results.analysis.apply_block_effects(
            self.results.body, bb, state, start=self._applied, stop=applied
        )
        self._applied = applied

    def seek_before(self, location: Location) -> None:
        self.results.body.validate_location(location)
        self._seek(location.block, location.statement_index)

    def seek_after(self, location: Location) -> None:
        self.results.body.validate_location(location)
        self._seek(location.block, location.statement_index + 1)

    def seek_to_block_end(self, bb: BlockId) -> None:
        self.seek_after(self.results.body.terminator_location(bb))

    @property
    def position(self) -> Optional[Tuple[BlockId, int]]:
        if self._block is None:
            return None
        return self._block, self._applied

    def get(self) -> LocalBitSet:
        if self._state is None:
            raise RuntimeError("cursor has not been positioned; call seek_before() first")
        return self._state.copy()

    def contains(self, local: int) -> bool:
        if self._state is None:
            raise RuntimeError("cursor has not been positioned; call seek_before() first")
        return self._state.contains(local)
