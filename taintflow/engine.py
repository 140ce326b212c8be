"""
taintflow.engine
================

A forward gen/kill fixpoint engine over a :class:`~taintflow.ir.Body`.

Theory
------
A gen/kill analysis over a bit-vector domain is defined by:

1.  ``bottom_value(body)``: the least element, sized to the body's locals.
2.  ``initialize_start_block(body, state)``: seeds the entry block.
3.  Per-instruction effects that write through a
    :class:`~taintflow.genkill.GenKill` accumulator.
4.  An optional ``call_return_effect`` applied on a call's normal-return
    edge only.

The join at merge points is union.

Worklist algorithm
------------------
::

    worklist := [entry]
    while worklist:
        bb    := pop front
        entry := seed(bb) ∪ ⋃ edge_state(pred → bb)   for processed preds
        exit  := replay(bb, copy(entry))
        if bb never processed or exit ≠ old exit:
            record exit; push unqueued successors

Each block moves ``Unvisited → Queued → Processed`` and is re-queued when a
predecessor's exit changes.  Blocks that are never reached keep no state
and read as bottom.  Because each exit only ever grows within
``local_count`` bits, the number of pops is bounded by
``blocks + edges * (local_count + 1)``; exceeding the configured cap raises
:class:`~taintflow.errors.NonConvergenceError`.
"""

from __future__ import annotations

import abc
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, Optional, Set, Tuple

from .bitset import LocalBitSet
from .config import DEFAULT_CONFIG, AnalysisConfig
from .errors import MonotonicityError, NonConvergenceError
from .genkill import GenKill, StateAccumulator
from .ir import BlockId, Body, Call, Location, Statement, Terminator
from .results import TaintResults

logger = logging.getLogger(__name__)

# observer(bb, entry_state, exit_state, changed)
BlockObserver = Callable[[BlockId, LocalBitSet, LocalBitSet, bool], None]


class GenKillAnalysis(abc.ABC):
    """Contract between an analysis and :class:`FixpointEngine`."""

    name: str = "GenKillAnalysis"

    @abc.abstractmethod
    def bottom_value(self, body: Body) -> LocalBitSet:
        """The least element of the domain for ``body``."""
        ...

    def initialize_start_block(self, body: Body, state: LocalBitSet) -> None:
        """Adjust the entry block's incoming state.  Default: leave bottom."""

    @abc.abstractmethod
    def statement_effect(
        self, trans: GenKill, statement: Statement, location: Location
    ) -> None:
        ...

    @abc.abstractmethod
    def terminator_effect(
        self, trans: GenKill, terminator: Terminator, location: Location
    ) -> None:
        ...

    def call_return_effect(
        self, trans: GenKill, block: BlockId, call: Call, location: Location
    ) -> None:
        """Effect on the edge from a call to its return continuation."""

    def quiet_copy(self) -> "GenKillAnalysis":
        """An equivalent analysis for replaying results after the run."""
        return self

    def unsupported_constructs(self) -> Tuple[Any, ...]:
        """Audit records collected during the run, sorted by location."""
        return ()

    # ----- block replay -----------------------------------------------------

    def apply_block_effects(
        self, body: Body, bb: BlockId, state: LocalBitSet,
        start: int = 0, stop: Optional[int] = None,
    ) -> None:
        """Replay instructions ``start`` up to ``stop`` of block ``bb`` on
        ``state`` in place.

        The terminator counts as instruction ``len(statements)``; ``stop``
        defaults to just past it.
        """
        terminator_index = len(body[bb].statements)
        if stop is None:
            stop = terminator_index + 1
        trans = StateAccumulator(state)
        for idx in range(start, stop):
            location = Location(bb, idx)
            instruction = body.instruction_at(location)
            if idx == terminator_index:
                self.terminator_effect(trans, instruction, location)
            else:
                self.statement_effect(trans, instruction, location)


class FixpointEngine:
    """Drives one analysis over one body to its fixed point.

    Parameters
    ----------
    body : Body
        The CFG to analyse.
    analysis : GenKillAnalysis
        Domain, seed and per-instruction effects.
    config : AnalysisConfig, optional
        Iteration cap and monotonicity guard.
    observer : callable, optional
        ``observer(bb, entry, exit, changed)`` after every block is processed.
        It receives copies.
    """

    def __init__(
        self,
        body: Body,
        analysis: GenKillAnalysis,
        config: Optional[AnalysisConfig] = None,
        observer: Optional[BlockObserver] = None,
    ) -> None:
        self.body = body
        self.analysis = analysis
        self.config = config or DEFAULT_CONFIG
        self.observer = observer

    def iterate_to_fixpoint(self) -> TaintResults:
        body = self.body
        body.validate()

        start = self.analysis.bottom_value(body)
        self.analysis.initialize_start_block(body, start)

        bound = self.config.iteration_bound(
            len(body), body.edge_count(), body.local_count
        )
        entry_sets: Dict[BlockId, LocalBitSet] = {}
        exit_sets: Dict[BlockId, LocalBitSet] = {}

        worklist: Deque[BlockId] = deque([body.entry])
        queued: Set[BlockId] = {body.entry}
        iterations = 0

        while worklist:
            if iterations >= bound:
                raise NonConvergenceError(body.name, bound)
            bb = worklist.popleft()
            queued.discard(bb)
            iterations += 1

            state = self._join_incoming(bb, start, exit_sets)
            entry_sets[bb] = state.copy()
            self.analysis.apply_block_effects(body, bb, state)

            old = exit_sets.get(bb)
            if old is not None and self.config.check_monotonicity:
                if not old.is_subset(state):
                    raise MonotonicityError(
                        body.name, bb, old.difference(state).to_list()
                    )
            changed = old is None or state != old

            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "%s: bb%d entry=%r exit=%r%s",
                    body.name, bb, entry_sets[bb], state,
                    " (changed)" if changed else "",
                )
            if self.observer is not None:
                self.observer(bb, entry_sets[bb].copy(), state.copy(), changed)

            if changed:
                exit_sets[bb] = state
                for succ in body.successors(bb):
                    if succ not in queued:
                        worklist.append(succ)
                        queued.add(succ)

        logger.info(
            "%s: %s reached a fixed point after %d iterations "
            "(%d of %d blocks visited)",
            body.name, self.analysis.name, iterations,
            len(exit_sets), len(body),
        )
        return TaintResults(
            body=body,
            analysis=self.analysis.quiet_copy(),
            entry_sets=entry_sets,
            exit_sets=exit_sets,
            iterations=iterations,
            unsupported=self.analysis.unsupported_constructs(),
        )

    def _join_incoming(
        self,
        bb: BlockId,
        start: LocalBitSet,
        exit_sets: Dict[BlockId, LocalBitSet],
    ) -> LocalBitSet:
        if bb == self.body.entry:
            state = start.copy()
        else:
            state = self.analysis.bottom_value(self.body)
        for pred in self.body.predecessors(bb):
            pred_exit = exit_sets.get(pred)
            if pred_exit is None:
                continue
            state.union_with(self.edge_state(pred, bb, pred_exit))
        return state

    def edge_state(
        self, pred: BlockId, succ: BlockId, pred_exit: LocalBitSet
    ) -> LocalBitSet:
        """The state flowing along ``pred → succ``."""
        terminator = self.body[pred].terminator
        if isinstance(terminator, Call) and terminator.target == succ:
            state = pred_exit.copy()
            self.analysis.call_return_effect(
                StateAccumulator(state),
                pred,
                terminator,
                self.body.terminator_location(pred),
            )
            return state
        return pred_exit
