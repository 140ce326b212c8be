"""
taintflow.ir
============

The intermediate representation the analysis consumes.

The host compiler owns its IR; it hands the analysis one :class:`Body` per
function, translated into the closed set of shapes below.  The analysis only
reads these objects.

A body is a list of basic blocks indexed densely from 0 (block 0 is the
entry).  Each block is an ordered list of statements followed by exactly one
terminator; the terminators define the CFG edges.

Public API
----------
    Local                                  - dense local index (``int``)
    Constant, Copy, Move                   - operands
    Use, BinaryOp, CheckedBinaryOp,
    UnaryOp, Ref, AddressOf, Cast,
    Aggregate, Repeat, Len, Discriminant,
    NullaryOp                              - rvalues
    Assign, StorageLive, StorageDead, Nop  - statements
    Goto, SwitchInt, Return, Call, Assert,
    Drop, Unreachable, Resume              - terminators
    EdgeKind                               - classification of a CFG edge
    BasicBlockData, Body, Location
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .errors import MalformedBodyError

Local = int
BlockId = int


def local_name(local: Local) -> str:
    return f"_{local}"


# ---------------------------------------------------------------------------
# Operands
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Constant:
    """A literal; never carries taint."""

    value: Any = None

    def __str__(self) -> str:
        return f"const {self.value!r}"


@dataclass(frozen=True)
class Copy:
    """A non-destructive read of a local."""

    local: Local

    def __str__(self) -> str:
        return f"copy {local_name(self.local)}"


@dataclass(frozen=True)
class Move:
    """A destructive read of a local."""

    local: Local

    def __str__(self) -> str:
        return f"move {local_name(self.local)}"


Operand = Union[Constant, Copy, Move]


def operand_local(operand: Operand) -> Optional[Local]:
    """The local an operand reads, or ``None`` for a constant."""
    if isinstance(operand, (Copy, Move)):
        return operand.local
    if isinstance(operand, Constant):
        return None
    raise TypeError(f"not an operand: {operand!r}")


# ---------------------------------------------------------------------------
# Rvalues
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Use:
    operand: Operand

    def __str__(self) -> str:
        return str(self.operand)


@dataclass(frozen=True)
class BinaryOp:
    op: str
    lhs: Operand
    rhs: Operand

    def __str__(self) -> str:
        return f"{self.op}({self.lhs}, {self.rhs})"


@dataclass(frozen=True)
class CheckedBinaryOp:
    """Overflow-checked binary operation yielding ``(result, overflowed)``."""

    op: str
    lhs: Operand
    rhs: Operand

    def __str__(self) -> str:
        return f"Checked{self.op}({self.lhs}, {self.rhs})"


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: Operand

    def __str__(self) -> str:
        return f"{self.op}({self.operand})"


@dataclass(frozen=True)
class Ref:
    local: Local
    mutable: bool = False

    def __str__(self) -> str:
        return f"&{'mut ' if self.mutable else ''}{local_name(self.local)}"


@dataclass(frozen=True)
class AddressOf:
    local: Local
    mutable: bool = False

    def __str__(self) -> str:
        kind = "mut" if self.mutable else "const"
        return f"&raw {kind} {local_name(self.local)}"


@dataclass(frozen=True)
class Cast:
    kind: str
    operand: Operand

    def __str__(self) -> str:
        return f"{self.operand} as {self.kind}"


@dataclass(frozen=True)
class Aggregate:
    kind: str
    operands: Tuple[Operand, ...] = ()

    def __str__(self) -> str:
        return f"{self.kind}({', '.join(map(str, self.operands))})"


@dataclass(frozen=True)
class Repeat:
    operand: Operand
    count: int

    def __str__(self) -> str:
        return f"[{self.operand}; {self.count}]"


@dataclass(frozen=True)
class Len:
    local: Local

    def __str__(self) -> str:
        return f"Len({local_name(self.local)})"


@dataclass(frozen=True)
class Discriminant:
    local: Local

    def __str__(self) -> str:
        return f"discriminant({local_name(self.local)})"


@dataclass(frozen=True)
class NullaryOp:
    op: str

    def __str__(self) -> str:
        return f"{self.op}()"


Rvalue = Union[
    Use, BinaryOp, CheckedBinaryOp, UnaryOp, Ref, AddressOf, Cast,
    Aggregate, Repeat, Len, Discriminant, NullaryOp,
]


# ---------------------------------------------------------------------------
# Statements
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Assign:
    target: Local
    rvalue: Rvalue

    def __str__(self) -> str:
        return f"{local_name(self.target)} = {self.rvalue}"


@dataclass(frozen=True)
class StorageLive:
    local: Local

    def __str__(self) -> str:
        return f"StorageLive({local_name(self.local)})"


@dataclass(frozen=True)
class StorageDead:
    local: Local

    def __str__(self) -> str:
        return f"StorageDead({local_name(self.local)})"


@dataclass(frozen=True)
class Nop:
    def __str__(self) -> str:
        return "nop"


Statement = Union[Assign, StorageLive, StorageDead, Nop]


# ---------------------------------------------------------------------------
# Terminators
# ---------------------------------------------------------------------------


class EdgeKind(enum.Enum):
    """Classification of a CFG edge."""

    GOTO = "goto"
    SWITCH_CASE = "switch-case"
    SWITCH_OTHERWISE = "otherwise"
    CALL_RETURN = "return"
    ASSERT_OK = "success"
    DROP_DONE = "drop"
    UNWIND = "unwind"


@dataclass(frozen=True)
class Goto:
    target: BlockId

    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        return [(self.target, EdgeKind.GOTO)]

    def __str__(self) -> str:
        return f"goto -> bb{self.target}"


@dataclass(frozen=True)
class SwitchInt:
    discr: Operand
    targets: Tuple[Tuple[int, BlockId], ...]
    otherwise: BlockId

    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        out = [(bb, EdgeKind.SWITCH_CASE) for _, bb in self.targets]
        out.append((self.otherwise, EdgeKind.SWITCH_OTHERWISE))
        return out

    def __str__(self) -> str:
        arms = ", ".join(f"{v}: bb{bb}" for v, bb in self.targets)
        sep = ", " if arms else ""
        return f"switchInt({self.discr}) -> [{arms}{sep}otherwise: bb{self.otherwise}]"


@dataclass(frozen=True)
class Return:
    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        return []

    def __str__(self) -> str:
        return "return"


@dataclass(frozen=True)
class Call:
    """A function call.  ``target`` is the normal-return continuation; it is
    ``None`` for calls that never return.  ``cleanup`` is the unwind edge."""

    func: Operand
    args: Tuple[Operand, ...] = ()
    destination: Optional[Local] = None
    target: Optional[BlockId] = None
    cleanup: Optional[BlockId] = None

    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        out = []
        if self.target is not None:
            out.append((self.target, EdgeKind.CALL_RETURN))
        if self.cleanup is not None:
            out.append((self.cleanup, EdgeKind.UNWIND))
        return out

    def __str__(self) -> str:
        dest = f"{local_name(self.destination)} = " if self.destination is not None else ""
        args = ", ".join(map(str, self.args))
        text = f"{dest}{self.func}({args})"
        if self.target is not None:
            text += f" -> bb{self.target}"
        if self.cleanup is not None:
            text += f" unwind bb{self.cleanup}"
        return text


@dataclass(frozen=True)
class Assert:
    cond: Operand
    expected: bool
    target: BlockId
    cleanup: Optional[BlockId] = None

    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        out = [(self.target, EdgeKind.ASSERT_OK)]
        if self.cleanup is not None:
            out.append((self.cleanup, EdgeKind.UNWIND))
        return out

    def __str__(self) -> str:
        neg = "" if self.expected else "!"
        return f"assert({neg}{self.cond}) -> bb{self.target}"


@dataclass(frozen=True)
class Drop:
    local: Local
    target: BlockId
    unwind: Optional[BlockId] = None

    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        out = [(self.target, EdgeKind.DROP_DONE)]
        if self.unwind is not None:
            out.append((self.unwind, EdgeKind.UNWIND))
        return out

    def __str__(self) -> str:
        return f"drop({local_name(self.local)}) -> bb{self.target}"


@dataclass(frozen=True)
class Unreachable:
    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        return []

    def __str__(self) -> str:
        return "unreachable"


@dataclass(frozen=True)
class Resume:
    def edges(self) -> List[Tuple[BlockId, EdgeKind]]:
        return []

    def __str__(self) -> str:
        return "resume"


Terminator = Union[Goto, SwitchInt, Return, Call, Assert, Drop, Unreachable, Resume]


# ---------------------------------------------------------------------------
# Blocks, locations, bodies
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BasicBlockData:
    statements: Tuple[Statement, ...]
    terminator: Terminator

    def __post_init__(self) -> None:
        if not isinstance(self.statements, tuple):
            object.__setattr__(self, "statements", tuple(self.statements))

    def successors(self) -> List[BlockId]:
        return [bb for bb, _ in self.terminator.edges()]


@dataclass(frozen=True, order=True)
class Location:
    """A program point: ``statement_index == len(statements)`` is the
    block's terminator."""

    block: BlockId
    statement_index: int

    def __str__(self) -> str:
        return f"bb{self.block}[{self.statement_index}]"


@dataclass
class Body:
    """One function's CFG.

    Attributes
    ----------
    local_count : int
        Number of locals; sizes the abstract domain.
    blocks : sequence of BasicBlockData
        Block ``i`` is ``blocks[i]``; block 0 is the entry.
    name : str
        Used in logs, errors and result lookups.
    """

    local_count: int
    blocks: Sequence[BasicBlockData]
    name: str = "<body>"
    _predecessors: Optional[Dict[BlockId, List[BlockId]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.blocks = tuple(self.blocks)

    @property
    def entry(self) -> BlockId:
        return 0

    def __len__(self) -> int:
        return len(self.blocks)

    def __getitem__(self, bb: BlockId) -> BasicBlockData:
        return self.blocks[bb]

    def block_ids(self) -> range:
        return range(len(self.blocks))

    def successors(self, bb: BlockId) -> List[BlockId]:
        """Successor blocks of ``bb``, deduplicated, in terminator order."""
        seen: List[BlockId] = []
        for succ in self.blocks[bb].successors():
            if succ not in seen:
                seen.append(succ)
        return seen

    def predecessors(self, bb: BlockId) -> List[BlockId]:
        if self._predecessors is None:
            preds: Dict[BlockId, List[BlockId]] = {b: [] for b in self.block_ids()}
            for src in self.block_ids():
                for dst in self.successors(src):
                    preds[dst].append(src)
            self._predecessors = preds
        return self._predecessors[bb]

    def reverse_postorder(self) -> List[BlockId]:
        """Blocks reachable from the entry, in reverse post-order."""
        visited = {self.entry}
        order: List[BlockId] = []
        stack = [(self.entry, iter(self.successors(self.entry)))]
        while stack:
            bb, succs = stack[-1]
            for succ in succs:
                if succ not in visited:
                    visited.add(succ)
                    stack.append((succ, iter(self.successors(succ))))
                    break
            else:
                stack.pop()
                order.append(bb)
        order.reverse()
        return order

    def edges(self) -> Iterator[Tuple[BlockId, BlockId, EdgeKind]]:
        for src, data in enumerate(self.blocks):
            for dst, kind in data.terminator.edges():
                yield src, dst, kind

    def edge_count(self) -> int:
        return sum(len(self.successors(bb)) for bb in self.block_ids())

    def terminator_location(self, bb: BlockId) -> Location:
        return Location(bb, len(self.blocks[bb].statements))

    def instruction_at(self, location: Location) -> Union[Statement, Terminator]:
        data = self.blocks[location.block]
        if location.statement_index == len(data.statements):
            return data.terminator
        return data.statements[location.statement_index]

    def validate(self) -> None:
        """Check the structural preconditions of the analysis."""
        if self.local_count < 0:
            raise MalformedBodyError(
                f"{self.name}: negative local count {self.local_count}"
            )
        if not self.blocks:
            raise MalformedBodyError(f"{self.name}: body has no basic blocks")
        n = len(self.blocks)
        for bb, data in enumerate(self.blocks):
            for succ, kind in data.terminator.edges():
                if not 0 <= succ < n:
                    raise MalformedBodyError(
                        f"{self.name}: {kind.value} edge to non-existent bb{succ}",
                        location=self.terminator_location(bb),
                    )

    def validate_location(self, location: Location) -> None:
        if not 0 <= location.block < len(self.blocks):
            raise MalformedBodyError(f"{self.name}: no block bb{location.block}")
        limit = len(self.blocks[location.block].statements)
        if not 0 <= location.statement_index <= limit:
            raise MalformedBodyError(
                f"{self.name}: bb{location.block} has no instruction "
                f"{location.statement_index}"
            )
