# tests/test_ir.py
"""
Tests for the IR shapes: printing, CFG edges and body validation.
"""

import pytest

from taintflow.errors import MalformedBodyError
from taintflow.ir import (
    Assert,
    BasicBlockData,
    Call,
    Constant,
    Copy,
    Drop,
    EdgeKind,
    Goto,
    Location,
    Move,
    Resume,
    Return,
    SwitchInt,
    operand_local,
)
from tests.conftest import assign, binop, block, const, copy, make_body, move


class TestPrinting:

    def test_operands(self):
        assert str(const(5)) == "const 5"
        assert str(copy(1)) == "copy _1"
        assert str(move(2)) == "move _2"

    def test_statements(self):
        assert str(assign(2, binop("Add", copy(0), copy(1)))) == "_2 = Add(copy _0, copy _1)"
        assert str(assign(1, const(5))) == "_1 = const 5"

    def test_terminators(self):
        assert str(Goto(3)) == "goto -> bb3"
        assert str(SwitchInt(copy(0), ((0, 1),), 2)) == (
            "switchInt(copy _0) -> [0: bb1, otherwise: bb2]"
        )
        assert str(Call(Constant("f"), (Copy(1),), destination=0, target=1)) == (
            "_0 = const 'f'(copy _1) -> bb1"
        )

    def test_location(self):
        assert str(Location(1, 2)) == "bb1[2]"
        assert Location(0, 5) < Location(1, 0)


class TestOperandLocal:

    def test_locals_and_constants(self):
        assert operand_local(Copy(3)) == 3
        assert operand_local(Move(1)) == 1
        assert operand_local(Constant(0)) is None

    def test_rejects_non_operand(self):
        with pytest.raises(TypeError):
            operand_local("x")


class TestEdges:

    def test_switch_cases_before_otherwise(self):
        term = SwitchInt(copy(0), ((0, 2), (1, 3)), 1)
        assert term.edges() == [
            (2, EdgeKind.SWITCH_CASE),
            (3, EdgeKind.SWITCH_CASE),
            (1, EdgeKind.SWITCH_OTHERWISE),
        ]

    def test_call_return_then_unwind(self):
        term = Call(Constant("f"), target=1, cleanup=2)
        assert term.edges() == [(1, EdgeKind.CALL_RETURN), (2, EdgeKind.UNWIND)]

    def test_assert_and_drop(self):
        assert Assert(copy(0), True, 1, cleanup=2).edges() == [
            (1, EdgeKind.ASSERT_OK), (2, EdgeKind.UNWIND),
        ]
        assert Drop(0, 1).edges() == [(1, EdgeKind.DROP_DONE)]

    def test_exits_have_no_edges(self):
        assert Return().edges() == []
        assert Resume().edges() == []


class TestBody:

    def body(self):
        return make_body(2, [
            block([], SwitchInt(copy(0), ((0, 1), (1, 1)), 2)),
            block([assign(1, const(0))], Goto(2)),
            block([], Return()),
        ])

    def test_statements_become_tuple(self):
        data = BasicBlockData([assign(0, const(1))], Return())
        assert isinstance(data.statements, tuple)

    def test_successors_deduplicated(self):
        body = self.body()
        assert body.successors(0) == [1, 2]
        assert body.edge_count() == 3
        assert len(list(body.edges())) == 4

    def test_predecessors(self):
        body = self.body()
        assert body.predecessors(0) == []
        assert body.predecessors(2) == [0, 1]

    def test_reverse_postorder(self):
        assert self.body().reverse_postorder() == [0, 1, 2]

    def test_reverse_postorder_skips_unreachable(self):
        body = make_body(1, [
            block([], Goto(2)),
            block([], Goto(2)),
            block([], Goto(0)),
        ])
        assert body.reverse_postorder() == [0, 2]

    def test_instruction_at(self):
        body = self.body()
        assert body.instruction_at(Location(1, 0)) == assign(1, const(0))
        assert body.instruction_at(Location(1, 1)) == Goto(2)
        assert body.terminator_location(1) == Location(1, 1)

    def test_validate_location(self):
        body = self.body()
        body.validate_location(Location(1, 1))
        with pytest.raises(MalformedBodyError):
            body.validate_location(Location(1, 2))
        with pytest.raises(MalformedBodyError):
            body.validate_location(Location(3, 0))

    def test_negative_local_count(self):
        with pytest.raises(MalformedBodyError):
            make_body(-1, [block([], Return())]).validate()
