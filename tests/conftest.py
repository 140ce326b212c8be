# tests/conftest.py
"""
Shared builders for taintflow tests.

Bodies are assembled from small helpers so that each test reads like the
IR it exercises::

    body = make_body(3, [
        block([assign(1, const(5))], Goto(1)),
        block([assign(2, binop("Add", copy(0), copy(1)))], Return()),
    ])
"""

import pytest

from taintflow.bitset import LocalBitSet
from taintflow.ir import (
    Assign,
    BasicBlockData,
    BinaryOp,
    Body,
    Constant,
    Copy,
    Goto,
    Move,
    Return,
    SwitchInt,
    UnaryOp,
    Use,
)


# ── Operand / rvalue / statement builders ────────────────────────

def const(value=0):
    return Constant(value)


def copy(local):
    return Copy(local)


def move(local):
    return Move(local)


def use(operand):
    return Use(operand)


def binop(op, lhs, rhs):
    return BinaryOp(op, lhs, rhs)


def unop(op, operand):
    return UnaryOp(op, operand)


def assign(target, rvalue):
    """``assign(1, const(5))`` is shorthand for ``_1 = const 5``."""
    if isinstance(rvalue, (Constant, Copy, Move)):
        rvalue = Use(rvalue)
    return Assign(target, rvalue)


def block(statements, terminator):
    return BasicBlockData(tuple(statements), terminator)


def make_body(local_count, blocks, name="test_fn"):
    return Body(local_count, blocks, name=name)


def bits(domain_size, *locals_):
    return LocalBitSet.from_locals(domain_size, locals_)


# ── Canned CFG shapes ────────────────────────────────────────────

# Locals for the three-variable scenario.
X, Y, Z = 0, 1, 2


def straight_line_body():
    """bb0: _1 = 5 → bb1: _2 = _0 + _1; _1 = _0; _1 = 5."""
    return make_body(3, [
        block([assign(Y, const(5))], Goto(1)),
        block([
            assign(Z, binop("Add", copy(X), copy(Y))),
            assign(Y, copy(X)),
            assign(Y, const(5)),
        ], Return()),
    ], name="straight_line")


# Locals for the diamond: _0 source, _1 merged, _2 never tainted, _3 cond.
SRC, MERGED, CLEAN, COND = 0, 1, 2, 3


def diamond_body():
    """bb0 branches to bb1 (taints _1) or bb2 (cleans _1); both join in bb3."""
    return make_body(4, [
        block([], SwitchInt(copy(COND), ((0, 1),), 2)),
        block([assign(MERGED, copy(SRC)), assign(CLEAN, const(1))], Goto(3)),
        block([assign(MERGED, const(0)), assign(CLEAN, const(2))], Goto(3)),
        block([], Return()),
    ], name="diamond")


# Locals for the loop: _0 source, _1 a, _2 b, _3 loop counter.
L_SRC, L_A, L_B, L_I = 0, 1, 2, 3


def loop_body():
    """bb1 is the loop head; bb2 shifts taint one local per trip."""
    return make_body(4, [
        block([], Goto(1)),
        block([], SwitchInt(copy(L_I), ((0, 3),), 2)),
        block([assign(L_B, copy(L_A)), assign(L_A, copy(L_SRC))], Goto(1)),
        block([], Return()),
    ], name="loop")


@pytest.fixture
def straight_line():
    return straight_line_body()


@pytest.fixture
def diamond():
    return diamond_body()


@pytest.fixture
def loop():
    return loop_body()
