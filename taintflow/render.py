"""
taintflow.render
================

Human-readable dumps of a :class:`~taintflow.results.TaintResults`.

``format_results``
    MIR-like text: every block with its entry/exit sets and the gen/kill
    declared by each instruction.
``to_dot``
    Graphviz DOT text of the CFG annotated with taint facts.
``render``
    Lay the DOT out to an image through the ``graphviz`` package
    (``pip install taintflow[viz]``).
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple, Union

from .genkill import GenKillSet
from .ir import BlockId, EdgeKind, Location
from .results import TaintResults


def _instruction_effects(
    results: TaintResults, bb: BlockId
) -> List[Tuple[str, GenKillSet]]:
    """``(text, effect)`` for every instruction of ``bb``, in order."""
    body = results.body
    analysis = results.analysis
    data = body[bb]
    state = results.entry_set(bb)
    out: List[Tuple[str, GenKillSet]] = []
    for idx, statement in enumerate(data.statements):
        effect = GenKillSet(state)
        analysis.statement_effect(effect, statement, Location(bb, idx))
        effect.apply(state)
        out.append((str(statement), effect))
    effect = GenKillSet(state)
    analysis.terminator_effect(effect, data.terminator, body.terminator_location(bb))
    out.append((str(data.terminator), effect))
    return out


def _effect_text(effect: GenKillSet) -> str:
    if effect.is_identity():
        return ""
    parts = []
    if not effect.gen_set.is_empty():
        parts.append(f"gen {effect.gen_set!r}")
    if not effect.kill_set.is_empty():
        parts.append(f"kill {effect.kill_set!r}")
    return "; ".join(parts)


def format_results(results: TaintResults) -> str:
    """Return a text dump of ``results``.

    Reachable blocks come first in reverse post-order, so each block is
    printed after its forward predecessors; unreachable blocks follow.
    """
    body = results.body
    lines = [
        f"{results.analysis.name}({body.name}): {body.local_count} locals, "
        f"{len(body)} blocks, {results.iterations} iterations"
    ]
    order = body.reverse_postorder()
    seen = set(order)
    order.extend(bb for bb in body.block_ids() if bb not in seen)
    for bb in order:
        if not results.was_reached(bb):
            lines.append(f"bb{bb}: unreachable")
            continue
        lines.append(f"bb{bb}: entry {results.entry_set(bb)!r}")
        for text, effect in _instruction_effects(results, bb):
            note = _effect_text(effect)
            lines.append(f"    {text:<40} {note}".rstrip())
        lines.append(f"  exit {results.exit_set(bb)!r}")
    if results.unsupported:
        lines.append("unsupported:")
        for entry in results.unsupported:
            lines.append(f"    {entry}")
    return "\n".join(lines)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def to_dot(results: TaintResults, title: Optional[str] = None) -> str:
    """Return a Graphviz DOT representation of the annotated CFG."""
    body = results.body
    lines = ["digraph TaintFlow {"]
    lines.append(f'  label="{_escape(title or body.name)}";')
    lines.append("  node [shape=box, fontname=monospace, fontsize=10];")
    for bb in body.block_ids():
        if not results.was_reached(bb):
            lines.append(
                f'  BB{bb} [label="bb{bb}\\n(unreachable)", style=dashed, color=gray];'
            )
            continue
        rows = [f"bb{bb}", f"in:  {results.entry_set(bb)!r}"]
        rows.extend(text for text, _ in _instruction_effects(results, bb))
        exit_state = results.exit_set(bb)
        rows.append(f"out: {exit_state!r}")
        lbl = "\\l".join(_escape(r) for r in rows) + "\\l"
        color = ""
        if not exit_state.is_empty():
            color = ', style=filled, fillcolor="#ffcccc"'
        elif bb == body.entry:
            color = ', style=filled, fillcolor="#ccffcc"'
        lines.append(f'  BB{bb} [label="{lbl}"{color}];')
    for src, dst, kind in body.edges():
        style = ""
        if kind == EdgeKind.CALL_RETURN:
            style = ", color=blue, fontcolor=blue"
        elif kind == EdgeKind.UNWIND:
            style = ", style=dotted"
        lines.append(f'  BB{src} -> BB{dst} [label="{kind.value}"{style}];')
    lines.append("}")
    return "\n".join(lines)


def render(
    results: TaintResults,
    path: Union[str, Path],
    fmt: str = "svg",
    title: Optional[str] = None,
) -> str:
    """Render the annotated CFG to ``path`` and return the written file."""
    import graphviz

    source = graphviz.Source(to_dot(results, title))
    return source.render(outfile=str(path), format=fmt, cleanup=True)
