from __future__ import annotations

import re
from typing import Any, Callable, TextIO

from gtreex.codec.payload import PayloadCodec, emit
from gtreex.core.pool import NodeId, ObjectPool
from gtreex.core.tree import GTree

_RECORD_SPECIALS = re.compile(r'([{}|<>"\\])')


def _escape(text: str) -> str:
    return _RECORD_SPECIALS.sub(r"\\\1", text.replace("\n", " "))


def _formatter(codec: PayloadCodec | None) -> Callable[[Any], str]:
    return repr if codec is None else codec.format


def _link_label(index: int) -> str:
    return "NONE" if index < 0 else str(index)


def dump_pool_graphviz(tree: GTree, sink: TextIO, codec: PayloadCodec | None = None) -> None:
    """Write a GraphViz description of every pool slot, occupied or free.

    Parent-to-child relations become solid edges, sibling links dotted ones.
    """

    pool = tree.pool
    fmt = _formatter(codec)
    emit(sink, "digraph gtree {\n\tnode [shape=record]\n\tsubgraph cluster_pool {\n")
    for index in range(pool.capacity):
        node_id = pool.id_at(index)
        if pool.is_occupied(index):
            payload = _escape(fmt(pool.peek(index)))
            label = (
                f"Node {index} | {{generation | {node_id.generation}}} | {{data | {payload}}}"
            )
            style = " style=bold" if node_id == tree.root else ""
        else:
            label = f"Free {index} | {{next free | {_link_label(pool.next_free_of(index))}}}"
            style = " style=dashed"
        emit(sink, f'\t\tnode{index} [label="{label}"{style}]\n')
    emit(sink, "\t}\n")

    for node_id in pool.ids():
        for child in tree.children(node_id):
            emit(sink, f"\tnode{node_id.index} -> node{child.index}\n")
        sibling = tree.next_sibling_of(node_id)
        if not sibling.is_none:
            emit(sink, f"\tnode{node_id.index} -> node{sibling.index} [style=dotted]\n")
    emit(sink, "}\n")


def dump_free(pool: ObjectPool, sink: TextIO) -> None:
    """Write the free list in the order `alloc` would hand the slots out."""

    chain = [str(index) for index in pool.free_ids()]
    emit(sink, f"free slots: {len(chain)} of {pool.capacity}\n")
    emit(sink, " -> ".join(chain + ["NONE"]) + "\n")


def dump_tree(
    tree: GTree,
    sink: TextIO,
    codec: PayloadCodec | None = None,
    node_id: NodeId | None = None,
) -> None:
    """Indented listing, one node per line."""

    fmt = _formatter(codec)
    for current, level in tree.walk(node_id):
        emit(sink, f"{'  ' * level}[{current.index}] {fmt(tree.payload_of(current))}\n")
