"""Bracketed text format for storing and restoring subtrees.

::

    node     := '{' payload children '}'
    payload  := '[' <payload-lines> ']'
    children := node*

Each token sits on its own line; indentation is one tab per nesting level
and is ignored when reading.
"""

from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, TextIO

from gtreex.codec.payload import (
    TOKEN_CLOSE,
    TOKEN_OPEN,
    TOKEN_PAYLOAD_CLOSE,
    TOKEN_PAYLOAD_OPEN,
    LineSource,
    PayloadCodec,
    emit,
    is_token,
)
from gtreex.core.pool import NONE, NodeId
from gtreex.core.tree import GTree
from gtreex.errors import GTreeError, PayloadError, RestorationError, TreeIOError
from gtreex.logging import get_logger

LOGGER = get_logger("codec.text")


def _as_source(source: LineSource | TextIO) -> LineSource:
    if isinstance(source, LineSource):
        return source
    return LineSource(source)


def _write_payload(codec: PayloadCodec, value: Any, level: int, sink: TextIO) -> None:
    try:
        codec.write(value, level, sink)
    except GTreeError:
        raise
    except OSError as exc:
        raise TreeIOError(f"Failed to write payload: {exc}") from exc
    except Exception as exc:
        raise PayloadError(f"Payload hook could not write {value!r}: {exc}") from exc


def _read_payload(codec: PayloadCodec, source: LineSource) -> Any:
    try:
        return codec.read(source)
    except GTreeError:
        raise
    except OSError as exc:
        raise TreeIOError(f"Failed to read payload: {exc}") from exc
    except Exception as exc:
        raise PayloadError(
            f"Payload hook failed near line {source.line_number}: {exc}"
        ) from exc


def store_subtree(
    tree: GTree,
    node_id: NodeId,
    sink: TextIO,
    codec: PayloadCodec,
    level: int = 0,
) -> None:
    """Write the subtree rooted at `node_id` in preorder."""

    tree.pool.index_of(node_id)
    stack: List[tuple[NodeId, int, bool]] = [(node_id, level, False)]
    while stack:
        current, depth, closing = stack.pop()
        indent = "\t" * depth
        if closing:
            emit(sink, f"{indent}{TOKEN_CLOSE}\n")
            continue
        emit(sink, f"{indent}{TOKEN_OPEN}\n")
        emit(sink, f"{indent}\t{TOKEN_PAYLOAD_OPEN}\n")
        _write_payload(codec, tree.payload_of(current), depth + 2, sink)
        emit(sink, f"{indent}\t{TOKEN_PAYLOAD_CLOSE}\n")
        stack.append((current, depth, True))
        kids = list(tree.children(current))
        stack.extend((child, depth + 1, False) for child in reversed(kids))


def store_tree(tree: GTree, sink: TextIO, codec: PayloadCodec) -> None:
    store_subtree(tree, tree.root, sink, codec, 0)


@dataclass
class _Frame:
    node: NodeId
    last_child: NodeId


def _last_child(tree: GTree, node_id: NodeId) -> NodeId:
    last = NONE
    for child in tree.children(node_id):
        last = child
    return last


def _restore_into(
    tree: GTree,
    node_id: NodeId,
    source: LineSource,
    codec: PayloadCodec,
    added: List[NodeId],
) -> int:
    frames = [_Frame(node_id, _last_child(tree, node_id))]
    restored = 0
    while frames:
        frame = frames[-1]
        line = source.readline()
        if line is None:
            raise RestorationError(
                f"Unexpected end of input with {len(frames)} unclosed node(s).",
                line_number=source.line_number,
            )
        token = line.strip()
        if not token:
            continue
        if token == TOKEN_OPEN:
            child = tree.insert_child_after(frame.node, frame.last_child)
            frame.last_child = child
            if len(frames) == 1:
                added.append(child)
            frames.append(_Frame(child, NONE))
            restored += 1
        elif token == TOKEN_CLOSE:
            frames.pop()
        elif token == TOKEN_PAYLOAD_OPEN:
            tree.set_payload(frame.node, _read_payload(codec, source))
        else:
            raise RestorationError(
                f"Unexpected line {line!r}; expected '{TOKEN_OPEN}', '{TOKEN_CLOSE}' or '{TOKEN_PAYLOAD_OPEN}'.",
                line_number=source.line_number,
            )
    return restored


def restore_subtree(
    tree: GTree,
    node_id: NodeId,
    source: LineSource | TextIO,
    codec: PayloadCodec,
) -> int:
    """Restore one node's payload and children into `node_id`.

    The opening ``{`` of the node must already be consumed. Restored children
    are appended after any existing ones. Returns the number of new nodes;
    on failure the new nodes are removed and the payload is put back.
    """

    source = _as_source(source)
    tree.pool.index_of(node_id)
    original_payload = tree.payload_of(node_id)
    added: List[NodeId] = []
    try:
        restored = _restore_into(tree, node_id, source, codec, added)
    except GTreeError:
        for child in added:
            tree.del_subtree(child)
        tree.set_payload(node_id, original_payload)
        raise
    LOGGER.debug("Restored %d node(s) under %r up to line %d", restored, node_id, source.line_number)
    return restored


def restore_tree(source: LineSource | TextIO, codec: PayloadCodec, **tree_options: Any) -> GTree:
    """Build a new tree from `source`.

    Input whose first line is not ``{`` (an empty file included) yields a
    tree holding just a bare root.
    """

    source = _as_source(source)
    tree = GTree(**tree_options)
    first = source.readline()
    if not is_token(first, TOKEN_OPEN):
        LOGGER.debug("Input does not start with '%s'; returning an empty tree", TOKEN_OPEN)
        return tree
    restore_subtree(tree, tree.root, source, codec)
    return tree


def dumps(tree: GTree, codec: PayloadCodec, node_id: NodeId | None = None) -> str:
    buffer = io.StringIO()
    store_subtree(tree, tree.root if node_id is None else node_id, buffer, codec)
    return buffer.getvalue()


def loads(text: str, codec: PayloadCodec, **tree_options: Any) -> GTree:
    return restore_tree(LineSource.from_text(text), codec, **tree_options)


def dump(tree: GTree, path: str | Path, codec: PayloadCodec) -> None:
    try:
        with open(path, "w", encoding="utf-8") as handle:
            store_tree(tree, handle, codec)
    except OSError as exc:
        if isinstance(exc, TreeIOError):
            raise
        raise TreeIOError(f"Cannot write tree to {path}: {exc}") from exc


def load(path: str | Path, codec: PayloadCodec, **tree_options: Any) -> GTree:
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return restore_tree(handle, codec, **tree_options)
    except OSError as exc:
        if isinstance(exc, TreeIOError):
            raise
        raise TreeIOError(f"Cannot read tree from {path}: {exc}") from exc


__all__ = [
    "dump",
    "dumps",
    "load",
    "loads",
    "restore_subtree",
    "restore_tree",
    "store_subtree",
    "store_tree",
]
