from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Tuple

from gtreex import config as gt_config
from gtreex.core.pool import NONE, NodeId, ObjectPool
from gtreex.errors import (
    AllocationFailedError,
    CannotDeleteRootError,
    InvalidIdError,
    InvalidPositionError,
    NotDetachedError,
    TreeStructureError,
)
from gtreex.logging import get_logger

LOGGER = get_logger("core.tree")

_PARENT = "parent"
_CHILD = "child"
_SIBLING = "sibling"
LINK_COLUMNS = (_PARENT, _CHILD, _SIBLING)


@dataclass(frozen=True)
class Node:
    """Read-only snapshot of a single node and its links."""

    id: NodeId
    payload: Any
    child: NodeId
    parent: NodeId
    sibling: NodeId


@dataclass(frozen=True)
class TreeStats:
    live_nodes: int
    capacity: int
    free_slots: int
    height: int


class GTree:
    """First-child/next-sibling tree stored in an `ObjectPool`.

    Every node is addressed by a `NodeId`. Children keep insertion order;
    `child` links point at the first child and `sibling` links thread the
    rest left to right.
    """

    def __init__(
        self,
        payload: Any = None,
        *,
        capacity: int | None = None,
        growable: bool | None = None,
        max_capacity: int | None = None,
        validate: bool | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        runtime = gt_config.runtime_config()
        self._logger = logger or LOGGER
        self.validate_mutations = runtime.validate_mutations if validate is None else bool(validate)
        self.pool = ObjectPool(
            capacity,
            growable=growable,
            max_capacity=max_capacity,
            columns=LINK_COLUMNS,
            logger=self._logger,
        )
        self.root = self._new_node(payload)

    # ------------------------------------------------------------------
    # Accessors

    def __len__(self) -> int:
        return len(self.pool)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.pool

    def is_valid(self, node_id: NodeId) -> bool:
        return self.pool.is_valid(node_id)

    def payload_of(self, node_id: NodeId) -> Any:
        return self.pool.get(node_id)

    def set_payload(self, node_id: NodeId, payload: Any) -> None:
        self.pool.set(node_id, payload)

    def parent_of(self, node_id: NodeId) -> NodeId:
        return self.pool.link(node_id, _PARENT)

    def first_child_of(self, node_id: NodeId) -> NodeId:
        return self.pool.link(node_id, _CHILD)

    def next_sibling_of(self, node_id: NodeId) -> NodeId:
        return self.pool.link(node_id, _SIBLING)

    def node(self, node_id: NodeId) -> Node:
        return Node(
            id=node_id,
            payload=self.pool.get(node_id),
            child=self.first_child_of(node_id),
            parent=self.parent_of(node_id),
            sibling=self.next_sibling_of(node_id),
        )

    def is_detached(self, node_id: NodeId) -> bool:
        """True for a live, non-root node that is linked nowhere."""

        return (
            node_id != self.root
            and self.parent_of(node_id).is_none
            and self.next_sibling_of(node_id).is_none
        )

    def children(self, node_id: NodeId) -> Iterator[NodeId]:
        current = self.first_child_of(node_id)
        while not current.is_none:
            yield current
            current = self.next_sibling_of(current)

    def child_count(self, node_id: NodeId) -> int:
        return sum(1 for _ in self.children(node_id))

    def child_at(self, node_id: NodeId, pos: int) -> NodeId:
        if pos >= 0:
            for index, child in enumerate(self.children(node_id)):
                if index == pos:
                    return child
        raise InvalidPositionError(f"{node_id!r} has no child at position {pos}.")

    def walk(self, node_id: NodeId | None = None) -> Iterator[Tuple[NodeId, int]]:
        """Preorder traversal yielding ``(node_id, level)`` pairs.

        Levels are relative to the starting node, which is yielded at level 0.
        """

        start = self.root if node_id is None else node_id
        self.pool.index_of(start)
        stack: List[Tuple[NodeId, int]] = [(start, 0)]
        while stack:
            current, level = stack.pop()
            yield current, level
            kids = list(self.children(current))
            stack.extend((child, level + 1) for child in reversed(kids))

    def subtree_size(self, node_id: NodeId) -> int:
        return sum(1 for _ in self.walk(node_id))

    def depth_of(self, node_id: NodeId) -> int:
        depth = 0
        current = self.parent_of(node_id)
        while not current.is_none:
            depth += 1
            current = self.parent_of(current)
        return depth

    def height(self) -> int:
        return max(level for _, level in self.walk(self.root))

    def to_nested(self, node_id: NodeId | None = None) -> Tuple[Any, list]:
        """Return ``(payload, [child, ...])`` for the subtree, ids stripped."""

        result: Tuple[Any, list] | None = None
        stack: List[Tuple[Any, list]] = []
        for current, level in self.walk(node_id):
            entry: Tuple[Any, list] = (self.payload_of(current), [])
            del stack[level:]
            if stack:
                stack[-1][1].append(entry)
            else:
                result = entry
            stack.append(entry)
        assert result is not None
        return result

    def stats(self) -> TreeStats:
        return TreeStats(
            live_nodes=len(self.pool),
            capacity=self.pool.capacity,
            free_slots=self.pool.free_count,
            height=self.height(),
        )

    # ------------------------------------------------------------------
    # Internal linking primitives

    def _new_node(self, payload: Any) -> NodeId:
        node_id = self.pool.alloc()
        self.pool.set(node_id, payload)
        for column in LINK_COLUMNS:
            self.pool.set_link(node_id, column, NONE)
        return node_id

    def alloc(self, payload: Any = None) -> NodeId:
        """Allocate a detached node, ready for `add_exist_child` or `replace_node`."""

        return self._new_node(payload)

    def _last_sibling(self, node_id: NodeId) -> NodeId:
        current = node_id
        following = self.next_sibling_of(current)
        while not following.is_none:
            current = following
            following = self.next_sibling_of(current)
        return current

    def _append_child(self, parent: NodeId, child: NodeId) -> None:
        first = self.first_child_of(parent)
        if first.is_none:
            self.pool.set_link(parent, _CHILD, child)
        else:
            self.pool.set_link(self._last_sibling(first), _SIBLING, child)
        self.pool.set_link(child, _PARENT, parent)
        self.pool.set_link(child, _SIBLING, NONE)

    def _previous_sibling(self, parent: NodeId, node_id: NodeId) -> NodeId:
        previous = NONE
        for child in self.children(parent):
            if child == node_id:
                return previous
            previous = child
        raise TreeStructureError(f"{node_id!r} is missing from the child chain of {parent!r}.")

    def _link_in_place_of(self, parent: NodeId, previous: NodeId, head: NodeId) -> None:
        if previous.is_none:
            self.pool.set_link(parent, _CHILD, head)
        else:
            self.pool.set_link(previous, _SIBLING, head)

    def _unlink(self, node_id: NodeId) -> None:
        parent = self.parent_of(node_id)
        if parent.is_none:
            return
        previous = self._previous_sibling(parent, node_id)
        self._link_in_place_of(parent, previous, self.next_sibling_of(node_id))
        self.pool.set_link(node_id, _PARENT, NONE)
        self.pool.set_link(node_id, _SIBLING, NONE)

    def _is_ancestor_or_self(self, candidate: NodeId, node_id: NodeId) -> bool:
        current = node_id
        while not current.is_none:
            if current == candidate:
                return True
            current = self.parent_of(current)
        return False

    def _require_detached(self, node_id: NodeId) -> None:
        if node_id == self.root:
            raise NotDetachedError("The root node cannot be attached elsewhere.")
        if not self.parent_of(node_id).is_none:
            raise NotDetachedError(f"{node_id!r} still has a parent.")
        if not self.next_sibling_of(node_id).is_none:
            raise NotDetachedError(f"{node_id!r} still has a sibling.")

    def _after_mutation(self) -> None:
        if self.validate_mutations:
            self.validate()

    # ------------------------------------------------------------------
    # Structural mutation

    def add_child(self, node_id: NodeId, payload: Any = None) -> NodeId:
        self.pool.index_of(node_id)
        child = self._new_node(payload)
        self._append_child(node_id, child)
        self._after_mutation()
        return child

    def add_sibling(self, sibling_id: NodeId, payload: Any = None) -> NodeId:
        """Append a node at the end of the sibling chain `sibling_id` belongs to.

        The chain is walked forward from `sibling_id`, so the new node always
        becomes the last child of the shared parent, not the node right after
        `sibling_id`.
        """

        self.pool.index_of(sibling_id)
        last = self._last_sibling(sibling_id)
        parent = self.parent_of(last)
        if parent.is_none:
            raise InvalidIdError(f"{sibling_id!r} has no parent, so it cannot take siblings.")
        node_id = self._new_node(payload)
        self.pool.set_link(last, _SIBLING, node_id)
        self.pool.set_link(node_id, _PARENT, parent)
        self._after_mutation()
        return node_id

    append_to_sibling_chain_of = add_sibling

    def insert_child_after(
        self, parent_id: NodeId, previous_id: NodeId, payload: Any = None
    ) -> NodeId:
        """Allocate a child of `parent_id` right after `previous_id`.

        With `previous_id` set to NONE the new node becomes the first child.
        Unlike `add_child` this does not walk the chain.
        """

        self.pool.index_of(parent_id)
        if previous_id.is_none:
            following = self.first_child_of(parent_id)
        else:
            if self.parent_of(previous_id) != parent_id:
                raise InvalidIdError(f"{previous_id!r} is not a child of {parent_id!r}.")
            following = self.next_sibling_of(previous_id)
        node_id = self._new_node(payload)
        self._link_in_place_of(parent_id, previous_id, node_id)
        self.pool.set_link(node_id, _PARENT, parent_id)
        self.pool.set_link(node_id, _SIBLING, following)
        self._after_mutation()
        return node_id

    def add_exist_child(self, node_id: NodeId, child_id: NodeId) -> None:
        self.pool.index_of(node_id)
        self.pool.index_of(child_id)
        self._require_detached(child_id)
        if self._is_ancestor_or_self(child_id, node_id):
            raise NotDetachedError(f"Attaching {child_id!r} under {node_id!r} would create a cycle.")
        self._append_child(node_id, child_id)
        self._after_mutation()

    def del_child(self, parent_id: NodeId, pos: int) -> Any:
        """Remove the child at `pos` and promote its children into its place.

        Returns the payload of the removed node. Only the removed node's slot
        is freed.
        """

        self.pool.index_of(parent_id)
        previous = NONE
        target = NONE
        if pos >= 0:
            for index, child in enumerate(self.children(parent_id)):
                if index == pos:
                    target = child
                    break
                previous = child
        if target.is_none:
            raise InvalidPositionError(
                f"{parent_id!r} has {self.child_count(parent_id)} children; position {pos} is out of range."
            )

        payload = self.pool.get(target)
        following = self.next_sibling_of(target)
        promoted = list(self.children(target))
        if promoted:
            for child in promoted:
                self.pool.set_link(child, _PARENT, parent_id)
            self.pool.set_link(promoted[-1], _SIBLING, following)
            head = promoted[0]
        else:
            head = following
        self._link_in_place_of(parent_id, previous, head)
        self.pool.free(target)
        self._logger.debug(
            "Removed child %d of %r, promoted %d grandchildren", pos, parent_id, len(promoted)
        )
        self._after_mutation()
        return payload

    def kill_subtree(self, node_id: NodeId) -> int:
        """Free `node_id` and all of its descendants; external links are left alone.

        Returns the number of freed nodes.
        """

        self.pool.index_of(node_id)
        if node_id == self.root:
            raise CannotDeleteRootError("The root node cannot be freed while the tree is alive.")
        freed = 0
        stack = [node_id]
        while stack:
            current = stack.pop()
            stack.extend(self.children(current))
            self.pool.free(current)
            freed += 1
        return freed

    def del_subtree(self, node_id: NodeId) -> int:
        self.pool.index_of(node_id)
        if node_id == self.root:
            raise CannotDeleteRootError("The root node cannot be deleted.")
        self._unlink(node_id)
        freed = self.kill_subtree(node_id)
        self._logger.debug("Deleted subtree %r (%d nodes)", node_id, freed)
        self._after_mutation()
        return freed

    def clone_subtree(self, node_id: NodeId, *, deep: bool = False) -> NodeId:
        """Copy the subtree into fresh nodes and return the detached copy."""

        self.pool.index_of(node_id)
        duplicate = copy.deepcopy if deep else copy.copy
        clone_root = self._new_node(duplicate(self.pool.get(node_id)))
        try:
            stack = [(node_id, clone_root)]
            while stack:
                source, target = stack.pop()
                previous = NONE
                for child in self.children(source):
                    copied = self._new_node(duplicate(self.pool.get(child)))
                    self.pool.set_link(copied, _PARENT, target)
                    self._link_in_place_of(target, previous, copied)
                    previous = copied
                    stack.append((child, copied))
        except AllocationFailedError:
            self.kill_subtree(clone_root)
            raise
        self._after_mutation()
        return clone_root

    def replace_node(self, current_id: NodeId, replace_id: NodeId) -> bool:
        """Put the detached `replace_id` where `current_id` sits.

        `current_id` keeps its own children and becomes detached. Returns
        False without changing anything when `current_id` has no parent.
        """

        self.pool.index_of(current_id)
        self.pool.index_of(replace_id)
        parent = self.parent_of(current_id)
        if parent.is_none:
            self._logger.warning(
                "replace_node: %r has no parent; nothing was replaced", current_id
            )
            return False
        self._require_detached(replace_id)
        if self._is_ancestor_or_self(replace_id, current_id):
            raise NotDetachedError(f"{replace_id!r} is an ancestor of {current_id!r}.")

        previous = self._previous_sibling(parent, current_id)
        self._link_in_place_of(parent, previous, replace_id)
        self.pool.set_link(replace_id, _PARENT, parent)
        self.pool.set_link(replace_id, _SIBLING, self.next_sibling_of(current_id))
        self.pool.set_link(current_id, _PARENT, NONE)
        self.pool.set_link(current_id, _SIBLING, NONE)
        self._after_mutation()
        return True

    def clear(self) -> int:
        """Free everything except the root; returns the number of freed nodes."""

        freed = 0
        for child in list(self.children(self.root)):
            freed += self.kill_subtree(child)
        self.pool.set_link(self.root, _CHILD, NONE)
        self._after_mutation()
        return freed

    # ------------------------------------------------------------------
    # Validation

    def validate(self) -> None:
        """Check the structural invariants, raising `TreeStructureError` on failure."""

        pool = self.pool
        pool.validate()
        if not pool.is_valid(self.root):
            raise TreeStructureError(f"Root {self.root!r} is not a live node.")

        parents = pool.raw_column(_PARENT)
        first_children = pool.raw_column(_CHILD)
        siblings = pool.raw_column(_SIBLING)
        root_index = self.root.index
        live = [node_id.index for node_id in pool.ids()]

        chain_owner: Dict[int, int] = {}
        for index in live:
            current = int(first_children[index])
            while current >= 0:
                if not pool.is_occupied(current):
                    raise TreeStructureError(f"Slot {index} links to free slot {current}.")
                if current == root_index:
                    raise TreeStructureError("The root appears in a sibling chain.")
                if current in chain_owner:
                    raise TreeStructureError(
                        f"Slot {current} is linked more than once (cyclic or shared chain)."
                    )
                if int(parents[current]) != index:
                    raise TreeStructureError(
                        f"Slot {current} is in the chain of {index} but names {int(parents[current])} as parent."
                    )
                chain_owner[current] = index
                current = int(siblings[current])

        for index in live:
            parent = int(parents[index])
            if parent < 0:
                if int(siblings[index]) >= 0:
                    raise TreeStructureError(f"Parentless slot {index} has a sibling.")
                continue
            if not pool.is_occupied(parent):
                raise TreeStructureError(f"Slot {index} names free slot {parent} as parent.")
            if chain_owner.get(index) != parent:
                raise TreeStructureError(f"Slot {index} is missing from the child chain of {parent}.")


__all__ = ["GTree", "LINK_COLUMNS", "Node", "TreeStats"]
