from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Tuple

import numpy as np

from gtreex import config as gt_config
from gtreex.errors import AllocationFailedError, InvalidIdError, TreeStructureError
from gtreex.logging import get_logger

LOGGER = get_logger("core.pool")

_NO_LINK = -1


@dataclass(frozen=True, order=True)
class NodeId:
    """Handle over a pool slot.

    The generation is the slot's free counter at allocation time; once the
    slot is freed the handle no longer validates, even if the index is reused.
    """

    index: int
    generation: int = 0

    @property
    def is_none(self) -> bool:
        return self.index < 0

    def __repr__(self) -> str:
        if self.is_none:
            return "NodeId(NONE)"
        return f"NodeId({self.index}@{self.generation})"


NONE = NodeId(_NO_LINK, 0)


class ObjectPool:
    """Slot store with a LIFO free list and per-slot generations.

    Payloads live in a plain list; structural links live in named int64
    columns that grow together with the slots. A column entry holds the raw
    slot index of the target, or -1 for no link.
    """

    def __init__(
        self,
        capacity: int | None = None,
        *,
        growable: bool | None = None,
        max_capacity: int | None = None,
        columns: Iterable[str] = (),
        logger: logging.Logger | None = None,
    ) -> None:
        runtime = gt_config.runtime_config()
        capacity = runtime.pool_capacity if capacity is None else int(capacity)
        if capacity < 1:
            raise ValueError(f"Pool capacity must be positive, got {capacity}.")
        self.growable = runtime.pool_growable if growable is None else bool(growable)
        if max_capacity is None:
            max_capacity = runtime.pool_max_capacity
        if max_capacity is not None and max_capacity < capacity:
            raise ValueError(
                f"max_capacity ({max_capacity}) must not be below capacity ({capacity})."
            )
        self.max_capacity = max_capacity
        self._logger = logger or LOGGER

        self._occupied = np.zeros(capacity, dtype=bool)
        self._generations = np.zeros(capacity, dtype=np.int64)
        self._next_free = np.arange(1, capacity + 1, dtype=np.int64)
        self._next_free[-1] = _NO_LINK
        self._columns: Dict[str, np.ndarray] = {
            name: np.full(capacity, _NO_LINK, dtype=np.int64) for name in columns
        }
        self._values: List[Any] = [None] * capacity
        self._free_head = 0
        self._size = 0

    # ------------------------------------------------------------------
    # Introspection

    @property
    def capacity(self) -> int:
        return int(self._occupied.shape[0])

    @property
    def size(self) -> int:
        return self._size

    @property
    def free_count(self) -> int:
        return self.capacity - self._size

    @property
    def columns(self) -> Tuple[str, ...]:
        return tuple(self._columns)

    def __len__(self) -> int:
        return self._size

    def __contains__(self, node_id: object) -> bool:
        return isinstance(node_id, NodeId) and self.is_valid(node_id)

    def is_valid(self, node_id: NodeId) -> bool:
        index = node_id.index
        if index < 0 or index >= self.capacity:
            return False
        if not self._occupied[index]:
            return False
        return int(self._generations[index]) == node_id.generation

    def ids(self) -> Iterator[NodeId]:
        """Iterate occupied slots in index order."""

        for index in np.flatnonzero(self._occupied):
            yield self.id_at(int(index))

    def id_at(self, index: int) -> NodeId:
        """Return the current handle of slot `index` (occupied or not)."""

        if index < 0 or index >= self.capacity:
            raise InvalidIdError(f"Slot index {index} out of range [0, {self.capacity}).")
        return NodeId(index, int(self._generations[index]))

    def is_occupied(self, index: int) -> bool:
        return 0 <= index < self.capacity and bool(self._occupied[index])

    def free_ids(self) -> Iterator[int]:
        """Iterate free slot indices in the order `alloc` would hand them out."""

        current = self._free_head
        steps = 0
        while current != _NO_LINK:
            if steps >= self.capacity:
                raise TreeStructureError("Free list is cyclic.")
            yield current
            current = int(self._next_free[current])
            steps += 1

    def next_free_of(self, index: int) -> int:
        return int(self._next_free[index])

    # ------------------------------------------------------------------
    # Allocation

    def alloc(self) -> NodeId:
        if self._free_head == _NO_LINK:
            self._grow()
        index = self._free_head
        self._free_head = int(self._next_free[index])
        self._next_free[index] = _NO_LINK
        self._occupied[index] = True
        self._size += 1
        return NodeId(index, int(self._generations[index]))

    def free(self, node_id: NodeId) -> None:
        index = self.index_of(node_id)
        self._occupied[index] = False
        self._generations[index] += 1
        self._values[index] = None
        for column in self._columns.values():
            column[index] = _NO_LINK
        self._next_free[index] = self._free_head
        self._free_head = index
        self._size -= 1

    def _grow(self) -> None:
        capacity = self.capacity
        limit = self.max_capacity
        if not self.growable or (limit is not None and capacity >= limit):
            raise AllocationFailedError(
                f"Object pool exhausted: {self._size} of {capacity} slots in use."
            )
        new_capacity = capacity * 2
        if limit is not None:
            new_capacity = min(new_capacity, limit)
        extra = new_capacity - capacity

        self._occupied = np.concatenate([self._occupied, np.zeros(extra, dtype=bool)])
        self._generations = np.concatenate(
            [self._generations, np.zeros(extra, dtype=np.int64)]
        )
        chain = np.arange(capacity + 1, new_capacity + 1, dtype=np.int64)
        chain[-1] = self._free_head
        self._next_free = np.concatenate([self._next_free, chain])
        for name, column in self._columns.items():
            self._columns[name] = np.concatenate(
                [column, np.full(extra, _NO_LINK, dtype=np.int64)]
            )
        self._values.extend([None] * extra)
        self._free_head = capacity
        self._logger.debug("Object pool grew from %d to %d slots", capacity, new_capacity)

    # ------------------------------------------------------------------
    # Slot access

    def index_of(self, node_id: NodeId) -> int:
        """Return the slot index of a live id, raising `InvalidIdError` otherwise."""

        if not isinstance(node_id, NodeId):
            raise InvalidIdError(f"Expected a NodeId, got {type(node_id).__name__}.")
        index = node_id.index
        if index < 0 or index >= self.capacity:
            raise InvalidIdError(f"{node_id!r} is out of range [0, {self.capacity}).")
        if not self._occupied[index]:
            raise InvalidIdError(f"{node_id!r} refers to a free slot.")
        if int(self._generations[index]) != node_id.generation:
            raise InvalidIdError(
                f"{node_id!r} is stale; slot {index} is at generation {int(self._generations[index])}."
            )
        return index

    def get(self, node_id: NodeId) -> Any:
        return self._values[self.index_of(node_id)]

    def set(self, node_id: NodeId, value: Any) -> None:
        self._values[self.index_of(node_id)] = value

    def link(self, node_id: NodeId, column: str) -> NodeId:
        raw = int(self._columns[column][self.index_of(node_id)])
        if raw == _NO_LINK:
            return NONE
        return NodeId(raw, int(self._generations[raw]))

    def set_link(self, node_id: NodeId, column: str, target: NodeId) -> None:
        self._columns[column][self.index_of(node_id)] = target.index if not target.is_none else _NO_LINK

    def raw_column(self, column: str) -> np.ndarray:
        """Read-only view of a link column, indexed by slot."""

        view = self._columns[column].view()
        view.flags.writeable = False
        return view

    def peek(self, index: int) -> Any:
        """Payload stored in slot `index` without id validation (diagnostics only)."""

        return self._values[index]

    # ------------------------------------------------------------------
    # Checks

    def validate(self) -> None:
        """Check that the free list covers exactly the free slots."""

        seen: set[int] = set()
        for index in self.free_ids():
            if self._occupied[index]:
                raise TreeStructureError(f"Occupied slot {index} is on the free list.")
            if index in seen:
                raise TreeStructureError(f"Slot {index} appears twice on the free list.")
            seen.add(index)
        occupied = int(np.count_nonzero(self._occupied))
        if occupied != self._size:
            raise TreeStructureError(
                f"Live count {self._size} disagrees with {occupied} occupied slots."
            )
        if len(seen) != self.capacity - occupied:
            raise TreeStructureError(
                f"Free list holds {len(seen)} slots but {self.capacity - occupied} are free."
            )


__all__ = ["NONE", "NodeId", "ObjectPool"]
