"""Exception hierarchy shared by the pool, the tree and the codecs."""

from __future__ import annotations


class GTreeError(Exception):
    """Base exception for gtreex errors."""


class InvalidIdError(GTreeError, LookupError):
    """Raised when a node id is out of range, free, or stale."""


class InvalidPositionError(GTreeError, IndexError):
    """Raised when a child position exceeds the number of children."""


class CannotDeleteRootError(GTreeError):
    """Raised when an operation would free the root node."""


class AllocationFailedError(GTreeError, MemoryError):
    """Raised when a bounded pool has no free slot left."""


class NotDetachedError(GTreeError):
    """Raised when a node expected to be detached is still linked."""


class TreeStructureError(GTreeError):
    """Raised by `GTree.validate` when a structural invariant is broken."""


class RestorationError(GTreeError, ValueError):
    """Raised when stored text does not follow the bracket grammar."""

    def __init__(self, message: str, *, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class TreeIOError(GTreeError, OSError):
    """Raised when the underlying stream fails while storing or restoring."""


class PayloadError(GTreeError, ValueError):
    """Raised when a payload hook fails to read or write a value."""


__all__ = [
    "GTreeError",
    "InvalidIdError",
    "InvalidPositionError",
    "CannotDeleteRootError",
    "AllocationFailedError",
    "NotDetachedError",
    "TreeStructureError",
    "RestorationError",
    "TreeIOError",
    "PayloadError",
]
