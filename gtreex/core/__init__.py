"""Core data structures: the object pool and the tree built on top of it."""

from .pool import NONE, NodeId, ObjectPool
from .tree import GTree, Node, TreeStats

__all__ = [
    "NONE",
    "NodeId",
    "ObjectPool",
    "GTree",
    "Node",
    "TreeStats",
]
