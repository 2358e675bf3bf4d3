"""gtreex: generalized trees on top of an object pool.

Quick Start
-----------
>>> from gtreex import GTree, IntPayloadCodec, dumps, loads
>>>
>>> tree = GTree(1000)
>>> first = tree.add_child(tree.root, 1100)
>>> tree.add_sibling(first, 1200)
>>> text = dumps(tree, IntPayloadCodec())
>>> restored = loads(text, IntPayloadCodec())

Classes
-------
GTree : First-child/next-sibling tree with structural mutation helpers.
ObjectPool : Slot store handing out generation-checked `NodeId` handles.
"""

from importlib.metadata import version as _pkg_version

try:
    __version__ = _pkg_version("gtreex")
except Exception:  # pragma: no cover - best effort during local development
    __version__ = "0.0.1"

from .core import NONE, GTree, Node, NodeId, ObjectPool, TreeStats
from .codec import (
    CallbackPayloadCodec,
    IntPayloadCodec,
    JsonPayloadCodec,
    LineSource,
    PayloadCodec,
    dump,
    dumps,
    load,
    loads,
    restore_subtree,
    restore_tree,
    store_subtree,
    store_tree,
)
from .diagnostics import dump_free, dump_pool_graphviz, dump_tree
from .errors import (
    AllocationFailedError,
    CannotDeleteRootError,
    GTreeError,
    InvalidIdError,
    InvalidPositionError,
    NotDetachedError,
    PayloadError,
    RestorationError,
    TreeIOError,
    TreeStructureError,
)

__all__ = [
    "__version__",
    # Core
    "NONE",
    "GTree",
    "Node",
    "NodeId",
    "ObjectPool",
    "TreeStats",
    # Codec
    "CallbackPayloadCodec",
    "IntPayloadCodec",
    "JsonPayloadCodec",
    "LineSource",
    "PayloadCodec",
    "dump",
    "dumps",
    "load",
    "loads",
    "restore_subtree",
    "restore_tree",
    "store_subtree",
    "store_tree",
    # Diagnostics
    "dump_free",
    "dump_pool_graphviz",
    "dump_tree",
    # Errors
    "AllocationFailedError",
    "CannotDeleteRootError",
    "GTreeError",
    "InvalidIdError",
    "InvalidPositionError",
    "NotDetachedError",
    "PayloadError",
    "RestorationError",
    "TreeIOError",
    "TreeStructureError",
]
