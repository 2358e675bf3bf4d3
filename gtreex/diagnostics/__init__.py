"""Read-only dumps of tree and pool state for external tooling."""

from .graphviz import dump_free, dump_pool_graphviz, dump_tree

__all__ = ["dump_free", "dump_pool_graphviz", "dump_tree"]
