"""GPDAG package."""

__all__ = [
    "bitset",
    "tree_sample",
    "dag_node",
    "dag",
    "traversal",
    "operations",
    "scheduler",
    "parameters",
    "errors",
    "cli",
]
