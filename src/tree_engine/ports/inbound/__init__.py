"""Inbound ports - APIs the tree engines offer to their callers."""

from tree_engine.ports.inbound.search_tree import InvariantViolationError, SearchTree

__all__ = [
    "InvariantViolationError",
    "SearchTree",
]
