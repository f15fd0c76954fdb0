"""Application layer for the tree engines.

The application layer turns the domain engines into use cases: building an
engine by kind and keeping an undoable history of operations on it.

Exports:
    Factory:
        - create_tree: Build an empty engine from a TreeKind
        - parse_kind: Resolve a kind string to a TreeKind
    Session:
        - TreeSession: Undo/redo history over engine clones
        - HistoryEntry: One tree/trace pair in the history
"""

from tree_engine.application.tree_factory import create_tree, parse_kind
from tree_engine.application.tree_session import HistoryEntry, TreeSession

__all__ = [
    "create_tree",
    "parse_kind",
    "TreeSession",
    "HistoryEntry",
]
