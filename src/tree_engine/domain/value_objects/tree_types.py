"""Enumerations shared by the tree engines and their step traces."""

from __future__ import annotations

from enum import Enum


class TreeKind(Enum):
    """The four supported search structures."""

    BST = "bst"
    AVL = "avl"
    RED_BLACK = "red_black"
    B_TREE = "b_tree"


class Operation(Enum):
    """Engine calls that produce a step trace."""

    INSERT = "insert"
    DELETE = "delete"
    SEARCH = "search"
    CLEAR = "clear"


class Color(Enum):
    """Node color for Red-Black trees."""

    RED = "RED"
    BLACK = "BLACK"


class NodeState(Enum):
    """Display state of a node, set by the engine during its last call.

    Only used to correlate snapshots with traces; it never affects
    comparisons or structure.
    """

    DEFAULT = "default"
    HIGHLIGHT = "highlight"
    COMPARE = "compare"
    FOUND = "found"
    NOT_FOUND = "notFound"
    PATH = "path"
    SUCCESS_PATH = "success-path"


class StepKind(Enum):
    """Kind of a recorded trace step.

    Values are the wire names a renderer keys its playback on.
    """

    INSERT = "insert"
    HIGHLIGHT = "highlight"
    COMPARE = "compare"
    FOUND = "found"
    NOT_FOUND = "notFound"
    CLEAR = "clear"
    ROTATE = "rotate"
    SPLIT = "split"
    PATH = "path"
    SUCCESS_PATH = "success-path"
    RECOLOR = "recolor"
    BORROW = "borrow"
    MERGE = "merge"
