"""Build a tree engine from its kind."""

from __future__ import annotations

from typing import Callable

from tree_engine.domain.services.avl_tree import AVLTree
from tree_engine.domain.services.bst import BinarySearchTree
from tree_engine.domain.services.btree import DEFAULT_ORDER, BTree
from tree_engine.domain.services.red_black_tree import RedBlackTree
from tree_engine.domain.value_objects import DEFAULT_SPACING, LayoutSpacing, TreeKind
from tree_engine.ports.inbound.search_tree import SearchTree

_BINARY_ENGINES: dict[TreeKind, Callable[[LayoutSpacing], SearchTree]] = {
    TreeKind.BST: BinarySearchTree,
    TreeKind.AVL: AVLTree,
    TreeKind.RED_BLACK: RedBlackTree,
}


def parse_kind(kind: TreeKind | str) -> TreeKind:
    """Return the TreeKind named by ``kind``.

    Raises:
        ValueError: If ``kind`` names no known tree.
    """
    if isinstance(kind, TreeKind):
        return kind
    try:
        return TreeKind(kind.lower())
    except ValueError:
        valid = ", ".join(k.value for k in TreeKind)
        raise ValueError(f"Unknown tree kind {kind!r} (expected one of: {valid})") from None


def create_tree(
    kind: TreeKind | str,
    order: int = DEFAULT_ORDER,
    spacing: LayoutSpacing = DEFAULT_SPACING,
) -> SearchTree:
    """Create an empty engine.

    Args:
        kind: Which tree to build, as a TreeKind or its string value.
        order: B-Tree order; ignored by the binary trees.
        spacing: Layout distances used by ``snapshot()``.

    Returns:
        A fresh, empty engine.

    Raises:
        ValueError: If ``kind`` is unknown.
        InvalidOrderError: If a B-Tree is requested with order below 3.
    """
    kind = parse_kind(kind)
    if kind is TreeKind.B_TREE:
        return BTree(order=order, spacing=spacing)
    return _BINARY_ENGINES[kind](spacing)
