"""Unit tests for the snapshot layout pass."""

from __future__ import annotations

import pytest

from tree_engine.application import create_tree
from tree_engine.domain.services import BinarySearchTree, BTree
from tree_engine.domain.value_objects import LayoutSpacing, TreeKind


def _positions(tree) -> dict:
    return {node.key: (node.x, node.y) for node in tree.snapshot().nodes}


@pytest.mark.unit
class TestBinaryLayout:
    """Layout of binary trees."""

    def test_empty_tree(self) -> None:
        """An empty tree has an empty snapshot."""
        snapshot = BinarySearchTree().snapshot()

        assert snapshot.is_empty
        assert snapshot.edges == ()

    def test_single_node_centered(self) -> None:
        """A lone root sits at the origin."""
        tree = BinarySearchTree()
        tree.insert(1)

        assert _positions(tree) == {1: (0.0, 0.0)}

    def test_balanced_three_nodes(self) -> None:
        """Children sit one level down, symmetric around the parent."""
        tree = BinarySearchTree()
        for key in (10, 5, 15):
            tree.insert(key)

        assert _positions(tree) == {10: (0.0, 0.0), 5: (-25.0, 80.0), 15: (25.0, 80.0)}

    def test_lone_child_keeps_its_side(self) -> None:
        """A missing sibling reserves space so a right child lies right of its parent."""
        tree = BinarySearchTree()
        tree.insert(10)
        tree.insert(20)
        positions = _positions(tree)

        assert positions[20][0] > positions[10][0]
        assert positions[20][1] == 80.0

    def test_no_overlap_within_level(self) -> None:
        """Nodes on one level are separated by at least half a node slot."""
        tree = create_tree(TreeKind.BST)
        for key in (50, 25, 75, 12, 37, 62, 87, 6, 18, 31, 43):
            tree.insert(key)

        by_level: dict[float, list[float]] = {}
        for node in tree.snapshot().nodes:
            by_level.setdefault(node.y, []).append(node.x)
        for xs in by_level.values():
            xs.sort()
            assert all(b - a >= 25.0 for a, b in zip(xs, xs[1:]))

    def test_in_order_keys_left_to_right(self) -> None:
        """x increases with key order."""
        tree = create_tree(TreeKind.AVL)
        for key in range(1, 16):
            tree.insert(key)

        nodes = sorted(tree.snapshot().nodes, key=lambda n: n.key)
        xs = [node.x for node in nodes]
        assert xs == sorted(xs)

    def test_custom_spacing(self) -> None:
        """Level and node spacing come from LayoutSpacing."""
        tree = BinarySearchTree(spacing=LayoutSpacing(level_spacing=100, node_spacing=40))
        for key in (10, 5, 15):
            tree.insert(key)

        assert _positions(tree) == {10: (0.0, 0.0), 5: (-20.0, 100.0), 15: (20.0, 100.0)}

    def test_invalid_spacing(self) -> None:
        """Spacing values must be positive."""
        with pytest.raises(ValueError):
            LayoutSpacing(level_spacing=0)

    def test_degenerate_tree_lays_out(self) -> None:
        """A sorted insert sequence of any height can be laid out."""
        tree = BinarySearchTree()
        for key in range(1200):
            tree.insert(key)

        snapshot = tree.snapshot()

        assert len(snapshot.nodes) == 1200
        assert snapshot.nodes[-1].y == 1199 * 80.0

    def test_layout_is_deterministic(self) -> None:
        """The same tree always gets the same coordinates."""
        tree = create_tree(TreeKind.RED_BLACK)
        for key in (8, 3, 11, 1, 5, 9, 14):
            tree.insert(key)

        assert tree.snapshot() == tree.snapshot()


@pytest.mark.unit
class TestBTreeLayout:
    """Layout of B-Trees."""

    def test_split_root_layout(self) -> None:
        """Children of a split root sit symmetric below it."""
        tree = BTree(order=3)
        for key in (10, 20, 30):
            tree.insert(key)

        positions = {node.keys: (node.x, node.y) for node in tree.snapshot().nodes}

        assert positions == {(20,): (0.0, 0.0), (10,): (-40.0, 80.0), (30,): (40.0, 80.0)}

    def test_wider_nodes_for_more_keys(self) -> None:
        """Sibling spacing grows with the keys each node holds."""
        tree = BTree(order=5)
        for key in range(1, 12):
            tree.insert(key)

        snapshot = tree.snapshot()
        leaves = sorted((n for n in snapshot.nodes if n.y > 0), key=lambda n: n.x)
        for left, right in zip(leaves, leaves[1:]):
            needed = (len(left.keys) + len(right.keys)) * 30 / 2 + 50
            assert right.x - left.x >= needed
