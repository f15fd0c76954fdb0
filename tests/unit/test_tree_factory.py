"""Unit tests for the tree factory and the surface every engine shares."""

from __future__ import annotations

import pytest

from tree_engine.application import create_tree, parse_kind
from tree_engine.domain.services import (
    AVLTree,
    BinarySearchTree,
    BTree,
    InvalidOrderError,
    RedBlackTree,
)
from tree_engine.domain.value_objects import LayoutSpacing, Operation, StepKind, TreeKind
from tree_engine.ports.inbound import SearchTree

KEYS = (50, 30, 70, 20, 40, 60, 80, 35, 45, 65)


def _fill(tree: SearchTree, keys=KEYS) -> SearchTree:
    for key in keys:
        tree.insert(key)
    return tree


@pytest.mark.unit
class TestCreateTree:
    """Tests for create_tree and parse_kind."""

    @pytest.mark.parametrize(
        ("kind", "engine"),
        [
            (TreeKind.BST, BinarySearchTree),
            (TreeKind.AVL, AVLTree),
            (TreeKind.RED_BLACK, RedBlackTree),
            (TreeKind.B_TREE, BTree),
        ],
    )
    def test_each_kind(self, kind: TreeKind, engine: type) -> None:
        tree = create_tree(kind)

        assert isinstance(tree, engine)
        assert tree.kind is kind
        assert len(tree) == 0

    def test_string_kinds(self) -> None:
        """Kinds may be given by value, case-insensitively."""
        assert parse_kind("avl") is TreeKind.AVL
        assert parse_kind("RED_BLACK") is TreeKind.RED_BLACK
        assert isinstance(create_tree("b_tree"), BTree)

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValueError, match="Unknown tree kind"):
            create_tree("splay")

    def test_btree_order_passed(self) -> None:
        tree = create_tree(TreeKind.B_TREE, order=7)

        assert isinstance(tree, BTree)
        assert tree.order == 7

    def test_btree_invalid_order(self) -> None:
        with pytest.raises(InvalidOrderError):
            create_tree(TreeKind.B_TREE, order=1)

    def test_binary_trees_ignore_order(self) -> None:
        assert isinstance(create_tree(TreeKind.AVL, order=1), AVLTree)

    def test_spacing_passed(self) -> None:
        tree = create_tree(TreeKind.BST, spacing=LayoutSpacing(level_spacing=10))
        tree.insert(1)
        tree.insert(2)

        assert tree.snapshot().nodes[-1].y == 10.0


@pytest.mark.unit
class TestSearchTreeSurface:
    """Behavior shared by all four engines."""

    def test_insert_and_search(self, any_tree: SearchTree) -> None:
        _fill(any_tree)

        assert list(any_tree.keys()) == sorted(KEYS)
        assert len(any_tree) == len(KEYS)
        found = any_tree.search(45)
        assert found.operation is Operation.SEARCH
        assert StepKind.FOUND in found.kinds()
        assert StepKind.FOUND not in any_tree.search(46).kinds()
        any_tree.validate()

    def test_traces_are_deterministic(self, any_tree: SearchTree) -> None:
        """The same operation sequence yields identical traces."""
        other = create_tree(any_tree.kind)
        first = [any_tree.insert(k).to_dict() for k in KEYS]
        second = [other.insert(k).to_dict() for k in KEYS]

        assert first == second
        assert any_tree.delete(30).to_dict() == other.delete(30).to_dict()
        assert any_tree.snapshot() == other.snapshot()

    def test_trace_steps_are_value_copies(self, any_tree: SearchTree) -> None:
        """Later mutations do not change a recorded trace."""
        trace = any_tree.insert(10)
        recorded = trace.to_dict()
        _fill(any_tree)
        any_tree.delete(10)

        assert trace.to_dict() == recorded

    def test_clone_independence(self, any_tree: SearchTree) -> None:
        _fill(any_tree)
        clone = any_tree.clone()
        clone.delete(50)
        clone.insert(99)

        assert 50 in any_tree and 99 not in any_tree
        assert 50 not in clone and 99 in clone
        any_tree.validate()
        clone.validate()

    def test_delete_missing_leaves_structure(self, any_tree: SearchTree) -> None:
        _fill(any_tree)
        before = any_tree.snapshot()
        trace = any_tree.delete(1000)

        assert trace[-1].kind is StepKind.NOT_FOUND
        after = any_tree.snapshot()
        assert after.key_lists() == before.key_lists()
        assert after.edges == before.edges
        assert [(n.x, n.y) for n in after.nodes] == [(n.x, n.y) for n in before.nodes]

    def test_delete_all(self, any_tree: SearchTree) -> None:
        _fill(any_tree)
        for key in KEYS:
            any_tree.delete(key)
            any_tree.validate()

        assert any_tree.root is None
        assert any_tree.height == 0
        assert any_tree.snapshot().is_empty

    def test_clear_records_one_step(self, any_tree: SearchTree) -> None:
        _fill(any_tree)
        trace = any_tree.clear()

        assert trace.operation is Operation.CLEAR
        assert trace.kinds() == [StepKind.CLEAR]
        assert trace[0].nodes
        assert len(any_tree) == 0

    def test_snapshot_serializes(self, any_tree: SearchTree) -> None:
        _fill(any_tree)
        data = any_tree.snapshot().to_dict()

        assert data["treeKind"] == any_tree.kind.value
        assert len(data["edges"]) == len(data["nodes"]) - 1
        assert data["nodes"][0]["y"] == 0.0
