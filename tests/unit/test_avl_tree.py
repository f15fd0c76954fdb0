"""Unit tests for the AVL tree engine."""

from __future__ import annotations

import math
import random

import pytest

from tree_engine.domain.services import AVLTree
from tree_engine.domain.value_objects import StepKind
from tree_engine.ports.inbound import InvariantViolationError


def _build(*keys: int) -> AVLTree:
    tree = AVLTree()
    for key in keys:
        tree.insert(key)
    return tree


def _rotations(trace) -> list[str]:
    return [step.message.split(" rotation")[0] for step in trace.of_kind(StepKind.ROTATE)]


@pytest.mark.unit
class TestAVLRotations:
    """Rebalancing after insert."""

    def test_scenario_single_left_rotation(self) -> None:
        """Inserting 10, 20, 30 performs one left rotation at 10."""
        tree = _build(10, 20)
        trace = tree.insert(30)

        assert _rotations(trace) == ["Left"]
        rebalance = [s for s in trace.of_kind(StepKind.HIGHLIGHT) if "Rebalancing" in s.message]
        assert rebalance[0].message == "Rebalancing required at node 10 (balance factor: -2)"

        root = tree.root
        assert root is not None and root.key == 20
        assert tree.get_node(root.left).key == 10
        assert tree.get_node(root.right).key == 30
        assert all(node.balance_factor == 0 for node in tree.snapshot().nodes)

    def test_single_right_rotation(self) -> None:
        """A left-left imbalance is fixed by one right rotation."""
        trace = _build(30, 20).insert(10)

        assert _rotations(trace) == ["Right"]

    def test_left_right_double_rotation(self) -> None:
        """A left-right imbalance rotates the child left then the node right."""
        tree = _build(30, 10)
        trace = tree.insert(20)

        assert _rotations(trace) == ["Left", "Right"]
        assert [s.keys for s in trace.of_kind(StepKind.ROTATE)] == [[10, 20], [30, 20]]
        assert tree.root is not None and tree.root.key == 20

    def test_right_left_double_rotation(self) -> None:
        """A right-left imbalance rotates the child right then the node left."""
        tree = _build(10, 30)
        trace = tree.insert(20)

        assert _rotations(trace) == ["Right", "Left"]
        assert tree.root is not None and tree.root.key == 20

    def test_rebalance_step_precedes_rotation(self) -> None:
        """The rebalance highlight comes right before the first rotation."""
        trace = _build(10, 20).insert(30)
        kinds = trace.kinds()
        first_rotate = kinds.index(StepKind.ROTATE)

        assert kinds[first_rotate - 1] is StepKind.HIGHLIGHT

    def test_insert_trace_shape(self) -> None:
        """Descent records compare steps and the new node an insert step."""
        trace = _build(10).insert(5)

        assert trace.kinds() == [StepKind.COMPARE, StepKind.INSERT]
        assert trace[1].message == "Creating new node with value 5"

    def test_duplicate_ignored(self) -> None:
        """Duplicates leave the tree unchanged."""
        tree = _build(10, 5)
        trace = tree.insert(10)

        assert len(tree) == 2
        assert trace.kinds() == [StepKind.COMPARE]


@pytest.mark.unit
class TestAVLDelete:
    """Deletion and rebalancing on the way up."""

    def test_delete_triggers_rotation(self) -> None:
        """Removing from the short side rebalances the root."""
        tree = _build(20, 10, 30, 40)
        trace = tree.delete(10)

        assert _rotations(trace) == ["Left"]
        assert tree.root is not None and tree.root.key == 30
        tree.validate()

    def test_delete_two_children_uses_successor(self) -> None:
        """A two-child node takes its successor's key."""
        tree = _build(20, 10, 30, 25, 40)
        trace = tree.delete(20)

        messages = [s.message for s in trace]
        assert "Found successor 25 to replace 20" in messages
        assert "Replacing 20 with 25" in messages
        assert tree.root is not None and tree.root.key == 25
        assert list(tree.keys()) == [10, 25, 30, 40]
        tree.validate()

    def test_delete_leaf_and_one_child(self) -> None:
        """Leaf and one-child removals record a clear step."""
        tree = _build(20, 10, 30, 5)
        leaf_trace = tree.delete(5)
        assert leaf_trace[-1].kind is StepKind.CLEAR
        assert leaf_trace[-1].message == "Removing leaf node 5"

        tree.insert(35)
        child_trace = tree.delete(30)
        assert child_trace[-1].message == "Replacing node 30 with right child 35"
        tree.validate()

    def test_delete_missing(self) -> None:
        """Deleting an absent key reports notFound and changes nothing."""
        tree = _build(20, 10, 30)
        before = tree.snapshot()
        trace = tree.delete(15)

        assert trace[-1].kind is StepKind.NOT_FOUND
        assert trace[-1].nodes == ()
        assert tree.snapshot().key_lists() == before.key_lists()
        assert len(tree) == 3


@pytest.mark.unit
class TestAVLSearchAndState:
    """Search, snapshot metadata and validation."""

    def test_search_found(self) -> None:
        """Search records one highlight per node and ends in found."""
        trace = _build(20, 10, 30).search(30)

        assert trace.kinds() == [StepKind.HIGHLIGHT, StepKind.HIGHLIGHT, StepKind.FOUND]

    def test_search_missing(self) -> None:
        """A miss ends in notFound without nodes."""
        trace = _build(20, 10, 30).search(5)

        assert trace.kinds() == [StepKind.HIGHLIGHT, StepKind.HIGHLIGHT, StepKind.NOT_FOUND]
        assert trace[-1].nodes == ()

    def test_snapshot_carries_heights(self) -> None:
        """Snapshot nodes expose height and balance factor."""
        tree = _build(20, 10)
        nodes = {n.key: n for n in tree.snapshot().nodes}

        assert (nodes[20].height, nodes[20].balance_factor) == (2, 1)
        assert (nodes[10].height, nodes[10].balance_factor) == (1, 0)
        assert nodes[20].to_dict()["balanceFactor"] == 1

    def test_validate_detects_stale_balance(self) -> None:
        """validate reports a stale balance factor."""
        tree = _build(20, 10, 30)
        assert tree.root is not None
        tree.root.balance_factor = 1

        with pytest.raises(InvariantViolationError):
            tree.validate()

    def test_clone_is_independent(self) -> None:
        """Rotations in a clone do not touch the original."""
        tree = _build(10, 20)
        clone = tree.clone()
        clone.insert(30)

        assert tree.root is not None and tree.root.key == 10
        assert clone.root is not None and clone.root.key == 20


@pytest.mark.property
class TestAVLProperties:
    """Randomized invariant checks."""

    def test_random_operations_stay_balanced(self, rng: random.Random) -> None:
        """Balance and ordering hold after every insert and delete."""
        tree = AVLTree()
        present: set[int] = set()
        for _ in range(600):
            key = rng.randrange(300)
            if rng.random() < 0.6:
                tree.insert(key)
                present.add(key)
            else:
                tree.delete(key)
                present.discard(key)
            tree.validate()
            assert all(abs(n.balance_factor or 0) <= 1 for n in tree.snapshot().nodes)

        assert list(tree.keys()) == sorted(present)
        assert tree.height <= 1.45 * math.log2(len(tree) + 2)

    def test_sorted_inserts_stay_logarithmic(self) -> None:
        """Sorted input produces a tree of logarithmic height."""
        tree = _build(*range(1, 1024))

        assert tree.height == 10
        tree.validate()
