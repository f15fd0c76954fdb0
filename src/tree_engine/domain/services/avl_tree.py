"""AVL tree engine.

Height-balanced binary search tree: after every insert or delete, each node
on the modified path is rebalanced bottom-up so that the heights of its two
subtrees differ by at most one. Height stays below 1.44 * log2(n + 2), so
the recursive helpers here are bounded by the tree's logarithmic depth.

References:
    - Adelson-Velsky & Landis, "An algorithm for the organization of
      information" (1962)
"""

from __future__ import annotations

from typing import Iterator

import structlog

from tree_engine.domain.entities.binary_node import AVLNode
from tree_engine.domain.entities.snapshot import SnapshotNode, TreeSnapshot
from tree_engine.domain.entities.step_trace import StepTrace
from tree_engine.domain.services.layout import binary_width, edges_of, layout, preorder
from tree_engine.domain.services.node_store import NodeStore
from tree_engine.domain.value_objects import (
    DEFAULT_SPACING,
    INVALID_NODE_ID,
    Key,
    LayoutSpacing,
    NodeId,
    NodeState,
    Operation,
    StepKind,
    TreeKind,
)
from tree_engine.ports.inbound.search_tree import InvariantViolationError

logger = structlog.get_logger(__name__)


class AVLTree:
    """AVL tree with step tracing.

    Implements the ``SearchTree`` protocol. Every rebalance is recorded as a
    highlight naming the unbalanced node followed by one rotate step per
    rotation (two for the left-right and right-left cases).
    """

    def __init__(self, spacing: LayoutSpacing = DEFAULT_SPACING) -> None:
        self._spacing = spacing
        self._store: NodeStore[AVLNode] = NodeStore()
        self._root: NodeId = INVALID_NODE_ID
        self._size = 0
        self._touched: set[NodeId] = set()

    @property
    def kind(self) -> TreeKind:
        return TreeKind.AVL

    @property
    def root(self) -> AVLNode | None:
        if self._root == INVALID_NODE_ID:
            return None
        return self._store.get(self._root)

    def get_node(self, node_id: NodeId) -> AVLNode:
        """Return a node by id.

        Raises:
            KeyError: If the id is not in this tree.
        """
        return self._store.get(node_id)

    # =========================================================================
    # Balance bookkeeping
    # =========================================================================

    def _height_of(self, node_id: NodeId) -> int:
        if node_id == INVALID_NODE_ID:
            return 0
        return self._store.get(node_id).height

    def _update(self, node: AVLNode) -> None:
        left_height = self._height_of(node.left)
        right_height = self._height_of(node.right)
        node.height = max(left_height, right_height) + 1
        node.balance_factor = left_height - right_height

    def _rotate_right(self, node: AVLNode, trace: StepTrace) -> AVLNode:
        pivot = self._store.get(node.left)
        trace.record(
            StepKind.ROTATE,
            [node, pivot],
            f"Right rotation at node {node.key}: {pivot.key} moves up",
        )
        node.left = pivot.right
        pivot.right = node.node_id
        self._update(node)
        self._update(pivot)
        logger.debug("rotation", tree_kind=self.kind.value, direction="right", at=node.key)
        return pivot

    def _rotate_left(self, node: AVLNode, trace: StepTrace) -> AVLNode:
        pivot = self._store.get(node.right)
        trace.record(
            StepKind.ROTATE,
            [node, pivot],
            f"Left rotation at node {node.key}: {pivot.key} moves up",
        )
        node.right = pivot.left
        pivot.left = node.node_id
        self._update(node)
        self._update(pivot)
        logger.debug("rotation", tree_kind=self.kind.value, direction="left", at=node.key)
        return pivot

    def _rebalance(self, node: AVLNode, trace: StepTrace) -> NodeId:
        """Recompute ``node`` and rotate if it is out of balance.

        Returns:
            Id of the subtree root after rebalancing.
        """
        self._update(node)
        balance = node.balance_factor
        if -1 <= balance <= 1:
            return node.node_id

        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(
            StepKind.HIGHLIGHT,
            [node],
            f"Rebalancing required at node {node.key} (balance factor: {balance})",
        )
        if balance > 1:
            left = self._store.get(node.left)
            if left.balance_factor < 0:
                node.left = self._rotate_left(left, trace).node_id
            return self._rotate_right(node, trace).node_id

        right = self._store.get(node.right)
        if right.balance_factor > 0:
            node.right = self._rotate_right(right, trace).node_id
        return self._rotate_left(node, trace).node_id

    # =========================================================================
    # Display state
    # =========================================================================

    def _mark(self, node: AVLNode, state: NodeState) -> None:
        node.state = state
        self._touched.add(node.node_id)

    def _reset_states(self) -> None:
        for node_id in self._touched:
            if node_id in self._store:
                self._store.get(node_id).state = NodeState.DEFAULT
        self._touched.clear()

    # =========================================================================
    # Operations
    # =========================================================================

    def insert(self, key: Key) -> StepTrace:
        """Insert a key and rebalance the insertion path.

        Args:
            key: The key to insert.

        Returns:
            Trace of compare steps, the insert step, and any rebalancing.
        """
        self._reset_states()
        trace = StepTrace(Operation.INSERT, key)
        self._root = self._insert(self._root, key, trace)
        return trace

    def _insert(self, node_id: NodeId, key: Key, trace: StepTrace) -> NodeId:
        if node_id == INVALID_NODE_ID:
            node = self._store.create(lambda new_id: AVLNode(node_id=new_id, key=key))
            self._size += 1
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.INSERT, [node], f"Creating new node with value {key}")
            return node.node_id

        node = self._store.get(node_id)
        self._mark(node, NodeState.COMPARE)
        trace.record(StepKind.COMPARE, [node], f"Comparing {key} with {node.key}")
        if key == node.key:
            logger.debug("duplicate_key_ignored", tree_kind=self.kind.value, key=key)
            return node_id

        if key < node.key:
            node.left = self._insert(node.left, key, trace)
        else:
            node.right = self._insert(node.right, key, trace)
        return self._rebalance(node, trace)

    def search(self, key: Key) -> StepTrace:
        """Search for a key.

        Returns:
            Trace of one highlight per visited node, then found or notFound.
        """
        self._reset_states()
        trace = StepTrace(Operation.SEARCH, key)
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            node = self._store.get(node_id)
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [node], f"Checking node {node.key}")
            if key == node.key:
                self._mark(node, NodeState.FOUND)
                trace.record(StepKind.FOUND, [node], f"Found {key}!")
                return trace
            node_id = node.left if key < node.key else node.right

        trace.record(StepKind.NOT_FOUND, [], f"Value {key} not found")
        return trace

    def delete(self, key: Key) -> StepTrace:
        """Delete a key and rebalance every ancestor on the way back up.

        Args:
            key: The key to delete.

        Returns:
            Trace of the descent, the removal and any rebalancing, or a
            trace ending in notFound when the key is absent.
        """
        self._reset_states()
        trace = StepTrace(Operation.DELETE, key)
        self._root = self._delete(self._root, key, trace)
        return trace

    def _delete(self, node_id: NodeId, key: Key, trace: StepTrace) -> NodeId:
        if node_id == INVALID_NODE_ID:
            trace.record(StepKind.NOT_FOUND, [], f"Value {key} not found")
            return node_id

        node = self._store.get(node_id)
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.HIGHLIGHT, [node], f"Checking node {node.key}")

        if key < node.key:
            node.left = self._delete(node.left, key, trace)
        elif key > node.key:
            node.right = self._delete(node.right, key, trace)
        elif node.left != INVALID_NODE_ID and node.right != INVALID_NODE_ID:
            successor = self._store.get(node.right)
            while successor.left != INVALID_NODE_ID:
                successor = self._store.get(successor.left)
            trace.record(
                StepKind.HIGHLIGHT,
                [successor],
                f"Found successor {successor.key} to replace {node.key}",
            )
            trace.record(StepKind.HIGHLIGHT, [node], f"Replacing {node.key} with {successor.key}")
            node.key = successor.key
            node.right = self._delete(node.right, successor.key, trace)
        else:
            child_id = node.left if node.left != INVALID_NODE_ID else node.right
            if child_id == INVALID_NODE_ID:
                message = f"Removing leaf node {node.key}"
            else:
                side = "left" if child_id == node.left else "right"
                child = self._store.get(child_id)
                message = f"Replacing node {node.key} with {side} child {child.key}"
            trace.record(StepKind.CLEAR, [node], message)
            self._store.free(node_id)
            self._size -= 1
            return child_id

        return self._rebalance(node, trace)

    def clear(self) -> StepTrace:
        """Remove every node.

        Returns:
            Trace with one clear step naming every node in pre-order.
        """
        self._reset_states()
        trace = StepTrace(Operation.CLEAR)
        nodes = preorder(self._store.get, self._root)
        if nodes:
            trace.record(StepKind.CLEAR, nodes, "Clearing all nodes from the tree")
        else:
            trace.record(StepKind.CLEAR, [], "Tree is already empty")
        self._store.clear()
        self._root = INVALID_NODE_ID
        self._size = 0
        return trace

    def clone(self) -> AVLTree:
        other = AVLTree(self._spacing)
        other._store = self._store.copy()
        other._root = self._root
        other._size = self._size
        other._touched = set(self._touched)
        return other

    def snapshot(self) -> TreeSnapshot:
        order = layout(self._store.get, self._root, self._spacing, binary_width)
        return TreeSnapshot(
            tree_kind=self.kind,
            nodes=tuple(
                SnapshotNode(
                    node_id=n.node_id,
                    keys=n.keys,
                    x=n.x,
                    y=n.y,
                    state=n.state,
                    height=n.height,
                    balance_factor=n.balance_factor,
                )
                for n in order
            ),
            edges=edges_of(order),
        )

    # =========================================================================
    # Read access
    # =========================================================================

    def keys(self) -> Iterator[Key]:
        yield from self._keys(self._root)

    def _keys(self, node_id: NodeId) -> Iterator[Key]:
        if node_id == INVALID_NODE_ID:
            return
        node = self._store.get(node_id)
        yield from self._keys(node.left)
        yield node.key
        yield from self._keys(node.right)

    @property
    def height(self) -> int:
        return self._height_of(self._root)

    def validate(self) -> None:
        """Check ordering, stored heights and balance factors.

        Raises:
            InvariantViolationError: On the first node that breaks ordering,
                carries a stale height or balance factor, or is unbalanced.
        """
        count = self._validate(self._root, None, None)
        if count != self._size:
            raise InvariantViolationError(self.kind, f"reachable nodes {count} != size {self._size}")

    def _validate(self, node_id: NodeId, low: Key | None, high: Key | None) -> int:
        if node_id == INVALID_NODE_ID:
            return 0
        node = self._store.get(node_id)
        if (low is not None and node.key <= low) or (high is not None and node.key >= high):
            raise InvariantViolationError(self.kind, f"key {node.key} outside bounds ({low}, {high})")
        count = 1 + self._validate(node.left, low, node.key) + self._validate(node.right, node.key, high)

        left_height = self._height_of(node.left)
        right_height = self._height_of(node.right)
        if node.height != max(left_height, right_height) + 1:
            raise InvariantViolationError(self.kind, f"stale height {node.height} at {node.key}")
        if node.balance_factor != left_height - right_height:
            raise InvariantViolationError(self.kind, f"stale balance factor at {node.key}")
        if abs(node.balance_factor) > 1:
            raise InvariantViolationError(
                self.kind, f"node {node.key} unbalanced (balance factor: {node.balance_factor})"
            )
        return count

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            node = self._store.get(node_id)
            if key == node.key:
                return True
            node_id = node.left if key < node.key else node.right  # type: ignore[operator]
        return False
