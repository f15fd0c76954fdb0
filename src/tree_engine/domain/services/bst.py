"""Plain binary search tree engine.

Every descent here is a loop rather than recursion: inserting keys in sorted
order produces a linked list of arbitrary height, which must not exhaust the
interpreter's recursion limit.
"""

from __future__ import annotations

from typing import Iterator

import structlog

from tree_engine.domain.entities.binary_node import BSTNode
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


class BinarySearchTree:
    """Unbalanced binary search tree with step tracing.

    Implements the ``SearchTree`` protocol.

    Example:
        >>> tree = BinarySearchTree()
        >>> for k in (10, 5, 15):
        ...     _ = tree.insert(k)
        >>> list(tree.keys())
        [5, 10, 15]
    """

    def __init__(self, spacing: LayoutSpacing = DEFAULT_SPACING) -> None:
        self._spacing = spacing
        self._store: NodeStore[BSTNode] = NodeStore()
        self._root: NodeId = INVALID_NODE_ID
        self._size = 0
        self._touched: set[NodeId] = set()

    @property
    def kind(self) -> TreeKind:
        return TreeKind.BST

    @property
    def root(self) -> BSTNode | None:
        if self._root == INVALID_NODE_ID:
            return None
        return self._store.get(self._root)

    def get_node(self, node_id: NodeId) -> BSTNode:
        """Return a node by id.

        Raises:
            KeyError: If the id is not in this tree.
        """
        return self._store.get(node_id)

    def _node(self, node_id: NodeId) -> BSTNode | None:
        if node_id == INVALID_NODE_ID:
            return None
        return self._store.get(node_id)

    def _mark(self, node: BSTNode, state: NodeState) -> None:
        node.state = state
        self._touched.add(node.node_id)

    def _reset_states(self) -> None:
        for node_id in self._touched:
            if node_id in self._store:
                self._store.get(node_id).state = NodeState.DEFAULT
        self._touched.clear()

    def _new_node(self, key: Key) -> BSTNode:
        self._size += 1
        return self._store.create(lambda node_id: BSTNode(node_id=node_id, key=key))

    def _replace_child(self, parent: BSTNode | None, old_id: NodeId, new_id: NodeId) -> None:
        if parent is None:
            self._root = new_id
        elif parent.left == old_id:
            parent.left = new_id
        else:
            parent.right = new_id

    def insert(self, key: Key) -> StepTrace:
        """Insert a key, attaching a new leaf at the first empty slot.

        Args:
            key: The key to insert.

        Returns:
            Trace of compare steps ending in an insert step, or ending at
            the compare that found an equal key.
        """
        self._reset_states()
        trace = StepTrace(Operation.INSERT, key)

        current = self.root
        if current is None:
            node = self._new_node(key)
            self._root = node.node_id
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.INSERT, [node], f"Inserted {key} as root")
            return trace

        while True:
            self._mark(current, NodeState.COMPARE)
            trace.record(StepKind.COMPARE, [current], f"Comparing {key} with {current.key}")
            if key == current.key:
                logger.debug("duplicate_key_ignored", tree_kind=self.kind.value, key=key)
                return trace

            go_left = key < current.key
            child_id = current.left if go_left else current.right
            if child_id == INVALID_NODE_ID:
                break
            current = self._store.get(child_id)

        node = self._new_node(key)
        if go_left:
            current.left = node.node_id
        else:
            current.right = node.node_id
        self._mark(node, NodeState.HIGHLIGHT)
        side = "left" if go_left else "right"
        trace.record(StepKind.INSERT, [node], f"Inserted {key} as {side} child of {current.key}")
        return trace

    def search(self, key: Key) -> StepTrace:
        """Search for a key.

        Args:
            key: The key to look for.

        Returns:
            Trace of highlight/compare steps ending in found or notFound.
        """
        self._reset_states()
        trace = StepTrace(Operation.SEARCH, key)

        current = self.root
        if current is None:
            trace.record(StepKind.NOT_FOUND, [], "Tree is empty")
            return trace

        while True:
            self._mark(current, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [current], f"Visiting {current.key}")
            if key == current.key:
                self._mark(current, NodeState.FOUND)
                trace.record(StepKind.FOUND, [current], f"Found {key}")
                return trace

            if key < current.key:
                trace.record(StepKind.COMPARE, [current], f"{key} < {current.key}, going left")
                child_id = current.left
            else:
                trace.record(StepKind.COMPARE, [current], f"{key} > {current.key}, going right")
                child_id = current.right

            if child_id == INVALID_NODE_ID:
                self._mark(current, NodeState.NOT_FOUND)
                trace.record(StepKind.NOT_FOUND, [], f"{key} not found")
                return trace
            current = self._store.get(child_id)

    def delete(self, key: Key) -> StepTrace:
        """Delete a key.

        A node with two children takes its in-order successor's key and the
        successor node, which has no left child, is removed instead.

        Args:
            key: The key to delete.

        Returns:
            Trace of the search for the key followed by the removal steps,
            or ending in notFound when the key is absent.
        """
        self._reset_states()
        trace = StepTrace(Operation.DELETE, key)

        parent: BSTNode | None = None
        current = self.root
        while current is not None:
            self._mark(current, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [current], f"Checking {current.key}")
            if key == current.key:
                break
            parent = current
            current = self._node(current.left if key < current.key else current.right)

        if current is None:
            trace.record(StepKind.NOT_FOUND, [], f"{key} not found")
            return trace

        if current.left != INVALID_NODE_ID and current.right != INVALID_NODE_ID:
            successor_parent = current
            successor = self._store.get(current.right)
            trace.record(StepKind.HIGHLIGHT, [successor], f"Looking for successor at {successor.key}")
            while successor.left != INVALID_NODE_ID:
                successor_parent = successor
                successor = self._store.get(successor.left)
                trace.record(StepKind.HIGHLIGHT, [successor], f"Looking for successor at {successor.key}")

            trace.record(
                StepKind.HIGHLIGHT,
                [current, successor],
                f"Replacing {current.key} with successor {successor.key}",
            )
            current.key = successor.key
            self._mark(current, NodeState.HIGHLIGHT)
            trace.record(StepKind.CLEAR, [successor], f"Removed successor node {successor.key}")
            self._replace_child(successor_parent, successor.node_id, successor.right)
            self._store.free(successor.node_id)
        else:
            child_id = current.left if current.left != INVALID_NODE_ID else current.right
            message = f"Removed leaf {key}" if child_id == INVALID_NODE_ID else f"Removed {key}, child moves up"
            trace.record(StepKind.CLEAR, [current], message)
            self._replace_child(parent, current.node_id, child_id)
            self._store.free(current.node_id)

        self._size -= 1
        return trace

    def clear(self) -> StepTrace:
        """Remove every node.

        Returns:
            Trace with one clear step naming every node in pre-order.
        """
        self._reset_states()
        trace = StepTrace(Operation.CLEAR)
        nodes = preorder(self._store.get, self._root)
        message = f"Cleared {len(nodes)} nodes" if nodes else "Tree is already empty"
        trace.record(StepKind.CLEAR, nodes, message)
        self._store.clear()
        self._root = INVALID_NODE_ID
        self._size = 0
        return trace

    def clone(self) -> BinarySearchTree:
        other = BinarySearchTree(self._spacing)
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
                SnapshotNode(node_id=n.node_id, keys=n.keys, x=n.x, y=n.y, state=n.state)
                for n in order
            ),
            edges=edges_of(order),
        )

    def keys(self) -> Iterator[Key]:
        stack: list[BSTNode] = []
        current = self.root
        while stack or current is not None:
            while current is not None:
                stack.append(current)
                current = self._node(current.left)
            current = stack.pop()
            yield current.key
            current = self._node(current.right)

    @property
    def height(self) -> int:
        levels = 0
        frontier = [self._root] if self._root != INVALID_NODE_ID else []
        while frontier:
            levels += 1
            next_frontier = []
            for node_id in frontier:
                node = self._store.get(node_id)
                next_frontier.extend(c for c in (node.left, node.right) if c != INVALID_NODE_ID)
            frontier = next_frontier
        return levels

    def validate(self) -> None:
        """Check the ordering invariant and the stored key count.

        Raises:
            InvariantViolationError: If a key is out of order or the tree
                does not hold exactly ``len(self)`` nodes.
        """
        count = 0
        stack: list[tuple[NodeId, Key | None, Key | None]] = []
        if self._root != INVALID_NODE_ID:
            stack.append((self._root, None, None))
        while stack:
            node_id, low, high = stack.pop()
            node = self._store.get(node_id)
            count += 1
            if count > len(self._store):
                raise InvariantViolationError(self.kind, "cycle detected")
            if (low is not None and node.key <= low) or (high is not None and node.key >= high):
                raise InvariantViolationError(
                    self.kind, f"key {node.key} outside bounds ({low}, {high})"
                )
            if node.left != INVALID_NODE_ID:
                stack.append((node.left, low, node.key))
            if node.right != INVALID_NODE_ID:
                stack.append((node.right, node.key, high))
        if count != self._size:
            raise InvariantViolationError(
                self.kind, f"reachable nodes {count} != size {self._size}"
            )

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        current = self.root
        while current is not None:
            if key == current.key:
                return True
            current = self._node(current.left if key < current.key else current.right)  # type: ignore[operator]
        return False
