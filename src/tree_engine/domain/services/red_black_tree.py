"""Red-Black tree engine.

A binary search tree kept approximately balanced by coloring every node red
or black:

1. The root is black.
2. A red node has no red child.
3. Every path from a node down to an empty slot passes the same number of
   black nodes.

Empty slots count as black. Insert and delete follow Cormen et al.,
"Introduction to Algorithms", chapter 13, with INVALID_NODE_ID standing in
for the nil sentinel. Because the deleted node's replacement may be nil,
delete-fixup carries the parent id of x alongside x itself.
"""

from __future__ import annotations

from typing import Iterator

import structlog

from tree_engine.domain.entities.binary_node import RBNode
from tree_engine.domain.entities.snapshot import SnapshotNode, TreeSnapshot
from tree_engine.domain.entities.step_trace import StepTrace
from tree_engine.domain.services.layout import binary_width, edges_of, layout, preorder
from tree_engine.domain.services.node_store import NodeStore
from tree_engine.domain.value_objects import (
    DEFAULT_SPACING,
    INVALID_NODE_ID,
    Color,
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


def _path_text(path: list[RBNode]) -> str:
    return " -> ".join(str(node.key) for node in path)


class RedBlackTree:
    """Red-Black tree with step tracing.

    Implements the ``SearchTree`` protocol. Fixups record ``recolor`` and
    ``rotate`` steps in the order they are applied.
    """

    def __init__(self, spacing: LayoutSpacing = DEFAULT_SPACING) -> None:
        self._spacing = spacing
        self._store: NodeStore[RBNode] = NodeStore()
        self._root: NodeId = INVALID_NODE_ID
        self._size = 0
        self._touched: set[NodeId] = set()

    @property
    def kind(self) -> TreeKind:
        return TreeKind.RED_BLACK

    @property
    def root(self) -> RBNode | None:
        if self._root == INVALID_NODE_ID:
            return None
        return self._store.get(self._root)

    def get_node(self, node_id: NodeId) -> RBNode:
        """Return a node by id.

        Raises:
            KeyError: If the id is not in this tree.
        """
        return self._store.get(node_id)

    def _color(self, node_id: NodeId) -> Color:
        if node_id == INVALID_NODE_ID:
            return Color.BLACK
        return self._store.get(node_id).color

    def _mark(self, node: RBNode, state: NodeState) -> None:
        node.state = state
        self._touched.add(node.node_id)

    def _reset_states(self) -> None:
        for node_id in self._touched:
            if node_id in self._store:
                self._store.get(node_id).state = NodeState.DEFAULT
        self._touched.clear()

    # =========================================================================
    # Structural primitives
    # =========================================================================

    def _replace_in_parent(self, node: RBNode, new_id: NodeId) -> None:
        """Point ``node``'s parent (or the root) at ``new_id``."""
        if node.parent == INVALID_NODE_ID:
            self._root = new_id
        else:
            parent = self._store.get(node.parent)
            if parent.left == node.node_id:
                parent.left = new_id
            else:
                parent.right = new_id
        if new_id != INVALID_NODE_ID:
            self._store.get(new_id).parent = node.parent

    def _rotate_left(self, node: RBNode, trace: StepTrace) -> None:
        pivot = self._store.get(node.right)
        trace.record(StepKind.ROTATE, [node, pivot], f"Left rotation at {node.key}")
        node.right = pivot.left
        if pivot.left != INVALID_NODE_ID:
            self._store.get(pivot.left).parent = node.node_id
        self._replace_in_parent(node, pivot.node_id)
        pivot.left = node.node_id
        node.parent = pivot.node_id
        logger.debug("rotation", tree_kind=self.kind.value, direction="left", at=node.key)

    def _rotate_right(self, node: RBNode, trace: StepTrace) -> None:
        pivot = self._store.get(node.left)
        trace.record(StepKind.ROTATE, [node, pivot], f"Right rotation at {node.key}")
        node.left = pivot.right
        if pivot.right != INVALID_NODE_ID:
            self._store.get(pivot.right).parent = node.node_id
        self._replace_in_parent(node, pivot.node_id)
        pivot.right = node.node_id
        node.parent = pivot.node_id
        logger.debug("rotation", tree_kind=self.kind.value, direction="right", at=node.key)

    # =========================================================================
    # Insert
    # =========================================================================

    def insert(self, key: Key) -> StepTrace:
        """Insert a key as a red leaf and restore the coloring rules.

        Args:
            key: The key to insert.

        Returns:
            Trace of the descent, the insert step and every fixup step.
        """
        self._reset_states()
        trace = StepTrace(Operation.INSERT, key)

        if self._root == INVALID_NODE_ID:
            node = self._store.create(
                lambda node_id: RBNode(node_id=node_id, key=key, color=Color.BLACK)
            )
            self._root = node.node_id
            self._size += 1
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.INSERT, [node], f"Inserted {key} as root")
            return trace

        parent = self._store.get(self._root)
        while True:
            self._mark(parent, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [parent], f"Comparing with {parent.key}")
            if key == parent.key:
                logger.debug("duplicate_key_ignored", tree_kind=self.kind.value, key=key)
                return trace
            child_id = parent.left if key < parent.key else parent.right
            if child_id == INVALID_NODE_ID:
                break
            parent = self._store.get(child_id)

        node = self._store.create(
            lambda node_id: RBNode(node_id=node_id, key=key, parent=parent.node_id)
        )
        if key < parent.key:
            parent.left = node.node_id
        else:
            parent.right = node.node_id
        self._size += 1
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.INSERT, [node], f"Inserted {key}")

        self._insert_fixup(node, trace)
        return trace

    def _insert_fixup(self, node: RBNode, trace: StepTrace) -> None:
        while node.parent != INVALID_NODE_ID and self._store.get(node.parent).is_red:
            parent = self._store.get(node.parent)
            grandparent = self._store.get(parent.parent)
            parent_is_left = parent.node_id == grandparent.left
            uncle_id = grandparent.right if parent_is_left else grandparent.left

            if self._color(uncle_id) == Color.RED:
                uncle = self._store.get(uncle_id)
                parent.color = Color.BLACK
                uncle.color = Color.BLACK
                grandparent.color = Color.RED
                trace.record(
                    StepKind.RECOLOR,
                    [parent, uncle, grandparent],
                    f"Uncle {uncle.key} is red: recoloring {parent.key} and {uncle.key} "
                    f"black, {grandparent.key} red",
                )
                node = grandparent
                continue

            inner = node.node_id == (parent.right if parent_is_left else parent.left)
            if inner:
                if parent_is_left:
                    self._rotate_left(parent, trace)
                else:
                    self._rotate_right(parent, trace)
                node = parent
                parent = self._store.get(node.parent)

            parent.color = Color.BLACK
            grandparent.color = Color.RED
            trace.record(
                StepKind.RECOLOR,
                [parent, grandparent],
                f"Recoloring {parent.key} black and {grandparent.key} red",
            )
            if parent_is_left:
                self._rotate_right(grandparent, trace)
            else:
                self._rotate_left(grandparent, trace)

        root = self._store.get(self._root)
        if root.is_red:
            root.color = Color.BLACK
            trace.record(StepKind.RECOLOR, [root], f"Root {root.key} recolored black")

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, key: Key) -> StepTrace:
        """Delete a key and restore the coloring rules.

        Args:
            key: The key to delete.

        Returns:
            Trace of the descent, the removal and every fixup step, or a
            trace ending in notFound when the key is absent.
        """
        self._reset_states()
        trace = StepTrace(Operation.DELETE, key)

        target: RBNode | None = None
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            node = self._store.get(node_id)
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [node], f"Checking node {node.key}")
            if key == node.key:
                target = node
                break
            node_id = node.left if key < node.key else node.right

        if target is None:
            trace.record(StepKind.NOT_FOUND, [], f"Node {key} not found for deletion")
            return trace

        trace.record(StepKind.HIGHLIGHT, [target], f"Found node {key} to delete")

        removed_color = target.color
        if target.left == INVALID_NODE_ID or target.right == INVALID_NODE_ID:
            x_id = target.left if target.left != INVALID_NODE_ID else target.right
            x_parent_id = target.parent
            trace.record(StepKind.CLEAR, [target], f"Removing {key}")
            self._replace_in_parent(target, x_id)
        else:
            successor = self._store.get(target.right)
            while successor.left != INVALID_NODE_ID:
                successor = self._store.get(successor.left)
            trace.record(
                StepKind.HIGHLIGHT,
                [target, successor],
                f"Replacing {key} with successor {successor.key}",
            )
            trace.record(StepKind.CLEAR, [target], f"Removing {key}")

            removed_color = successor.color
            x_id = successor.right
            if successor.parent == target.node_id:
                x_parent_id = successor.node_id
            else:
                x_parent_id = successor.parent
                self._replace_in_parent(successor, successor.right)
                successor.right = target.right
                self._store.get(successor.right).parent = successor.node_id
            self._replace_in_parent(target, successor.node_id)
            successor.left = target.left
            self._store.get(successor.left).parent = successor.node_id
            successor.color = target.color

        self._store.free(target.node_id)
        self._size -= 1

        if removed_color == Color.BLACK:
            self._delete_fixup(x_id, x_parent_id, trace)
        return trace

    def _delete_fixup(self, x_id: NodeId, x_parent_id: NodeId, trace: StepTrace) -> None:
        """Restore equal black-height after a black node left the path to x.

        Args:
            x_id: Node that took the removed node's place (may be nil).
            x_parent_id: Parent of x, needed when x is nil.
            trace: Trace of the current call.
        """
        while x_id != self._root and self._color(x_id) == Color.BLACK:
            parent = self._store.get(x_parent_id)
            x_is_left = x_id == parent.left
            sibling = self._store.get(parent.right if x_is_left else parent.left)

            if sibling.is_red:
                sibling.color = Color.BLACK
                parent.color = Color.RED
                trace.record(
                    StepKind.RECOLOR,
                    [sibling, parent],
                    f"Case 1: red sibling {sibling.key}, recoloring before rotation",
                )
                if x_is_left:
                    self._rotate_left(parent, trace)
                else:
                    self._rotate_right(parent, trace)
                sibling = self._store.get(parent.right if x_is_left else parent.left)

            near_id = sibling.left if x_is_left else sibling.right
            far_id = sibling.right if x_is_left else sibling.left
            if self._color(near_id) == Color.BLACK and self._color(far_id) == Color.BLACK:
                sibling.color = Color.RED
                trace.record(
                    StepKind.RECOLOR,
                    [sibling],
                    f"Case 2: black sibling {sibling.key} with black children, recoloring",
                )
                x_id = parent.node_id
                x_parent_id = parent.parent
                continue

            if self._color(far_id) == Color.BLACK:
                near = self._store.get(near_id)
                near.color = Color.BLACK
                sibling.color = Color.RED
                trace.record(
                    StepKind.RECOLOR,
                    [near, sibling],
                    f"Case 3: near child {near.key} red, restructuring sibling {sibling.key}",
                )
                if x_is_left:
                    self._rotate_right(sibling, trace)
                else:
                    self._rotate_left(sibling, trace)
                sibling = self._store.get(parent.right if x_is_left else parent.left)
                far_id = sibling.right if x_is_left else sibling.left

            far = self._store.get(far_id)
            sibling.color = parent.color
            parent.color = Color.BLACK
            far.color = Color.BLACK
            trace.record(
                StepKind.RECOLOR,
                [sibling, parent, far],
                f"Case 4: far child {far.key} red, final recoloring and rotation",
            )
            if x_is_left:
                self._rotate_left(parent, trace)
            else:
                self._rotate_right(parent, trace)
            x_id = self._root
            x_parent_id = INVALID_NODE_ID

        if x_id != INVALID_NODE_ID:
            x = self._store.get(x_id)
            if x.is_red:
                x.color = Color.BLACK
                trace.record(StepKind.RECOLOR, [x], f"Recoloring {x.key} black")

    # =========================================================================
    # Search and clear
    # =========================================================================

    def search(self, key: Key) -> StepTrace:
        """Search for a key, recording the path taken.

        Returns:
            Trace ending in found and success-path, or in notFound carrying
            the searched path.
        """
        self._reset_states()
        trace = StepTrace(Operation.SEARCH, key)

        if self._root == INVALID_NODE_ID:
            trace.record(StepKind.NOT_FOUND, [], "Tree is empty")
            return trace

        path: list[RBNode] = []
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            node = self._store.get(node_id)
            path.append(node)
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, [node], f"Examining node {node.key}")
            trace.record(StepKind.COMPARE, [node], f"Is {key} equal to {node.key}?")

            if key == node.key:
                for visited in path:
                    self._mark(visited, NodeState.SUCCESS_PATH)
                self._mark(node, NodeState.FOUND)
                trace.record(StepKind.FOUND, [node], f"Found {key}!")
                trace.record(StepKind.SUCCESS_PATH, path, f"Path taken: {_path_text(path)}")
                return trace

            if key < node.key:
                trace.record(StepKind.COMPARE, [node], f"{key} < {node.key}, going left")
                node_id = node.left
            else:
                trace.record(StepKind.COMPARE, [node], f"{key} > {node.key}, going right")
                node_id = node.right
            self._mark(node, NodeState.PATH)
            trace.record(StepKind.PATH, path, f"Current path: {_path_text(path)}")

        for visited in path:
            self._mark(visited, NodeState.NOT_FOUND)
        trace.record(
            StepKind.NOT_FOUND,
            path,
            f"{key} not found. Path searched: {_path_text(path)}",
        )
        return trace

    def clear(self) -> StepTrace:
        """Remove every node.

        Returns:
            Trace with one clear step naming every node in pre-order.
        """
        self._reset_states()
        trace = StepTrace(Operation.CLEAR)
        nodes = preorder(self._store.get, self._root)
        message = "Clearing Red-Black tree" if nodes else "Tree is already empty"
        trace.record(StepKind.CLEAR, nodes, message)
        self._store.clear()
        self._root = INVALID_NODE_ID
        self._size = 0
        return trace

    def clone(self) -> RedBlackTree:
        other = RedBlackTree(self._spacing)
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
                    color=n.color,
                )
                for n in order
            ),
            edges=edges_of(order),
        )

    # =========================================================================
    # Read access
    # =========================================================================

    def keys(self) -> Iterator[Key]:
        stack: list[RBNode] = []
        node_id = self._root
        while stack or node_id != INVALID_NODE_ID:
            while node_id != INVALID_NODE_ID:
                node = self._store.get(node_id)
                stack.append(node)
                node_id = node.left
            node = stack.pop()
            yield node.key
            node_id = node.right

    @property
    def height(self) -> int:
        return self._subtree_height(self._root)

    def _subtree_height(self, node_id: NodeId) -> int:
        if node_id == INVALID_NODE_ID:
            return 0
        node = self._store.get(node_id)
        return 1 + max(self._subtree_height(node.left), self._subtree_height(node.right))

    def validate(self) -> None:
        """Check ordering, parent links and the three coloring rules.

        Raises:
            InvariantViolationError: On the first violated rule.
        """
        if self._root == INVALID_NODE_ID:
            if self._size:
                raise InvariantViolationError(self.kind, f"empty root but size {self._size}")
            return
        root = self._store.get(self._root)
        if root.is_red:
            raise InvariantViolationError(self.kind, f"root {root.key} is red")
        if root.parent != INVALID_NODE_ID:
            raise InvariantViolationError(self.kind, "root has a parent")
        _, count = self._black_height(self._root, None, None)
        if count != self._size:
            raise InvariantViolationError(self.kind, f"reachable nodes {count} != size {self._size}")

    def _black_height(
        self, node_id: NodeId, low: Key | None, high: Key | None
    ) -> tuple[int, int]:
        """Return the black height of the subtree and its node count."""
        if node_id == INVALID_NODE_ID:
            return 1, 0
        node = self._store.get(node_id)
        if (low is not None and node.key <= low) or (high is not None and node.key >= high):
            raise InvariantViolationError(self.kind, f"key {node.key} outside bounds ({low}, {high})")
        for child_id in (node.left, node.right):
            if child_id == INVALID_NODE_ID:
                continue
            child = self._store.get(child_id)
            if child.parent != node.node_id:
                raise InvariantViolationError(self.kind, f"stale parent link at {child.key}")
            if node.is_red and child.is_red:
                raise InvariantViolationError(
                    self.kind, f"red node {node.key} has red child {child.key}"
                )
        left, left_count = self._black_height(node.left, low, node.key)
        right, right_count = self._black_height(node.right, node.key, high)
        if left != right:
            raise InvariantViolationError(
                self.kind, f"unequal black height below {node.key} ({left} != {right})"
            )
        return left + (0 if node.is_red else 1), left_count + right_count + 1

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
