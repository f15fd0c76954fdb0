"""B-Tree engine.

A B-Tree of order m keeps between ``min_keys`` and ``m - 1`` sorted keys in
every node except the root, and all leaves at the same depth. Keys live in
internal nodes as well as leaves (this is not a B+Tree).

Key features:
    - Bottom-up split on insert: a node that reaches m keys pushes its
      median into the parent, cascading to a new root if needed
    - Underflow repair on delete: borrow through the parent separator from
      a sibling with a spare key, otherwise merge with a sibling and repeat
      at the parent
    - Root collapse when the root loses its last key

References:
    - Bayer & McCreight, "Organization and Maintenance of Large Ordered
      Indexes" (1972)
    - Cormen et al., "Introduction to Algorithms", chapter 18
"""

from __future__ import annotations

from typing import Iterator

import structlog

from tree_engine.domain.entities.btree_node import BTreeNode
from tree_engine.domain.entities.snapshot import SnapshotNode, TreeSnapshot
from tree_engine.domain.entities.step_trace import StepTrace
from tree_engine.domain.services.layout import edges_of, layout, multiway_width, preorder
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

MIN_ORDER = 3
DEFAULT_ORDER = 3


class InvalidOrderError(ValueError):
    """Raised when a B-Tree is constructed with an order below 3."""

    def __init__(self, order: int) -> None:
        self.order = order
        super().__init__(f"B-Tree order must be at least {MIN_ORDER}, got {order}")


def _keys_text(node: BTreeNode) -> str:
    return "[" + ", ".join(str(k) for k in node.keys) + "]"


class BTree:
    """B-Tree with step tracing.

    Implements the ``SearchTree`` protocol.

    Attributes:
        order: Maximum number of children per node.

    Example:
        >>> tree = BTree(order=3)
        >>> for k in (10, 20, 30):
        ...     _ = tree.insert(k)
        >>> tree.root.keys
        [20]
    """

    def __init__(self, order: int = DEFAULT_ORDER, spacing: LayoutSpacing = DEFAULT_SPACING) -> None:
        if order < MIN_ORDER:
            raise InvalidOrderError(order)
        self.order = order
        self._spacing = spacing
        self._store: NodeStore[BTreeNode] = NodeStore()
        self._root: NodeId = INVALID_NODE_ID
        self._size = 0
        self._touched: set[NodeId] = set()

    @property
    def kind(self) -> TreeKind:
        return TreeKind.B_TREE

    @property
    def min_keys(self) -> int:
        return (self.order - 1) // 2

    @property
    def max_keys(self) -> int:
        return self.order - 1

    @property
    def root(self) -> BTreeNode | None:
        if self._root == INVALID_NODE_ID:
            return None
        return self._store.get(self._root)

    def get_node(self, node_id: NodeId) -> BTreeNode:
        """Return a node by id.

        Raises:
            KeyError: If the id is not in this tree.
        """
        return self._store.get(node_id)

    def _new_node(self, is_leaf: bool) -> BTreeNode:
        return self._store.create(lambda node_id: BTreeNode.new(node_id, is_leaf=is_leaf))

    def _adopt(self, parent: BTreeNode, child_ids: list[NodeId]) -> None:
        for child_id in child_ids:
            self._store.get(child_id).parent = parent.node_id

    def _mark(self, node: BTreeNode, state: NodeState) -> None:
        node.state = state
        self._touched.add(node.node_id)

    def _reset_states(self) -> None:
        for node_id in self._touched:
            if node_id in self._store:
                node = self._store.get(node_id)
                node.state = NodeState.DEFAULT
                node.found_key = None
        self._touched.clear()

    # =========================================================================
    # Insert
    # =========================================================================

    def insert(self, key: Key) -> StepTrace:
        """Insert a key into its leaf and split any overflowing node.

        Args:
            key: The key to insert.

        Returns:
            Trace of the descent, the insert step and one split step per
            level that overflowed.
        """
        self._reset_states()
        trace = StepTrace(Operation.INSERT, key)

        if self._root == INVALID_NODE_ID:
            root = self._new_node(is_leaf=True)
            root.keys.append(key)
            self._root = root.node_id
            self._size += 1
            self._mark(root, NodeState.HIGHLIGHT)
            trace.record(StepKind.INSERT, [root], f"Creating root with key {key}")
            return trace

        node = self._store.get(self._root)
        while True:
            if not node.is_leaf:
                self._mark(node, NodeState.HIGHLIGHT)
                trace.record(
                    StepKind.HIGHLIGHT, [node], f"Examining node with keys {_keys_text(node)}"
                )
            if node.index_of(key) >= 0:
                trace.record(StepKind.COMPARE, [node], f"{key} is already in node {_keys_text(node)}")
                logger.debug("duplicate_key_ignored", tree_kind=self.kind.value, key=key)
                return trace
            if node.is_leaf:
                break
            node = self._store.get(node.children[node.find_child_index(key)])

        node.insert_key(key)
        self._size += 1
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.INSERT, [node], f"Inserted {key} into node")

        while node.num_keys > self.max_keys:
            node = self._split(node, trace)
        return trace

    def _split(self, node: BTreeNode, trace: StepTrace) -> BTreeNode:
        """Split a node holding ``order`` keys around its median.

        The node is replaced by two new siblings and the median moves into
        the parent, which is created when the root splits.

        Returns:
            The parent that received the median.
        """
        mid = (self.order + 1) // 2 - 1
        median = node.keys[mid]

        left = self._new_node(node.is_leaf)
        right = self._new_node(node.is_leaf)
        left.keys = node.keys[:mid]
        right.keys = node.keys[mid + 1:]
        if not node.is_leaf:
            left.children = node.children[: mid + 1]
            right.children = node.children[mid + 1:]
            self._adopt(left, left.children)
            self._adopt(right, right.children)

        if node.parent == INVALID_NODE_ID:
            parent = self._new_node(is_leaf=False)
            parent.keys = [median]
            parent.children = [left.node_id, right.node_id]
            self._root = parent.node_id
        else:
            parent = self._store.get(node.parent)
            pos = parent.child_position(node.node_id)
            parent.keys.insert(pos, median)
            parent.children[pos: pos + 1] = [left.node_id, right.node_id]
        left.parent = parent.node_id
        right.parent = parent.node_id
        self._store.free(node.node_id)

        for changed in (parent, left, right):
            self._mark(changed, NodeState.HIGHLIGHT)
        trace.record(
            StepKind.SPLIT,
            [parent, left, right],
            f"Split node: {median} moves up, {_keys_text(left)} left, {_keys_text(right)} right",
        )
        logger.debug("node_split", tree_kind=self.kind.value, median=median)
        return parent

    # =========================================================================
    # Search
    # =========================================================================

    def search(self, key: Key) -> StepTrace:
        """Search for a key.

        On success the nodes above the holding node are marked ``path`` and
        the holding node ``found`` with its ``found_key`` set. On failure
        every node is marked ``notFound``.

        Returns:
            Trace of one highlight per visited node, then found or notFound.
        """
        self._reset_states()
        trace = StepTrace(Operation.SEARCH, key)

        if self._root == INVALID_NODE_ID:
            trace.record(StepKind.NOT_FOUND, [], f"Tree is empty, cannot search for {key}")
            return trace

        path: list[BTreeNode] = []
        node = self._store.get(self._root)
        while True:
            path.append(node)
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(StepKind.HIGHLIGHT, path, f"Examining node with keys {_keys_text(node)}")
            pos = node.index_of(key)
            if pos >= 0:
                for visited in path[:-1]:
                    self._mark(visited, NodeState.PATH)
                self._mark(node, NodeState.FOUND)
                node.found_key = key
                trace.record(StepKind.FOUND, [node], f"Found {key} at position {pos} in node")
                return trace
            if node.is_leaf:
                break
            node = self._store.get(node.children[node.find_child_index(key)])

        every_node = preorder(self._store.get, self._root)
        for visited in every_node:
            self._mark(visited, NodeState.NOT_FOUND)
        trace.record(StepKind.NOT_FOUND, every_node, f"{key} not found in tree")
        return trace

    # =========================================================================
    # Delete
    # =========================================================================

    def delete(self, key: Key) -> StepTrace:
        """Delete a key and repair any node left below the minimum.

        Args:
            key: The key to delete.

        Returns:
            Trace of the descent, the removal and every borrow, merge and
            root adjustment, or a trace ending in notFound.
        """
        self._reset_states()
        trace = StepTrace(Operation.DELETE, key)

        if self._root == INVALID_NODE_ID:
            trace.record(StepKind.NOT_FOUND, [], f"Tree is empty, cannot delete {key}")
            return trace

        node = self._store.get(self._root)
        while True:
            self._mark(node, NodeState.HIGHLIGHT)
            trace.record(
                StepKind.HIGHLIGHT,
                [node],
                f"Searching for {key} in node with keys {_keys_text(node)}",
            )
            pos = node.index_of(key)
            if pos >= 0:
                break
            if node.is_leaf:
                trace.record(StepKind.NOT_FOUND, [], f"{key} not found in tree")
                return trace
            node = self._store.get(node.children[node.find_child_index(key)])

        self._delete_at(node, pos, trace)
        self._size -= 1
        return trace

    def _delete_at(self, node: BTreeNode, pos: int, trace: StepTrace) -> None:
        key = node.keys[pos]
        while not node.is_leaf:
            left = self._store.get(node.children[pos])
            right = self._store.get(node.children[pos + 1])

            if left.num_keys > self.min_keys:
                self._replace_with_predecessor(node, pos, left, trace)
                return
            if right.num_keys > self.min_keys:
                self._replace_with_successor(node, pos, right, trace)
                return
            if not left.is_leaf and left.num_keys + 1 + right.num_keys > self.max_keys:
                self._replace_with_predecessor(node, pos, left, trace)
                return

            trace.record(
                StepKind.MERGE,
                [node, left, right],
                f"Moving parent key {key} down and merging children",
            )
            self._merge(left, right, node, pos)
            self._mark(left, NodeState.HIGHLIGHT)
            self._repair(node, trace)
            node = left
            pos = node.index_of(key)

        node.keys.pop(pos)
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.CLEAR, [node], f"Deleted {key} from leaf node")
        self._repair(node, trace)

    def _replace_with_predecessor(
        self, node: BTreeNode, pos: int, left: BTreeNode, trace: StepTrace
    ) -> None:
        donor = left
        while not donor.is_leaf:
            donor = self._store.get(donor.children[-1])
        replacement = donor.keys.pop()
        original = node.keys[pos]
        node.keys[pos] = replacement
        self._mark(donor, NodeState.HIGHLIGHT)
        trace.record(
            StepKind.HIGHLIGHT,
            [node, donor],
            f"Replaced {original} with {replacement} from left subtree",
        )
        self._repair(donor, trace)

    def _replace_with_successor(
        self, node: BTreeNode, pos: int, right: BTreeNode, trace: StepTrace
    ) -> None:
        donor = right
        while not donor.is_leaf:
            donor = self._store.get(donor.children[0])
        replacement = donor.keys.pop(0)
        original = node.keys[pos]
        node.keys[pos] = replacement
        self._mark(donor, NodeState.HIGHLIGHT)
        trace.record(
            StepKind.HIGHLIGHT,
            [node, donor],
            f"Replaced {original} with {replacement} from right subtree",
        )
        self._repair(donor, trace)

    def _merge(self, left: BTreeNode, right: BTreeNode, parent: BTreeNode, sep: int) -> None:
        """Fold ``right`` and the separator ``parent.keys[sep]`` into ``left``."""
        separator = parent.keys.pop(sep)
        parent.children.pop(sep + 1)
        left.keys = left.keys + [separator] + right.keys
        left.children = left.children + right.children
        self._adopt(left, right.children)
        self._store.free(right.node_id)
        logger.debug("nodes_merged", tree_kind=self.kind.value, separator=separator)

    def _repair(self, node: BTreeNode, trace: StepTrace) -> None:
        """Restore the minimum key count from ``node`` up to the root."""
        while True:
            if node.node_id == self._root:
                if node.num_keys == 0:
                    self._collapse_root(node, trace)
                return
            if node.num_keys >= self.min_keys:
                return

            parent = self._store.get(node.parent)
            pos = parent.child_position(node.node_id)
            left = self._store.get(parent.children[pos - 1]) if pos > 0 else None
            right = (
                self._store.get(parent.children[pos + 1])
                if pos + 1 < len(parent.children)
                else None
            )

            if left is not None and left.num_keys > self.min_keys:
                self._borrow_from_left(node, left, parent, pos, trace)
                return
            if right is not None and right.num_keys > self.min_keys:
                self._borrow_from_right(node, right, parent, pos, trace)
                return

            if left is not None:
                self._merge(left, node, parent, pos - 1)
                survivor, side = left, "left"
            else:
                assert right is not None
                self._merge(node, right, parent, pos)
                survivor, side = node, "right"
            self._mark(survivor, NodeState.HIGHLIGHT)
            trace.record(StepKind.MERGE, [survivor, parent], f"Merged with {side} sibling")
            node = parent

    def _borrow_from_left(
        self, node: BTreeNode, left: BTreeNode, parent: BTreeNode, pos: int, trace: StepTrace
    ) -> None:
        borrowed = left.keys.pop()
        node.keys.insert(0, parent.keys[pos - 1])
        parent.keys[pos - 1] = borrowed
        if not left.is_leaf:
            child_id = left.children.pop()
            node.children.insert(0, child_id)
            self._adopt(node, [child_id])
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.BORROW, [left, parent, node], f"Borrowed {borrowed} from left sibling")
        logger.debug("key_borrowed", tree_kind=self.kind.value, key=borrowed, side="left")

    def _borrow_from_right(
        self, node: BTreeNode, right: BTreeNode, parent: BTreeNode, pos: int, trace: StepTrace
    ) -> None:
        borrowed = right.keys.pop(0)
        node.keys.append(parent.keys[pos])
        parent.keys[pos] = borrowed
        if not right.is_leaf:
            child_id = right.children.pop(0)
            node.children.append(child_id)
            self._adopt(node, [child_id])
        self._mark(node, NodeState.HIGHLIGHT)
        trace.record(StepKind.BORROW, [right, parent, node], f"Borrowed {borrowed} from right sibling")
        logger.debug("key_borrowed", tree_kind=self.kind.value, key=borrowed, side="right")

    def _collapse_root(self, root: BTreeNode, trace: StepTrace) -> None:
        self._store.free(root.node_id)
        if root.is_leaf:
            self._root = INVALID_NODE_ID
            trace.record(StepKind.CLEAR, [], "Tree is now empty")
            return
        child = self._store.get(root.children[0])
        child.parent = INVALID_NODE_ID
        self._root = child.node_id
        trace.record(StepKind.HIGHLIGHT, [child], "Adjusted root after cascading merges")
        logger.debug("root_collapsed", tree_kind=self.kind.value, new_root=child.node_id)

    # =========================================================================
    # Clear, clone, snapshot
    # =========================================================================

    def clear(self) -> StepTrace:
        """Remove every node.

        Returns:
            Trace with one clear step naming every node in pre-order.
        """
        self._reset_states()
        trace = StepTrace(Operation.CLEAR)
        nodes = preorder(self._store.get, self._root)
        message = "Clearing entire tree" if nodes else "Tree is already empty"
        trace.record(StepKind.CLEAR, nodes, message)
        self._store.clear()
        self._root = INVALID_NODE_ID
        self._size = 0
        return trace

    def clone(self) -> BTree:
        other = BTree(self.order, self._spacing)
        other._store = self._store.copy()
        other._root = self._root
        other._size = self._size
        other._touched = set(self._touched)
        return other

    def snapshot(self) -> TreeSnapshot:
        order = layout(self._store.get, self._root, self._spacing, multiway_width)
        return TreeSnapshot(
            tree_kind=self.kind,
            nodes=tuple(
                SnapshotNode(
                    node_id=n.node_id,
                    keys=tuple(n.keys),
                    x=n.x,
                    y=n.y,
                    state=n.state,
                    found_key=n.found_key,
                )
                for n in order
            ),
            edges=edges_of(order),
        )

    # =========================================================================
    # Read access
    # =========================================================================

    def keys(self) -> Iterator[Key]:
        if self._root != INVALID_NODE_ID:
            yield from self._keys(self._store.get(self._root))

    def _keys(self, node: BTreeNode) -> Iterator[Key]:
        if node.is_leaf:
            yield from node.keys
            return
        for i, key in enumerate(node.keys):
            yield from self._keys(self._store.get(node.children[i]))
            yield key
        yield from self._keys(self._store.get(node.children[-1]))

    @property
    def height(self) -> int:
        levels = 0
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            levels += 1
            node = self._store.get(node_id)
            node_id = INVALID_NODE_ID if node.is_leaf else node.children[0]
        return levels

    def validate(self) -> None:
        """Check key order, node occupancy, parent links and leaf depth.

        Raises:
            InvariantViolationError: On the first violated invariant.
        """
        if self._root == INVALID_NODE_ID:
            if self._size:
                raise InvariantViolationError(self.kind, f"empty root but size {self._size}")
            return
        root = self._store.get(self._root)
        if root.parent != INVALID_NODE_ID:
            raise InvariantViolationError(self.kind, "root has a parent")
        if root.num_keys == 0:
            raise InvariantViolationError(self.kind, "root has no keys")

        leaf_depths: set[int] = set()
        count = self._validate(root, 0, None, None, leaf_depths)
        if len(leaf_depths) > 1:
            raise InvariantViolationError(self.kind, f"leaves at depths {sorted(leaf_depths)}")
        if count != self._size:
            raise InvariantViolationError(self.kind, f"reachable keys {count} != size {self._size}")

    def _validate(
        self,
        node: BTreeNode,
        depth: int,
        low: Key | None,
        high: Key | None,
        leaf_depths: set[int],
    ) -> int:
        keys = node.keys
        if node.num_keys > self.max_keys:
            raise InvariantViolationError(self.kind, f"node {_keys_text(node)} overflows")
        if node.node_id != self._root and node.num_keys < self.min_keys:
            raise InvariantViolationError(self.kind, f"node {_keys_text(node)} underflows")
        for a, b in zip(keys, keys[1:]):
            if not a < b:
                raise InvariantViolationError(self.kind, f"node {_keys_text(node)} not sorted")
        if (low is not None and keys[0] <= low) or (high is not None and keys[-1] >= high):
            raise InvariantViolationError(
                self.kind, f"node {_keys_text(node)} outside bounds ({low}, {high})"
            )

        if node.is_leaf:
            if node.children:
                raise InvariantViolationError(self.kind, f"leaf {_keys_text(node)} has children")
            leaf_depths.add(depth)
            return node.num_keys

        if len(node.children) != node.num_keys + 1:
            raise InvariantViolationError(
                self.kind, f"node {_keys_text(node)} has {len(node.children)} children"
            )
        count = node.num_keys
        bounds = [low, *keys, high]
        for i, child_id in enumerate(node.children):
            child = self._store.get(child_id)
            if child.parent != node.node_id:
                raise InvariantViolationError(self.kind, f"stale parent link at {_keys_text(child)}")
            count += self._validate(child, depth + 1, bounds[i], bounds[i + 1], leaf_depths)
        return count

    def __len__(self) -> int:
        return self._size

    def __contains__(self, key: object) -> bool:
        node_id = self._root
        while node_id != INVALID_NODE_ID:
            node = self._store.get(node_id)
            if node.index_of(key) >= 0:  # type: ignore[arg-type]
                return True
            node_id = INVALID_NODE_ID if node.is_leaf else node.children[node.find_child_index(key)]  # type: ignore[arg-type]
        return False
