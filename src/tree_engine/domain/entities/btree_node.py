"""B-Tree node structure.

A B-Tree of order m keeps up to m - 1 sorted keys per node. An internal
node with N keys has N + 1 children and its keys act as separators: every
key in children[i] is less than keys[i], and every key in children[i + 1]
is greater than keys[i]. Leaves have no children.

Unlike a B+Tree, keys live in internal nodes as well as leaves and leaves
are not chained.

References:
    - Bayer & McCreight, "Organization and Maintenance of Large Ordered
      Indexes" (1972)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from tree_engine.domain.entities.step_trace import NodeRef
from tree_engine.domain.value_objects import INVALID_NODE_ID, Key, NodeId, NodeState


@dataclass
class BTreeNode:
    """A node in a B-Tree.

    Attributes:
        node_id: Id of this node in its engine's store.
        keys: Sorted keys stored in this node.
        children: Child ids (len(keys) + 1 for internal nodes, empty for leaves).
        is_leaf: Whether this node is a leaf.
        parent: Id of the parent node (INVALID_NODE_ID for the root).
        x: Horizontal layout coordinate.
        y: Vertical layout coordinate.
        state: Display state from the engine's last call.
        found_key: The key marked by the last successful search, if any.
    """

    node_id: NodeId
    keys: list[Key] = field(default_factory=list)
    children: list[NodeId] = field(default_factory=list)
    is_leaf: bool = True
    parent: NodeId = INVALID_NODE_ID
    x: float = 0.0
    y: float = 0.0
    state: NodeState = NodeState.DEFAULT
    found_key: Key | None = None

    @classmethod
    def new(cls, node_id: NodeId, is_leaf: bool = True) -> BTreeNode:
        """Create a new empty node."""
        return cls(node_id=node_id, keys=[], children=[], is_leaf=is_leaf)

    @property
    def num_keys(self) -> int:
        """Return the number of keys in this node."""
        return len(self.keys)

    def index_of(self, key: Key) -> int:
        """Return the position of ``key`` in this node, or -1."""
        for i, k in enumerate(self.keys):
            if k == key:
                return i
            if k > key:
                break
        return -1

    def find_child_index(self, key: Key) -> int:
        """Return the index of the child whose range contains ``key``.

        Args:
            key: The key to route.

        Returns:
            Index into ``children`` (equals ``num_keys`` for the last child).
        """
        i = 0
        while i < len(self.keys) and key > self.keys[i]:
            i += 1
        return i

    def insert_key(self, key: Key) -> int:
        """Insert a key in sorted position.

        Args:
            key: The key to insert.

        Returns:
            The position the key was inserted at.
        """
        pos = self.find_child_index(key)
        self.keys.insert(pos, key)
        return pos

    def child_position(self, child_id: NodeId) -> int:
        """Return the index of ``child_id`` in ``children``.

        Raises:
            ValueError: If the id is not a child of this node.
        """
        return self.children.index(child_id)

    def child_slots(self) -> list[NodeId | None]:
        return list(self.children)

    def ref(self) -> NodeRef:
        return NodeRef(node_id=self.node_id, keys=tuple(self.keys))

    def copy(self) -> BTreeNode:
        return BTreeNode(
            node_id=self.node_id,
            keys=list(self.keys),
            children=list(self.children),
            is_leaf=self.is_leaf,
            parent=self.parent,
            x=self.x,
            y=self.y,
            state=self.state,
            found_key=self.found_key,
        )
