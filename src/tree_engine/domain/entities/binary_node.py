"""Node records for the binary search trees (BST, AVL, Red-Black).

Child and parent links are ``NodeId`` values resolved through the owning
engine's node store, with ``INVALID_NODE_ID`` marking an empty slot. A node
owns nothing: the store owns every node, and the left/right ids of a parent
are the only structural edges.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from tree_engine.domain.entities.step_trace import NodeRef
from tree_engine.domain.value_objects import INVALID_NODE_ID, Color, Key, NodeId, NodeState


@dataclass
class BSTNode:
    """A node in a plain binary search tree.

    Attributes:
        node_id: Id of this node in its engine's store.
        key: The ordered key.
        left: Id of the left child (INVALID_NODE_ID if none).
        right: Id of the right child (INVALID_NODE_ID if none).
        x: Horizontal layout coordinate (set by the snapshot layout pass).
        y: Vertical layout coordinate.
        state: Display state from the engine's last call.
    """

    node_id: NodeId
    key: Key
    left: NodeId = INVALID_NODE_ID
    right: NodeId = INVALID_NODE_ID
    x: float = 0.0
    y: float = 0.0
    state: NodeState = NodeState.DEFAULT

    @property
    def is_leaf(self) -> bool:
        return self.left == INVALID_NODE_ID and self.right == INVALID_NODE_ID

    @property
    def keys(self) -> tuple[Key, ...]:
        return (self.key,)

    def child_slots(self) -> list[NodeId | None]:
        """Return the left and right slots, None for an empty one."""
        return [
            self.left if self.left != INVALID_NODE_ID else None,
            self.right if self.right != INVALID_NODE_ID else None,
        ]

    def ref(self) -> NodeRef:
        return NodeRef(node_id=self.node_id, keys=(self.key,))

    def copy(self) -> BSTNode:
        return replace(self)


@dataclass
class AVLNode(BSTNode):
    """A node in an AVL tree.

    Attributes:
        height: Levels in the subtree rooted here (a leaf has height 1).
        balance_factor: height(left) - height(right).
    """

    height: int = 1
    balance_factor: int = 0

    def copy(self) -> AVLNode:
        return replace(self)


@dataclass
class RBNode(BSTNode):
    """A node in a Red-Black tree.

    Attributes:
        color: RED or BLACK. New nodes start RED.
        parent: Id of the parent (INVALID_NODE_ID for the root). Used only
            for upward navigation during fixups.
    """

    color: Color = Color.RED
    parent: NodeId = INVALID_NODE_ID

    @property
    def is_red(self) -> bool:
        return self.color == Color.RED

    def ref(self) -> NodeRef:
        return NodeRef(node_id=self.node_id, keys=(self.key,), color=self.color)

    def copy(self) -> RBNode:
        return replace(self)
