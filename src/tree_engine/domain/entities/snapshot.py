"""Renderer-facing snapshot of a tree.

A snapshot is an immutable, serializable view of one engine's nodes and
parent/child edges with layout coordinates already assigned. It shares no
objects with the engine it was taken from.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tree_engine.domain.value_objects import Color, Key, NodeId, NodeState, TreeKind


@dataclass(frozen=True, slots=True)
class SnapshotNode:
    """One node of a snapshot.

    Attributes:
        node_id: Arena id of the node.
        keys: The node's keys (one for binary nodes, ordered list for B-Tree).
        x: Layout x coordinate.
        y: Layout y coordinate.
        state: Display state from the engine's last call.
        color: Red-Black color, None for other engines.
        height: AVL subtree height, None for other engines.
        balance_factor: AVL balance factor, None for other engines.
        found_key: B-Tree key marked by the last successful search.
    """

    node_id: NodeId
    keys: tuple[Key, ...]
    x: float
    y: float
    state: NodeState = NodeState.DEFAULT
    color: Color | None = None
    height: int | None = None
    balance_factor: int | None = None
    found_key: Key | None = None

    @property
    def key(self) -> Key:
        return self.keys[0]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": int(self.node_id),
            "keys": list(self.keys),
            "x": self.x,
            "y": self.y,
            "state": self.state.value,
        }
        if self.color is not None:
            data["color"] = self.color.value
        if self.height is not None:
            data["height"] = self.height
            data["balanceFactor"] = self.balance_factor
        if self.found_key is not None:
            data["foundKey"] = self.found_key
        return data


@dataclass(frozen=True, slots=True)
class TreeSnapshot:
    """Nodes (pre-order) and parent/child edges of a tree."""

    tree_kind: TreeKind
    nodes: tuple[SnapshotNode, ...] = field(default_factory=tuple)
    edges: tuple[tuple[NodeId, NodeId], ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    def node(self, node_id: NodeId) -> SnapshotNode:
        """Return the snapshot node with the given id.

        Raises:
            KeyError: If no node has that id.
        """
        for node in self.nodes:
            if node.node_id == node_id:
                return node
        raise KeyError(node_id)

    def key_lists(self) -> list[list[Key]]:
        """Return every node's keys in pre-order."""
        return [list(node.keys) for node in self.nodes]

    def to_dict(self) -> dict[str, Any]:
        return {
            "treeKind": self.tree_kind.value,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [[int(parent), int(child)] for parent, child in self.edges],
        }
