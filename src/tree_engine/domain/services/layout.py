"""Deterministic coordinate assignment for tree snapshots.

The layout is a tidy-tree variant computed in four iterative passes so a
degenerate binary tree of any height can be laid out without recursion:

1. Pre-order walk recording each node's depth.
2. Post-order widths: a node is as wide as the larger of its own width and
   the sum of its child slot widths. An empty binary slot is a phantom of
   half a node slot, so a lone child sits visibly to one side.
3. Pre-order region assignment: child slots are laid left to right inside
   the parent's region, centered within it.
4. Post-order x: a node sits midway between its first and last child slot
   (a childless node at the center of its region).

``y`` is ``depth * level_spacing`` and the root region is centered on x = 0.
"""

from __future__ import annotations

from typing import Callable, Iterable, Protocol, Sequence

from tree_engine.domain.value_objects import INVALID_NODE_ID, Key, LayoutSpacing, NodeId


class LayoutNode(Protocol):
    node_id: NodeId
    x: float
    y: float

    @property
    def keys(self) -> Sequence[Key]:
        ...

    def child_slots(self) -> list[NodeId | None]:
        ...


WidthFn = Callable[[LayoutNode, LayoutSpacing], float]


def binary_width(node: LayoutNode, spacing: LayoutSpacing) -> float:
    return spacing.node_spacing


def multiway_width(node: LayoutNode, spacing: LayoutSpacing) -> float:
    return len(node.keys) * spacing.key_width + spacing.node_spacing


def preorder(get: Callable[[NodeId], LayoutNode], root_id: NodeId) -> list[LayoutNode]:
    """Return the nodes reachable from ``root_id``, parents before children.

    Children are visited left to right.
    """
    if root_id == INVALID_NODE_ID:
        return []
    order: list[LayoutNode] = []
    stack = [root_id]
    while stack:
        node = get(stack.pop())
        order.append(node)
        for child_id in reversed(node.child_slots()):
            if child_id is not None:
                stack.append(child_id)
    return order


def edges_of(order: Iterable[LayoutNode]) -> tuple[tuple[NodeId, NodeId], ...]:
    """Return (parent, child) pairs in pre-order."""
    return tuple(
        (node.node_id, child_id)
        for node in order
        for child_id in node.child_slots()
        if child_id is not None
    )


def layout(
    get: Callable[[NodeId], LayoutNode],
    root_id: NodeId,
    spacing: LayoutSpacing,
    width_of: WidthFn = binary_width,
) -> list[LayoutNode]:
    """Assign ``x``/``y`` to every node reachable from ``root_id``.

    Args:
        get: Resolves a node id (the engine's store lookup).
        root_id: Root of the tree, INVALID_NODE_ID for an empty tree.
        spacing: Layout distances.
        width_of: A node's own width before its children are considered.

    Returns:
        The laid-out nodes in pre-order.
    """
    order = preorder(get, root_id)
    if not order:
        return order

    phantom = spacing.node_spacing / 2

    depth: dict[NodeId, int] = {root_id: 0}
    for node in order:
        for child_id in node.child_slots():
            if child_id is not None:
                depth[child_id] = depth[node.node_id] + 1

    width: dict[NodeId, float] = {}
    for node in reversed(order):
        slots_total = sum(
            width[child_id] if child_id is not None else phantom
            for child_id in node.child_slots()
        )
        width[node.node_id] = max(width_of(node, spacing), slots_total)

    left: dict[NodeId, float] = {root_id: -width[root_id] / 2}
    slot_centers: dict[NodeId, list[float]] = {}
    for node in order:
        slots = node.child_slots()
        slot_widths = [width[c] if c is not None else phantom for c in slots]
        offset = left[node.node_id] + (width[node.node_id] - sum(slot_widths)) / 2
        centers = []
        for child_id, slot_width in zip(slots, slot_widths):
            if child_id is not None:
                left[child_id] = offset
            centers.append(offset + slot_width / 2)
            offset += slot_width
        slot_centers[node.node_id] = centers

    x: dict[NodeId, float] = {}
    for node in reversed(order):
        slots = node.child_slots()
        if not slots:
            x[node.node_id] = left[node.node_id] + width[node.node_id] / 2
            continue
        centers = slot_centers[node.node_id]
        first = x[slots[0]] if slots[0] is not None else centers[0]
        last = x[slots[-1]] if slots[-1] is not None else centers[-1]
        x[node.node_id] = (first + last) / 2

    for node in order:
        node.x = x[node.node_id]
        node.y = depth[node.node_id] * spacing.level_spacing
    return order
