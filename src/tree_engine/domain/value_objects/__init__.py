"""Value objects for the tree engine domain.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Identifiers:
        - NodeId: Type-safe arena node identifier
        - INVALID_NODE_ID: Sentinel for an empty slot or missing parent
        - Key: Totally-ordered scalar key type

    Tree Types:
        - TreeKind: BST, AVL, RED_BLACK, B_TREE
        - Operation: Engine calls that return a trace
        - Color: Red-Black node colors
        - NodeState: Display state tags
        - StepKind: Trace step kinds

    Layout:
        - LayoutSpacing: Snapshot layout distances
        - DEFAULT_SPACING: Default spacing instance
"""

from tree_engine.domain.value_objects.identifiers import INVALID_NODE_ID, Key, NodeId
from tree_engine.domain.value_objects.layout_spacing import DEFAULT_SPACING, LayoutSpacing
from tree_engine.domain.value_objects.tree_types import (
    Color,
    NodeState,
    Operation,
    StepKind,
    TreeKind,
)

__all__ = [
    # Identifiers
    "NodeId",
    "INVALID_NODE_ID",
    "Key",
    # Tree types
    "TreeKind",
    "Operation",
    "Color",
    "NodeState",
    "StepKind",
    # Layout
    "LayoutSpacing",
    "DEFAULT_SPACING",
]
