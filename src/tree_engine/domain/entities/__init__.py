"""Domain entities for the tree engines.

Exports:
    Step Trace:
        - NodeRef: Value copy of a node inside a step
        - TraceStep: One recorded micro-step
        - StepTrace: Append-only ordered log for one engine call

    Nodes:
        - BSTNode: Binary search tree node
        - AVLNode: BST node with height and balance factor
        - RBNode: BST node with color and parent id
        - BTreeNode: Multiway node with sorted keys and child ids

    Snapshot:
        - SnapshotNode: Laid-out node view
        - TreeSnapshot: Nodes and edges for a renderer
"""

from tree_engine.domain.entities.binary_node import AVLNode, BSTNode, RBNode
from tree_engine.domain.entities.btree_node import BTreeNode
from tree_engine.domain.entities.snapshot import SnapshotNode, TreeSnapshot
from tree_engine.domain.entities.step_trace import NodeRef, StepTrace, TraceStep

__all__ = [
    # Step trace
    "NodeRef",
    "TraceStep",
    "StepTrace",
    # Nodes
    "BSTNode",
    "AVLNode",
    "RBNode",
    "BTreeNode",
    # Snapshot
    "SnapshotNode",
    "TreeSnapshot",
]
