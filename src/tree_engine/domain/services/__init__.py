"""Domain services for the tree engines.

Each engine is an independent implementation of the ``SearchTree``
protocol. They share the node arena, the layout pass and the step trace by
composition; there is no common engine base class.
"""

from tree_engine.domain.services.avl_tree import AVLTree
from tree_engine.domain.services.bst import BinarySearchTree
from tree_engine.domain.services.btree import BTree, InvalidOrderError
from tree_engine.domain.services.layout import layout
from tree_engine.domain.services.node_store import NodeStore
from tree_engine.domain.services.red_black_tree import RedBlackTree

__all__ = [
    "AVLTree",
    "BTree",
    "BinarySearchTree",
    "InvalidOrderError",
    "NodeStore",
    "RedBlackTree",
    "layout",
]
