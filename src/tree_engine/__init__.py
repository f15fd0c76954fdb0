"""
Tree Engine - Instrumented Ordered-Key Search Trees

Binary search, AVL, Red-Black and B-Tree engines that record a deterministic
step trace for every insert, delete, search and clear, with deep cloning and
renderer-ready snapshots for undo/redo history.
"""

__version__ = "0.1.0"
__author__ = "Systems Engineering Portfolio"
