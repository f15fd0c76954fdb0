"""Core identifiers and key types for the tree engines.

Nodes live in a per-engine arena and refer to each other by id, never by
object reference. That keeps parent back-references non-owning and makes
cloning a bulk copy of the arena.
"""

from __future__ import annotations

from typing import NewType, TypeAlias


NodeId = NewType("NodeId", int)
"""Identifier of a node inside one engine's node store. Monotonically increasing."""

# Sentinel for an empty child slot, a missing parent or an empty tree
INVALID_NODE_ID = NodeId(-1)

Key: TypeAlias = int | float | str
"""A totally-ordered scalar key. Keys within one tree must be mutually comparable."""
