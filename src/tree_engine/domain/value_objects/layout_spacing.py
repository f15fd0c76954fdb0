"""Spacing parameters for the snapshot layout pass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LayoutSpacing:
    """Distances used when assigning snapshot coordinates.

    Attributes:
        level_spacing: Vertical distance between tree levels.
        node_spacing: Horizontal slot reserved for one binary node.
        key_width: Horizontal space per key in a B-Tree node.
    """

    level_spacing: float = 80.0
    node_spacing: float = 50.0
    key_width: float = 30.0

    def __post_init__(self) -> None:
        if self.level_spacing <= 0 or self.node_spacing <= 0 or self.key_width <= 0:
            raise ValueError("Layout spacing values must be positive")


DEFAULT_SPACING = LayoutSpacing()
