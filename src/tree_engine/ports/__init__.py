"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts. The only
port here is inbound: the ``SearchTree`` capability every engine offers.
"""

from tree_engine.ports.inbound import InvariantViolationError, SearchTree

__all__ = [
    "InvariantViolationError",
    "SearchTree",
]
