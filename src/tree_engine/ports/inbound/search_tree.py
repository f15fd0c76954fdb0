"""Search tree port shared by the four engines.

This inbound port defines the capability contract every engine offers to
its callers: mutating and searching calls that return a step trace, a deep
clone for history keeping, and a laid-out snapshot for rendering.

The engines are independent implementations of this protocol; none of
them inherits from another.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Iterator, Protocol, TypeVar

from tree_engine.domain.entities.snapshot import TreeSnapshot
from tree_engine.domain.entities.step_trace import StepTrace
from tree_engine.domain.value_objects import Key, NodeId, TreeKind

T = TypeVar("T", bound="SearchTree")


class InvariantViolationError(Exception):
    """Raised by ``validate()`` when a structural invariant does not hold.

    An ordinary engine call never leaves a tree in this state; seeing this
    error means an engine bug or a node mutated from outside the engine.
    """

    def __init__(self, tree_kind: TreeKind, detail: str) -> None:
        self.tree_kind = tree_kind
        self.detail = detail
        super().__init__(f"{tree_kind.value} invariant violated: {detail}")


class SearchTree(Protocol):
    """Protocol for an instrumented ordered-key search tree.

    Thread Safety:
        None. Callers serialize access per instance; independent clones can
        be used from different threads.
    """

    @property
    @abstractmethod
    def kind(self) -> TreeKind:
        """Return which structure this engine implements."""
        ...

    @property
    @abstractmethod
    def root(self) -> Any:
        """Return the root node, or None for an empty tree."""
        ...

    @abstractmethod
    def get_node(self, node_id: NodeId) -> Any:
        """Return a node by id.

        Raises:
            KeyError: If the id is not in this tree.
        """
        ...

    @abstractmethod
    def insert(self, key: Key) -> StepTrace:
        """Insert a key.

        Duplicate keys are ignored; the trace shows the comparison that
        found the equal key.

        Args:
            key: The key to insert.

        Returns:
            The trace of this call.
        """
        ...

    @abstractmethod
    def delete(self, key: Key) -> StepTrace:
        """Delete a key.

        Deleting a missing key changes nothing and returns a trace ending
        in a ``notFound`` step.

        Args:
            key: The key to delete.

        Returns:
            The trace of this call.
        """
        ...

    @abstractmethod
    def search(self, key: Key) -> StepTrace:
        """Search for a key, marking the visited nodes' display state.

        Args:
            key: The key to look for.

        Returns:
            The trace of this call, ending in ``found`` or ``notFound``
            (``success-path``/``notFound`` for Red-Black trees).
        """
        ...

    @abstractmethod
    def clear(self) -> StepTrace:
        """Remove every node.

        Returns:
            A trace with one ``clear`` step naming every removed node.
        """
        ...

    @abstractmethod
    def clone(self: T) -> T:
        """Return an independent deep copy sharing no nodes with this tree."""
        ...

    @abstractmethod
    def snapshot(self) -> TreeSnapshot:
        """Lay the tree out and return its nodes and edges."""
        ...

    @abstractmethod
    def validate(self) -> None:
        """Check every structural invariant.

        Raises:
            InvariantViolationError: If an invariant does not hold.
        """
        ...

    @abstractmethod
    def keys(self) -> Iterator[Key]:
        """Yield every key in ascending order."""
        ...

    @property
    @abstractmethod
    def height(self) -> int:
        """Return the number of levels (0 for an empty tree)."""
        ...

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of keys stored."""
        ...

    @abstractmethod
    def __contains__(self, key: object) -> bool:
        """Look a key up without recording a trace or touching display state."""
        ...
