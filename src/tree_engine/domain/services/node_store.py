"""Arena of tree nodes keyed by NodeId.

Every engine owns one store. Nodes refer to each other only through ids,
so parent back-references never own anything and cloning a tree is a bulk
copy of the store.
"""

from __future__ import annotations

from typing import Callable, Generic, Iterator, Protocol, TypeVar

from tree_engine.domain.value_objects import NodeId


class CopyableNode(Protocol):
    node_id: NodeId

    def copy(self) -> CopyableNode:
        ...


N = TypeVar("N", bound=CopyableNode)


class NodeStore(Generic[N]):
    """Id-to-node mapping with monotonically allocated ids.

    Ids are never reused within one store, so a trace that names a freed
    node can never be confused with a later node.
    """

    def __init__(self) -> None:
        self._nodes: dict[NodeId, N] = {}
        self._next_id = 0

    def _allocate_id(self) -> NodeId:
        node_id = NodeId(self._next_id)
        self._next_id += 1
        return node_id

    def create(self, factory: Callable[[NodeId], N]) -> N:
        """Allocate an id and store the node built for it.

        Args:
            factory: Builds the node from its new id.

        Returns:
            The stored node.
        """
        node = factory(self._allocate_id())
        self._nodes[node.node_id] = node
        return node

    def get(self, node_id: NodeId) -> N:
        """Return the node with the given id.

        Raises:
            KeyError: If the id is not in this store.
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown node id {node_id}") from None

    def free(self, node_id: NodeId) -> None:
        """Remove a node that is no longer reachable."""
        del self._nodes[node_id]

    def values(self) -> Iterator[N]:
        return iter(list(self._nodes.values()))

    def clear(self) -> None:
        """Drop every node. Id allocation keeps counting."""
        self._nodes.clear()

    def copy(self) -> NodeStore[N]:
        """Return a store holding copies of every node under the same ids."""
        other: NodeStore[N] = NodeStore()
        other._nodes = {node_id: node.copy() for node_id, node in self._nodes.items()}  # type: ignore[misc]
        other._next_id = self._next_id
        return other

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)
