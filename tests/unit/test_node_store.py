"""Unit tests for the node arena."""

from __future__ import annotations

import pytest

from tree_engine.domain.entities import BSTNode
from tree_engine.domain.services import NodeStore
from tree_engine.domain.value_objects import NodeId


@pytest.mark.unit
class TestNodeStore:
    """Tests for NodeStore."""

    @pytest.fixture
    def store(self) -> NodeStore[BSTNode]:
        return NodeStore()

    def test_create_allocates_increasing_ids(self, store: NodeStore[BSTNode]) -> None:
        """Each created node gets the next id."""
        a = store.create(lambda node_id: BSTNode(node_id=node_id, key=1))
        b = store.create(lambda node_id: BSTNode(node_id=node_id, key=2))

        assert (a.node_id, b.node_id) == (NodeId(0), NodeId(1))
        assert len(store) == 2
        assert store.get(b.node_id) is b

    def test_ids_not_reused_after_free(self, store: NodeStore[BSTNode]) -> None:
        """Freed ids are never handed out again."""
        a = store.create(lambda node_id: BSTNode(node_id=node_id, key=1))
        store.free(a.node_id)
        b = store.create(lambda node_id: BSTNode(node_id=node_id, key=2))

        assert a.node_id not in store
        assert b.node_id == NodeId(1)

    def test_unknown_id_raises(self, store: NodeStore[BSTNode]) -> None:
        """Looking up an unknown id raises KeyError."""
        with pytest.raises(KeyError):
            store.get(NodeId(42))

    def test_copy_is_deep(self, store: NodeStore[BSTNode]) -> None:
        """Copies hold distinct node objects under the same ids."""
        node = store.create(lambda node_id: BSTNode(node_id=node_id, key=1))
        other = store.copy()
        other.get(node.node_id).key = 100

        assert store.get(node.node_id).key == 1
        assert other.get(node.node_id) is not node

    def test_copy_keeps_id_counter(self, store: NodeStore[BSTNode]) -> None:
        """A copy continues allocating after the original's last id."""
        store.create(lambda node_id: BSTNode(node_id=node_id, key=1))
        other = store.copy()
        created = other.create(lambda node_id: BSTNode(node_id=node_id, key=2))

        assert created.node_id == NodeId(1)

    def test_clear(self, store: NodeStore[BSTNode]) -> None:
        """clear drops every node."""
        store.create(lambda node_id: BSTNode(node_id=node_id, key=1))
        store.clear()

        assert len(store) == 0
        assert list(store.values()) == []
