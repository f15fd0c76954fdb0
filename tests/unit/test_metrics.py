"""Unit tests for metrics, tracing helpers and the DI container."""

from __future__ import annotations

import pytest
from opentelemetry import trace
from prometheus_client import CollectorRegistry

from tree_engine import __version__
from tree_engine.domain.services import AVLTree, BTree
from tree_engine.domain.value_objects import TreeKind
from tree_engine.infrastructure.container import Container
from tree_engine.infrastructure.metrics import MetricsRegistry, setup_metrics
from tree_engine.infrastructure.tracing import trace_span


@pytest.mark.unit
class TestMetricsRegistry:
    """Tests for MetricsRegistry."""

    def test_metrics_register_on_given_registry(
        self, metrics_registry: MetricsRegistry, registry: CollectorRegistry
    ) -> None:
        """Metrics land on the registry passed in."""
        metrics_registry.operations_total.labels(tree_kind="bst", operation="insert").inc()
        metrics_registry.history_moves_total.labels(direction="undo").inc(2)
        metrics_registry.history_entries.set(4)

        assert (
            registry.get_sample_value(
                "tree_operations_total", {"tree_kind": "bst", "operation": "insert"}
            )
            == 1.0
        )
        assert registry.get_sample_value("tree_history_moves_total", {"direction": "undo"}) == 2.0
        assert registry.get_sample_value("tree_history_entries") == 4.0

    def test_setup_metrics_sets_info(self, registry: CollectorRegistry) -> None:
        """setup_metrics publishes the package version without a server."""
        setup_metrics(port=None, registry=registry)

        assert registry.get_sample_value("tree_engine_info", {"version": __version__}) == 1.0


@pytest.mark.unit
class TestTraceSpan:
    """Tests for the trace_span helper."""

    def test_span_receives_attributes(self) -> None:
        """Attributes are set on the yielded span."""
        tracer = trace.NoOpTracer()

        with trace_span("tree.insert", {"tree.kind": "avl"}, tracer=tracer) as span:
            assert span is not None


@pytest.mark.unit
class TestContainer:
    """Tests for the dependency injection container."""

    def test_create_is_singleton(self, container: Container) -> None:
        assert Container.get() is container
        assert Container.create() is container

    def test_reset(self, container: Container) -> None:
        Container.reset()

        assert Container._instance is None

    def test_new_session_uses_config(self, container: Container) -> None:
        """Sessions start with the configured kind, order and history size."""
        session = container.new_session()

        assert session.kind is TreeKind.AVL
        assert isinstance(session.tree, AVLTree)

        for key in range(20):
            session.insert(key)
        assert len(session.history) == 10

    def test_new_session_kind_override(self, container: Container) -> None:
        session = container.new_session("b_tree")

        assert isinstance(session.tree, BTree)
        assert session.tree.order == 4

    def test_session_reports_to_container_metrics(
        self, container: Container, registry: CollectorRegistry
    ) -> None:
        session = container.new_session()
        session.insert(1)

        assert (
            registry.get_sample_value(
                "tree_operations_total", {"tree_kind": "avl", "operation": "insert"}
            )
            == 1.0
        )
