"""Prometheus metrics for the tree engines."""

from __future__ import annotations

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    start_http_server,
)


class MetricsRegistry:
    """Registry of all tree engine metrics."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        """Initialize metrics registry."""
        self._registry = registry or REGISTRY

        # Operation metrics
        self.operations_total = Counter(
            "tree_operations_total",
            "Total number of tree operations",
            ["tree_kind", "operation"],  # operation: insert, delete, search, clear
            registry=self._registry,
        )

        self.operation_latency_seconds = Histogram(
            "tree_operation_latency_seconds",
            "Operation latency in seconds, including the clone",
            ["tree_kind", "operation"],
            buckets=(0.00001, 0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
            registry=self._registry,
        )

        # Trace metrics
        self.trace_steps_total = Counter(
            "tree_trace_steps_total",
            "Total trace steps recorded",
            ["tree_kind", "step_kind"],
            registry=self._registry,
        )

        # Size metrics
        self.tree_size_keys = Gauge(
            "tree_size_keys",
            "Number of keys in the current tree",
            ["tree_kind"],
            registry=self._registry,
        )

        # History metrics
        self.history_entries = Gauge(
            "tree_history_entries",
            "Number of entries in the session history",
            registry=self._registry,
        )

        self.history_moves_total = Counter(
            "tree_history_moves_total",
            "Total undo and redo moves",
            ["direction"],  # undo, redo
            registry=self._registry,
        )

        # Package info
        self.info = Info(
            "tree_engine",
            "Tree engine information",
            registry=self._registry,
        )


# Global metrics registry
_metrics: MetricsRegistry | None = None


def setup_metrics(
    port: int | None = 8001, registry: CollectorRegistry | None = None
) -> MetricsRegistry:
    """
    Set up Prometheus metrics.

    Args:
        port: Port for the metrics HTTP server, None to skip the server
        registry: Optional custom registry

    Returns:
        The metrics registry
    """
    global _metrics
    if _metrics is None or registry is not None:
        _metrics = MetricsRegistry(registry)

    from tree_engine import __version__

    _metrics.info.info({"version": __version__})

    if port is not None:
        start_http_server(port, registry=registry or REGISTRY)

    return _metrics


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsRegistry()
    return _metrics


def reset_metrics() -> None:
    """Forget the global registry (useful for testing)."""
    global _metrics
    _metrics = None
