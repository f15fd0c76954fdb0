"""Infrastructure layer - cross-cutting concerns."""

from tree_engine.infrastructure.config import Config, get_config
from tree_engine.infrastructure.logging import setup_logging, get_logger
from tree_engine.infrastructure.metrics import setup_metrics, get_metrics, MetricsRegistry
from tree_engine.infrastructure.tracing import setup_tracing, get_tracer, trace_span

__all__ = [
    "Config",
    "get_config",
    "setup_logging",
    "get_logger",
    "setup_metrics",
    "get_metrics",
    "MetricsRegistry",
    "setup_tracing",
    "get_tracer",
    "trace_span",
]
