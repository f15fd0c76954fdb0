"""Dependency injection container for the tree engines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import structlog
from opentelemetry import trace
from prometheus_client import CollectorRegistry

from tree_engine.application.tree_session import TreeSession
from tree_engine.domain.value_objects import TreeKind
from tree_engine.infrastructure.config import Config, get_config
from tree_engine.infrastructure.logging import get_logger, setup_logging
from tree_engine.infrastructure.metrics import MetricsRegistry, setup_metrics
from tree_engine.infrastructure.tracing import setup_tracing


@dataclass
class Container:
    """Dependency injection container for tree engine components."""

    config: Config
    logger: structlog.BoundLogger
    tracer: trace.Tracer
    metrics: MetricsRegistry

    _instance: ClassVar[Container | None] = None

    @classmethod
    def create(
        cls,
        config: Config | None = None,
        registry: CollectorRegistry | None = None,
    ) -> Container:
        """Create and initialize the container with all dependencies.

        Args:
            config: Configuration to use instead of the environment's.
            registry: Prometheus registry to use instead of the default.
        """
        if cls._instance is not None:
            return cls._instance

        config = config or get_config()
        observability = config.observability

        setup_logging(observability.log_level, observability.log_format)
        logger = get_logger("tree_engine", service=observability.otel_service_name)
        tracer = setup_tracing(observability.otel_service_name, observability.otel_endpoint)
        metrics = setup_metrics(port=None, registry=registry)

        cls._instance = cls(
            config=config,
            logger=logger,
            tracer=tracer,
            metrics=metrics,
        )

        logger.info(
            "tree_engine_container_initialized",
            default_kind=config.tree.default_kind,
            btree_order=config.tree.btree_order,
            max_history=config.history.max_entries,
        )

        return cls._instance

    @classmethod
    def get(cls) -> Container:
        """Get the singleton container instance."""
        if cls._instance is None:
            return cls.create()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset the container (useful for testing)."""
        cls._instance = None

    def new_session(self, kind: TreeKind | str | None = None) -> TreeSession:
        """Build a session configured from this container.

        Args:
            kind: Tree kind to start with, or None for the configured default.
        """
        return TreeSession(
            kind=kind or self.config.tree.default_kind,
            order=self.config.tree.btree_order,
            spacing=self.config.layout.to_spacing(),
            max_history=self.config.history.max_entries,
            metrics=self.metrics,
            tracer=self.tracer,
        )

    def serve_metrics(self) -> None:
        """Start the Prometheus HTTP exporter on the configured port."""
        setup_metrics(port=self.config.observability.metrics_port)
        self.logger.info("metrics_server_started", port=self.config.observability.metrics_port)


def get_container() -> Container:
    """Get the dependency injection container."""
    return Container.get()
