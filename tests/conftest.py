"""Pytest configuration and fixtures for tree_engine tests."""

from __future__ import annotations

import random
from typing import Generator

import pytest
from prometheus_client import CollectorRegistry

from tree_engine.application import create_tree
from tree_engine.domain.value_objects import TreeKind
from tree_engine.infrastructure.config import (
    Config,
    HistoryConfig,
    ObservabilityConfig,
    TreeConfig,
)
from tree_engine.infrastructure.container import Container
from tree_engine.infrastructure.metrics import MetricsRegistry
from tree_engine.ports.inbound import SearchTree


@pytest.fixture
def test_config() -> Config:
    """Provide a test configuration with a small history."""
    return Config(
        tree=TreeConfig(default_kind="avl", btree_order=4),
        history=HistoryConfig(max_entries=10),
        observability=ObservabilityConfig(log_level="WARNING", log_format="console"),
    )


@pytest.fixture
def registry() -> CollectorRegistry:
    """Provide an isolated Prometheus registry."""
    return CollectorRegistry(auto_describe=True)


@pytest.fixture
def metrics_registry(registry: CollectorRegistry) -> MetricsRegistry:
    """Provide a fresh metrics registry for each test."""
    # Use a separate registry to avoid conflicts between tests
    return MetricsRegistry(registry=registry)


@pytest.fixture
def container(
    test_config: Config, registry: CollectorRegistry
) -> Generator[Container, None, None]:
    """Provide a fresh DI container for each test."""
    Container.reset()
    c = Container.create(config=test_config, registry=registry)
    yield c
    Container.reset()


@pytest.fixture(params=list(TreeKind), ids=lambda kind: kind.value)
def any_tree(request: pytest.FixtureRequest) -> SearchTree:
    """Provide an empty engine of each kind in turn."""
    return create_tree(request.param)


@pytest.fixture
def rng() -> random.Random:
    """Provide a seeded random generator for reproducible key sequences."""
    return random.Random(20240917)


# Markers for test categories
def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "property: Property-based tests over seeded random sequences")
