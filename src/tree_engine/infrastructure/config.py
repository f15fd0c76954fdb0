"""Configuration management for the tree engines."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from tree_engine.domain.value_objects import LayoutSpacing, TreeKind


class TreeConfig(BaseModel):
    """Engine selection configuration."""

    default_kind: Literal["bst", "avl", "red_black", "b_tree"] = Field(
        default="bst", description="Tree kind new sessions start with"
    )
    btree_order: int = Field(default=3, ge=3, le=64, description="B-Tree order (max children)")

    def kind(self) -> TreeKind:
        return TreeKind(self.default_kind)


class LayoutConfig(BaseModel):
    """Snapshot layout configuration."""

    level_spacing: float = Field(default=80.0, gt=0, description="Vertical distance between levels")
    node_spacing: float = Field(default=50.0, gt=0, description="Horizontal slot per binary node")
    key_width: float = Field(default=30.0, gt=0, description="Horizontal space per B-Tree key")

    def to_spacing(self) -> LayoutSpacing:
        """Return the domain spacing value for these settings."""
        return LayoutSpacing(
            level_spacing=self.level_spacing,
            node_spacing=self.node_spacing,
            key_width=self.key_width,
        )


class HistoryConfig(BaseModel):
    """Session history configuration."""

    max_entries: int = Field(default=100, ge=1, description="Maximum undo history entries")


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(default="json", description="Log format")
    otel_endpoint: str | None = Field(
        default=None, description="OpenTelemetry collector endpoint"
    )
    otel_service_name: str = Field(default="tree_engine", description="Service name for tracing")
    metrics_port: int = Field(default=8001, ge=1, le=65535, description="Prometheus metrics port")


class Config(BaseSettings):
    """Main configuration for the tree engines."""

    model_config = SettingsConfigDict(
        env_prefix="TREE_ENGINE_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    tree: TreeConfig = Field(default_factory=TreeConfig)
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)


@lru_cache
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
