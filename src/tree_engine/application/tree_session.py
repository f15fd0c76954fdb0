"""Tree session - undo/redo history over engine clones.

Every insert, delete and search runs on a clone of the current tree and
the clone is appended to the history together with the trace it produced,
so each history entry is an immutable picture of the tree after one call.

Usage:
    from tree_engine.application import TreeSession

    session = TreeSession("avl")
    session.insert(10)
    session.insert(20)
    session.insert(30)
    session.undo()             # back to [10, 20]
    session.tree.snapshot()    # laid-out nodes and edges for rendering
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import structlog
from opentelemetry import trace

from tree_engine.application.tree_factory import create_tree, parse_kind
from tree_engine.domain.entities.snapshot import TreeSnapshot
from tree_engine.domain.entities.step_trace import StepTrace
from tree_engine.domain.services.btree import DEFAULT_ORDER
from tree_engine.domain.value_objects import DEFAULT_SPACING, Key, LayoutSpacing, Operation, TreeKind
from tree_engine.infrastructure.metrics import MetricsRegistry, get_metrics
from tree_engine.infrastructure.tracing import get_tracer, trace_span
from tree_engine.ports.inbound.search_tree import SearchTree

logger = structlog.get_logger(__name__)

DEFAULT_MAX_HISTORY = 100


@dataclass(frozen=True)
class HistoryEntry:
    """One point in a session's history.

    Attributes:
        tree: The tree as it was after the call. Never mutated again.
        trace: The trace of the call, None for the initial empty tree.
        operation: The call that produced this entry.
        key: The key argument of the call.
    """

    tree: SearchTree
    trace: StepTrace | None = None
    operation: Operation | None = None
    key: Key | None = None


class TreeSession:
    """Operation history for one tree with undo and redo.

    Appending after an undo discards the redo tail. History holds at most
    ``max_history`` entries; the oldest are dropped first.

    Thread Safety:
        None. One session per caller.
    """

    def __init__(
        self,
        kind: TreeKind | str = TreeKind.BST,
        order: int = DEFAULT_ORDER,
        spacing: LayoutSpacing = DEFAULT_SPACING,
        max_history: int = DEFAULT_MAX_HISTORY,
        metrics: MetricsRegistry | None = None,
        tracer: trace.Tracer | None = None,
    ) -> None:
        """Initialize the session with an empty tree.

        Args:
            kind: Tree kind to start with.
            order: B-Tree order.
            spacing: Layout distances for snapshots.
            max_history: Maximum number of history entries kept.
            metrics: Metrics registry (process-wide one if None).
            tracer: Tracer for operation spans (global one if None).

        Raises:
            ValueError: If ``kind`` is unknown or ``max_history`` < 1.
        """
        if max_history < 1:
            raise ValueError(f"max_history must be at least 1, got {max_history}")
        self._kind = parse_kind(kind)
        self._order = order
        self._spacing = spacing
        self._max_history = max_history
        self._metrics = metrics or get_metrics()
        self._tracer = tracer or get_tracer()
        self._history: list[HistoryEntry] = []
        self._cursor = -1
        self._reset_history()

    # =========================================================================
    # State
    # =========================================================================

    @property
    def kind(self) -> TreeKind:
        return self._kind

    @property
    def current(self) -> HistoryEntry:
        return self._history[self._cursor]

    @property
    def tree(self) -> SearchTree:
        """Return the tree at the cursor."""
        return self.current.tree

    @property
    def last_trace(self) -> StepTrace | None:
        return self.current.trace

    @property
    def history(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._history)

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def can_undo(self) -> bool:
        return self._cursor > 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._history) - 1

    def snapshot(self) -> TreeSnapshot:
        return self.tree.snapshot()

    # =========================================================================
    # Operations
    # =========================================================================

    def insert(self, key: Key) -> StepTrace:
        """Insert a key into a clone of the current tree and record it."""
        return self._apply(Operation.INSERT, key, lambda tree: tree.insert(key))

    def delete(self, key: Key) -> StepTrace:
        """Delete a key from a clone of the current tree and record it."""
        return self._apply(Operation.DELETE, key, lambda tree: tree.delete(key))

    def search(self, key: Key) -> StepTrace:
        """Search a clone of the current tree and record it.

        The clone carries the search's display states, so the new entry's
        snapshot shows the path taken.
        """
        return self._apply(Operation.SEARCH, key, lambda tree: tree.search(key))

    def clear(self) -> StepTrace:
        """Record the clearing of the current tree, then a fresh empty tree."""
        return self._apply(Operation.CLEAR, None, lambda tree: tree.clear())

    def undo(self) -> bool:
        """Move the cursor one entry back.

        Returns:
            False if already at the oldest entry.
        """
        if not self.can_undo:
            return False
        self._cursor -= 1
        self._metrics.history_moves_total.labels(direction="undo").inc()
        logger.info("history_undo", tree_kind=self._kind.value, cursor=self._cursor)
        return True

    def redo(self) -> bool:
        """Move the cursor one entry forward.

        Returns:
            False if already at the newest entry.
        """
        if not self.can_redo:
            return False
        self._cursor += 1
        self._metrics.history_moves_total.labels(direction="redo").inc()
        logger.info("history_redo", tree_kind=self._kind.value, cursor=self._cursor)
        return True

    def switch_kind(self, kind: TreeKind | str, order: int | None = None) -> None:
        """Start a new history with an empty tree of another kind.

        Args:
            kind: The tree kind to switch to.
            order: New B-Tree order, or None to keep the current one.
        """
        self._kind = parse_kind(kind)
        if order is not None:
            self._order = order
        self._reset_history()
        logger.info("tree_kind_switched", tree_kind=self._kind.value)

    # =========================================================================
    # Internals
    # =========================================================================

    def _new_tree(self) -> SearchTree:
        return create_tree(self._kind, order=self._order, spacing=self._spacing)

    def _reset_history(self) -> None:
        self._history = [HistoryEntry(tree=self._new_tree())]
        self._cursor = 0
        self._metrics.history_entries.set(1)

    def _append(self, entry: HistoryEntry) -> None:
        del self._history[self._cursor + 1:]
        self._history.append(entry)
        overflow = len(self._history) - self._max_history
        if overflow > 0:
            del self._history[:overflow]
        self._cursor = len(self._history) - 1
        self._metrics.history_entries.set(len(self._history))

    def _apply(
        self,
        operation: Operation,
        key: Key | None,
        call: Callable[[SearchTree], StepTrace],
    ) -> StepTrace:
        kind = self._kind.value
        attributes = {"tree.kind": kind}
        if key is not None:
            attributes["tree.key"] = str(key)
        with trace_span(f"tree.{operation.value}", attributes, tracer=self._tracer) as span:
            start = time.perf_counter()
            tree = self.tree.clone()
            step_trace = call(tree)
            if operation is Operation.CLEAR:
                tree = self._new_tree()
            elapsed = time.perf_counter() - start

            self._append(HistoryEntry(tree=tree, trace=step_trace, operation=operation, key=key))
            span.set_attribute("tree.steps", len(step_trace))
            span.set_attribute("tree.size", len(tree))

        self._metrics.operations_total.labels(tree_kind=kind, operation=operation.value).inc()
        self._metrics.operation_latency_seconds.labels(
            tree_kind=kind, operation=operation.value
        ).observe(elapsed)
        for step in step_trace:
            self._metrics.trace_steps_total.labels(tree_kind=kind, step_kind=step.kind.value).inc()
        self._metrics.tree_size_keys.labels(tree_kind=kind).set(len(tree))

        logger.info(
            "tree_operation",
            tree_kind=kind,
            operation=operation.value,
            key=key,
            steps=len(step_trace),
            size=len(tree),
        )
        return step_trace
