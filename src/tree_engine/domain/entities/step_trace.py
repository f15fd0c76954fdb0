"""Step trace recorded by every engine call.

A trace is the ordered explanation of how one insert, delete, search or
clear reached its final state. The tree structure is authoritative; the
trace only mirrors the comparisons and structural events that happened, in
the order they happened, so a renderer can replay them.

Steps hold value copies of the nodes they mention (``NodeRef``), taken at
the moment the step is recorded. Later mutations of the tree never change a
recorded step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Protocol

from tree_engine.domain.value_objects import Color, Key, NodeId, Operation, StepKind


@dataclass(frozen=True, slots=True)
class NodeRef:
    """Value copy of a node as it was when a step was recorded.

    Attributes:
        node_id: Arena id of the node (stable for the node's lifetime).
        keys: The node's keys; a single key for binary nodes.
        color: Node color for Red-Black nodes, None otherwise.
    """

    node_id: NodeId
    keys: tuple[Key, ...]
    color: Color | None = None

    @property
    def key(self) -> Key:
        """Return the first key (the only key of a binary node)."""
        return self.keys[0]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": int(self.node_id), "keys": list(self.keys)}
        if self.color is not None:
            data["color"] = self.color.value
        return data


class TraceableNode(Protocol):
    """Anything that can produce a ``NodeRef`` of itself."""

    def ref(self) -> NodeRef:
        ...


@dataclass(frozen=True, slots=True)
class TraceStep:
    """One micro-step of an engine call."""

    kind: StepKind
    nodes: tuple[NodeRef, ...]
    message: str

    @property
    def keys(self) -> list[Key]:
        """Return the first key of every node in the step, in order."""
        return [ref.key for ref in self.nodes if ref.keys]

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "nodes": [ref.to_dict() for ref in self.nodes],
            "message": self.message,
        }


@dataclass
class StepTrace:
    """Append-only ordered log of steps produced by one engine call.

    Attributes:
        operation: The call that produced this trace.
        key: The key argument of the call (None for clear).
    """

    operation: Operation
    key: Key | None = None
    _steps: list[TraceStep] = field(default_factory=list, repr=False)

    def record(
        self,
        kind: StepKind,
        nodes: Iterable[TraceableNode],
        message: str,
    ) -> TraceStep:
        """Append a step naming the given nodes.

        Args:
            kind: Step kind.
            nodes: Nodes affected by the step, in order.
            message: Human-readable explanation.

        Returns:
            The recorded step.
        """
        step = TraceStep(kind=kind, nodes=tuple(node.ref() for node in nodes), message=message)
        self._steps.append(step)
        return step

    @property
    def steps(self) -> tuple[TraceStep, ...]:
        return tuple(self._steps)

    def kinds(self) -> list[StepKind]:
        """Return the kind of every step, in order."""
        return [step.kind for step in self._steps]

    def of_kind(self, kind: StepKind) -> list[TraceStep]:
        """Return the steps of one kind, in order."""
        return [step for step in self._steps if step.kind == kind]

    def __iter__(self) -> Iterator[TraceStep]:
        return iter(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def __getitem__(self, index: int) -> TraceStep:
        return self._steps[index]

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "key": self.key,
            "steps": [step.to_dict() for step in self._steps],
        }
