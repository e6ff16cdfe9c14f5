from __future__ import annotations

"""Node and operation definitions for workflow graphs."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Union

if TYPE_CHECKING:
    from flowdag.dag import Workflow

Hook = Callable[..., Any]
Forwarder = Callable[[Any], Any]

DYNAMIC_FORWARD_KEY = "dynamic"
"""Forwarding-table key for data handed to dynamically spawned branches."""


def passthrough(data: Any) -> Any:
    """Default forwarder and placeholder hook: hand the data on unchanged."""

    return data


@dataclass(slots=True)
class Operation:
    """One step executed inside a node."""

    mod: Optional[Hook] = None
    function: str = ""
    callback_url: str = ""
    on_response: Optional[Hook] = None
    on_failure: Optional[Hook] = None

    @classmethod
    def modifier(cls, func: Hook) -> "Operation":
        return cls(mod=func)

    @classmethod
    def call(cls, function: str) -> "Operation":
        return cls(function=function)

    @classmethod
    def callback(cls, url: str) -> "Operation":
        return cls(callback_url=url)

    def with_response_handler(self, handler: Hook) -> "Operation":
        self.on_response = handler
        return self

    def with_failure_handler(self, handler: Hook) -> "Operation":
        self.on_failure = handler
        return self


@dataclass(frozen=True, slots=True)
class NoNested:
    """Marker for a node without any nested workflow."""


@dataclass(frozen=True, slots=True)
class ConditionalBranch:
    """Branch construct mapping condition labels to nested workflows."""

    workflows: Dict[str, "Workflow"]
    condition: Optional[Hook] = None


@dataclass(frozen=True, slots=True)
class ForeachLoop:
    """Loop construct wrapping exactly one nested workflow as its body."""

    body: "Workflow"
    foreach: Optional[Hook] = None


@dataclass(frozen=True, slots=True)
class SubWorkflow:
    """Plain nested workflow executed in place of the node."""

    workflow: "Workflow"


NestedConstruct = Union[NoNested, ConditionalBranch, ForeachLoop, SubWorkflow]


@dataclass(eq=False)
class Node:
    """A vertex of a workflow graph.

    ``forwarding`` is keyed by child id (or ``"dynamic"`` for branch and loop
    fan-out); an edge with no entry forwards no data and only orders execution.
    """

    id: str
    index: int = 0
    unique_id: str = ""
    dynamic: bool = False
    nested: NestedConstruct = field(default_factory=NoNested, repr=False)
    aggregator: Optional[Hook] = None
    sub_aggregator: Optional[Hook] = None
    operations: list[Operation] = field(default_factory=list)
    children: list["Node"] = field(default_factory=list, repr=False)
    in_degree: int = 0
    out_degree: int = 0
    forwarding: Dict[str, Optional[Forwarder]] = field(default_factory=dict, repr=False)

    def get_condition(self) -> ConditionalBranch | None:
        return self.nested if isinstance(self.nested, ConditionalBranch) else None

    def get_foreach(self) -> ForeachLoop | None:
        return self.nested if isinstance(self.nested, ForeachLoop) else None

    @property
    def sub_workflow(self) -> "Workflow | None":
        if isinstance(self.nested, SubWorkflow):
            return self.nested.workflow
        return None

    def is_execution_only(self, key: str) -> bool:
        """Return True when the edge identified by ``key`` forwards no data."""

        return self.forwarding.get(key) is None

    def nested_workflows(self) -> list[tuple[str, "Workflow"]]:
        """Return ``(label, workflow)`` pairs for every nested workflow."""

        nested = self.nested
        if isinstance(nested, ConditionalBranch):
            return list(nested.workflows.items())
        if isinstance(nested, ForeachLoop):
            return [("foreach", nested.body)]
        if isinstance(nested, SubWorkflow):
            return [("sub", nested.workflow)]
        return []


def build_node(
    node_id: str,
    *,
    index: int = 0,
    unique_id: Optional[str] = None,
    dynamic: bool = False,
    aggregator: Optional[Hook] = None,
    sub_aggregator: Optional[Hook] = None,
) -> Node:
    """Factory helper to construct a Node."""

    return Node(
        id=node_id,
        index=index,
        unique_id=unique_id or node_id,
        dynamic=dynamic,
        aggregator=aggregator,
        sub_aggregator=sub_aggregator,
    )


__all__ = [
    "ConditionalBranch",
    "DYNAMIC_FORWARD_KEY",
    "ForeachLoop",
    "Forwarder",
    "Hook",
    "NestedConstruct",
    "NoNested",
    "Node",
    "Operation",
    "SubWorkflow",
    "build_node",
    "passthrough",
]
