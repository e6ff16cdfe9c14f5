from __future__ import annotations

"""Workflow graph models, builder operations and declarative loaders."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from flowdag.errors import (
    CyclicWorkflowError,
    DuplicateEdgeError,
    DuplicateNodeError,
    UnknownNodeError,
    WorkflowAlreadyNestedError,
)
from flowdag.node import (
    DYNAMIC_FORWARD_KEY,
    ConditionalBranch,
    ForeachLoop,
    Forwarder,
    Hook,
    Node,
    Operation,
    SubWorkflow,
    build_node,
    passthrough,
)

logger = logging.getLogger("flowdag.dag")


class OperationConfig(BaseModel):
    """Declarative operation definition.

    Hooks cannot travel in a JSON payload, so modifiers and handlers are
    declared as flags and bound to a pass-through placeholder.
    """

    model_config = ConfigDict(populate_by_name=True)

    function: str = ""
    callback_url: str = Field(default="", alias="callback-url")
    modifier: bool = False
    response_handler: bool = Field(default=False, alias="response-handler")
    failure_handler: bool = Field(default=False, alias="failure-handler")


class EdgeConfig(BaseModel):
    """Declarative edge definition."""

    model_config = ConfigDict(populate_by_name=True)

    from_node: str = Field(alias="from")
    to_node: str = Field(alias="to")
    execution_only: bool = Field(default=False, alias="execution-only")


class NodeConfig(BaseModel):
    """Declarative node definition, optionally carrying one nested workflow."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    dynamic: bool = False
    aggregator: bool = False
    sub_aggregator: bool = Field(default=False, alias="sub-aggregator")
    operations: list[OperationConfig] = Field(default_factory=list)
    conditions: Optional[Dict[str, "WorkflowConfig"]] = None
    foreach: Optional["WorkflowConfig"] = None
    sub_workflow: Optional["WorkflowConfig"] = Field(default=None, alias="sub-workflow")
    execution_only: bool = Field(default=False, alias="execution-only")

    @model_validator(mode="after")
    def check_single_nested(self) -> "NodeConfig":
        declared = [
            name
            for name, value in (
                ("conditions", self.conditions),
                ("foreach", self.foreach),
                ("sub-workflow", self.sub_workflow),
            )
            if value is not None
        ]
        if len(declared) > 1:
            raise ValueError(
                f"Node '{self.id}' declares more than one nested workflow: {', '.join(declared)}"
            )
        return self


class WorkflowConfig(BaseModel):
    """Top-level (or nested) workflow specification."""

    id: str
    nodes: list[NodeConfig]
    edges: list[EdgeConfig] = Field(default_factory=list)


NodeConfig.model_rebuild()
WorkflowConfig.model_rebuild()


@dataclass(eq=False)
class Workflow:
    """A directed graph of nodes, possibly nested inside another node."""

    id: str
    nodes: Dict[str, Node] = field(default_factory=dict)
    has_branch: bool = False
    has_edge: bool = False
    execution_only: bool = False
    _last_index: int = field(default=0, init=False, repr=False)
    _nested_under: str = field(default="", init=False, repr=False)

    @property
    def start_node(self) -> Node | None:
        """The single node without inbound edges, if there is exactly one."""

        candidates = [node for node in self.nodes.values() if node.in_degree == 0]
        return candidates[0] if len(candidates) == 1 else None

    @property
    def end_node(self) -> Node | None:
        """The single node without outbound edges, if there is exactly one."""

        candidates = [node for node in self.nodes.values() if node.out_degree == 0]
        return candidates[0] if len(candidates) == 1 else None

    def get_node(self, node_id: str) -> Node:
        """Return the node for the provided identifier."""

        try:
            return self.nodes[node_id]
        except KeyError as exc:
            raise UnknownNodeError(f"Node '{node_id}' not found in workflow '{self.id}'.") from exc

    def add_node(
        self,
        node_id: str,
        *,
        dynamic: bool = False,
        aggregator: Optional[Hook] = None,
        sub_aggregator: Optional[Hook] = None,
    ) -> Node:
        """Create a node and register it under ``node_id``."""

        if node_id in self.nodes:
            raise DuplicateNodeError(f"Node '{node_id}' already exists in workflow '{self.id}'.")
        self._last_index += 1
        node = build_node(
            node_id,
            index=self._last_index,
            unique_id=f"{self.id}.{node_id}",
            dynamic=dynamic,
            aggregator=aggregator,
            sub_aggregator=sub_aggregator,
        )
        self.nodes[node_id] = node
        return node

    def add_operation(self, node_id: str, operation: Operation) -> None:
        self.get_node(node_id).operations.append(operation)

    def add_edge(
        self,
        from_id: str,
        to_id: str,
        *,
        execution_only: bool = False,
        forwarder: Optional[Forwarder] = None,
    ) -> None:
        """Connect two nodes; execution-only edges forward no data."""

        source = self.get_node(from_id)
        target = self.get_node(to_id)
        if any(child is target for child in source.children):
            raise DuplicateEdgeError(f"Edge {from_id} -> {to_id} already exists in workflow '{self.id}'.")

        source.children.append(target)
        source.out_degree += 1
        target.in_degree += 1
        self.has_edge = True
        if execution_only:
            self.execution_only = True
        else:
            source.forwarding[to_id] = forwarder or passthrough

    def add_conditional_branch(
        self,
        node_id: str,
        branches: Mapping[str, "Workflow"],
        *,
        condition: Optional[Hook] = None,
        execution_only: bool = False,
        forwarder: Optional[Forwarder] = None,
    ) -> None:
        """Turn a node into a conditional branch over labelled workflows."""

        node = self.get_node(node_id)
        seen: set[int] = set()
        for workflow in branches.values():
            if id(workflow) in seen:
                raise WorkflowAlreadyNestedError(
                    f"Workflow '{workflow.id}' is used by more than one branch of '{node.unique_id}'."
                )
            seen.add(id(workflow))
            self._check_attachable(node, workflow)
        for label, workflow in branches.items():
            self._attach(node, label, workflow)
        node.nested = ConditionalBranch(workflows=dict(branches), condition=condition)
        self._mark_dynamic(node, execution_only=execution_only, forwarder=forwarder)

    def add_foreach_branch(
        self,
        node_id: str,
        body: "Workflow",
        *,
        foreach: Optional[Hook] = None,
        execution_only: bool = False,
        forwarder: Optional[Forwarder] = None,
    ) -> None:
        """Turn a node into a loop that runs ``body`` once per item."""

        node = self.get_node(node_id)
        self._attach(node, "foreach", body)
        node.nested = ForeachLoop(body=body, foreach=foreach)
        self._mark_dynamic(node, execution_only=execution_only, forwarder=forwarder)

    def add_sub_workflow(self, node_id: str, workflow: "Workflow") -> None:
        node = self.get_node(node_id)
        self._attach(node, "sub", workflow)
        node.nested = SubWorkflow(workflow=workflow)

    def iter_nested(self) -> Iterator[tuple[Node, str, "Workflow"]]:
        """Yield ``(owner, label, workflow)`` for every directly nested workflow."""

        for node in self.nodes.values():
            for label, workflow in node.nested_workflows():
                yield node, label, workflow

    def contains(self, other: "Workflow") -> bool:
        """Return True when ``other`` is this workflow or nested anywhere below it."""

        seen: set[int] = set()
        pending = [self]
        while pending:
            current = pending.pop()
            if current is other:
                return True
            if id(current) in seen:
                continue
            seen.add(id(current))
            pending.extend(workflow for _, _, workflow in current.iter_nested())
        return False

    def validate(self) -> None:
        """Raise ``WorkflowValidationError`` when the graph is malformed."""

        from flowdag.validator import WorkflowValidator

        WorkflowValidator().validate(self)

    def _mark_dynamic(
        self,
        node: Node,
        *,
        execution_only: bool,
        forwarder: Optional[Forwarder],
    ) -> None:
        node.dynamic = True
        self.has_branch = True
        if execution_only:
            node.forwarding.pop(DYNAMIC_FORWARD_KEY, None)
        else:
            node.forwarding[DYNAMIC_FORWARD_KEY] = forwarder or passthrough

    def _check_attachable(self, owner: Node, workflow: "Workflow") -> None:
        if workflow._nested_under:
            raise WorkflowAlreadyNestedError(
                f"Workflow '{workflow.id}' is already nested under '{workflow._nested_under}';"
                f" build a separate workflow for '{owner.unique_id}'."
            )
        if workflow.contains(self):
            raise CyclicWorkflowError(
                f"Workflow '{workflow.id}' cannot be nested under '{owner.unique_id}': it contains '{self.id}'."
            )

    def _attach(self, owner: Node, label: str, workflow: "Workflow") -> None:
        self._check_attachable(owner, workflow)
        workflow._rebase(f"{owner.unique_id}.{label}")
        workflow._nested_under = owner.unique_id

    def _rebase(self, workflow_id: str) -> None:
        """Re-derive ids so unique ids stay globally unique once nested."""

        self.id = workflow_id
        for node in self.nodes.values():
            node.unique_id = f"{workflow_id}.{node.id}"
        for owner, label, workflow in self.iter_nested():
            workflow._rebase(f"{owner.unique_id}.{label}")
            workflow._nested_under = owner.unique_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Workflow":
        """Build a workflow instance from a JSON-like dictionary."""

        try:
            spec = WorkflowConfig.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid workflow definition: {exc}") from exc
        return cls.from_config(spec)

    @classmethod
    def from_config(cls, spec: WorkflowConfig) -> "Workflow":
        workflow = cls(id=spec.id)
        for node_cfg in spec.nodes:
            workflow.add_node(
                node_cfg.id,
                dynamic=node_cfg.dynamic,
                aggregator=passthrough if node_cfg.aggregator else None,
                sub_aggregator=passthrough if node_cfg.sub_aggregator else None,
            )
            for op_cfg in node_cfg.operations:
                workflow.add_operation(node_cfg.id, _build_operation(op_cfg))

        for edge_cfg in spec.edges:
            if edge_cfg.from_node not in workflow.nodes or edge_cfg.to_node not in workflow.nodes:
                raise ValueError(
                    f"Edge references unknown nodes: {edge_cfg.from_node} -> {edge_cfg.to_node}"
                )
            workflow.add_edge(
                edge_cfg.from_node,
                edge_cfg.to_node,
                execution_only=edge_cfg.execution_only,
            )

        for node_cfg in spec.nodes:
            if node_cfg.conditions is not None:
                workflow.add_conditional_branch(
                    node_cfg.id,
                    {label: cls.from_config(sub) for label, sub in node_cfg.conditions.items()},
                    execution_only=node_cfg.execution_only,
                )
            elif node_cfg.foreach is not None:
                workflow.add_foreach_branch(
                    node_cfg.id,
                    cls.from_config(node_cfg.foreach),
                    execution_only=node_cfg.execution_only,
                )
            elif node_cfg.sub_workflow is not None:
                workflow.add_sub_workflow(node_cfg.id, cls.from_config(node_cfg.sub_workflow))

        logger.debug("Loaded workflow %s with %d nodes", workflow.id, len(workflow.nodes))
        return workflow


def _build_operation(config: OperationConfig) -> Operation:
    operation = Operation(
        mod=passthrough if config.modifier else None,
        function=config.function,
        callback_url=config.callback_url,
    )
    if config.response_handler:
        operation.with_response_handler(passthrough)
    if config.failure_handler:
        operation.with_failure_handler(passthrough)
    return operation


__all__ = [
    "EdgeConfig",
    "NodeConfig",
    "OperationConfig",
    "Workflow",
    "WorkflowConfig",
]
