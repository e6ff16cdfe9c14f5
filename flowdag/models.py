from __future__ import annotations

"""Immutable snapshot records describing a workflow definition."""

from types import MappingProxyType
from typing import Annotated, Any, ClassVar, Dict, Literal, Mapping, Optional, TypeVar, Union

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    WrapSerializer,
    computed_field,
    model_serializer,
)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (str, list, tuple, dict)) and not value)


def _freeze_mapping(value: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(value))


def _serialize_mapping(value: Mapping[str, Any], handler: SerializerFunctionWrapHandler) -> Any:
    return handler(dict(value))


_V = TypeVar("_V")

FrozenMapping = Annotated[
    Dict[str, _V],
    AfterValidator(_freeze_mapping),
    WrapSerializer(_serialize_mapping),
]
"""Read-only string-keyed mapping that still serializes as a plain object."""


class SnapshotModel(BaseModel):
    """Frozen base record; fields named in ``omit_when_empty`` are left out when empty."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    omit_when_empty: ClassVar[frozenset[str]] = frozenset()

    @model_serializer(mode="wrap")
    def drop_empty_fields(self, handler: SerializerFunctionWrapHandler) -> Dict[str, Any]:
        data = handler(self)
        cls = type(self)
        for name in cls.omit_when_empty:
            info = cls.model_fields.get(name) or cls.model_computed_fields.get(name)
            alias = getattr(info, "alias", None)
            for key in (name, alias):
                if key and key in data and _is_empty(data[key]):
                    del data[key]
        return data


class OperationSnapshot(SnapshotModel):
    """Shape of one operation: its kind, display name and handler presence."""

    is_mod: bool = Field(default=False, alias="is-mod")
    is_function: bool = Field(default=False, alias="is-function")
    is_callback: bool = Field(default=False, alias="is-callback")
    name: str = ""
    has_response_handler: bool = Field(default=False, alias="has-response-handler")
    has_failure_handler: bool = Field(default=False, alias="has-failure-handler")


class WorkflowSnapshot(SnapshotModel):
    """Snapshot of one workflow graph.

    ``is_valid`` and ``validation_error`` are only filled in on the root of a
    definition; nested workflows leave them unset.
    """

    omit_when_empty: ClassVar[frozenset[str]] = frozenset({"is_valid", "validation_error"})

    id: str
    start_node: str = Field(default="", alias="start-node")
    end_node: str = Field(default="", alias="end-node")
    has_branch: bool = Field(default=False, alias="has-branch")
    has_edge: bool = Field(default=False, alias="has-edge")
    exec_only_dag: bool = Field(default=False, alias="exec-only-dag")
    nodes: FrozenMapping["NodeSnapshot"] = Field(default_factory=dict, validate_default=True)

    is_valid: Optional[bool] = Field(default=None, alias="is-valid")
    validation_error: str = Field(default="", alias="validation-error")


class NoNestedSnapshot(SnapshotModel):
    kind: Literal["none"] = "none"


class ConditionalSnapshot(SnapshotModel):
    kind: Literal["conditional"] = "conditional"
    workflows: FrozenMapping[WorkflowSnapshot] = Field(default_factory=dict, validate_default=True)


class ForeachSnapshot(SnapshotModel):
    kind: Literal["foreach"] = "foreach"
    body: WorkflowSnapshot


class SubWorkflowSnapshot(SnapshotModel):
    kind: Literal["sub-workflow"] = "sub-workflow"
    workflow: WorkflowSnapshot


NestedSnapshot = Annotated[
    Union[NoNestedSnapshot, ConditionalSnapshot, ForeachSnapshot, SubWorkflowSnapshot],
    Field(discriminator="kind"),
]
"""At most one nested workflow slot is ever populated on a node."""


class NodeSnapshot(SnapshotModel):
    """Snapshot of one node and the derived data/execution-only flags of its edges."""

    omit_when_empty: ClassVar[frozenset[str]] = frozenset(
        {"operations", "childrens", "sub_dag", "foreach_dag", "conditional_dags"}
    )

    id: str
    index: int = Field(default=0, alias="node-index")
    unique_id: str = Field(default="", alias="unique-id")

    is_dynamic: bool = Field(default=False, alias="is-dynamic")
    has_aggregator: bool = Field(default=False, alias="has-aggregator")
    has_sub_aggregator: bool = Field(default=False, alias="has-sub-aggregator")
    in_degree: int = Field(default=0, alias="in-degree")
    out_degree: int = Field(default=0, alias="out-degree")

    nested: NestedSnapshot = Field(default_factory=NoNestedSnapshot, exclude=True)
    dynamic_exec_only: bool = Field(default=False, alias="dynamic-exec-only")
    operations: tuple[OperationSnapshot, ...] = ()

    childrens: tuple[str, ...] = ()
    child_exec_only: FrozenMapping[bool] = Field(
        default_factory=dict, alias="child-exec-only", validate_default=True
    )

    @computed_field(alias="is-condition")
    @property
    def is_condition(self) -> bool:
        return isinstance(self.nested, ConditionalSnapshot)

    @computed_field(alias="is-foreach")
    @property
    def is_foreach(self) -> bool:
        return isinstance(self.nested, ForeachSnapshot)

    @computed_field(alias="has-subdag")
    @property
    def has_subdag(self) -> bool:
        return isinstance(self.nested, SubWorkflowSnapshot)

    @computed_field(alias="sub-dag")
    @property
    def sub_dag(self) -> Optional[WorkflowSnapshot]:
        return self.nested.workflow if isinstance(self.nested, SubWorkflowSnapshot) else None

    @computed_field(alias="foreach-dag")
    @property
    def foreach_dag(self) -> Optional[WorkflowSnapshot]:
        return self.nested.body if isinstance(self.nested, ForeachSnapshot) else None

    @computed_field(alias="conditional-dags")
    @property
    def conditional_dags(self) -> Optional[FrozenMapping[WorkflowSnapshot]]:
        if isinstance(self.nested, ConditionalSnapshot):
            return self.nested.workflows
        return None


for _model in (WorkflowSnapshot, ConditionalSnapshot, ForeachSnapshot, SubWorkflowSnapshot, NodeSnapshot):
    _model.model_rebuild()


__all__ = [
    "ConditionalSnapshot",
    "ForeachSnapshot",
    "NestedSnapshot",
    "NoNestedSnapshot",
    "NodeSnapshot",
    "OperationSnapshot",
    "SubWorkflowSnapshot",
    "WorkflowSnapshot",
]
