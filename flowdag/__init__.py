"""Read-only snapshots of workflow definitions."""

from flowdag.dag import Workflow
from flowdag.definition import ValidationResult, get_definition, snapshot_pipeline, validate_pipeline
from flowdag.errors import (
    CyclicWorkflowError,
    DuplicateEdgeError,
    DuplicateNodeError,
    FlowDagError,
    UnknownNodeError,
    WorkflowValidationError,
)
from flowdag.models import NodeSnapshot, OperationSnapshot, WorkflowSnapshot
from flowdag.node import Node, Operation
from flowdag.pipeline import Pipeline
from flowdag.snapshot import snapshot_workflow

__all__ = [
    "__version__",
    "CyclicWorkflowError",
    "DuplicateEdgeError",
    "DuplicateNodeError",
    "FlowDagError",
    "Node",
    "NodeSnapshot",
    "Operation",
    "OperationSnapshot",
    "Pipeline",
    "UnknownNodeError",
    "ValidationResult",
    "Workflow",
    "WorkflowSnapshot",
    "WorkflowValidationError",
    "get_definition",
    "snapshot_pipeline",
    "snapshot_workflow",
    "validate_pipeline",
]

__version__ = "0.1.0"
