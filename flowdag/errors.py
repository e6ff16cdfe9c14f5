from __future__ import annotations

"""Exception hierarchy for workflow definitions and snapshots."""


class FlowDagError(Exception):
    """Base class for workflow definition failures."""


class WorkflowValidationError(FlowDagError, ValueError):
    """Raised when a workflow is not structurally well-formed."""


class DuplicateNodeError(FlowDagError, ValueError):
    """Raised when a node id is added twice to the same workflow."""


class UnknownNodeError(FlowDagError, KeyError):
    """Raised when an operation references a node that does not exist."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else "Unknown node"


class DuplicateEdgeError(FlowDagError, ValueError):
    """Raised when the same edge is added twice."""


class CyclicWorkflowError(FlowDagError):
    """Raised when a nested workflow contains one of its own ancestors."""


class WorkflowAlreadyNestedError(FlowDagError, ValueError):
    """Raised when a workflow that is already nested is attached a second time."""


__all__ = [
    "CyclicWorkflowError",
    "DuplicateEdgeError",
    "DuplicateNodeError",
    "FlowDagError",
    "UnknownNodeError",
    "WorkflowAlreadyNestedError",
    "WorkflowValidationError",
]
