from __future__ import annotations

"""Pipeline definition export: validation bridge plus snapshot serialization."""

import logging
from dataclasses import dataclass

from flowdag.errors import WorkflowValidationError
from flowdag.models import WorkflowSnapshot
from flowdag.pipeline import Pipeline
from flowdag.snapshot import snapshot_workflow

logger = logging.getLogger("flowdag.definition")

DEFAULT_INDENT = 4


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Outcome of validating the root workflow of a pipeline."""

    is_valid: bool
    error: str = ""


def validate_pipeline(pipeline: Pipeline) -> ValidationResult:
    """Run the structural validator once on the root workflow."""

    workflow = pipeline.get_workflow_graph()
    try:
        workflow.validate()
    except WorkflowValidationError as exc:
        logger.warning("Workflow %s failed validation: %s", workflow.id, exc)
        return ValidationResult(is_valid=False, error=str(exc))
    return ValidationResult(is_valid=True)


def snapshot_pipeline(pipeline: Pipeline) -> WorkflowSnapshot:
    """Validate and snapshot the pipeline's root workflow.

    The snapshot is built even for an invalid workflow so a consumer can show
    its shape next to the reason it was rejected.
    """

    result = validate_pipeline(pipeline)
    snapshot = snapshot_workflow(pipeline.get_workflow_graph())
    return snapshot.model_copy(
        update={"is_valid": result.is_valid, "validation_error": result.error}
    )


def get_definition(pipeline: Pipeline, *, indent: int = DEFAULT_INDENT) -> str:
    """Return the pipeline definition as indented JSON text."""

    return snapshot_pipeline(pipeline).model_dump_json(by_alias=True, indent=indent)


__all__ = [
    "DEFAULT_INDENT",
    "ValidationResult",
    "get_definition",
    "snapshot_pipeline",
    "validate_pipeline",
]
