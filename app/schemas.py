from __future__ import annotations

"""Request and response schemas for the definition API."""

from pydantic import BaseModel

from flowdag.dag import WorkflowConfig


class PipelineCreateRequest(WorkflowConfig):
    """Payload for POST /pipeline/create: the root workflow definition."""


class PipelineCreateResponse(BaseModel):
    """Response for pipeline registration."""

    pipeline_id: str
    message: str = "Pipeline registered"


class ValidationResponse(BaseModel):
    """Response for GET /pipeline/{pipeline_id}/validation."""

    pipeline_id: str
    is_valid: bool
    error: str = ""


__all__ = [
    "PipelineCreateRequest",
    "PipelineCreateResponse",
    "ValidationResponse",
]
