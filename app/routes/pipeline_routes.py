from __future__ import annotations

"""Pipeline registration and definition export routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status

from app.deps import get_app_settings, get_pipeline_store
from app.schemas import PipelineCreateRequest, PipelineCreateResponse, ValidationResponse
from flowdag.dag import Workflow
from flowdag.definition import get_definition, validate_pipeline
from flowdag.errors import CyclicWorkflowError, FlowDagError
from flowdag.pipeline import Pipeline

logger = logging.getLogger("flowdag.routes.pipeline")

router = APIRouter(prefix="/pipeline", tags=["pipeline"])


def _lookup(pipeline_store, pipeline_id: str) -> Pipeline:
    try:
        return pipeline_store.get(pipeline_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Pipeline not found.") from exc


@router.post(
    "/create",
    response_model=PipelineCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_pipeline(
    payload: PipelineCreateRequest,
    pipeline_store=Depends(get_pipeline_store),
) -> PipelineCreateResponse:
    """Register a pipeline from a declarative workflow definition."""

    try:
        pipeline = Pipeline(workflow=Workflow.from_config(payload))
    except (ValueError, FlowDagError) as exc:
        logger.exception("Pipeline definition rejected: %s", exc)
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    if not pipeline_store.add(pipeline):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Pipeline '{payload.id}' already exists.",
        )
    logger.info("Registered pipeline %s", pipeline.id)
    return PipelineCreateResponse(pipeline_id=pipeline.id)


@router.get("/{pipeline_id}/definition")
def read_definition(
    pipeline_id: str = Path(..., description="Root workflow id of the pipeline"),
    pipeline_store=Depends(get_pipeline_store),
    settings=Depends(get_app_settings),
) -> Response:
    """Return the snapshot of a pipeline's workflow definition."""

    pipeline = _lookup(pipeline_store, pipeline_id)
    try:
        body = get_definition(pipeline, indent=settings.definition_indent)
    except CyclicWorkflowError as exc:
        logger.error("Pipeline %s definition is cyclic: %s", pipeline_id, exc)
        result = validate_pipeline(pipeline)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": str(exc), "is-valid": result.is_valid, "validation-error": result.error},
        )
    return Response(content=body, media_type="application/json")


@router.get("/{pipeline_id}/validation", response_model=ValidationResponse)
def read_validation(
    pipeline_id: str = Path(..., description="Root workflow id of the pipeline"),
    pipeline_store=Depends(get_pipeline_store),
) -> ValidationResponse:
    """Return only the structural validation outcome of a pipeline."""

    pipeline = _lookup(pipeline_store, pipeline_id)
    result = validate_pipeline(pipeline)
    return ValidationResponse(pipeline_id=pipeline_id, is_valid=result.is_valid, error=result.error)
