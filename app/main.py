from __future__ import annotations

"""FastAPI application factory and in-memory pipeline store."""

import logging
import threading
from typing import Dict

from fastapi import FastAPI

from app.routes import pipeline_routes
from app.settings import Settings, get_settings
from flowdag.pipeline import Pipeline

logger = logging.getLogger("flowdag.app")


def configure_logging(level: str = "INFO") -> None:
    """Configure basic logging for the service."""

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class PipelineStore:
    """In-memory store for registered pipelines."""

    def __init__(self) -> None:
        self._pipelines: Dict[str, Pipeline] = {}
        self._lock = threading.Lock()

    def add(self, pipeline: Pipeline) -> bool:
        """Register a pipeline under its root workflow id.

        Returns False, leaving the stored pipeline untouched, when the id is
        already taken.
        """

        with self._lock:
            if pipeline.id in self._pipelines:
                return False
            self._pipelines[pipeline.id] = pipeline
            return True

    def get(self, pipeline_id: str) -> Pipeline:
        """Retrieve a pipeline."""

        with self._lock:
            try:
                return self._pipelines[pipeline_id]
            except KeyError as exc:
                raise KeyError(f"Pipeline '{pipeline_id}' not found.") from exc


def create_app(settings: Settings | None = None) -> FastAPI:
    """Construct the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=settings.service_title, version="0.1.0")
    app.state.settings = settings
    app.state.pipeline_store = PipelineStore()

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Definition service starting up.")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        logger.info("Definition service shutting down.")

    @app.get("/health", tags=["system"])
    async def health() -> Dict[str, str]:
        """Simple health check."""

        return {"status": "ok"}

    app.include_router(pipeline_routes.router)

    return app


app = create_app()


__all__ = [
    "PipelineStore",
    "app",
    "configure_logging",
    "create_app",
]
