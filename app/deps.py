from __future__ import annotations

"""Dependency helpers for FastAPI routes."""

from fastapi import Request


def get_pipeline_store(request: Request):
    """Return the in-memory pipeline store."""

    return request.app.state.pipeline_store


def get_app_settings(request: Request):
    """Return the settings the application was created with."""

    return request.app.state.settings


__all__ = [
    "get_app_settings",
    "get_pipeline_store",
]
