"""
FastAPI dependencies resolving the objects ``create_app`` stored on
``app.state``.
"""

from __future__ import annotations

from fastapi import Request

from src.api.pipeline import RequestPipeline
from src.core.services.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_pipeline(request: Request) -> RequestPipeline:
    return request.app.state.pipeline
