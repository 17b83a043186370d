"""
User statistics endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_container, get_pipeline
from src.api.pipeline import OPERATIONS, RequestPipeline
from src.api.schemas import UpdateStatsRequest, UserStatsResponse
from src.core.services.container import ServiceContainer

router = APIRouter(tags=["stats"])


@router.get("/stats/{username}", response_model=UserStatsResponse)
async def get_stats(
    username: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["UsersStats/GetStats"],
        authorization,
        lambda: container.stats.get_stats(username),
    )


@router.post("/stats/{username}", response_model=UserStatsResponse)
async def update_stats(
    username: str,
    body: UpdateStatsRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["UsersStats/UpdateStats"],
        authorization,
        lambda: container.stats.update_stats(
            username,
            add_kills=body.add_kills,
            add_games=body.add_games,
            add_top5=body.add_top5,
            add_wins=body.add_wins,
        ),
    )
