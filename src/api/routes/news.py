"""
News endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_container, get_pipeline
from src.api.pipeline import OPERATIONS, RequestPipeline
from src.api.schemas import (
    CreateNewsRequest,
    NewsListResponse,
    NewsResponse,
    UpdateNewsRequest,
)
from src.core.services.container import ServiceContainer

router = APIRouter(tags=["news"])


@router.post("/news", response_model=NewsResponse)
async def create_news(
    body: CreateNewsRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["NewsService/Create"],
        authorization,
        lambda: container.news.create(body.title, body.description, body.image_link),
    )


@router.get("/news", response_model=NewsListResponse)
async def list_news(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["NewsService/List"], authorization, container.news.list
    )


@router.get("/news/{news_id}", response_model=NewsResponse)
async def read_news(
    news_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["NewsService/Read"],
        authorization,
        lambda: container.news.read(news_id),
    )


@router.patch("/news/{news_id}", response_model=NewsResponse)
async def update_news(
    news_id: str,
    body: UpdateNewsRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["NewsService/Update"],
        authorization,
        lambda: container.news.update(
            news_id,
            title=body.title,
            description=body.description,
            image_link=body.image_link,
        ),
    )
