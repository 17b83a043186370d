"""
Store item endpoints: catalog CRUD and per-user purchase/equip actions.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_container, get_pipeline
from src.api.pipeline import OPERATIONS, RequestPipeline
from src.api.schemas import (
    CreateStoreItemRequest,
    EmptyResponse,
    StoreItemListResponse,
    StoreItemResponse,
    UpdateStoreItemRequest,
    UserItemsIdsResponse,
)
from src.core.services.container import ServiceContainer

router = APIRouter(tags=["store_items"])


# ============================================================================
# Catalog
# ============================================================================


@router.post("/store_items", response_model=StoreItemResponse)
async def create_store_item(
    body: CreateStoreItemRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/Create"],
        authorization,
        lambda: container.store_items.create(
            name=body.name,
            item_type=body.type,
            image_id=body.image_id,
            description=body.description,
            coins_price=body.coins_price,
            gems_price=body.gems_price,
            on_sale=body.on_sale,
            sale_coins_price=body.sale_coins_price,
            sale_gems_price=body.sale_gems_price,
        ),
    )


@router.get("/store_items", response_model=StoreItemListResponse)
async def list_store_items(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/List"], authorization, container.store_items.list
    )


@router.get("/store_items/{item_id}", response_model=StoreItemResponse)
async def read_store_item(
    item_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/Read"],
        authorization,
        lambda: container.store_items.read(item_id),
    )


@router.patch("/store_items/{item_id}", response_model=StoreItemResponse)
async def update_store_item(
    item_id: str,
    body: UpdateStoreItemRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/Update"],
        authorization,
        lambda: container.store_items.update(
            item_id,
            name=body.name,
            item_type=body.type,
            image_id=body.image_id,
            description=body.description,
            coins_price=body.coins_price,
            gems_price=body.gems_price,
            sale_coins_price=body.sale_coins_price,
            sale_gems_price=body.sale_gems_price,
        ),
    )


@router.delete("/store_items/{item_id}", response_model=EmptyResponse)
async def delete_store_item(
    item_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    await pipeline.run(
        OPERATIONS["StoreItems/Delete"],
        authorization,
        lambda: container.store_items.delete(item_id),
    )
    return {}


# ============================================================================
# Per-user actions
# ============================================================================


@router.post("/users/{user_id}/store_items/{item_id}/buy", response_model=EmptyResponse)
async def buy_by_user(
    user_id: str,
    item_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    await pipeline.run(
        OPERATIONS["StoreItems/BuyByUser"],
        authorization,
        lambda: container.purchase.buy_by_user(user_id, item_id),
        subject_id=user_id,
    )
    return {}


@router.post("/users/{user_id}/store_items/{item_id}/equip", response_model=EmptyResponse)
async def equip_by_user(
    user_id: str,
    item_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    await pipeline.run(
        OPERATIONS["StoreItems/EquipByUser"],
        authorization,
        lambda: container.equip.equip_by_user(user_id, item_id),
        subject_id=user_id,
    )
    return {}


@router.post(
    "/users/{user_id}/store_items/{item_id}/throw_away", response_model=EmptyResponse
)
async def throw_away_by_user(
    user_id: str,
    item_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    await pipeline.run(
        OPERATIONS["StoreItems/ThrowAwayByUser"],
        authorization,
        lambda: container.purchase.throw_away_by_user(user_id, item_id),
        subject_id=user_id,
    )
    return {}


@router.get("/users/{user_id}/store_items", response_model=UserItemsIdsResponse)
async def get_user_items_ids(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/GetUserItemsIds"],
        authorization,
        lambda: container.store_items.get_user_items_ids(user_id),
        subject_id=user_id,
    )


@router.get(
    "/users/{user_id}/store_items/equipped", response_model=UserItemsIdsResponse
)
async def get_equipped_user_items_ids(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["StoreItems/GetEquippedUserItemsIds"],
        authorization,
        lambda: container.store_items.get_equipped_user_items_ids(user_id),
        subject_id=user_id,
    )
