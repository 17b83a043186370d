"""
Users endpoints: registration, login, profile, balance grants and version.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header

from src.api.dependencies import get_container, get_pipeline
from src.api.pipeline import OPERATIONS, RequestPipeline
from src.api.schemas import (
    BalanceResponse,
    CreateUserRequest,
    EmptyResponse,
    GrantCurrenciesRequest,
    LoginRequest,
    LoginResponse,
    UpdateUserRequest,
    UserResponse,
    VersionResponse,
)
from src.core.services.container import ServiceContainer

router = APIRouter(tags=["users"])


@router.post("/users", response_model=UserResponse)
async def create_user(
    body: CreateUserRequest,
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/Create"],
        None,
        lambda: container.users.create(body.name, body.email, body.password),
    )


@router.post("/users/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/Login"],
        None,
        lambda: container.users.login(body.id, body.password),
    )


@router.get("/users", response_model=EmptyResponse)
async def list_users(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/List"], authorization, container.users.list
    )


@router.get("/users/{user_id}", response_model=UserResponse)
async def read_user(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/Read"],
        authorization,
        lambda: container.users.read(user_id),
        subject_id=user_id,
    )


@router.patch("/users/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    body: UpdateUserRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/Update"],
        authorization,
        lambda: container.users.update(user_id, **body.model_dump(exclude_none=True)),
        subject_id=user_id,
    )


@router.delete("/users/{user_id}", response_model=EmptyResponse)
async def delete_user(
    user_id: str,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    await pipeline.run(
        OPERATIONS["Users/Delete"],
        authorization,
        lambda: container.users.delete(user_id),
        subject_id=user_id,
    )
    return {}


@router.post("/users/{user_id}/currencies", response_model=BalanceResponse)
async def grant_currencies(
    user_id: str,
    body: GrantCurrenciesRequest,
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    return await pipeline.run(
        OPERATIONS["Users/GrantCurrencies"],
        authorization,
        lambda: container.currencies.grant_currencies(
            user_id, add_coins=body.add_coins, add_gems=body.add_gems
        ),
        subject_id=user_id,
    )


@router.get("/version", response_model=VersionResponse)
async def get_version(
    authorization: Optional[str] = Header(default=None),
    container: ServiceContainer = Depends(get_container),
    pipeline: RequestPipeline = Depends(get_pipeline),
):
    async def _version():
        return container.users.get_version()

    return await pipeline.run(
        OPERATIONS["UsersService/GetVersion"], authorization, _version
    )
