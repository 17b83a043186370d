"""
Request and response bodies for the HTTP gateway.

Field-level rules (lengths, non-negative amounts, uniqueness) are enforced by
the services; these models only shape the JSON.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Users
# ============================================================================


class CreateUserRequest(BaseModel):
    name: str
    email: str
    password: str


class LoginRequest(BaseModel):
    id: str = Field(description="User id, name or email")
    password: str


class UpdateUserRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class GrantCurrenciesRequest(BaseModel):
    add_coins: int = 0
    add_gems: int = 0


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    coins: int
    gems: int
    is_admin: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    token: str
    expires_at: datetime
    is_admin: bool


class BalanceResponse(BaseModel):
    user_id: str
    coins: int
    gems: int


class VersionResponse(BaseModel):
    version: str


# ============================================================================
# Store items
# ============================================================================


class CreateStoreItemRequest(BaseModel):
    name: str
    type: int
    image_id: str
    description: str = ""
    coins_price: int = 0
    gems_price: int = 0
    on_sale: bool = False
    sale_coins_price: int = 0
    sale_gems_price: int = 0


class UpdateStoreItemRequest(BaseModel):
    name: Optional[str] = None
    type: Optional[int] = None
    image_id: Optional[str] = None
    description: Optional[str] = None
    coins_price: Optional[int] = None
    gems_price: Optional[int] = None
    sale_coins_price: Optional[int] = None
    sale_gems_price: Optional[int] = None


class StoreItemResponse(BaseModel):
    id: str
    name: str
    description: str
    type: int
    coins_price: int
    gems_price: int
    image_id: str
    on_sale: bool
    sale_coins_price: int
    sale_gems_price: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StoreItemListResponse(BaseModel):
    results: List[StoreItemResponse]


class UserItemId(BaseModel):
    item_id: str
    equipped: bool


class UserItemsIdsResponse(BaseModel):
    items: List[UserItemId]


# ============================================================================
# Stats
# ============================================================================


class UpdateStatsRequest(BaseModel):
    add_kills: int = 0
    add_games: int = 0
    add_top5: int = 0
    add_wins: int = 0


class UserStatsResponse(BaseModel):
    username: str
    wins: int
    top5: int
    kills: int
    games: int


# ============================================================================
# News
# ============================================================================


class CreateNewsRequest(BaseModel):
    title: str
    description: str = ""
    image_link: str = ""


class UpdateNewsRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_link: Optional[str] = None


class NewsResponse(BaseModel):
    id: str
    title: str
    description: str
    image_link: str
    created_at: Optional[datetime] = None


class NewsListResponse(BaseModel):
    results: List[NewsResponse]


class EmptyResponse(BaseModel):
    pass
