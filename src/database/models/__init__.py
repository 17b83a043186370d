"""
Database Models Package
=======================

SQLAlchemy ORM models for the users service.

All models are schema-only:
- Mapped[] syntax with mapped_column()
- Explicit foreign keys with ON DELETE CASCADE
- Business rules live in src.modules

Tables
------
- users: accounts and balances
- store_items: purchasable catalog
- users_store_items: possessions and equip flags
- user_stats: per-user match statistics
- news: announcements
"""

from src.core.database.base import Base

from .news import News
from .possession import Possession
from .store_item import StoreItem
from .user import User
from .user_stats import UserStats

__all__ = [
    "Base",
    "News",
    "Possession",
    "StoreItem",
    "User",
    "UserStats",
]
