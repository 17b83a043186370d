"""
User data access.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging.logger import get_logger
from src.database.models import User, UserStats
from src.modules.shared.base_repository import BaseRepository

# Lookup order for a caller-provided identifier
LOOKUP_COLUMNS = ("id", "name", "email")


class UserRepository(BaseRepository[User]):
    def __init__(self) -> None:
        super().__init__(User, get_logger(f"{__name__}.UserRepository"))

    async def find_by_provided_id(
        self,
        session: AsyncSession,
        provided_id: str,
        for_update: bool = False,
    ) -> Optional[User]:
        """
        Resolve ``provided_id`` as a user id, then a name, then an email.

        The first column that matches wins.
        """
        for column_name in LOOKUP_COLUMNS:
            column = getattr(User, column_name)
            user = await self.find_one_where(
                session, column == provided_id, for_update=for_update
            )
            if user is not None:
                return user
        return None


class UserStatsRepository(BaseRepository[UserStats]):
    def __init__(self) -> None:
        super().__init__(UserStats, get_logger(f"{__name__}.UserStatsRepository"))
