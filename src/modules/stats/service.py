"""
Users Stats Service
===================

Purpose
-------
Reads and accumulates match statistics, addressed by username.

Domain
------
- Every user owns exactly one stats row, created at registration
- Zero rows (including an unknown username) or several rows mean the
  profile is corrupted and surface as INTERNAL
- Updates are additive deltas applied under a row lock
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from src.core.logging.logger import get_logger
from src.core.validation.input_validator import MAX_NAME_LENGTH, InputValidator
from src.database.models import User, UserStats
from src.modules.shared.base_repository import BaseRepository
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import InternalError

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

PROFILE_CORRUPTED = "Profile is corrupted. Contact support."

STAT_FIELDS = ("kills", "games", "top5", "wins")


class UserStatsByNameRepository(BaseRepository[UserStats]):
    def __init__(self) -> None:
        super().__init__(UserStats, get_logger(f"{__name__}.UserStatsByNameRepository"))

    async def for_username(
        self, session: AsyncSession, username: str, for_update: bool = False
    ) -> List[UserStats]:
        stmt = (
            select(UserStats)
            .join(User, User.id == UserStats.user_id)
            .where(User.name == username)
        )
        if for_update:
            stmt = stmt.with_for_update(of=UserStats)

        result = await session.execute(stmt)
        rows = list(result.scalars().all())

        self.log.debug(
            "Repository.for_username: UserStats",
            extra={"username": username, "found_count": len(rows), "locked": for_update},
        )

        return rows


def serialize_stats(username: str, stats: UserStats) -> Dict[str, Any]:
    return {
        "username": username,
        "wins": stats.wins,
        "top5": stats.top5,
        "kills": stats.kills,
        "games": stats.games,
    }


class UsersStatsService(BaseService):
    """
    Public Methods
    --------------
    - get_stats() -> Current counters for a username
    - update_stats() -> Add deltas to the counters
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._stats = UserStatsByNameRepository()

    async def _single_row(
        self, session: AsyncSession, username: str, for_update: bool = False
    ) -> UserStats:
        rows = await self._stats.for_username(session, username, for_update=for_update)
        if len(rows) != 1:
            self.log.error(
                "Corrupted user profile - expected exactly one stats row",
                extra={"username": username, "found_count": len(rows)},
            )
            raise InternalError(PROFILE_CORRUPTED, username=username, found_count=len(rows))
        return rows[0]

    async def get_stats(self, username: str) -> Dict[str, Any]:
        username = InputValidator.validate_string(
            username, "username", max_length=MAX_NAME_LENGTH
        )
        self.log_operation("get_stats", username=username)

        try:
            async with self.db.get_session() as session:
                stats = await self._single_row(session, username)
                return serialize_stats(username, stats)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "get_stats", exc, "Could not fetch user stats", username=username
            ) from exc

    async def update_stats(
        self,
        username: str,
        add_kills: int = 0,
        add_games: int = 0,
        add_top5: int = 0,
        add_wins: int = 0,
    ) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: negative or non-integer delta, or a counter that would overflow
            InternalError: corrupted profile or storage failure
        """
        username = InputValidator.validate_string(
            username, "username", max_length=MAX_NAME_LENGTH
        )
        deltas = {
            "kills": InputValidator.validate_non_negative_integer(add_kills, "add_kills"),
            "games": InputValidator.validate_non_negative_integer(add_games, "add_games"),
            "top5": InputValidator.validate_non_negative_integer(add_top5, "add_top5"),
            "wins": InputValidator.validate_non_negative_integer(add_wins, "add_wins"),
        }

        self.log_operation("update_stats", username=username, deltas=deltas)

        try:
            async with self.db.get_transaction() as session:
                stats = await self._single_row(session, username, for_update=True)
                totals = {
                    field_name: InputValidator.validate_total(
                        getattr(stats, field_name), deltas[field_name], f"add_{field_name}"
                    )
                    for field_name in STAT_FIELDS
                }
                for field_name, total in totals.items():
                    setattr(stats, field_name, total)
                await self._stats.flush(session)
                result = serialize_stats(username, stats)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "update_stats", exc, "Could not update user stats", username=username
            ) from exc

        self.log.info("User stats updated", extra=result)
        return result
