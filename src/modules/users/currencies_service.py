"""
Currencies Service
==================

Purpose
-------
Administrative balance grants. Callers are restricted to admins and
service-audience tokens before this service runs.

Domain
------
- Target user resolved by id, then name, then email
- Deltas are non-negative; a grant never lowers a balance
- The user row is locked for the read-modify-write

Logging
-------
Every grant logs the deltas and the resulting balances.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from src.core.validation.input_validator import InputValidator
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError
from src.modules.users.repository import UserRepository

if TYPE_CHECKING:
    from logging import Logger

    from src.core.database.service import DatabaseService


class CurrenciesService(BaseService):
    """
    Public Methods
    --------------
    - grant_currencies() -> Add coins and gems to a user's balance
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._users = UserRepository()

    async def grant_currencies(
        self,
        provided_id: str,
        add_coins: int = 0,
        add_gems: int = 0,
    ) -> Dict[str, Any]:
        """
        Increment a user's balances.

        Returns:
            {"user_id", "coins", "gems"} after the grant

        Raises:
            ValidationError: negative or non-integer deltas, or a balance that would overflow
            NotFoundError: no user matches the identifier
            InternalError: storage failure (transaction rolled back)
        """
        provided_id = InputValidator.validate_identifier(provided_id)
        add_coins = InputValidator.validate_non_negative_integer(add_coins, "add_coins")
        add_gems = InputValidator.validate_non_negative_integer(add_gems, "add_gems")

        self.log_operation(
            "grant_currencies",
            provided_id=provided_id,
            add_coins=add_coins,
            add_gems=add_gems,
        )

        try:
            async with self.db.get_transaction() as session:
                user = await self._users.find_by_provided_id(
                    session, provided_id, for_update=True
                )
                if user is None:
                    raise NotFoundError("User", provided_id)

                coins = InputValidator.validate_total(user.coins, add_coins, "add_coins")
                gems = InputValidator.validate_total(user.gems, add_gems, "add_gems")
                user.coins, user.gems = coins, gems
                await self._users.flush(session)

                result = {"user_id": user.id, "coins": user.coins, "gems": user.gems}

        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "grant_currencies",
                exc,
                "Unable to grant currencies",
                provided_id=provided_id,
            ) from exc

        self.log.info(
            "Currencies granted",
            extra={
                "user_id": result["user_id"],
                "add_coins": add_coins,
                "add_gems": add_gems,
                "coins": result["coins"],
                "gems": result["gems"],
            },
        )
        return result
