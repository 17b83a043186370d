"""
Purchase Service
================

Purpose
-------
Moves currency between a user's balance and the store: buying an item and
throwing one away for a refund.

Domain
------
- Active price is the sale pair when the item is on sale, else the base pair
- Gems are checked before coins; nothing is written until both pass
- Buying an item the user already owns still debits the price and keeps the
  single existing possession
- Throwing away refunds the base price, never the sale price

Transactions
------------
Each operation runs in one transaction with the user row locked
(``SELECT ... FOR UPDATE``), so concurrent purchases serialize on the
balance and either fully apply or fully roll back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Tuple

from sqlalchemy.exc import SQLAlchemyError

from src.core.validation.input_validator import InputValidator
from src.database.models import Possession, StoreItem
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import InsufficientResourcesError, NotFoundError
from src.modules.store.repositories import PossessionRepository, StoreItemRepository
from src.modules.users.repository import UserRepository

if TYPE_CHECKING:
    from logging import Logger

    from src.core.database.service import DatabaseService

OPERATION_FAILED = "Could not proceed with the operation"


def active_price(item: StoreItem) -> Tuple[int, int]:
    """(coins, gems) the item costs right now."""
    if item.on_sale:
        return item.sale_coins_price, item.sale_gems_price
    return item.coins_price, item.gems_price


class PurchaseService(BaseService):
    """
    Public Methods
    --------------
    - buy_by_user() -> Debit the active price and record ownership
    - throw_away_by_user() -> Refund the base price and drop ownership
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._users = UserRepository()
        self._items = StoreItemRepository()
        self._possessions = PossessionRepository()

    async def buy_by_user(self, user_id: str, item_id: str) -> None:
        """
        Buy ``item_id`` for ``user_id``.

        Raises:
            NotFoundError: user or item does not exist
            InsufficientResourcesError: not enough gems, then not enough coins
            InternalError: storage failure (transaction rolled back)
        """
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        item_id = InputValidator.validate_identifier(item_id, "item_id")

        self.log_operation("buy_by_user", user_id=user_id, item_id=item_id)

        try:
            async with self.db.get_transaction() as session:
                user = await self._users.get(session, user_id, for_update=True)
                if user is None:
                    raise NotFoundError("User", user_id)

                item = await self._items.get(session, item_id)
                if item is None:
                    raise NotFoundError("Item", item_id)

                coins_price, gems_price = active_price(item)

                if user.gems < gems_price:
                    raise InsufficientResourcesError("gems", gems_price, user.gems)
                if user.coins < coins_price:
                    raise InsufficientResourcesError("coins", coins_price, user.coins)

                user.coins -= coins_price
                user.gems -= gems_price
                await self._users.flush(session)

                already_owned = await self._possessions.find(session, user_id, item_id)
                if already_owned is None:
                    self._possessions.add(
                        session,
                        Possession(user_id=user_id, store_item_id=item_id, equipped=False),
                    )
                    await self._possessions.flush(session)

                coins_after, gems_after = user.coins, user.gems

        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "buy_by_user", exc, OPERATION_FAILED, user_id=user_id, item_id=item_id
            ) from exc

        self.log.info(
            "Item bought",
            extra={
                "user_id": user_id,
                "item_id": item_id,
                "coins_spent": coins_price,
                "gems_spent": gems_price,
                "coins": coins_after,
                "gems": gems_after,
                "already_owned": already_owned is not None,
            },
        )

    async def throw_away_by_user(self, user_id: str, item_id: str) -> None:
        """
        Remove ``item_id`` from the user's possessions and refund its base
        price.

        Raises:
            NotFoundError: user, item or possession does not exist
            InternalError: storage failure (transaction rolled back)
        """
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        item_id = InputValidator.validate_identifier(item_id, "item_id")

        self.log_operation("throw_away_by_user", user_id=user_id, item_id=item_id)

        try:
            async with self.db.get_transaction() as session:
                user = await self._users.get(session, user_id, for_update=True)
                if user is None:
                    raise NotFoundError("User", user_id)

                item = await self._items.get(session, item_id)
                if item is None:
                    raise NotFoundError("Item", item_id)

                possession = await self._possessions.find(
                    session, user_id, item_id, for_update=True
                )
                if possession is None:
                    raise NotFoundError("Possession", f"{user_id}/{item_id}")

                user.coins += item.coins_price
                user.gems += item.gems_price
                await self._possessions.delete(session, possession)
                await self._users.flush(session)

                refund = (item.coins_price, item.gems_price)

        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "throw_away_by_user",
                exc,
                OPERATION_FAILED,
                user_id=user_id,
                item_id=item_id,
            ) from exc

        self.log.info(
            "Item thrown away",
            extra={
                "user_id": user_id,
                "item_id": item_id,
                "coins_refunded": refund[0],
                "gems_refunded": refund[1],
            },
        )
