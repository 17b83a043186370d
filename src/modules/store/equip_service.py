"""
Equip Service
=============

Purpose
-------
Switches which owned item a user has equipped in an equip slot. The slot is
the item's ``type``.

Domain
------
Per user and slot the state is either "nothing equipped" or "exactly one
item equipped". Equipping item I:

- I already equipped: no-op, no writes
- another item equipped: it is de-equipped and I equipped in the same commit
- nothing equipped: I is equipped

The target must be owned by the user.

Transactions
------------
All of the user's possession rows in the slot are locked before the equipped
row is looked up, so two concurrent equips in one slot cannot both leave an
item equipped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy.exc import SQLAlchemyError

from src.core.validation.input_validator import InputValidator
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import NotFoundError
from src.modules.store.repositories import PossessionRepository, StoreItemRepository

if TYPE_CHECKING:
    from logging import Logger

    from src.core.database.service import DatabaseService


class EquipService(BaseService):
    """
    Public Methods
    --------------
    - equip_by_user() -> Equip an owned item, de-equipping its slot mate
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._items = StoreItemRepository()
        self._possessions = PossessionRepository()

    async def equip_by_user(self, user_id: str, item_id: str) -> Dict[str, Any]:
        """
        Returns:
            {"user_id", "item_id", "previous_item_id", "changed"}; the
            previous item is None when the slot was empty

        Raises:
            NotFoundError: item unknown, or not owned by the user
            InternalError: storage failure (transaction rolled back)
        """
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        item_id = InputValidator.validate_identifier(item_id, "item_id")

        self.log_operation("equip_by_user", user_id=user_id, item_id=item_id)

        try:
            async with self.db.get_transaction() as session:
                item = await self._items.get(session, item_id)
                if item is None:
                    raise NotFoundError("Item", item_id)

                slot = await self._possessions.of_type_for_update(
                    session, user_id, item.type
                )

                target = next((p for p in slot if p.store_item_id == item_id), None)
                if target is None:
                    raise NotFoundError("Possession", f"{user_id}/{item_id}")

                equipped = [p for p in slot if p.equipped]
                previous_item_id = equipped[0].store_item_id if equipped else None

                if target.equipped:
                    changed = False
                else:
                    for possession in equipped:
                        possession.equipped = False
                    target.equipped = True
                    await self._possessions.flush(session)
                    changed = True

        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "equip_by_user",
                exc,
                "Could not equip item",
                user_id=user_id,
                item_id=item_id,
            ) from exc

        self.log.info(
            "Item equipped" if changed else "Item already equipped",
            extra={
                "user_id": user_id,
                "item_id": item_id,
                "item_type": item.type,
                "previous_item_id": previous_item_id,
            },
        )

        return {
            "user_id": user_id,
            "item_id": item_id,
            "previous_item_id": previous_item_id,
            "changed": changed,
        }
