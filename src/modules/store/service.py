"""
Store Items Service
===================

Purpose
-------
Catalog management for store items plus read-only views of what a user
owns.

Domain
------
- ``(name, type)`` and ``image_id`` are unique across the catalog
- Update merges only the fields the caller actually set (non-empty strings,
  non-zero numbers); a non-zero sale price pair puts the item on sale
- Delete is idempotent and cascades to possessions
- Item-id views return ``{"item_id", "equipped"}`` pairs for an existing user

Purchases, refunds and equipping live in ``purchase_service`` and
``equip_service``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.validation.input_validator import InputValidator
from src.database.models import StoreItem
from src.modules.shared.base_service import BaseService
from src.modules.shared.exceptions import AlreadyExistsError, NotFoundError
from src.modules.store.repositories import PossessionRepository, StoreItemRepository
from src.modules.users.repository import UserRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from src.core.database.service import DatabaseService

MAX_ITEM_NAME_LENGTH = 128
MAX_IMAGE_ID_LENGTH = 128

NAME_TYPE_TAKEN = "Item with such name and type already exists"
IMAGE_ID_TAKEN = "Item with such image id already exists"


def serialize_item(item: StoreItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "name": item.name,
        "description": item.description,
        "type": item.type,
        "coins_price": item.coins_price,
        "gems_price": item.gems_price,
        "image_id": item.image_id,
        "on_sale": item.on_sale,
        "sale_coins_price": item.sale_coins_price,
        "sale_gems_price": item.sale_gems_price,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


class StoreItemsService(BaseService):
    """
    Public Methods
    --------------
    - create() / read() / update() / delete() / list() -> Catalog CRUD
    - get_user_items_ids() -> Every item a user owns
    - get_equipped_user_items_ids() -> Only the equipped ones
    """

    def __init__(self, db: DatabaseService, logger: Logger) -> None:
        super().__init__(db, logger)
        self._items = StoreItemRepository()
        self._possessions = PossessionRepository()
        self._users = UserRepository()

    async def _ensure_unique(
        self,
        session: AsyncSession,
        name: str,
        item_type: int,
        image_id: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        if await self._items.name_type_taken(session, name, item_type, exclude_id):
            raise AlreadyExistsError("StoreItem", NAME_TYPE_TAKEN)
        if await self._items.image_id_taken(session, image_id, exclude_id):
            raise AlreadyExistsError("StoreItem", IMAGE_ID_TAKEN)

    # ========================================================================
    # Catalog CRUD
    # ========================================================================

    async def create(
        self,
        name: str,
        item_type: int,
        image_id: str,
        description: str = "",
        coins_price: int = 0,
        gems_price: int = 0,
        on_sale: bool = False,
        sale_coins_price: int = 0,
        sale_gems_price: int = 0,
    ) -> Dict[str, Any]:
        """
        Add an item to the catalog.

        Raises:
            ValidationError: bad field values
            AlreadyExistsError: ``(name, type)`` checked before ``image_id``
        """
        name = InputValidator.validate_string(name, "name", max_length=MAX_ITEM_NAME_LENGTH)
        item_type = InputValidator.validate_integer(item_type, "type", min_value=0)
        image_id = InputValidator.validate_string(
            image_id, "image_id", max_length=MAX_IMAGE_ID_LENGTH
        )
        description = InputValidator.optional_string(description, "description") or ""
        coins_price = InputValidator.validate_non_negative_integer(coins_price, "coins_price")
        gems_price = InputValidator.validate_non_negative_integer(gems_price, "gems_price")
        sale_coins_price = InputValidator.validate_non_negative_integer(
            sale_coins_price, "sale_coins_price"
        )
        sale_gems_price = InputValidator.validate_non_negative_integer(
            sale_gems_price, "sale_gems_price"
        )

        self.log_operation("create_item", item_name=name, item_type=item_type, image_id=image_id)

        try:
            async with self.db.get_transaction() as session:
                await self._ensure_unique(session, name, item_type, image_id)

                item = self._items.add(
                    session,
                    StoreItem(
                        name=name,
                        description=description,
                        type=item_type,
                        image_id=image_id,
                        coins_price=coins_price,
                        gems_price=gems_price,
                        on_sale=bool(on_sale),
                        sale_coins_price=sale_coins_price,
                        sale_gems_price=sale_gems_price,
                    ),
                )
                await self._items.flush(session)
                await session.refresh(item)

                result = serialize_item(item)

        except IntegrityError as exc:
            self.log.info(
                "Item creation hit a unique constraint",
                extra={"item_name": name, "image_id": image_id},
            )
            raise AlreadyExistsError(
                "StoreItem", "Item with such name, type or image id already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "create_item", exc, "Could not create new item", item_name=name
            ) from exc

        self.log.info("Item created", extra={"item_id": result["id"], "item_name": name})
        return result

    async def read(self, item_id: str) -> Dict[str, Any]:
        item_id = InputValidator.validate_identifier(item_id)
        self.log_operation("read_item", item_id=item_id)

        try:
            async with self.db.get_session() as session:
                item = await self._items.get(session, item_id)
                if item is None:
                    raise NotFoundError("Item", item_id)
                return serialize_item(item)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "read_item", exc, "Could not read item", item_id=item_id
            ) from exc

    async def update(
        self,
        item_id: str,
        name: Optional[str] = None,
        item_type: Optional[int] = None,
        image_id: Optional[str] = None,
        description: Optional[str] = None,
        coins_price: Optional[int] = None,
        gems_price: Optional[int] = None,
        sale_coins_price: Optional[int] = None,
        sale_gems_price: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Merge the provided fields into an existing item.

        Blank strings and zero numbers count as "not provided". Setting
        either sale price to a non-zero value replaces both sale prices and
        turns ``on_sale`` on.

        Raises:
            NotFoundError: item does not exist
            AlreadyExistsError: merged ``(name, type)`` or ``image_id``
                collides with another item
        """
        item_id = InputValidator.validate_identifier(item_id)
        name = InputValidator.optional_string(name, "name", max_length=MAX_ITEM_NAME_LENGTH)
        image_id = InputValidator.optional_string(
            image_id, "image_id", max_length=MAX_IMAGE_ID_LENGTH
        )
        description = InputValidator.optional_string(description, "description")
        if item_type is not None:
            item_type = InputValidator.validate_integer(item_type, "type", min_value=0)

        prices: Dict[str, int] = {}
        for field_name, value in (
            ("coins_price", coins_price),
            ("gems_price", gems_price),
            ("sale_coins_price", sale_coins_price),
            ("sale_gems_price", sale_gems_price),
        ):
            if value is not None:
                prices[field_name] = InputValidator.validate_non_negative_integer(
                    value, field_name
                )

        self.log_operation("update_item", item_id=item_id)

        try:
            async with self.db.get_transaction() as session:
                item = await self._items.get(session, item_id, for_update=True)
                if item is None:
                    raise NotFoundError("Item", item_id)

                merged_name = name or item.name
                merged_type = item_type if item_type else item.type
                merged_image_id = image_id or item.image_id
                await self._ensure_unique(
                    session, merged_name, merged_type, merged_image_id, exclude_id=item.id
                )

                item.name = merged_name
                item.type = merged_type
                item.image_id = merged_image_id
                if description:
                    item.description = description
                if prices.get("coins_price"):
                    item.coins_price = prices["coins_price"]
                if prices.get("gems_price"):
                    item.gems_price = prices["gems_price"]

                sale_coins = prices.get("sale_coins_price", 0)
                sale_gems = prices.get("sale_gems_price", 0)
                if sale_coins or sale_gems:
                    item.on_sale = True
                    item.sale_coins_price = sale_coins
                    item.sale_gems_price = sale_gems

                await self._items.flush(session)
                await session.refresh(item)
                result = serialize_item(item)

        except IntegrityError as exc:
            raise AlreadyExistsError(
                "StoreItem", "Item with such name, type or image id already exists"
            ) from exc
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "update_item", exc, "Could not update item", item_id=item_id
            ) from exc

        self.log.info("Item updated", extra={"item_id": item_id})
        return result

    async def delete(self, item_id: str) -> None:
        """Missing items are not an error."""
        item_id = InputValidator.validate_identifier(item_id)
        self.log_operation("delete_item", item_id=item_id)

        try:
            async with self.db.get_transaction() as session:
                deleted = await self._items.delete_where(session, StoreItem.id == item_id)
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                "delete_item", exc, "Could not delete item", item_id=item_id
            ) from exc

        self.log.info("Item deleted", extra={"item_id": item_id, "deleted": deleted})

    async def list(self) -> Dict[str, Any]:
        self.log_operation("list_items")

        try:
            async with self.db.get_session() as session:
                items = await self._items.find_many_where(
                    session, order_by=[StoreItem.name, StoreItem.type]
                )
                return {"results": [serialize_item(item) for item in items]}
        except SQLAlchemyError as exc:
            raise self.storage_failure("list_items", exc, "Could not list items") from exc

    # ========================================================================
    # Ownership views
    # ========================================================================

    async def get_user_items_ids(self, user_id: str) -> Dict[str, Any]:
        return await self._user_items("get_user_items_ids", user_id, equipped_only=False)

    async def get_equipped_user_items_ids(self, user_id: str) -> Dict[str, Any]:
        return await self._user_items(
            "get_equipped_user_items_ids", user_id, equipped_only=True
        )

    async def _user_items(
        self, operation: str, user_id: str, equipped_only: bool
    ) -> Dict[str, Any]:
        user_id = InputValidator.validate_identifier(user_id, "user_id")
        self.log_operation(operation, user_id=user_id)

        try:
            async with self.db.get_session() as session:
                if await self._users.get(session, user_id) is None:
                    raise NotFoundError("User", user_id)

                possessions = await self._possessions.for_user(
                    session, user_id, equipped_only=equipped_only
                )
                return {
                    "items": [
                        {"item_id": p.store_item_id, "equipped": p.equipped}
                        for p in possessions
                    ]
                }
        except SQLAlchemyError as exc:
            raise self.storage_failure(
                operation, exc, "Could not fetch user items", user_id=user_id
            ) from exc
