"""
Tests for EquipService.

Purpose
-------
At most one equipped item per user and item type; equipping swaps within
the slot and leaves other slots alone.
"""

import pytest
from sqlalchemy.exc import OperationalError

from src.modules.shared.exceptions import InternalError, NotFoundError
from src.modules.store.repositories import PossessionRepository

pytestmark = [pytest.mark.asyncio, pytest.mark.database]


@pytest.fixture
def owner(create_user, purchase_service):
    """Register a user who owns every given (free) item."""

    async def _owner(*items):
        user = await create_user()
        for item in items:
            await purchase_service.buy_by_user(user["id"], item["id"])
        return user

    return _owner


async def _equipped(store_items_service, user_id):
    result = await store_items_service.get_equipped_user_items_ids(user_id)
    return {entry["item_id"] for entry in result["items"]}


class TestEquipByUser:
    async def test_equip_into_empty_slot(
        self, equip_service, store_items_service, owner, create_item
    ):
        sword = await create_item("Sword", item_type=1)
        user = await owner(sword)

        result = await equip_service.equip_by_user(user["id"], sword["id"])

        assert result["changed"] is True
        assert result["previous_item_id"] is None
        assert await _equipped(store_items_service, user["id"]) == {sword["id"]}

    async def test_swap_within_slot(
        self, equip_service, store_items_service, owner, create_item
    ):
        # Arrange
        sword = await create_item("Sword", item_type=1)
        axe = await create_item("Axe", item_type=1)
        user = await owner(sword, axe)
        await equip_service.equip_by_user(user["id"], sword["id"])

        # Act
        result = await equip_service.equip_by_user(user["id"], axe["id"])

        # Assert
        assert result["previous_item_id"] == sword["id"]
        assert await _equipped(store_items_service, user["id"]) == {axe["id"]}
        owned = await store_items_service.get_user_items_ids(user["id"])
        assert {e["item_id"]: e["equipped"] for e in owned["items"]} == {
            sword["id"]: False,
            axe["id"]: True,
        }

    async def test_other_slots_untouched(
        self, equip_service, store_items_service, owner, create_item
    ):
        sword = await create_item("Sword", item_type=1)
        hat = await create_item("Hat", item_type=2)
        user = await owner(sword, hat)

        await equip_service.equip_by_user(user["id"], hat["id"])
        await equip_service.equip_by_user(user["id"], sword["id"])

        assert await _equipped(store_items_service, user["id"]) == {sword["id"], hat["id"]}

    async def test_reequip_is_noop(self, equip_service, store_items_service, owner, create_item):
        sword = await create_item("Sword", item_type=1)
        user = await owner(sword)
        await equip_service.equip_by_user(user["id"], sword["id"])

        result = await equip_service.equip_by_user(user["id"], sword["id"])

        assert result["changed"] is False
        assert result["previous_item_id"] == sword["id"]
        assert await _equipped(store_items_service, user["id"]) == {sword["id"]}

    async def test_unowned_item(self, equip_service, create_user, create_item):
        user = await create_user()
        sword = await create_item("Sword", item_type=1)

        with pytest.raises(NotFoundError) as exc_info:
            await equip_service.equip_by_user(user["id"], sword["id"])

        assert exc_info.value.message == "Possession not found"

    async def test_unknown_item(self, equip_service, create_user):
        user = await create_user()

        with pytest.raises(NotFoundError) as exc_info:
            await equip_service.equip_by_user(user["id"], "missing")

        assert exc_info.value.message == "Item not found"

    async def test_slots_are_per_user(
        self, equip_service, store_items_service, owner, create_item
    ):
        sword = await create_item("Sword", item_type=1)
        axe = await create_item("Axe", item_type=1)
        first = await owner(sword, axe)
        second = await owner(sword, axe)

        await equip_service.equip_by_user(first["id"], sword["id"])
        await equip_service.equip_by_user(second["id"], axe["id"])

        assert await _equipped(store_items_service, first["id"]) == {sword["id"]}
        assert await _equipped(store_items_service, second["id"]) == {axe["id"]}

    async def test_failed_swap_keeps_previous_item(
        self, equip_service, store_items_service, owner, create_item, mocker
    ):
        # Arrange
        sword = await create_item("Sword", item_type=1)
        axe = await create_item("Axe", item_type=1)
        user = await owner(sword, axe)
        await equip_service.equip_by_user(user["id"], sword["id"])

        async def flush_then_fail(session):
            await session.flush()
            raise OperationalError("UPDATE possessions", {}, Exception("connection lost"))

        mocker.patch.object(PossessionRepository, "flush", side_effect=flush_then_fail)

        # Act
        with pytest.raises(InternalError) as exc_info:
            await equip_service.equip_by_user(user["id"], axe["id"])

        # Assert
        assert exc_info.value.message == "Could not equip item"
        owned = await store_items_service.get_user_items_ids(user["id"])
        assert {e["item_id"]: e["equipped"] for e in owned["items"]} == {
            sword["id"]: True,
            axe["id"]: False,
        }
