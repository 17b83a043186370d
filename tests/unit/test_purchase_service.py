"""
Tests for PurchaseService.

Purpose
-------
Buying debits the active price atomically and records ownership; throwing
away refunds the base price.

Test Coverage
-------------
- Regular and sale prices
- Insufficient balance leaves no trace (gems checked before coins)
- Missing user / item
- Re-buying an owned item
- Refund and possession removal
- Storage failure mid-transaction rolls every write back
"""

import pytest
from sqlalchemy.exc import OperationalError

from src.database.models import StoreItem
from src.modules.shared.exceptions import InsufficientResourcesError, InternalError, NotFoundError
from src.modules.store import active_price
from src.modules.store.repositories import PossessionRepository
from src.modules.users.repository import UserRepository

pytestmark = pytest.mark.database


@pytest.fixture
def funded_user(create_user, currencies_service):
    """Registered user holding the given balances."""

    async def _funded(coins: int = 0, gems: int = 0, name: str = ""):
        user = await create_user(name)
        if coins or gems:
            await currencies_service.grant_currencies(
                user["id"], add_coins=coins, add_gems=gems
            )
        return user

    return _funded


async def _balance(users_service, user_id):
    user = await users_service.read(user_id)
    return user["coins"], user["gems"]


async def _flush_then_fail(session):
    """Send the pending writes, then fail as a dropped connection would."""
    await session.flush()
    raise OperationalError("UPDATE users", {}, Exception("connection lost"))


# ============================================================================
# BUY
# ============================================================================


@pytest.mark.asyncio
class TestBuyByUser:
    async def test_debits_regular_price(
        self, purchase_service, users_service, store_items_service, funded_user, create_item
    ):
        # Arrange
        user = await funded_user(coins=1000, gems=100)
        item = await create_item("Sword", coins_price=100, gems_price=0)

        # Act
        await purchase_service.buy_by_user(user["id"], item["id"])

        # Assert
        assert await _balance(users_service, user["id"]) == (900, 100)
        owned = await store_items_service.get_user_items_ids(user["id"])
        assert owned == {"items": [{"item_id": item["id"], "equipped": False}]}

    async def test_debits_sale_price(
        self, purchase_service, users_service, funded_user, create_item
    ):
        user = await funded_user(coins=1000, gems=100)
        item = await create_item(
            "Shield", coins_price=100, on_sale=True, sale_coins_price=50
        )

        await purchase_service.buy_by_user(user["id"], item["id"])

        assert await _balance(users_service, user["id"]) == (950, 100)

    async def test_not_enough_gems_changes_nothing(
        self, purchase_service, users_service, store_items_service, funded_user, create_item
    ):
        user = await funded_user(coins=1000, gems=0)
        item = await create_item("Crown", gems_price=10)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await purchase_service.buy_by_user(user["id"], item["id"])

        assert exc_info.value.message == "Not enough gems"
        assert await _balance(users_service, user["id"]) == (1000, 0)
        assert (await store_items_service.get_user_items_ids(user["id"]))["items"] == []

    async def test_gems_checked_before_coins(
        self, purchase_service, funded_user, create_item
    ):
        user = await funded_user()
        item = await create_item("Orb", coins_price=10, gems_price=10)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await purchase_service.buy_by_user(user["id"], item["id"])

        assert exc_info.value.resource == "gems"

    async def test_not_enough_coins(self, purchase_service, funded_user, create_item):
        user = await funded_user(coins=99, gems=5)
        item = await create_item("Axe", coins_price=100)

        with pytest.raises(InsufficientResourcesError) as exc_info:
            await purchase_service.buy_by_user(user["id"], item["id"])

        assert exc_info.value.message == "Not enough coins"

    async def test_exact_balance_is_enough(
        self, purchase_service, users_service, funded_user, create_item
    ):
        user = await funded_user(coins=100, gems=10)
        item = await create_item("Bow", coins_price=100, gems_price=10)

        await purchase_service.buy_by_user(user["id"], item["id"])

        assert await _balance(users_service, user["id"]) == (0, 0)

    async def test_free_item(
        self, purchase_service, store_items_service, funded_user, create_item
    ):
        user = await funded_user()
        item = await create_item("Stick")

        await purchase_service.buy_by_user(user["id"], item["id"])

        owned = await store_items_service.get_user_items_ids(user["id"])
        assert [i["item_id"] for i in owned["items"]] == [item["id"]]

    async def test_rebuy_debits_again_without_duplicate(
        self, purchase_service, users_service, store_items_service, funded_user, create_item
    ):
        user = await funded_user(coins=300)
        item = await create_item("Helmet", coins_price=100)

        await purchase_service.buy_by_user(user["id"], item["id"])
        await purchase_service.buy_by_user(user["id"], item["id"])

        assert await _balance(users_service, user["id"]) == (100, 0)
        owned = await store_items_service.get_user_items_ids(user["id"])
        assert len(owned["items"]) == 1

    async def test_unknown_item(self, purchase_service, funded_user):
        user = await funded_user(coins=10)

        with pytest.raises(NotFoundError) as exc_info:
            await purchase_service.buy_by_user(user["id"], "no-such-item")

        assert exc_info.value.message == "Item not found"

    async def test_unknown_user(self, purchase_service, create_item):
        item = await create_item("Ring")

        with pytest.raises(NotFoundError) as exc_info:
            await purchase_service.buy_by_user("no-such-user", item["id"])

        assert exc_info.value.message == "User not found"


# ============================================================================
# THROW AWAY
# ============================================================================


@pytest.mark.asyncio
class TestThrowAwayByUser:
    async def test_refunds_base_price(
        self, purchase_service, users_service, store_items_service, funded_user, create_item
    ):
        user = await funded_user(coins=1000, gems=100)
        item = await create_item(
            "Cape", coins_price=100, gems_price=10, on_sale=True, sale_coins_price=50
        )
        await purchase_service.buy_by_user(user["id"], item["id"])

        await purchase_service.throw_away_by_user(user["id"], item["id"])

        # Bought for 50 on sale, refunded the full 100 / 10
        assert await _balance(users_service, user["id"]) == (1050, 110)
        assert (await store_items_service.get_user_items_ids(user["id"]))["items"] == []

    async def test_not_owned(self, purchase_service, funded_user, create_item):
        user = await funded_user()
        item = await create_item("Boots")

        with pytest.raises(NotFoundError) as exc_info:
            await purchase_service.throw_away_by_user(user["id"], item["id"])

        assert exc_info.value.message == "Possession not found"

    async def test_unknown_item(self, purchase_service, funded_user):
        user = await funded_user()

        with pytest.raises(NotFoundError) as exc_info:
            await purchase_service.throw_away_by_user(user["id"], "nope")

        assert exc_info.value.message == "Item not found"

# ============================================================================
# STORAGE FAILURES
# ============================================================================


@pytest.mark.asyncio
class TestRollbackOnStorageFailure:
    async def test_buy_restores_balance(
        self, purchase_service, users_service, store_items_service, funded_user, create_item, mocker
    ):
        # Arrange
        user = await funded_user(coins=1000, gems=100)
        item = await create_item("Lance", coins_price=100)
        mocker.patch.object(PossessionRepository, "flush", side_effect=_flush_then_fail)

        # Act
        with pytest.raises(InternalError) as exc_info:
            await purchase_service.buy_by_user(user["id"], item["id"])

        # Assert
        assert exc_info.value.message == "Could not proceed with the operation"
        assert await _balance(users_service, user["id"]) == (1000, 100)
        assert (await store_items_service.get_user_items_ids(user["id"]))["items"] == []

    async def test_throw_away_keeps_possession(
        self, purchase_service, users_service, store_items_service, funded_user, create_item, mocker
    ):
        # Arrange
        user = await funded_user(coins=1000, gems=100)
        item = await create_item("Mace", coins_price=100, gems_price=10)
        await purchase_service.buy_by_user(user["id"], item["id"])
        mocker.patch.object(UserRepository, "flush", side_effect=_flush_then_fail)

        # Act
        with pytest.raises(InternalError):
            await purchase_service.throw_away_by_user(user["id"], item["id"])

        # Assert
        assert await _balance(users_service, user["id"]) == (900, 90)
        owned = await store_items_service.get_user_items_ids(user["id"])
        assert [i["item_id"] for i in owned["items"]] == [item["id"]]


class TestActivePrice:
    def test_sale_price_wins_when_on_sale(self):
        item = StoreItem(
            coins_price=100,
            gems_price=10,
            on_sale=True,
            sale_coins_price=50,
            sale_gems_price=0,
        )

        assert active_price(item) == (50, 0)

    def test_regular_price(self):
        item = StoreItem(coins_price=100, gems_price=10, on_sale=False)

        assert active_price(item) == (100, 10)
