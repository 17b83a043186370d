"""
Store item and possession data access.
"""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.logging.logger import get_logger
from src.database.models import Possession, StoreItem
from src.modules.shared.base_repository import BaseRepository


class StoreItemRepository(BaseRepository[StoreItem]):
    def __init__(self) -> None:
        super().__init__(StoreItem, get_logger(f"{__name__}.StoreItemRepository"))

    async def name_type_taken(
        self,
        session: AsyncSession,
        name: str,
        item_type: int,
        exclude_id: Optional[str] = None,
    ) -> bool:
        conditions = [StoreItem.name == name, StoreItem.type == item_type]
        if exclude_id is not None:
            conditions.append(StoreItem.id != exclude_id)
        return await self.exists(session, *conditions)

    async def image_id_taken(
        self,
        session: AsyncSession,
        image_id: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        conditions = [StoreItem.image_id == image_id]
        if exclude_id is not None:
            conditions.append(StoreItem.id != exclude_id)
        return await self.exists(session, *conditions)


class PossessionRepository(BaseRepository[Possession]):
    def __init__(self) -> None:
        super().__init__(Possession, get_logger(f"{__name__}.PossessionRepository"))

    async def find(
        self,
        session: AsyncSession,
        user_id: str,
        item_id: str,
        for_update: bool = False,
    ) -> Optional[Possession]:
        return await self.find_one_where(
            session,
            Possession.user_id == user_id,
            Possession.store_item_id == item_id,
            for_update=for_update,
        )

    async def for_user(
        self,
        session: AsyncSession,
        user_id: str,
        equipped_only: bool = False,
    ) -> List[Possession]:
        conditions = [Possession.user_id == user_id]
        if equipped_only:
            conditions.append(Possession.equipped.is_(True))
        return await self.find_many_where(
            session, *conditions, order_by=[Possession.store_item_id]
        )

    async def of_type_for_update(
        self,
        session: AsyncSession,
        user_id: str,
        item_type: int,
    ) -> List[Possession]:
        """
        Lock every possession the user holds in one equip slot.

        Only the possession rows are locked; the joined catalog rows are not.
        """
        stmt = (
            select(Possession)
            .join(StoreItem, StoreItem.id == Possession.store_item_id)
            .where(Possession.user_id == user_id, StoreItem.type == item_type)
            .order_by(Possession.store_item_id)
            .with_for_update(of=Possession)
        )
        result = await session.execute(stmt)
        possessions = list(result.scalars().all())

        self.log.debug(
            "Repository.of_type_for_update: Possession",
            extra={
                "user_id": user_id,
                "item_type": item_type,
                "found_count": len(possessions),
            },
        )

        return possessions
