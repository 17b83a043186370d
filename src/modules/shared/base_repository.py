"""
Generic data access over one mapped model.

Repositories only run statements on a session the caller opened. Commit,
rollback and every business decision stay in the service. Pass
``for_update=True`` for any read that a later write in the same transaction
depends on.

    class PossessionRepository(BaseRepository[Possession]):
        async def for_user(self, session, user_id):
            return await self.find_many_where(session, Possession.user_id == user_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Generic, List, Optional, Sequence, Type, TypeVar

from sqlalchemy import Select, delete, func, select

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy import ColumnElement
    from sqlalchemy.ext.asyncio import AsyncSession

T = TypeVar("T")


class BaseRepository(Generic[T]):
    def __init__(self, model_class: Type[T], logger: Logger) -> None:
        self.model_class = model_class
        self.model_name = model_class.__name__
        self.log = logger

    def _trace(self, action: str, **fields: Any) -> None:
        self.log.debug(f"{self.model_name}.{action}", extra={"model": self.model_name, **fields})

    def _query(
        self,
        conditions: Sequence[ColumnElement[bool]],
        order_by: Optional[List[Any]] = None,
        for_update: bool = False,
    ) -> Select:
        stmt = select(self.model_class).where(*conditions)
        if order_by:
            stmt = stmt.order_by(*order_by)
        return stmt.with_for_update() if for_update else stmt

    async def get(
        self, session: AsyncSession, id_value: Any, for_update: bool = False
    ) -> Optional[T]:
        """Primary-key lookup."""
        row = await session.get(self.model_class, id_value, with_for_update=for_update)
        self._trace("get", key=id_value, hit=row is not None, locked=for_update)
        return row

    async def find_one_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        for_update: bool = False,
    ) -> Optional[T]:
        result = await session.execute(self._query(conditions, for_update=for_update).limit(1))
        row = result.scalars().first()
        self._trace("find_one", hit=row is not None, locked=for_update)
        return row

    async def find_many_where(
        self,
        session: AsyncSession,
        *conditions: ColumnElement[bool],
        order_by: Optional[List[Any]] = None,
        for_update: bool = False,
    ) -> List[T]:
        result = await session.execute(self._query(conditions, order_by, for_update))
        rows = list(result.scalars())
        self._trace("find_many", rows=len(rows), locked=for_update)
        return rows

    async def exists(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> bool:
        stmt = select(func.count()).select_from(self.model_class).where(*conditions)
        return (await session.execute(stmt)).scalar_one() > 0

    def add(self, session: AsyncSession, instance: T) -> T:
        session.add(instance)
        self._trace("add")
        return instance

    async def delete(self, session: AsyncSession, instance: T) -> None:
        await session.delete(instance)
        self._trace("delete")

    async def delete_where(self, session: AsyncSession, *conditions: ColumnElement[bool]) -> int:
        """Bulk delete. Returns the row count; zero is not an error."""
        result = await session.execute(delete(self.model_class).where(*conditions))
        self._trace("delete_where", rows=result.rowcount)
        return result.rowcount

    async def flush(self, session: AsyncSession) -> None:
        await session.flush()
