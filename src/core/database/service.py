"""
Async engine and session management.

One ``DatabaseService`` is created at startup and injected into every domain
service. All writes go through ``get_transaction()``: it commits when the
block finishes and rolls back on any exception, including the
``CancelledError`` delivered when a request deadline expires. Service code
never calls ``commit()`` itself.

Pools: a ``StaticPool`` for in-memory SQLite (every session must see the
same connection), ``NullPool`` for server databases under
``ENVIRONMENT=testing`` and a bounded queue pool otherwise. PostgreSQL
sessions get ``SET LOCAL statement_timeout`` from
``DATABASE_STATEMENT_TIMEOUT_MS``.

    db = DatabaseService()
    await db.initialize()
    async with db.get_transaction() as session:
        user = await session.get(User, user_id, with_for_update=True)
        user.coins += 100
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from src.core.config.config import Config
from src.core.database.base import Base
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class DatabaseInitializationError(RuntimeError):
    """The engine could not be created from the configured URL."""


class DatabaseNotInitializedError(RuntimeError):
    """A session was requested before ``initialize()`` or after ``shutdown()``."""


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.endswith("://"))


def _engine_options(url: str, echo: bool) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": echo}

    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            options["poolclass"] = StaticPool
        return options

    if Config.is_testing():
        options["poolclass"] = NullPool
        return options

    options.update(
        pool_size=Config.DATABASE_POOL_SIZE,
        max_overflow=Config.DATABASE_MAX_OVERFLOW,
        pool_recycle=Config.DATABASE_POOL_RECYCLE,
        pool_timeout=Config.DATABASE_POOL_TIMEOUT,
        pool_pre_ping=True,
    )
    return options


def _enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    # SQLite only honours ON DELETE CASCADE when asked per connection
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class DatabaseService:
    def __init__(self, url: Optional[str] = None, echo: Optional[bool] = None) -> None:
        self._url = url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None
        self._statement_timeout_ms: Optional[int] = None
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Create the engine and session factory. Repeated calls are no-ops."""
        async with self._lock:
            if self._engine is not None:
                return

            url = self._url or Config.DATABASE_URL
            if not url:
                raise DatabaseInitializationError("DATABASE_URL is empty")
            echo = Config.DATABASE_ECHO if self._echo is None else self._echo

            try:
                engine = create_async_engine(url, **_engine_options(url, echo))
            except Exception as exc:
                logger.error(
                    "Database engine creation failed",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(f"cannot create engine: {exc}") from exc

            if url.startswith("sqlite"):
                _enable_sqlite_foreign_keys(engine)

            self._engine = engine
            self._sessions = async_sessionmaker(engine, expire_on_commit=False)
            self._statement_timeout_ms = (
                Config.DATABASE_STATEMENT_TIMEOUT_MS
                if engine.dialect.name == "postgresql"
                else None
            )
            logger.info(
                "Database ready",
                extra={"dialect": engine.dialect.name, "pool": type(engine.pool).__name__},
            )

    async def shutdown(self) -> None:
        async with self._lock:
            if self._engine is None:
                return
            try:
                await self._engine.dispose()
            finally:
                self._engine = None
                self._sessions = None
                self._statement_timeout_ms = None
            logger.info("Database engine disposed")

    async def create_schema(self) -> None:
        """``CREATE TABLE IF NOT EXISTS`` for every model."""
        engine = self._require_engine()

        import src.database.models  # noqa: F401  (registers the tables)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Schema ensured", extra={"tables": sorted(Base.metadata.tables)})

    async def drop_schema(self) -> None:
        engine = self._require_engine()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Schema dropped")

    async def health_check(self) -> bool:
        """``SELECT 1``; False when uninitialized or unreachable."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except DBAPIError as exc:
            logger.warning("Database health check failed", extra={"error_type": type(exc).__name__})
            return False
        return True

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def _require_engine(self) -> AsyncEngine:
        if self._engine is None:
            raise DatabaseNotInitializedError("call DatabaseService.initialize() first")
        return self._engine

    def _new_session(self) -> AsyncSession:
        self._require_engine()
        assert self._sessions is not None
        return self._sessions()

    async def _prepare(self, session: AsyncSession) -> None:
        if self._statement_timeout_ms is not None:
            await session.execute(
                text(f"SET LOCAL statement_timeout = {int(self._statement_timeout_ms)}")
            )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Read-only work. Nothing is committed."""
        async with self._new_session() as session:
            await self._prepare(session)
            yield session

    @asynccontextmanager
    async def get_transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Atomic unit of work: commit on success, rollback on any exception."""
        started = time.perf_counter()
        async with self._new_session() as session:
            await self._prepare(session)
            try:
                yield session
                await session.commit()
            except asyncio.CancelledError:
                await session.rollback()
                logger.warning(
                    "Transaction cancelled and rolled back",
                    extra={"elapsed_ms": round((time.perf_counter() - started) * 1000, 1)},
                )
                raise
            except DBAPIError as exc:
                await session.rollback()
                logger.error(
                    "Transaction failed in the database and was rolled back",
                    extra={"error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise
            except Exception:
                await session.rollback()
                raise
