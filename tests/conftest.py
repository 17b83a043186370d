"""
Pytest Configuration and Fixtures for the Users Service Tests
==============================================================

Purpose
-------
Shared fixtures for unit, service and API tests.

Responsibilities
----------------
- Test environment variables (set before any ``src`` import)
- In-memory SQLite ``DatabaseService`` with a fresh schema per test
- Service instances wired the way ``ServiceContainer`` wires them
- Bearer token factory for caller claims
- ASGI client running the real application lifespan
- Testcontainers PostgreSQL for integration tests

Architecture Notes
------------------
- Service and API tests run against aiosqlite (fast, isolated)
- Integration tests use testcontainers (real PostgreSQL) and only run when
  ``RUN_INTEGRATION=1``
- Database fixtures provide a clean slate per test
"""

from __future__ import annotations

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault(
    "JWT_SECRET", "test-secret-for-hs256-signing-0123456789abcdef0123456789abcdef"
)

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, AsyncGenerator, Callable, Dict  # noqa: E402

import httpx  # noqa: E402
import jwt  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from src.api.app import create_app  # noqa: E402
from src.core.auth.claims import ClaimsDecoder  # noqa: E402
from src.core.auth.tokens import TokenIssuer  # noqa: E402
from src.core.database.service import DatabaseService  # noqa: E402
from src.core.logging.logger import get_logger  # noqa: E402
from src.modules.news import NewsService  # noqa: E402
from src.modules.stats import UsersStatsService  # noqa: E402
from src.modules.store import EquipService, PurchaseService, StoreItemsService  # noqa: E402
from src.modules.users import CurrenciesService, UsersService  # noqa: E402

TEST_SECRET = os.environ["JWT_SECRET"]
TEST_AUDIENCE = "medieval"
SQLITE_URL = "sqlite+aiosqlite:///:memory:"

# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless RUN_INTEGRATION=1."""
    if os.environ.get("RUN_INTEGRATION") == "1":
        return

    skip_integration = pytest.mark.skip(reason="set RUN_INTEGRATION=1 to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[DatabaseService, None]:
    """
    Initialized DatabaseService on a private in-memory SQLite database.

    Scope: function (fresh schema per test)
    """
    service = DatabaseService(url=SQLITE_URL)
    await service.initialize()
    await service.create_schema()
    yield service
    await service.shutdown()


# ============================================================================
# AUTH FIXTURES
# ============================================================================


@pytest.fixture
def token_issuer() -> TokenIssuer:
    return TokenIssuer(
        algorithm="HS256",
        signing_key=TEST_SECRET,
        ttl=timedelta(hours=1),
        audience=TEST_AUDIENCE,
        issuer="users-service",
    )


@pytest.fixture
def make_token() -> Callable[..., str]:
    """
    Factory for bearer tokens.

    Usage:
        make_token(user_id="u1")
        make_token(is_admin=True)
        make_token(aud="svc")
        make_token(expires_in=timedelta(seconds=-1))
    """

    def _make(
        user_id: str = "",
        username: str = "",
        user_email: str = "",
        is_admin: bool = False,
        aud: Any = TEST_AUDIENCE,
        expires_in: timedelta = timedelta(hours=1),
    ) -> str:
        payload: Dict[str, Any] = {
            "user_id": user_id,
            "username": username,
            "user_email": user_email,
            "is_admin": is_admin,
            "aud": aud,
            "exp": int((datetime.now(timezone.utc) + expires_in).timestamp()),
        }
        return jwt.encode(payload, TEST_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def bearer(make_token) -> Callable[..., Dict[str, str]]:
    """``Authorization`` header built from ``make_token`` arguments."""

    def _bearer(**claims: Any) -> Dict[str, str]:
        return {"Authorization": f"Bearer {make_token(**claims)}"}

    return _bearer


# ============================================================================
# SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def users_service(db, token_issuer) -> UsersService:
    return UsersService(
        db, token_issuer, get_logger("tests.UsersService"), service_version="1.0.0"
    )


@pytest.fixture
def currencies_service(db) -> CurrenciesService:
    return CurrenciesService(db, get_logger("tests.CurrenciesService"))


@pytest.fixture
def store_items_service(db) -> StoreItemsService:
    return StoreItemsService(db, get_logger("tests.StoreItemsService"))


@pytest.fixture
def purchase_service(db) -> PurchaseService:
    return PurchaseService(db, get_logger("tests.PurchaseService"))


@pytest.fixture
def equip_service(db) -> EquipService:
    return EquipService(db, get_logger("tests.EquipService"))


@pytest.fixture
def stats_service(db) -> UsersStatsService:
    return UsersStatsService(db, get_logger("tests.UsersStatsService"))


@pytest.fixture
def news_service(db) -> NewsService:
    return NewsService(db, get_logger("tests.NewsService"))


# ============================================================================
# DATA FACTORIES
# ============================================================================


@pytest.fixture
def create_user(users_service) -> Callable[..., Any]:
    """
    Register a user through UsersService.

    Usage:
        user = await create_user("alice")
    """
    counter = {"n": 0}

    async def _create(name: str = "", password: str = "secret") -> Dict[str, Any]:
        counter["n"] += 1
        name = name or f"player{counter['n']}"
        return await users_service.create(name, f"{name}@example.com", password)

    return _create


@pytest.fixture
def create_item(store_items_service) -> Callable[..., Any]:
    """
    Add a catalog item. Image ids are unique per call unless given.

    Usage:
        item = await create_item("Sword", item_type=1, coins_price=100)
    """
    counter = {"n": 0}

    async def _create(
        name: str = "",
        item_type: int = 1,
        image_id: str = "",
        **prices: Any,
    ) -> Dict[str, Any]:
        counter["n"] += 1
        return await store_items_service.create(
            name=name or f"item{counter['n']}",
            item_type=item_type,
            image_id=image_id or f"img-{counter['n']}",
            **prices,
        )

    return _create


# ============================================================================
# API FIXTURES
# ============================================================================


@pytest_asyncio.fixture
async def client(db, token_issuer) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    HTTP client bound to the ASGI app with its lifespan running.

    Signature verification is off, matching the default deployment.
    """
    app = create_app(
        db=db,
        token_issuer=token_issuer,
        decoder=ClaimsDecoder(),
        timeout_seconds=5.0,
    )
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            yield http


# ============================================================================
# INTEGRATION FIXTURES (testcontainers)
# ============================================================================


@pytest.fixture(scope="session")
def postgres_url():
    """
    PostgreSQL container URL for integration tests.

    Scope: session (one container for all integration tests)
    """
    from testcontainers.postgres import PostgresContainer

    with PostgresContainer("postgres:16-alpine", driver="asyncpg") as postgres:
        yield postgres.get_connection_url()


@pytest_asyncio.fixture
async def postgres_db(postgres_url) -> AsyncGenerator[DatabaseService, None]:
    service = DatabaseService(url=postgres_url)
    await service.initialize()
    await service.drop_schema()
    await service.create_schema()
    yield service
    await service.shutdown()
