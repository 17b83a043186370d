"""
Unit tests for the request pipeline.

Purpose
-------
Bearer extraction, authentication, authorization and the request deadline
run before (and around) any business logic.

Test Coverage
-------------
- Authorization header parsing
- Denied calls never reach the handler
- Deadline expiry cancels the handler and rolls back its transaction
- Operation table covers every endpoint
"""

import asyncio
from datetime import timedelta

import pytest

from src.api.pipeline import OPERATIONS, RequestPipeline, extract_bearer_credential
from src.core.auth.claims import ClaimsDecoder
from src.core.auth.guard import (
    HIGH_PRIVILEGE_REQUIRED,
    INVALID_CREDENTIAL,
    NOT_SELF,
    TOKEN_EXPIRED,
    AuthorizationGuard,
    Policy,
)
from src.core.logging.logger import get_logger
from src.database.models import User
from src.modules.shared.exceptions import DeadlineExceededError, UnauthenticatedError


@pytest.fixture
def pipeline() -> RequestPipeline:
    return RequestPipeline(
        guard=AuthorizationGuard(),
        decoder=ClaimsDecoder(),
        timeout_seconds=0.2,
        logger=get_logger("tests.RequestPipeline"),
    )


# ============================================================================
# BEARER EXTRACTION
# ============================================================================


class TestExtractBearerCredential:
    def test_extracts_token(self):
        assert extract_bearer_credential("Bearer abc.def.ghi") == "abc.def.ghi"

    def test_scheme_is_case_insensitive(self):
        assert extract_bearer_credential("bearer tok") == "tok"

    @pytest.mark.parametrize("header", [None, "", "Bearer", "Bearer   ", "Basic abc", "tok"])
    def test_invalid_headers(self, header):
        with pytest.raises(UnauthenticatedError) as exc_info:
            extract_bearer_credential(header)

        assert exc_info.value.message == INVALID_CREDENTIAL


# ============================================================================
# AUTHORIZATION STAGES
# ============================================================================


@pytest.mark.asyncio
class TestRun:
    async def test_public_operation_needs_no_header(self, pipeline, mocker):
        handler = mocker.AsyncMock(return_value={"ok": True})

        result = await pipeline.run(OPERATIONS["Users/Create"], None, handler)

        assert result == {"ok": True}
        handler.assert_awaited_once()

    async def test_missing_header_never_reaches_handler(self, pipeline, mocker):
        handler = mocker.AsyncMock()

        with pytest.raises(UnauthenticatedError) as exc_info:
            await pipeline.run(OPERATIONS["StoreItems/List"], None, handler)

        assert exc_info.value.message == INVALID_CREDENTIAL
        handler.assert_not_awaited()

    async def test_undecodable_token_is_invalid_credential(self, pipeline, mocker):
        handler = mocker.AsyncMock()

        with pytest.raises(UnauthenticatedError) as exc_info:
            await pipeline.run(OPERATIONS["StoreItems/List"], "Bearer garbage", handler)

        assert exc_info.value.message == INVALID_CREDENTIAL
        handler.assert_not_awaited()

    async def test_expired_token(self, pipeline, make_token, mocker):
        handler = mocker.AsyncMock()
        token = make_token(user_id="u1", expires_in=timedelta(seconds=-5))

        with pytest.raises(UnauthenticatedError) as exc_info:
            await pipeline.run(OPERATIONS["StoreItems/List"], f"Bearer {token}", handler)

        assert exc_info.value.message == TOKEN_EXPIRED
        handler.assert_not_awaited()

    async def test_non_admin_grant_denied(self, pipeline, make_token, mocker):
        handler = mocker.AsyncMock()
        token = make_token(user_id="u1")

        with pytest.raises(UnauthenticatedError) as exc_info:
            await pipeline.run(
                OPERATIONS["Users/GrantCurrencies"], f"Bearer {token}", handler, "u1"
            )

        assert exc_info.value.message == HIGH_PRIVILEGE_REQUIRED
        handler.assert_not_awaited()

    async def test_buy_for_other_user_denied(self, pipeline, make_token, mocker):
        handler = mocker.AsyncMock()
        token = make_token(user_id="u1")

        with pytest.raises(UnauthenticatedError) as exc_info:
            await pipeline.run(
                OPERATIONS["StoreItems/BuyByUser"], f"Bearer {token}", handler, "u2"
            )

        assert exc_info.value.message == NOT_SELF

    async def test_self_buy_allowed(self, pipeline, make_token, mocker):
        handler = mocker.AsyncMock(return_value=None)
        token = make_token(user_id="u1")

        await pipeline.run(
            OPERATIONS["StoreItems/BuyByUser"], f"Bearer {token}", handler, "u1"
        )

        handler.assert_awaited_once()


# ============================================================================
# DEADLINE
# ============================================================================


@pytest.mark.asyncio
class TestDeadline:
    async def test_slow_handler_exceeds_deadline(self, pipeline):
        async def slow():
            await asyncio.sleep(5)

        with pytest.raises(DeadlineExceededError) as exc_info:
            await pipeline.run(OPERATIONS["Users/Create"], None, slow)

        assert exc_info.value.operation == "Users/Create"

    @pytest.mark.database
    async def test_deadline_rolls_back_open_transaction(self, pipeline, db, create_user):
        """A write in flight when the deadline fires never becomes visible."""
        user = await create_user("slowpoke")

        async def slow_grant():
            async with db.get_transaction() as session:
                row = await session.get(User, user["id"])
                row.coins += 500
                await session.flush()
                await asyncio.sleep(5)

        with pytest.raises(DeadlineExceededError):
            await pipeline.run(OPERATIONS["Users/Create"], None, slow_grant)

        async with db.get_session() as session:
            row = await session.get(User, user["id"])
            assert row.coins == 0


class TestOperationTable:
    def test_public_operations(self):
        public = {name for name, op in OPERATIONS.items() if op.policy is Policy.PUBLIC}

        assert public == {"Users/Create", "Users/Login"}

    def test_every_endpoint_registered(self):
        assert len(OPERATIONS) == 24
