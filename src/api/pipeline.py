"""
Request Pipeline
================

Purpose
-------
Runs every inbound call through the same ordered stages before any service
code executes:

1. Bearer extraction from the ``Authorization`` header
2. Claims decode (signature checked only when configured)
3. Expiry and policy check through ``AuthorizationGuard``
4. Business logic under the request deadline

Public operations skip stages 1-3. A denial never reaches storage.

Observability
-------------
Each call runs inside a ``LogContext`` carrying the operation name, a
request id and (once decoded) the caller's user id. Denials and deadline
expiries are logged at warning level with their reason.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable, Dict, Optional, TypeVar

from src.core.auth.claims import Claims, ClaimsDecodeError
from src.core.auth.guard import INVALID_CREDENTIAL, Policy
from src.core.logging.logger import LogContext, set_log_context
from src.modules.shared.exceptions import DeadlineExceededError, UnauthenticatedError

if TYPE_CHECKING:
    from logging import Logger

    from src.core.auth.claims import ClaimsDecoder
    from src.core.auth.guard import AuthorizationGuard

T = TypeVar("T")

BEARER_SCHEME = "bearer"


def extract_bearer_credential(authorization: Optional[str]) -> str:
    """
    Return the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        UnauthenticatedError: header missing, wrong scheme or empty token
    """
    if not authorization:
        raise UnauthenticatedError(INVALID_CREDENTIAL)

    parts = authorization.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
        raise UnauthenticatedError(INVALID_CREDENTIAL)

    token = parts[1].strip()
    if not token:
        raise UnauthenticatedError(INVALID_CREDENTIAL)
    return token


@dataclass(frozen=True)
class OperationSpec:
    """An operation name and the policy that gates it."""

    name: str
    policy: Policy


OPERATIONS: Dict[str, OperationSpec] = {
    spec.name: spec
    for spec in (
        OperationSpec("Users/Create", Policy.PUBLIC),
        OperationSpec("Users/Login", Policy.PUBLIC),
        OperationSpec("Users/Read", Policy.SELF_ALIAS_OR_ADMIN),
        OperationSpec("Users/Delete", Policy.SELF_OR_ADMIN),
        OperationSpec("Users/Update", Policy.SELF_OR_ADMIN),
        OperationSpec("Users/List", Policy.AUTHENTICATED),
        OperationSpec("Users/GrantCurrencies", Policy.HIGH_PRIVILEGE),
        OperationSpec("UsersService/GetVersion", Policy.HIGH_PRIVILEGE),
        OperationSpec("StoreItems/Create", Policy.HIGH_PRIVILEGE),
        OperationSpec("StoreItems/Read", Policy.AUTHENTICATED),
        OperationSpec("StoreItems/Update", Policy.HIGH_PRIVILEGE),
        OperationSpec("StoreItems/Delete", Policy.HIGH_PRIVILEGE),
        OperationSpec("StoreItems/List", Policy.AUTHENTICATED),
        OperationSpec("StoreItems/BuyByUser", Policy.SELF_OR_ADMIN),
        OperationSpec("StoreItems/EquipByUser", Policy.SELF_OR_ADMIN),
        OperationSpec("StoreItems/ThrowAwayByUser", Policy.HIGH_PRIVILEGE),
        OperationSpec("StoreItems/GetUserItemsIds", Policy.SELF_OR_ADMIN_OR_SERVICE),
        OperationSpec(
            "StoreItems/GetEquippedUserItemsIds", Policy.SELF_OR_ADMIN_OR_SERVICE
        ),
        OperationSpec("UsersStats/GetStats", Policy.AUTHENTICATED),
        OperationSpec("UsersStats/UpdateStats", Policy.HIGH_PRIVILEGE),
        OperationSpec("NewsService/Create", Policy.HIGH_PRIVILEGE),
        OperationSpec("NewsService/Read", Policy.AUTHENTICATED),
        OperationSpec("NewsService/List", Policy.AUTHENTICATED),
        OperationSpec("NewsService/Update", Policy.HIGH_PRIVILEGE),
    )
}


class RequestPipeline:
    """
    Args:
        guard: Policy evaluator
        decoder: Bearer token decoder
        timeout_seconds: Deadline for the business-logic stage
        logger: Structured logger
    """

    def __init__(
        self,
        guard: AuthorizationGuard,
        decoder: ClaimsDecoder,
        timeout_seconds: float,
        logger: Logger,
    ) -> None:
        self.guard = guard
        self.decoder = decoder
        self.timeout_seconds = timeout_seconds
        self.log = logger

    def authenticate(self, authorization: Optional[str]) -> Claims:
        token = extract_bearer_credential(authorization)
        try:
            return self.decoder.decode(token)
        except ClaimsDecodeError as exc:
            self.log.info(
                "Bearer token rejected",
                extra={"reason": str(exc)},
            )
            raise UnauthenticatedError(INVALID_CREDENTIAL) from exc

    def authorize(
        self,
        operation: OperationSpec,
        authorization: Optional[str],
        subject_id: Optional[str] = None,
    ) -> Optional[Claims]:
        """
        Stages 1-3. Returns the caller's claims, or None for public calls.

        Raises:
            UnauthenticatedError: any stage denied the call
        """
        if operation.policy is Policy.PUBLIC:
            return None

        claims = self.authenticate(authorization)
        if claims.user_id:
            set_log_context(user_id=claims.user_id)

        decision = self.guard.authorize(
            claims, operation.policy, subject_id=subject_id, operation=operation.name
        )
        if not decision.allowed:
            self.log.warning(
                "Authorization denied",
                extra={
                    "reason": decision.reason,
                    "policy": operation.policy.value,
                    "subject_id": subject_id,
                },
            )
            raise UnauthenticatedError(decision.reason)

        return claims

    async def run(
        self,
        operation: OperationSpec,
        authorization: Optional[str],
        handler: Callable[[], Awaitable[T]],
        subject_id: Optional[str] = None,
    ) -> T:
        """
        Authorize, then await ``handler()`` under the deadline.

        On timeout the handler task is cancelled, which rolls back any open
        transaction.

        Raises:
            UnauthenticatedError: authorization failed
            DeadlineExceededError: handler did not finish in time
        """
        async with LogContext(
            endpoint=operation.name, operation=operation.name, component="api"
        ):
            self.authorize(operation, authorization, subject_id)

            start = time.perf_counter()
            try:
                result = await asyncio.wait_for(handler(), timeout=self.timeout_seconds)
            except asyncio.TimeoutError as exc:
                self.log.warning(
                    "Deadline exceeded",
                    extra={"timeout_seconds": self.timeout_seconds},
                )
                raise DeadlineExceededError(operation.name, self.timeout_seconds) from exc

            self.log.debug(
                "Operation completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )
            return result
