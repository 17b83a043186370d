"""
Authorization guard.

Decides whether decoded claims may run an operation on a subject. The guard
is pure: it never touches storage, so a denied call never reaches the
database.

Evaluation order for every non-public call:
1. expiry (once, before anything else)
2. the high-privilege gate when the operation is in
   ``HIGH_PRIVILEGE_OPERATIONS``
3. the operation's own policy
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from src.core.auth.claims import Claims
from src.modules.shared.exceptions import UnauthenticatedError

SERVICE_AUDIENCE = "svc"

PUBLIC_OPERATIONS = frozenset({"Users/Create", "Users/Login"})

HIGH_PRIVILEGE_OPERATIONS = frozenset(
    {
        "Users/GrantCurrencies",
        "UsersService/GetVersion",
        "StoreItems/Create",
        "StoreItems/Update",
        "StoreItems/ThrowAwayByUser",
        "StoreItems/Delete",
        "UsersStats/UpdateStats",
        "NewsService/Create",
        "NewsService/Update",
    }
)

INVALID_CREDENTIAL = "Authorization failed - invalid header/token"
TOKEN_EXPIRED = "Authorization failed - token expired"
HIGH_PRIVILEGE_REQUIRED = "Authorization failed - high level access required"
NOT_SELF = "Not authorized for another user"


class Policy(Enum):
    PUBLIC = "public"
    AUTHENTICATED = "authenticated"
    SELF_OR_ADMIN = "self_or_admin"
    SELF_ALIAS_OR_ADMIN = "self_alias_or_admin"
    SELF_OR_ADMIN_OR_SERVICE = "self_or_admin_or_service"
    HIGH_PRIVILEGE = "high_privilege"


@dataclass(frozen=True)
class AuthorizationDecision:
    allowed: bool
    reason: str = ""

    @classmethod
    def allow(cls) -> "AuthorizationDecision":
        return cls(True)

    @classmethod
    def deny(cls, reason: str) -> "AuthorizationDecision":
        return cls(False, reason)


def is_high_privilege(claims: Claims) -> bool:
    return claims.is_admin or claims.has_audience(SERVICE_AUDIENCE)


class AuthorizationGuard:
    """
    Policy predicates over ``Claims``.

    Args:
        clock: Returns the current UTC time; injectable for tests
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def authorize(
        self,
        claims: Optional[Claims],
        policy: Policy,
        subject_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> AuthorizationDecision:
        if policy is Policy.PUBLIC or operation in PUBLIC_OPERATIONS:
            return AuthorizationDecision.allow()

        if claims is None:
            return AuthorizationDecision.deny(INVALID_CREDENTIAL)

        if claims.is_expired(self._clock()):
            return AuthorizationDecision.deny(TOKEN_EXPIRED)

        if operation in HIGH_PRIVILEGE_OPERATIONS and not is_high_privilege(claims):
            return AuthorizationDecision.deny(HIGH_PRIVILEGE_REQUIRED)

        return self._check_policy(claims, policy, subject_id)

    def _check_policy(
        self,
        claims: Claims,
        policy: Policy,
        subject_id: Optional[str],
    ) -> AuthorizationDecision:
        if policy is Policy.AUTHENTICATED:
            return AuthorizationDecision.allow()

        if policy is Policy.HIGH_PRIVILEGE:
            if is_high_privilege(claims):
                return AuthorizationDecision.allow()
            return AuthorizationDecision.deny(HIGH_PRIVILEGE_REQUIRED)

        if claims.is_admin:
            return AuthorizationDecision.allow()

        is_self = bool(claims.user_id) and claims.user_id == subject_id

        if policy is Policy.SELF_OR_ADMIN:
            allowed = is_self
        elif policy is Policy.SELF_ALIAS_OR_ADMIN:
            allowed = is_self or (
                subject_id is not None
                and subject_id != ""
                and subject_id in (claims.username, claims.user_email)
            )
        elif policy is Policy.SELF_OR_ADMIN_OR_SERVICE:
            allowed = is_self or claims.has_audience(SERVICE_AUDIENCE)
        else:
            raise ValueError(f"unknown policy: {policy}")

        if allowed:
            return AuthorizationDecision.allow()
        return AuthorizationDecision.deny(NOT_SELF)

    def enforce(
        self,
        claims: Optional[Claims],
        policy: Policy,
        subject_id: Optional[str] = None,
        operation: Optional[str] = None,
    ) -> None:
        """Like ``authorize`` but raises ``UnauthenticatedError`` on deny."""
        decision = self.authorize(claims, policy, subject_id, operation)
        if not decision.allowed:
            raise UnauthenticatedError(decision.reason)
