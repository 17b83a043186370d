"""
Identity claims carried by bearer tokens.

Purpose
-------
Turn a compact JWT into a ``Claims`` value. By default the payload is read
WITHOUT verifying the signature; the gateway in front of the service is
trusted to have done that. Signature verification can be switched on with
``AUTH_VERIFY_SIGNATURE`` when a verification key is configured.

Expiry is NOT checked here. The authorization guard owns that decision so
that it happens exactly once per call, before any policy check.

Token payload
-------------
``user_id``, ``username``, ``user_email``, ``is_admin`` plus the registered
claims ``aud``, ``exp``, ``iat``, ``nbf``, ``iss`` and ``jti``. ``exp`` is
mandatory; everything else may be absent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import jwt

from src.core.logging.logger import get_logger

logger = get_logger(__name__)

_STRING_FIELDS = ("user_id", "username", "user_email", "iss", "jti")
_TIMESTAMP_FIELDS = ("exp", "iat", "nbf")


class ClaimsDecodeError(Exception):
    """Credential absent, malformed or not shaped like our claims."""


def _to_datetime(value: Optional[Union[int, float]]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)


def _to_timestamp(value: Optional[datetime]) -> Optional[int]:
    if value is None:
        return None
    return int(value.timestamp())


@dataclass(frozen=True)
class Claims:
    """Decoded identity of a caller. Never persisted."""

    expires_at: datetime
    user_id: str = ""
    username: str = ""
    user_email: str = ""
    is_admin: bool = False
    audience: Tuple[str, ...] = field(default_factory=tuple)
    issued_at: Optional[datetime] = None
    not_before: Optional[datetime] = None
    issuer: str = ""
    token_id: str = ""

    def has_audience(self, audience: str) -> bool:
        return audience in self.audience

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires_at < now

    @classmethod
    def from_payload(cls, payload: Any) -> "Claims":
        """
        Build claims from a decoded JWT payload.

        Raises
        ------
        ClaimsDecodeError
            If the payload is not a mapping, a field has the wrong type, or
            ``exp`` is missing.
        """
        if not isinstance(payload, dict):
            raise ClaimsDecodeError("token payload is not an object")

        for name in _STRING_FIELDS:
            value = payload.get(name)
            if value is not None and not isinstance(value, str):
                raise ClaimsDecodeError(f"claim '{name}' must be a string")

        for name in _TIMESTAMP_FIELDS:
            value = payload.get(name)
            if value is not None and (
                isinstance(value, bool) or not isinstance(value, (int, float))
            ):
                raise ClaimsDecodeError(f"claim '{name}' must be a numeric date")

        if payload.get("exp") is None:
            raise ClaimsDecodeError("claim 'exp' is required")

        is_admin = payload.get("is_admin", False)
        if not isinstance(is_admin, bool):
            raise ClaimsDecodeError("claim 'is_admin' must be a boolean")

        audience = payload.get("aud")
        if audience is None:
            audiences: Tuple[str, ...] = ()
        elif isinstance(audience, str):
            audiences = (audience,)
        elif isinstance(audience, list) and all(isinstance(a, str) for a in audience):
            audiences = tuple(audience)
        else:
            raise ClaimsDecodeError("claim 'aud' must be a string or list of strings")

        try:
            return cls(
                expires_at=_to_datetime(payload["exp"]),  # type: ignore[arg-type]
                user_id=payload.get("user_id") or "",
                username=payload.get("username") or "",
                user_email=payload.get("user_email") or "",
                is_admin=is_admin,
                audience=audiences,
                issued_at=_to_datetime(payload.get("iat")),
                not_before=_to_datetime(payload.get("nbf")),
                issuer=payload.get("iss") or "",
                token_id=payload.get("jti") or "",
            )
        except (OverflowError, OSError, ValueError) as exc:
            raise ClaimsDecodeError(f"claim date out of range: {exc}") from exc

    def to_payload(self) -> Dict[str, Any]:
        """JWT payload for these claims; empty optional fields are omitted."""
        payload: Dict[str, Any] = {
            "user_id": self.user_id,
            "username": self.username,
            "user_email": self.user_email,
            "is_admin": self.is_admin,
            "aud": self.audience[0] if len(self.audience) == 1 else list(self.audience),
            "exp": _to_timestamp(self.expires_at),
            "iat": _to_timestamp(self.issued_at),
            "nbf": _to_timestamp(self.not_before),
            "iss": self.issuer,
            "jti": self.token_id,
        }
        return {k: v for k, v in payload.items() if v not in (None, "", [])}


class ClaimsDecoder:
    """
    Decodes bearer tokens into ``Claims``.

    Args:
        verify_signature: Check the signature with ``key`` before trusting
            the payload
        key: Verification key (shared secret or PEM public key)
        algorithms: Accepted signing algorithms when verifying
    """

    def __init__(
        self,
        verify_signature: bool = False,
        key: Optional[Union[str, bytes]] = None,
        algorithms: Optional[Sequence[str]] = None,
    ) -> None:
        if verify_signature and not key:
            raise ValueError("signature verification requires a key")
        self.verify_signature = verify_signature
        self.key = key
        self.algorithms = list(algorithms or ["RS512"])

    def decode(self, token: Optional[str]) -> Claims:
        if not token:
            raise ClaimsDecodeError("no credential supplied")

        try:
            if self.verify_signature:
                payload = jwt.decode(
                    token,
                    self.key,
                    algorithms=self.algorithms,
                    options={
                        "verify_exp": False,
                        "verify_nbf": False,
                        "verify_iat": False,
                        "verify_aud": False,
                        "verify_iss": False,
                    },
                )
            else:
                payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as exc:
            logger.debug(
                "Bearer token could not be decoded",
                extra={"error_type": type(exc).__name__},
            )
            raise ClaimsDecodeError(str(exc)) from exc

        return Claims.from_payload(payload)

