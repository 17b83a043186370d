"""
Login token issuance.

Signs ``Claims`` for a user after a successful login. Production tokens are
RS512-signed with the private key at ``JWT_PRIVATE_KEY_PATH``; HS* algorithms
use ``JWT_SECRET`` instead (local runs and tests).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, Optional, Union

import jwt

from src.core.auth.claims import Claims, ClaimsDecoder
from src.core.config.config import Config
from src.core.exceptions import ConfigurationError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


def _is_symmetric(algorithm: str) -> bool:
    return algorithm.upper().startswith("HS")


def _read_key(path: str, config_key: str) -> bytes:
    if not path:
        raise ConfigurationError(config_key, "key file path is not set")
    try:
        return Path(path).read_bytes()
    except OSError as exc:
        raise ConfigurationError(config_key, f"cannot read key file: {exc}") from exc


def load_signing_key(algorithm: str) -> Union[str, bytes]:
    """
    Key used to sign tokens for ``algorithm``.

    Raises
    ------
    ConfigurationError
        If the secret or key file is missing.
    """
    if _is_symmetric(algorithm):
        if not Config.JWT_SECRET:
            raise ConfigurationError("JWT_SECRET", "required for HS* algorithms")
        return Config.JWT_SECRET
    return _read_key(Config.JWT_PRIVATE_KEY_PATH, "JWT_PRIVATE_KEY_PATH")


def load_verification_key(algorithm: str) -> Union[str, bytes]:
    if _is_symmetric(algorithm):
        if not Config.JWT_SECRET:
            raise ConfigurationError("JWT_SECRET", "required for HS* algorithms")
        return Config.JWT_SECRET
    return _read_key(Config.JWT_PUBLIC_KEY_PATH, "JWT_PUBLIC_KEY_PATH")


def build_claims_decoder() -> ClaimsDecoder:
    """Decoder configured from ``AUTH_VERIFY_SIGNATURE`` and the key settings."""
    if not Config.AUTH_VERIFY_SIGNATURE:
        return ClaimsDecoder()

    algorithm = Config.JWT_ALGORITHM
    return ClaimsDecoder(
        verify_signature=True,
        key=load_verification_key(algorithm),
        algorithms=[algorithm],
    )


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime
    claims: Claims


class TokenIssuer:
    """
    Signs login tokens.

    The signing key is resolved lazily so the service can start (and serve
    every other operation) while the key is still being provisioned.

    Args:
        algorithm: JWT algorithm (default ``Config.JWT_ALGORITHM``)
        signing_key: Explicit key; loaded from config when omitted
        ttl: Token lifetime
        audience: ``aud`` claim value
        issuer: ``iss`` claim value
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        algorithm: Optional[str] = None,
        signing_key: Optional[Union[str, bytes]] = None,
        ttl: Optional[timedelta] = None,
        audience: Optional[str] = None,
        issuer: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.algorithm = algorithm or Config.JWT_ALGORITHM
        self._signing_key = signing_key
        self.ttl = ttl or timedelta(hours=Config.TOKEN_TTL_HOURS)
        self.audience = audience or Config.TOKEN_AUDIENCE
        self.issuer = issuer or Config.TOKEN_ISSUER
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _key(self) -> Union[str, bytes]:
        if self._signing_key is None:
            self._signing_key = load_signing_key(self.algorithm)
        return self._signing_key

    def issue(
        self,
        user_id: str,
        username: str,
        user_email: str,
        is_admin: bool,
    ) -> IssuedToken:
        """
        Raises
        ------
        ConfigurationError
            If no signing key is available.
        jwt.PyJWTError
            If signing fails (e.g. key does not match the algorithm).
        """
        now = self._clock().replace(microsecond=0)
        claims = Claims(
            expires_at=now + self.ttl,
            user_id=user_id,
            username=username,
            user_email=user_email,
            is_admin=is_admin,
            audience=(self.audience,),
            issued_at=now,
            not_before=now,
            issuer=self.issuer,
            token_id=str(uuid.uuid4()),
        )

        token = jwt.encode(claims.to_payload(), self._key(), algorithm=self.algorithm)

        logger.debug(
            "Token issued",
            extra={
                "user_id": user_id,
                "token_id": claims.token_id,
                "expires_at": claims.expires_at.isoformat(),
            },
        )
        return IssuedToken(token=token, expires_at=claims.expires_at, claims=claims)
