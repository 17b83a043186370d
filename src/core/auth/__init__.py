"""
Authentication and authorization.

- claims: bearer token -> ``Claims``
- guard: policy checks over ``Claims``
- tokens: login token signing
"""

from src.core.auth.claims import Claims, ClaimsDecodeError, ClaimsDecoder
from src.core.auth.guard import (
    HIGH_PRIVILEGE_OPERATIONS,
    PUBLIC_OPERATIONS,
    SERVICE_AUDIENCE,
    AuthorizationDecision,
    AuthorizationGuard,
    Policy,
)
from src.core.auth.tokens import IssuedToken, TokenIssuer, build_claims_decoder

__all__ = [
    "Claims",
    "ClaimsDecodeError",
    "ClaimsDecoder",
    "AuthorizationDecision",
    "AuthorizationGuard",
    "Policy",
    "HIGH_PRIVILEGE_OPERATIONS",
    "PUBLIC_OPERATIONS",
    "SERVICE_AUDIENCE",
    "IssuedToken",
    "TokenIssuer",
    "build_claims_decoder",
]
