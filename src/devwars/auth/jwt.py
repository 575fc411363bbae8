"""
Access tokens for the DevWars API.

Tokens are minted by the DevWars identity service and signed with a shared
HMAC secret. The API only decodes them; ``issue_access_token`` is there for
local tooling and the test suite.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from devwars.config import get_settings

ACCESS = "access"


@dataclass(frozen=True)
class AccessClaims:
    """The claims the API reads. ``role`` is informational; roles are re-read from the database."""

    user_id: int
    role: str
    expires_at: datetime


def issue_access_token(user_id: int, role: str, ttl: timedelta | None = None) -> str:
    settings = get_settings()
    issued = datetime.now(timezone.utc)
    lifetime = ttl if ttl is not None else timedelta(minutes=settings.jwt_access_token_expire_minutes)
    claims = {
        "sub": str(user_id),
        "role": role,
        "type": ACCESS,
        "iss": settings.jwt_issuer,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> AccessClaims:
    """
    Check signature, issuer, expiry and token type.

    Raises:
        jwt.InvalidTokenError: With a message suitable for a 401 response.
    """
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        raise jwt.InvalidTokenError("Token has expired") from None

    if claims.get("type") != ACCESS:
        raise jwt.InvalidTokenError("Not an access token")
    try:
        user_id = int(claims["sub"])
    except ValueError:
        raise jwt.InvalidTokenError("Malformed subject claim") from None

    return AccessClaims(
        user_id=user_id,
        role=str(claims.get("role", "")),
        expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    )
