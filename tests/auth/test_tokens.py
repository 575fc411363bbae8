"""Tests for JWT access tokens."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from devwars.auth.jwt import decode_access_token, issue_access_token
from devwars.config import get_settings


def _signed(claims: dict, secret: str | None = None) -> str:
    settings = get_settings()
    return jwt.encode(claims, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm)


class TestAccessToken:
    def test_issue_and_decode(self):
        claims = decode_access_token(issue_access_token(user_id=1, role="MODERATOR"))
        assert claims.user_id == 1
        assert claims.role == "MODERATOR"
        assert claims.expires_at > datetime.now(timezone.utc)

    def test_custom_lifetime(self):
        claims = decode_access_token(issue_access_token(7, "USER", ttl=timedelta(minutes=2)))
        assert claims.expires_at < datetime.now(timezone.utc) + timedelta(minutes=3)

    def test_other_token_types_rejected(self):
        now = datetime.now(timezone.utc)
        token = _signed(
            {"sub": "1", "type": "refresh", "iss": get_settings().jwt_issuer, "exp": now + timedelta(minutes=5)}
        )
        with pytest.raises(jwt.InvalidTokenError, match="Not an access token"):
            decode_access_token(token)

    def test_expired_token_rejected(self):
        past = datetime.now(timezone.utc) - timedelta(hours=2)
        token = _signed(
            {"sub": "1", "iat": past, "exp": past + timedelta(minutes=5), "iss": get_settings().jwt_issuer, "type": "access"}
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            decode_access_token(token)

    def test_foreign_secret_rejected(self):
        token = issue_access_token(1, "USER")
        forged = _signed(jwt.decode(token, options={"verify_signature": False}), secret="x" * 40)
        with pytest.raises(jwt.InvalidTokenError):
            decode_access_token(forged)

    def test_non_numeric_subject_rejected(self):
        now = datetime.now(timezone.utc)
        token = _signed({"sub": "zax", "type": "access", "iss": get_settings().jwt_issuer, "exp": now + timedelta(minutes=5)})
        with pytest.raises(jwt.InvalidTokenError, match="subject"):
            decode_access_token(token)
