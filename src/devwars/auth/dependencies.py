"""FastAPI authentication dependencies."""

from __future__ import annotations

import secrets

import jwt
from fastapi import Depends, Header, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.jwt import decode_access_token
from devwars.config import get_settings
from devwars.database import get_session
from devwars.db.models import User, UserRole
from devwars.errors import ForbiddenError, UnauthorizedError

_bearer = HTTPBearer(auto_error=False)


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """The authenticated user, or None when no bearer token was sent."""
    if credentials is None:
        return None
    try:
        claims = decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise UnauthorizedError(str(e)) from e

    user = await get_user_by_id(db, claims.user_id)
    if user is None:
        raise UnauthorizedError("User not found")
    return user


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    """
    Extract and verify JWT, return User model.

    Raises 401 when the token is missing or invalid, 403 for pending accounts.
    """
    if user is None:
        raise UnauthorizedError("Not authenticated")
    if user.role == UserRole.PENDING:
        raise ForbiddenError("Account is pending activation")
    return user


def has_role(user: User, role: UserRole) -> bool:
    return user.role.level >= role.level


async def require_moderator(user: User = Depends(get_current_user)) -> User:
    if not has_role(user, UserRole.MODERATOR):
        raise ForbiddenError("Unauthorized, you currently don't meet the minimum role requirement.")
    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    if not has_role(user, UserRole.ADMIN):
        raise ForbiddenError("Unauthorized, you currently don't meet the minimum role requirement.")
    return user


def is_trusted_bot(x_api_key: str | None = Header(default=None, alias="X-Api-Key")) -> bool:
    """True when the request carries the configured bot key (constant-time compare)."""
    expected = get_settings().bot_api_key
    if not expected or not x_api_key:
        return False
    return secrets.compare_digest(x_api_key.encode(), expected.encode())


async def require_moderator_or_bot(
    bot: bool = Depends(is_trusted_bot),
    user: User | None = Depends(get_optional_user),
) -> User | None:
    """Allow the trusted bot (returns the user if one is also authenticated) or a moderator."""
    if bot:
        return user
    if user is None:
        raise UnauthorizedError("Not authenticated")
    if not has_role(user, UserRole.MODERATOR):
        raise ForbiddenError("Unauthorized, you currently don't meet the minimum role requirement.")
    return user


def ensure_self_or_moderator(current: User, target_user_id: int) -> None:
    """Users may act on their own resources; moderators on anyone's."""
    if current.id != target_user_id and not has_role(current, UserRole.MODERATOR):
        raise ForbiddenError("You can only perform this action for your own account.")
