"""Shared FastAPI dependencies: path parameter binding."""

from fastapi import Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.dependencies import get_user_by_id
from devwars.database import get_session
from devwars.db.models import Game, User
from devwars.errors import NotFoundError
from devwars.games.game_store import get_game


async def bind_game(
    game: int = Path(ge=1),
    db: AsyncSession = Depends(get_session),
) -> Game:
    """Resolve the ``{game}`` path parameter. Raises 404 if missing."""
    return await get_game(db, game)


async def bind_user(
    user: int = Path(ge=1),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the ``{user}`` path parameter. Raises 404 if missing."""
    found = await get_user_by_id(db, user)
    if found is None:
        raise NotFoundError("The specified user does not exist.")
    return found
