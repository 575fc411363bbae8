"""Game persistence: create, fetch, search, list, update and delete."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.models import Game, GameApplication, GameMode, GameSeat, GameStatus
from devwars.errors import NotFoundError
from devwars.games.storage import GameStorage, Objective, TemplateSet, write_storage

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 50


async def create_game(
    db: AsyncSession,
    title: str,
    start_time: datetime,
    season: int,
    mode: GameMode = GameMode.CLASSIC,
    video_url: str | None = None,
    status: GameStatus = GameStatus.SCHEDULED,
    objectives: list[Objective] | None = None,
    templates: TemplateSet | None = None,
) -> Game:
    """Create a new game with an empty roster."""
    game = Game(
        title=title,
        start_time=start_time,
        season=season,
        mode=mode,
        status=status,
        video_url=video_url,
    )
    storage = GameStorage(
        templates=templates or TemplateSet(),
        objectives={str(o.id): o for o in objectives or []},
    )
    write_storage(game, storage)
    db.add(game)
    await db.flush()
    await db.refresh(game)
    logger.info("Game %d created: %s (season %d)", game.id, title, season)
    return game


async def find_game(db: AsyncSession, game_id: int) -> Game | None:
    result = await db.execute(select(Game).where(Game.id == game_id))
    return result.scalar_one_or_none()


async def get_game(db: AsyncSession, game_id: int) -> Game:
    """Get a game by ID. Raises NotFoundError if it does not exist."""
    game = await find_game(db, game_id)
    if game is None:
        raise NotFoundError("The specified game does not exist.")
    return game


async def reload_game(db: AsyncSession, game_id: int) -> Game:
    """Re-read a game, overwriting any stale state held by the session."""
    result = await db.execute(
        select(Game).where(Game.id == game_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_latest_game(db: AsyncSession) -> Game | None:
    """The most recently scheduled game."""
    result = await db.execute(select(Game).order_by(Game.start_time.desc(), Game.id.desc()).limit(1))
    return result.scalar_one_or_none()


async def get_active_game(db: AsyncSession) -> Game | None:
    result = await db.execute(
        select(Game).where(Game.status == GameStatus.ACTIVE).order_by(Game.updated_at.desc()).limit(1)
    )
    return result.scalar_one_or_none()


async def search_games_by_title(db: AsyncSession, title: str, limit: int = SEARCH_LIMIT) -> list[Game]:
    """Case-insensitive substring search on the game title. ``%`` and ``_`` match literally."""
    result = await db.execute(
        select(Game)
        .where(func.lower(Game.title).contains(title.lower(), autoescape=True))
        .order_by(Game.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_games(
    db: AsyncSession,
    status: GameStatus | None = None,
    season: int | None = None,
    first: int = 20,
    after: int = 0,
) -> tuple[list[Game], int]:
    """Page through games, newest first. Returns (games, total)."""
    query = select(Game)
    count_query = select(func.count()).select_from(Game)
    if status is not None:
        query = query.where(Game.status == status)
        count_query = count_query.where(Game.status == status)
    if season is not None:
        query = query.where(Game.season == season)
        count_query = count_query.where(Game.season == season)

    total = (await db.execute(count_query)).scalar_one()
    result = await db.execute(query.order_by(Game.start_time.desc(), Game.id.desc()).offset(after).limit(first))
    return list(result.scalars().all()), total


def apply_game_fields(game: Game, fields: dict[str, Any]) -> None:
    """Copy editable scalar fields onto the game. ``status`` is left to the lifecycle."""
    for name in ("title", "start_time", "season", "mode", "video_url"):
        if name in fields:
            setattr(game, name, fields[name])


async def delete_game(db: AsyncSession, game: Game) -> None:
    """Delete a game together with its seats and applications."""
    game_id = game.id
    await db.execute(delete(GameSeat).where(GameSeat.game_id == game_id))
    await db.execute(delete(GameApplication).where(GameApplication.game_id == game_id))
    await db.delete(game)
    await db.flush()
    logger.info("Game %d deleted", game_id)
