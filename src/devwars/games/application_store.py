"""Game application and seat persistence.

Seat exclusivity lives in the database: ``game_seats`` carries a unique
``(game_id, team, language)`` constraint and seats are inserted with
``ON CONFLICT DO NOTHING``, so the affected-row count tells the caller whether
it won the seat. Team exclusivity uses a conditional update in the same way.
"""

from __future__ import annotations

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.base import dialect_insert
from devwars.db.models import GameApplication, GameSeat


async def application_exists(db: AsyncSession, game_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(GameApplication.id).where(
            GameApplication.game_id == game_id,
            GameApplication.user_id == user_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def get_application(db: AsyncSession, game_id: int, user_id: int) -> GameApplication | None:
    result = await db.execute(
        select(GameApplication)
        .where(GameApplication.game_id == game_id, GameApplication.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def insert_application(db: AsyncSession, game_id: int, user_id: int) -> bool:
    """Insert an unseated application. Returns False if one already existed."""
    stmt = (
        dialect_insert(db, GameApplication.__table__)
        .values(game_id=game_id, user_id=user_id, team=None, assigned_languages=[])
        .on_conflict_do_nothing(index_elements=["game_id", "user_id"])
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def list_by_game(db: AsyncSession, game_id: int) -> list[GameApplication]:
    result = await db.execute(
        select(GameApplication)
        .where(GameApplication.game_id == game_id)
        .order_by(GameApplication.created_at, GameApplication.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().unique().all())


async def list_seated(db: AsyncSession, game_id: int) -> list[GameApplication]:
    """Applications with a team, i.e. the players of the game."""
    result = await db.execute(
        select(GameApplication)
        .where(GameApplication.game_id == game_id, GameApplication.team.is_not(None))
        .order_by(GameApplication.team, GameApplication.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().unique().all())


async def seated_user_ids_by_team(db: AsyncSession, game_id: int) -> dict[int, list[int]]:
    """``{0: [...], 1: [...]}`` user ids of the seated players."""
    result = await db.execute(
        select(GameApplication.team, GameApplication.user_id)
        .where(GameApplication.game_id == game_id, GameApplication.team.is_not(None))
        .order_by(GameApplication.user_id)
    )
    teams: dict[int, list[int]] = {0: [], 1: []}
    for team, user_id in result.all():
        teams.setdefault(team, []).append(user_id)
    return teams


async def claim_team(db: AsyncSession, application_id: int, team: int) -> bool:
    """Set the application's team unless it already belongs to a different one."""
    result = await db.execute(
        update(GameApplication)
        .where(
            GameApplication.id == application_id,
            or_(GameApplication.team.is_(None), GameApplication.team == team),
        )
        .values(team=team)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def claim_seat(db: AsyncSession, game_id: int, application_id: int, team: int, language: str) -> bool:
    """Insert the seat row. Returns False if the (team, language) seat is already held."""
    stmt = (
        dialect_insert(db, GameSeat.__table__)
        .values(game_id=game_id, application_id=application_id, team=team, language=language)
        .on_conflict_do_nothing(index_elements=["game_id", "team", "language"])
    )
    result = await db.execute(stmt)
    return result.rowcount == 1


async def sync_assigned_languages(db: AsyncSession, application_id: int) -> list[str]:
    """Mirror the application's seat rows into ``assigned_languages``."""
    result = await db.execute(
        select(GameSeat.language).where(GameSeat.application_id == application_id).order_by(GameSeat.id)
    )
    languages = list(result.scalars().all())
    await db.execute(
        update(GameApplication)
        .where(GameApplication.id == application_id)
        .values(assigned_languages=languages)
        .execution_options(synchronize_session=False)
    )
    return languages


async def clear_assignment(db: AsyncSession, application_id: int) -> None:
    """Release all seats and the team of an application."""
    await db.execute(delete(GameSeat).where(GameSeat.application_id == application_id))
    await db.execute(
        update(GameApplication)
        .where(GameApplication.id == application_id)
        .values(team=None, assigned_languages=[])
        .execution_options(synchronize_session=False)
    )


async def delete_application(db: AsyncSession, application_id: int) -> bool:
    await db.execute(delete(GameSeat).where(GameSeat.application_id == application_id))
    result = await db.execute(
        delete(GameApplication)
        .where(GameApplication.id == application_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1
