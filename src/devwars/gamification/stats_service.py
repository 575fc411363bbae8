"""User statistics rows: win/loss record, coins and experience.

Every mutation is a single set-based UPDATE so concurrent requests cannot lose
increments; decreases are clamped at zero inside the statement.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.base import dialect_insert
from devwars.db.models import UserGameStats, UserStats

logger = logging.getLogger(__name__)


def _clamped(column, amount: int):
    """``max(0, column + amount)`` as a portable SQL expression."""
    return case((column + amount < 0, 0), else_=column + amount)


async def ensure_stats_rows(db: AsyncSession, user_ids: Iterable[int]) -> None:
    """Create missing ``user_stats`` and ``user_game_stats`` rows."""
    ids = sorted(set(user_ids))
    if not ids:
        return
    for table in (UserStats.__table__, UserGameStats.__table__):
        stmt = dialect_insert(db, table).values([{"user_id": uid} for uid in ids])
        await db.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))


async def get_or_create_stats(db: AsyncSession, user_id: int) -> UserStats:
    await ensure_stats_rows(db, [user_id])
    result = await db.execute(
        select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def get_or_create_game_stats(db: AsyncSession, user_id: int) -> UserGameStats:
    await ensure_stats_rows(db, [user_id])
    result = await db.execute(
        select(UserGameStats)
        .where(UserGameStats.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def record_wins(db: AsyncSession, user_ids: list[int]) -> None:
    if not user_ids:
        return
    await db.execute(
        update(UserGameStats)
        .where(UserGameStats.user_id.in_(user_ids))
        .values(wins=UserGameStats.wins + 1, win_streak=UserGameStats.win_streak + 1)
        .execution_options(synchronize_session=False)
    )


async def record_losses(db: AsyncSession, user_ids: list[int]) -> None:
    if not user_ids:
        return
    await db.execute(
        update(UserGameStats)
        .where(UserGameStats.user_id.in_(user_ids))
        .values(loses=UserGameStats.loses + 1, win_streak=0)
        .execution_options(synchronize_session=False)
    )


async def increase_experience(db: AsyncSession, user_ids: list[int], amount: int) -> None:
    """Add ``amount`` XP (may be negative) to every user, clamped at zero."""
    if not user_ids or amount == 0:
        return
    await db.execute(
        update(UserStats)
        .where(UserStats.user_id.in_(user_ids))
        .values(xp=_clamped(UserStats.xp, amount))
        .execution_options(synchronize_session=False)
    )


async def add_coins(db: AsyncSession, user_id: int, amount: int) -> int:
    """Add ``amount`` coins (may be negative), clamped at zero. Returns the new balance."""
    await ensure_stats_rows(db, [user_id])
    if amount != 0:
        await db.execute(
            update(UserStats)
            .where(UserStats.user_id == user_id)
            .values(coins=_clamped(UserStats.coins, amount))
            .execution_options(synchronize_session=False)
        )
    result = await db.execute(select(UserStats.coins).where(UserStats.user_id == user_id))
    return result.scalar_one()


async def game_stats_for(db: AsyncSession, user_ids: list[int]) -> list[UserGameStats]:
    if not user_ids:
        return []
    result = await db.execute(
        select(UserGameStats)
        .where(UserGameStats.user_id.in_(user_ids))
        .order_by(UserGameStats.user_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())
