"""Badge award service with duplicate prevention and rewards."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.base import dialect_insert
from devwars.db.models import Badge, UserBadge
from devwars.gamification.badges import (
    SOCIAL_PROVIDERS,
    BadgeKind,
    coin_badges_for,
    game_badges_for,
)
from devwars.gamification.stats_service import add_coins, ensure_stats_rows, game_stats_for, increase_experience

logger = logging.getLogger(__name__)


async def get_badge(db: AsyncSession, badge_id: int) -> Badge | None:
    result = await db.execute(select(Badge).where(Badge.id == badge_id))
    return result.scalar_one_or_none()


async def has_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    """Check if user already has a specific badge."""
    result = await db.execute(
        select(UserBadge.id).where(
            UserBadge.user_id == user_id,
            UserBadge.badge_id == badge_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def list_user_badges(db: AsyncSession, user_id: int) -> list[UserBadge]:
    result = await db.execute(
        select(UserBadge).where(UserBadge.user_id == user_id).order_by(UserBadge.badge_id)
    )
    return list(result.scalars().all())


async def award_badge(db: AsyncSession, user_id: int, badge_id: int) -> bool:
    """Award a badge to a user.

    Returns True if awarded, False if already owned or the badge is unknown.
    The insert is ``ON CONFLICT DO NOTHING`` against UNIQUE(user_id, badge_id);
    the badge's coin and XP rewards are applied only when a row was inserted,
    so racing callers reward at most once.
    """
    badge = await get_badge(db, badge_id)
    if badge is None:
        logger.warning("Badge not found: %s", badge_id)
        return False

    if await has_badge(db, user_id, badge.id):
        return False

    stmt = (
        dialect_insert(db, UserBadge.__table__)
        .values(user_id=user_id, badge_id=badge.id)
        .on_conflict_do_nothing(index_elements=["user_id", "badge_id"])
    )
    result = await db.execute(stmt)
    if result.rowcount != 1:
        return False  # Race condition: badge already awarded

    logger.info("Badge %d (%s) awarded to user %d", badge.id, badge.name, user_id)

    if badge.awarding_coins:
        await update_coins(db, user_id, badge.awarding_coins)
    if badge.awarding_experience:
        await ensure_stats_rows(db, [user_id])
        await increase_experience(db, [user_id], badge.awarding_experience)

    return True


async def update_coins(db: AsyncSession, user_id: int, amount: int) -> int:
    """Change a user's coin balance (clamped at zero) and award any coin badges reached.

    Returns the new balance.
    """
    balance = await add_coins(db, user_id, amount)
    if amount != 0:
        await check_coin_badges(db, user_id, balance)
    return balance


async def check_coin_badges(db: AsyncSession, user_id: int, coins: int) -> list[BadgeKind]:
    awarded = []
    for kind in coin_badges_for(coins):
        if await award_badge(db, user_id, kind):
            awarded.append(kind)
    return awarded


async def check_game_badges(db: AsyncSession, user_ids: Iterable[int]) -> dict[int, list[BadgeKind]]:
    """Evaluate win-count and streak badges from each user's current record."""
    awarded: dict[int, list[BadgeKind]] = {}
    for stats in await game_stats_for(db, list(user_ids)):
        for kind in game_badges_for(stats.wins, stats.loses, stats.win_streak):
            if await award_badge(db, stats.user_id, kind):
                awarded.setdefault(stats.user_id, []).append(kind)
    return awarded


async def award_objective_badges(db: AsyncSession, user_ids: Iterable[int]) -> list[int]:
    """Award COMPLETE_ALL_OBJECTIVES to each user; returns those newly awarded."""
    return [
        user_id
        for user_id in user_ids
        if await award_badge(db, user_id, BadgeKind.COMPLETE_ALL_OBJECTIVES)
    ]


async def award_email_verification_badge(db: AsyncSession, user_id: int) -> bool:
    return await award_badge(db, user_id, BadgeKind.EMAIL_VERIFICATION)


async def award_linked_account_badges(db: AsyncSession, user_id: int, providers: Iterable[str]) -> list[BadgeKind]:
    """Award social badges given the providers the user has linked so far."""
    linked = {p.upper() for p in providers}
    awarded = []
    if linked and await award_badge(db, user_id, BadgeKind.SINGLE_SOCIAL_ACCOUNT):
        awarded.append(BadgeKind.SINGLE_SOCIAL_ACCOUNT)
    if SOCIAL_PROVIDERS <= linked and await award_badge(db, user_id, BadgeKind.ALL_SOCIAL_ACCOUNTS):
        awarded.append(BadgeKind.ALL_SOCIAL_ACCOUNTS)
    return awarded
