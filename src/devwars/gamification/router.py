"""Badge and user statistics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.dependencies import require_moderator_or_bot
from devwars.database import get_session
from devwars.db.models import Badge, User
from devwars.dependencies import bind_user
from devwars.gamification import badge_service, stats_service
from devwars.gamification.badges import BadgeKind
from devwars.gamification.ranks import compute_rank
from devwars.gamification.schemas import (
    BadgeResponse,
    CoinsResponse,
    AwardedBadgesResponse,
    EarnedBadgeResponse,
    GameStatsResponse,
    LinkedAccountsRequest,
    RankResponse,
    UpdateCoinsRequest,
    UserStatisticsResponse,
)

router = APIRouter(tags=["Gamification"])


@router.get("/badges", response_model=list[BadgeResponse])
async def list_badges(db: AsyncSession = Depends(get_session)):
    """The full badge catalog."""
    result = await db.execute(select(Badge).order_by(Badge.id))
    return list(result.scalars().all())


@router.get("/users/{user}/badges", response_model=list[EarnedBadgeResponse])
async def list_user_badges(
    target: User = Depends(bind_user),
    db: AsyncSession = Depends(get_session),
):
    owned = await badge_service.list_user_badges(db, target.id)
    return [
        EarnedBadgeResponse(
            id=row.badge.id,
            name=row.badge.name,
            description=row.badge.description,
            awarding_experience=row.badge.awarding_experience,
            awarding_coins=row.badge.awarding_coins,
            variant=row.badge.variant,
            awarded_at=row.created_at,
        )
        for row in owned
    ]


@router.get("/users/{user}/statistics", response_model=UserStatisticsResponse)
async def get_user_statistics(
    target: User = Depends(bind_user),
    db: AsyncSession = Depends(get_session),
):
    stats = await stats_service.get_or_create_stats(db, target.id)
    game_stats = await stats_service.get_or_create_game_stats(db, target.id)
    await db.commit()
    return UserStatisticsResponse(
        user_id=target.id,
        coins=stats.coins,
        xp=stats.xp,
        rank=RankResponse(**compute_rank(stats.xp)),
        game=GameStatsResponse.model_validate(game_stats),
    )


@router.patch("/users/{user}/coins", response_model=CoinsResponse)
async def update_user_coins(
    body: UpdateCoinsRequest,
    target: User = Depends(bind_user),
    _caller: User | None = Depends(require_moderator_or_bot),
    db: AsyncSession = Depends(get_session),
):
    """Top up (or deduct) a user's coins; reaching a coin threshold awards its badge."""
    try:
        coins = await badge_service.update_coins(db, target.id, body.amount)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return CoinsResponse(user_id=target.id, coins=coins)


# Account events reported by the identity service (bot key) or a moderator.


@router.post("/users/{user}/events/email-verified", response_model=AwardedBadgesResponse)
async def email_verified(
    target: User = Depends(bind_user),
    _caller: User | None = Depends(require_moderator_or_bot),
    db: AsyncSession = Depends(get_session),
):
    try:
        awarded = await badge_service.award_email_verification_badge(db, target.id)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return AwardedBadgesResponse(user_id=target.id, awarded=[BadgeKind.EMAIL_VERIFICATION.name] if awarded else [])


@router.post("/users/{user}/events/accounts-linked", response_model=AwardedBadgesResponse)
async def accounts_linked(
    body: LinkedAccountsRequest,
    target: User = Depends(bind_user),
    _caller: User | None = Depends(require_moderator_or_bot),
    db: AsyncSession = Depends(get_session),
):
    """Award the social badges the user's linked providers qualify for."""
    try:
        awarded = await badge_service.award_linked_account_badges(db, target.id, body.providers)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    return AwardedBadgesResponse(user_id=target.id, awarded=[kind.name for kind in awarded])
