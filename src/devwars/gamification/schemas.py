"""Pydantic request/response models for badge and statistics endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# --- Badge ---


class BadgeResponse(_Schema):
    id: int
    name: str
    description: str
    awarding_experience: int
    awarding_coins: int
    variant: int


class EarnedBadgeResponse(BadgeResponse):
    awarded_at: datetime | None = None


# --- Statistics ---


class RankResponse(_Schema):
    level: int
    name: str
    xp_into_rank: int
    xp_for_rank: int
    next_level: int | None = None
    next_name: str | None = None


class GameStatsResponse(_Schema):
    wins: int = 0
    loses: int = 0
    win_streak: int = 0


class UserStatisticsResponse(_Schema):
    user_id: int
    coins: int
    xp: int
    rank: RankResponse
    game: GameStatsResponse


class UpdateCoinsRequest(_Schema):
    amount: int = Field(description="Coins to add; negative values remove coins, clamped at zero.")


class CoinsResponse(_Schema):
    user_id: int
    coins: int


class LinkedAccountsRequest(_Schema):
    providers: list[str] = Field(description="Every provider the user has linked so far, e.g. TWITCH, DISCORD.")


class AwardedBadgesResponse(_Schema):
    user_id: int
    awarded: list[str] = Field(default_factory=list, description="Badges newly awarded by this event.")
