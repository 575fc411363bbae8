"""ORM models for the game lifecycle, statistics, badges and the effect outbox."""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from devwars.db.base import Base, BigIntId, JSONDocument


class UserRole(str, enum.Enum):
    PENDING = "PENDING"
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"

    @property
    def level(self) -> int:
        return _ROLE_LEVELS[self]


_ROLE_LEVELS = {
    UserRole.PENDING: 0,
    UserRole.USER: 1,
    UserRole.MODERATOR: 2,
    UserRole.ADMIN: 3,
}


class GameStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class GameMode(str, enum.Enum):
    CLASSIC = "Classic"
    ZEN_GARDEN = "Zen Garden"
    BLITZ = "Blitz"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """The subset of the user account the game core reads."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(28), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=UserRole.USER,
    )
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Games
# ---------------------------------------------------------------------------


class Game(Base):
    """A scheduled, running or finished DevWars game.

    ``storage`` holds the typed game document (templates, objectives, editors,
    players and result meta) serialized by ``devwars.games.storage``.
    """

    __tablename__ = "games"
    __table_args__ = (CheckConstraint("season > 0", name="games_season_positive"),)
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(124), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    mode: Mapped[GameMode] = mapped_column(
        Enum(GameMode, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=GameMode.CLASSIC,
    )
    status: Mapped[GameStatus] = mapped_column(
        Enum(GameStatus, native_enum=False, length=16, values_callable=_enum_values),
        nullable=False,
        default=GameStatus.SCHEDULED,
        index=True,
    )
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    storage_document: Mapped[dict[str, Any]] = mapped_column("storage", JSONDocument, nullable=False, default=dict)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )


class GameApplication(Base):
    """A user's application to a game; seated once ``team`` is set."""

    __tablename__ = "game_applications"
    __table_args__ = (UniqueConstraint("game_id", "user_id", name="game_applications_game_id_user_id_key"),)
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    team: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assigned_languages: Mapped[list[str]] = mapped_column(JSONDocument, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[User] = relationship("User", lazy="joined")


class GameSeat(Base):
    """One (team, language) editor seat held by an application, unique per game."""

    __tablename__ = "game_seats"
    __table_args__ = (
        UniqueConstraint("game_id", "team", "language", name="game_seats_game_id_team_language_key"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    game_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("games.id", ondelete="CASCADE"), nullable=False)
    application_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("game_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team: Mapped[int] = mapped_column(Integer, nullable=False)
    language: Mapped[str] = mapped_column(String(8), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


class UserGameStats(Base):
    """Win/loss record, one row per user, mutated by settlement."""

    __tablename__ = "user_game_stats"

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    wins: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    loses: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    win_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class UserStats(Base):
    """Coin and experience balances, one row per user."""

    __tablename__ = "user_stats"
    __table_args__ = (
        CheckConstraint("coins >= 0", name="user_stats_coins_non_negative"),
        CheckConstraint("xp >= 0", name="user_stats_xp_non_negative"),
    )

    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")
    xp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default="0")


# ---------------------------------------------------------------------------
# Badges
# ---------------------------------------------------------------------------


class Badge(Base):
    """Badge catalog entry; ids are fixed and match ``BadgeKind``."""

    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    awarding_experience: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    awarding_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    variant: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class UserBadge(Base):
    """Badges owned by users; UNIQUE(user_id, badge_id) prevents duplicates."""

    __tablename__ = "user_badges"
    __table_args__ = (UniqueConstraint("user_id", "badge_id", name="user_badges_user_id_badge_id_key"),)

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    badge_id: Mapped[int] = mapped_column(Integer, ForeignKey("badges.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    badge: Mapped[Badge] = relationship("Badge", lazy="joined")


# ---------------------------------------------------------------------------
# Outbox
# ---------------------------------------------------------------------------


class OutboxEffect(Base):
    """A side effect committed with the core transaction, delivered afterwards."""

    __tablename__ = "outbox_effects"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False, default=dict)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    # Set by the delivery run that currently owns the row; stale claims may be taken over.
    claim_token: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
