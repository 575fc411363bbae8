"""End-of-game settlement: win/loss record, experience and badges.

Settlement runs inside the caller's transaction. It claims the game with a
``settled_at IS NULL`` conditional update first, so a game is settled at most
once no matter how many times it is ended.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.models import Game
from devwars.games.application_store import seated_user_ids_by_team
from devwars.games.results import teams_completing_all_objectives
from devwars.games.storage import GameStorage
from devwars.gamification import badge_service, stats_service
from devwars.gamification.badges import BadgeKind

logger = logging.getLogger(__name__)

EXPERIENCE: dict[str, int] = {
    "GAME_WIN": 4000,
    "GAME_LOST": -2400,
    "PARTICIPATION": 800,
}


@dataclass
class SettlementResult:
    settled: bool
    winning_team: int | None = None
    tie: bool = False
    winners: list[int] = field(default_factory=list)
    losers: list[int] = field(default_factory=list)
    badges: dict[int, list[int]] = field(default_factory=dict)


async def claim_settlement(db: AsyncSession, game_id: int) -> bool:
    """Mark the game settled. Returns False if it already was."""
    result = await db.execute(
        update(Game)
        .where(Game.id == game_id, Game.settled_at.is_(None))
        .values(settled_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def settle_game(db: AsyncSession, game_id: int, storage: GameStorage) -> SettlementResult:
    """Apply the stored result of a game to its players' statistics.

    Does not commit; the caller owns the transaction.
    """
    if storage.meta is None:
        logger.warning("Game %d ended without a result; nothing to settle", game_id)
        return SettlementResult(settled=False)

    if not await claim_settlement(db, game_id):
        logger.info("Game %d already settled; skipping", game_id)
        return SettlementResult(settled=False)

    meta = storage.meta
    teams = await seated_user_ids_by_team(db, game_id)
    participants = [user_id for team in sorted(teams) for user_id in teams[team]]
    await stats_service.ensure_stats_rows(db, participants)

    outcome = SettlementResult(settled=True, winning_team=meta.winning_team, tie=meta.tie)

    if not meta.tie and meta.winning_team is not None:
        outcome.winners = teams.get(meta.winning_team, [])
        outcome.losers = [
            user_id for team, user_ids in teams.items() if team != meta.winning_team for user_id in user_ids
        ]

        await stats_service.record_wins(db, outcome.winners)
        await stats_service.record_losses(db, outcome.losers)

        await stats_service.increase_experience(db, outcome.winners, EXPERIENCE["GAME_WIN"])
        await stats_service.increase_experience(db, outcome.losers, EXPERIENCE["GAME_LOST"])
        await stats_service.increase_experience(db, participants, EXPERIENCE["PARTICIPATION"])

        awarded = await badge_service.check_game_badges(db, participants)
        for user_id, kinds in awarded.items():
            outcome.badges.setdefault(user_id, []).extend(int(k) for k in kinds)

    for team in teams_completing_all_objectives(storage):
        for user_id in await badge_service.award_objective_badges(db, teams.get(team, [])):
            outcome.badges.setdefault(user_id, []).append(int(BadgeKind.COMPLETE_ALL_OBJECTIVES))

    logger.info(
        "Game %d settled: winner=%s tie=%s winners=%d losers=%d",
        game_id,
        meta.winning_team,
        meta.tie,
        len(outcome.winners),
        len(outcome.losers),
    )
    return outcome
