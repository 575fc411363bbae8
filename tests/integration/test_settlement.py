"""End-of-game settlement: records, experience, badges and idempotence."""

from __future__ import annotations

import pytest
from sqlalchemy import select

from devwars.db.models import GameStatus, UserGameStats, UserStats
from devwars.errors import AlreadyEnded, BadRequestError
from devwars.games import assignment, lifecycle
from devwars.games.game_store import reload_game
from devwars.games.storage import read_storage
from devwars.gamification import badge_service, stats_service
from devwars.gamification.badges import BadgeKind

pytestmark = pytest.mark.asyncio

BLUE_SWEEP = {
    "objectives": [
        {"id": 1, "blue": "complete", "red": "complete"},
        {"id": 2, "blue": "complete", "red": "incomplete"},
        {"id": 3, "blue": "complete", "red": "incomplete"},
        {"id": 4, "bonus": True, "blue": "incomplete", "red": "incomplete"},
    ],
    "votes": {"ui": {"blue": 12, "red": 8}, "ux": {"blue": 9, "red": 11}},
    "bets": {"blue": 1500, "red": 900, "tie": 100},
}

EVEN_RESULT = {
    "objectives": [
        {"id": 1, "blue": "complete", "red": "complete"},
        {"id": 2, "blue": "incomplete", "red": "incomplete"},
    ],
    "votes": {"tiebreaker": {"blue": 5, "red": 5}},
}


async def _seated_game(db, make_game, make_user, status=GameStatus.ACTIVE):
    """An active game with one blue and one red player."""
    game = await make_game(status=status)
    blue, red = await make_user(), await make_user()
    for user, team in ((blue, 0), (red, 1)):
        await assignment.apply_to_game(db, game, user)
        await assignment.assign_player(db, game, user.id, team, "html")
    return game, blue, red


async def _stats(db, user_id: int) -> tuple[UserStats, UserGameStats]:
    stats = (
        await db.execute(
            select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
        )
    ).scalar_one()
    game_stats = (
        await db.execute(
            select(UserGameStats)
            .where(UserGameStats.user_id == user_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    return stats, game_stats


class TestEndGame:
    async def test_winner_and_loser_records(self, db_session, make_game, make_user):
        game, blue, red = await _seated_game(db_session, make_game, make_user)

        outcome = await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        assert outcome.settled is True
        assert outcome.winning_team == 0
        assert outcome.winners == [blue.id]
        assert outcome.losers == [red.id]

        _, blue_game = await _stats(db_session, blue.id)
        _, red_game = await _stats(db_session, red.id)
        assert (blue_game.wins, blue_game.loses, blue_game.win_streak) == (1, 0, 1)
        assert (red_game.wins, red_game.loses, red_game.win_streak) == (0, 1, 0)

    async def test_experience_is_awarded_and_clamped(self, db_session, make_game, make_user):
        game, blue, red = await _seated_game(db_session, make_game, make_user)

        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        blue_stats, _ = await _stats(db_session, blue.id)
        red_stats, _ = await _stats(db_session, red.id)
        # Winner: +4000 win, +800 participation; the first win and "Ace High" badges carry no XP.
        assert blue_stats.xp == 4800
        # Loser starts at zero: -2400 clamps to 0, then +800 participation.
        assert red_stats.xp == 800

    async def test_loser_with_experience_loses_it(self, db_session, make_game, make_user):
        game, blue, red = await _seated_game(db_session, make_game, make_user)
        await stats_service.ensure_stats_rows(db_session, [red.id])
        await stats_service.increase_experience(db_session, [red.id], 10_000)
        await db_session.commit()

        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        red_stats, _ = await _stats(db_session, red.id)
        assert red_stats.xp == 10_000 - 2400 + 800

    async def test_first_win_and_objective_badges(self, db_session, make_game, make_user):
        game, blue, red = await _seated_game(db_session, make_game, make_user)

        outcome = await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        assert await badge_service.has_badge(db_session, blue.id, BadgeKind.WIN_FIRST_GAME)
        assert await badge_service.has_badge(db_session, blue.id, BadgeKind.COMPLETE_ALL_OBJECTIVES)
        assert not await badge_service.has_badge(db_session, red.id, BadgeKind.COMPLETE_ALL_OBJECTIVES)
        assert set(outcome.badges[blue.id]) == {BadgeKind.WIN_FIRST_GAME, BadgeKind.COMPLETE_ALL_OBJECTIVES}

        blue_stats, _ = await _stats(db_session, blue.id)
        # Beginner's Luck (2900) and Ace High (2100)
        assert blue_stats.coins == 5000

    async def test_meta_is_stored_on_the_game(self, db_session, make_game, make_user):
        game, _, _ = await _seated_game(db_session, make_game, make_user)

        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        game = await reload_game(db_session, game.id)
        assert game.status == GameStatus.ENDED
        assert game.settled_at is not None
        meta = read_storage(game).meta
        assert meta.winning_team == 0
        assert meta.team_scores[0].objectives_completed == 3
        assert meta.team_scores[1].ui == 8
        assert meta.bets.blue == 1500

    async def test_tie_changes_no_records(self, db_session, make_game, make_user):
        game, blue, red = await _seated_game(db_session, make_game, make_user)

        outcome = await lifecycle.end_game(db_session, game.id, EVEN_RESULT)

        assert outcome.tie is True
        assert outcome.winners == []
        for user in (blue, red):
            stats, game_stats = await _stats(db_session, user.id)
            assert (game_stats.wins, game_stats.loses, game_stats.win_streak) == (0, 0, 0)
            assert stats.xp == 0

    async def test_tie_keeps_existing_streak(self, db_session, make_game, make_user):
        game, blue, _ = await _seated_game(db_session, make_game, make_user)
        await stats_service.ensure_stats_rows(db_session, [blue.id])
        await stats_service.record_wins(db_session, [blue.id])
        await db_session.commit()

        await lifecycle.end_game(db_session, game.id, EVEN_RESULT)

        _, game_stats = await _stats(db_session, blue.id)
        assert game_stats.win_streak == 1

    async def test_streak_badge_on_third_consecutive_win(self, db_session, make_game, make_user):
        game, blue, _ = await _seated_game(db_session, make_game, make_user)
        await stats_service.ensure_stats_rows(db_session, [blue.id])
        await stats_service.record_wins(db_session, [blue.id])
        await stats_service.record_wins(db_session, [blue.id])
        await db_session.commit()

        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        assert await badge_service.has_badge(db_session, blue.id, BadgeKind.WIN_3_IN_ROW)
        assert not await badge_service.has_badge(db_session, blue.id, BadgeKind.WIN_FIRST_GAME)

    async def test_loss_resets_streak(self, db_session, make_game, make_user):
        game, _, red = await _seated_game(db_session, make_game, make_user)
        await stats_service.ensure_stats_rows(db_session, [red.id])
        await stats_service.record_wins(db_session, [red.id])
        await stats_service.record_wins(db_session, [red.id])
        await db_session.commit()

        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        _, game_stats = await _stats(db_session, red.id)
        assert (game_stats.wins, game_stats.loses, game_stats.win_streak) == (2, 1, 0)

    async def test_ending_twice_is_rejected(self, db_session, make_game, make_user):
        game, blue, _ = await _seated_game(db_session, make_game, make_user)
        game_id, blue_id = game.id, blue.id
        await lifecycle.end_game(db_session, game_id, BLUE_SWEEP)

        with pytest.raises(AlreadyEnded):
            await lifecycle.end_game(db_session, game_id, BLUE_SWEEP)

        _, game_stats = await _stats(db_session, blue_id)
        assert game_stats.wins == 1

    async def test_rematch_does_not_settle_again(self, db_session, make_game, make_user):
        game, blue, _ = await _seated_game(db_session, make_game, make_user)
        await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)
        await lifecycle.activate_game(db_session, game.id)

        outcome = await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        assert outcome.settled is False
        _, game_stats = await _stats(db_session, blue.id)
        assert game_stats.wins == 1

    async def test_invalid_result_leaves_game_untouched(self, db_session, make_game, make_user):
        game, _, _ = await _seated_game(db_session, make_game, make_user)
        game_id = game.id

        with pytest.raises(BadRequestError):
            await lifecycle.end_game(db_session, game_id, {"winner": "purple"})

        game = await reload_game(db_session, game_id)
        assert game.status == GameStatus.ACTIVE
        assert game.settled_at is None

    async def test_scheduled_game_can_be_ended(self, db_session, make_game, make_user):
        game, blue, _ = await _seated_game(db_session, make_game, make_user, status=GameStatus.SCHEDULED)

        outcome = await lifecycle.end_game(db_session, game.id, BLUE_SWEEP)

        assert outcome.winners == [blue.id]

    async def test_settlement_failure_rolls_back_status(self, db_session, make_game, make_user, monkeypatch):
        game, blue, _ = await _seated_game(db_session, make_game, make_user)
        game_id, blue_id = game.id, blue.id

        async def _boom(*_args, **_kwargs):
            raise RuntimeError("stats store unavailable")

        monkeypatch.setattr(stats_service, "record_losses", _boom)

        with pytest.raises(RuntimeError):
            await lifecycle.end_game(db_session, game_id, BLUE_SWEEP)

        game = await reload_game(db_session, game_id)
        assert game.status == GameStatus.ACTIVE
        assert game.settled_at is None
        assert not await badge_service.has_badge(db_session, blue_id, BadgeKind.WIN_FIRST_GAME)
