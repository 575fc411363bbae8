"""Game persistence and snapshots."""

from __future__ import annotations

import pytest

from devwars.db.models import GameMode, GameStatus
from devwars.errors import NotFoundError
from devwars.games import assignment, game_store
from devwars.games.snapshot import flatten_game, live_game_payload, roster_payload

pytestmark = pytest.mark.asyncio


class TestGameStore:
    async def test_get_missing_game_raises(self, db_session):
        with pytest.raises(NotFoundError):
            await game_store.get_game(db_session, 12345)

    async def test_find_missing_game_returns_none(self, db_session):
        assert await game_store.find_game(db_session, 12345) is None

    async def test_search_limit(self, db_session, make_game):
        for number in range(3):
            await make_game(title=f"Blog {number}")

        games = await game_store.search_games_by_title(db_session, "blog", limit=2)

        assert len(games) == 2

    async def test_search_wildcards_match_literally(self, db_session, make_game):
        await make_game(title="Portfolio Page")
        await make_game(title="100% CSS")
        await make_game(title="snake_case")

        assert [g.title for g in await game_store.search_games_by_title(db_session, "%")] == ["100% CSS"]
        assert [g.title for g in await game_store.search_games_by_title(db_session, "_")] == ["snake_case"]

    async def test_delete_removes_applications(self, db_session, make_game, make_user):
        from devwars.games import application_store

        game = await make_game()
        user = await make_user()
        await assignment.apply_to_game(db_session, game, user)
        await assignment.assign_player(db_session, game, user.id, 0, "html")
        game_id = game.id

        await game_store.delete_game(db_session, game)
        await db_session.commit()

        assert await game_store.find_game(db_session, game_id) is None
        assert await application_store.list_by_game(db_session, game_id) == []


class TestSnapshots:
    async def test_flatten_merges_columns_and_storage(self, db_session, make_game):
        game = await make_game(mode=GameMode.ZEN_GARDEN, video_url="https://youtu.be/abc")

        data = flatten_game(game)

        assert data["mode"] == "Zen Garden"
        assert data["status"] == GameStatus.SCHEDULED.value
        assert data["videoUrl"] == "https://youtu.be/abc"
        assert set(data["objectives"]) == {"1", "2", "3", "4"}
        assert data["players"] == {}

    async def test_roster_and_live_payloads(self, db_session, make_game, make_user):
        game = await make_game(status=GameStatus.ACTIVE)
        blue, red = await make_user(), await make_user()
        for user, team, language in ((blue, 0, "css"), (red, 1, "js")):
            await assignment.apply_to_game(db_session, game, user)
            game = await assignment.assign_player(db_session, game, user.id, team, language)

        roster = roster_payload(game)
        assert roster["teams"]["blue"]["players"][0]["user"]["username"] == blue.username
        assert roster["teams"]["red"]["players"][0]["language"] == "js"

        live = live_game_payload(game)
        assert live["theme"] == game.title
        assert live["name"] == "Classic"
        assert live["teams"] == roster["teams"]
