"""Flattened game snapshots and roster rebuilding."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from devwars.db.models import Game, GameApplication
from devwars.games.storage import (
    LANGUAGES,
    EditorAssignment,
    PlayerEntry,
    editor_id,
    read_storage,
    write_storage,
)


def flatten_game(game: Game) -> dict[str, Any]:
    """Merge the game's scalar columns with its storage document at the top level."""
    picked: dict[str, Any] = {
        "id": game.id,
        "title": game.title,
        "season": game.season,
        "mode": game.mode.value,
        "status": game.status.value,
        "videoUrl": game.video_url,
        "startTime": game.start_time.isoformat() if game.start_time else None,
        "createdAt": game.created_at.isoformat() if game.created_at else None,
        "updatedAt": game.updated_at.isoformat() if game.updated_at else None,
    }
    return {**picked, **read_storage(game).model_dump(mode="json", by_alias=True)}


def rebuild_roster(game: Game, applications: Iterable[GameApplication]) -> None:
    """Rewrite ``editors`` and ``players`` in the game storage from seated applications."""
    storage = read_storage(game)
    editors: dict[str, EditorAssignment] = {}
    players: dict[str, PlayerEntry] = {}

    for application in applications:
        if application.team is None:
            continue
        players[str(application.user_id)] = PlayerEntry(
            id=application.user_id,
            team=application.team,
            username=application.user.username,
            avatar_url=application.user.avatar_url,
        )
        for language in application.assigned_languages or []:
            if language not in LANGUAGES:
                continue
            key = editor_id(application.team, language)
            editors[str(key)] = EditorAssignment(
                id=key,
                team=application.team,
                player=application.user_id,
                language=language,
            )

    storage.editors = dict(sorted(editors.items(), key=lambda item: int(item[0])))
    storage.players = players
    write_storage(game, storage)


def roster_payload(game: Game) -> dict[str, Any]:
    """Per-team player lists pushed to the live overlay when the roster changes."""
    storage = read_storage(game)
    teams: dict[str, list[dict[str, Any]]] = {"blue": [], "red": []}

    for editor in storage.editors.values():
        player = storage.players.get(str(editor.player))
        if player is None:
            continue
        team_name = "blue" if player.team == 0 else "red"
        teams[team_name].append({
            "team": player.team,
            "language": editor.language,
            "user": {"id": player.id, "username": player.username, "avatarUrl": player.avatar_url},
        })

    return {"id": game.id, "teams": {name: {"players": players} for name, players in teams.items()}}


def live_game_payload(game: Game) -> dict[str, Any]:
    """Full game state pushed to the live overlay when a game is activated or updated."""
    storage = read_storage(game)
    return {
        "id": game.id,
        "theme": game.title,
        "name": game.mode.value,
        "objectives": [
            {"number": objective.id, "description": objective.description}
            for objective in storage.objectives.values()
        ],
        "templates": storage.templates.model_dump(mode="json", by_alias=True),
        "teams": roster_payload(game)["teams"],
    }
