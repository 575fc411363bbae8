"""Game result payload parsing and winner derivation.

The live-game frame (or a moderator) posts the final state of a game as::

    {
      "objectives": [{"id": 1, "bonus": false, "blue": "complete", "red": "incomplete"}],
      "votes": {"ui": {"blue": 3, "red": 5}, "ux": {...}, "tiebreaker": {...}},
      "bets": {"blue": 100, "red": 50, "tie": 0},
      "winner": "blue"
    }

``winner`` is optional; without it the team with more completed objectives
wins, then the tiebreaker vote decides, then it is a tie.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field, ValidationError

from devwars.errors import BadRequestError
from devwars.games.storage import TEAM_IDS, BetTotals, GameMeta, GameStorage, Objective, TeamScore

logger = logging.getLogger(__name__)


class ObjectiveResult(BaseModel):
    id: int
    bonus: bool = False
    blue: str | bool = "incomplete"
    red: str | bool = "incomplete"

    def completed_by(self, team_name: str) -> bool:
        value = getattr(self, team_name)
        return value is True or (isinstance(value, str) and value.lower() == "complete")


class TeamVotes(BaseModel):
    blue: int = 0
    red: int = 0


class ResultPayload(BaseModel):
    objectives: list[ObjectiveResult] = Field(default_factory=list)
    votes: dict[str, TeamVotes] = Field(default_factory=dict)
    bets: BetTotals = Field(default_factory=BetTotals)
    winner: Literal["blue", "red", "tie"] | None = None

    def votes_for(self, category: str, team_name: str) -> int:
        votes = self.votes.get(category)
        return getattr(votes, team_name) if votes else 0


def parse_result_payload(raw: Any) -> ResultPayload:
    """Validate a raw result payload. Raises BadRequestError if it is malformed."""
    try:
        return ResultPayload.model_validate(raw or {})
    except ValidationError as exc:
        raise BadRequestError(f"Invalid game result: {exc.errors()[0]['msg']}") from exc


def _winner_by_score(meta: GameMeta, payload: ResultPayload) -> int | None:
    """Winning team id from objective counts then tiebreaker votes, or None for a tie."""
    blue, red = meta.team_scores[0].objectives_completed, meta.team_scores[1].objectives_completed
    if blue == red:
        blue = payload.votes_for("tiebreaker", "blue")
        red = payload.votes_for("tiebreaker", "red")
    if blue == red:
        return None
    return 0 if blue > red else 1


def build_meta(payload: ResultPayload, game_id: int | None = None) -> GameMeta:
    """Fold a result payload into the stored game meta, deciding the winner."""
    team_scores: dict[int, TeamScore] = {}
    for team_name, team in TEAM_IDS.items():
        objectives = {str(o.id): o.completed_by(team_name) for o in payload.objectives}
        team_scores[team] = TeamScore(
            objectives=objectives,
            objectives_completed=sum(objectives.values()),
            ui=payload.votes_for("ui", team_name),
            ux=payload.votes_for("ux", team_name),
            bets=getattr(payload.bets, team_name),
        )

    meta = GameMeta(team_scores=team_scores, bets=payload.bets)
    by_score = _winner_by_score(meta, payload)

    if payload.winner is None:
        winning_team = by_score
    elif payload.winner == "tie":
        winning_team = None
    else:
        winning_team = TEAM_IDS[payload.winner]

    if payload.winner is not None and winning_team != by_score:
        logger.warning(
            "Game %s: reported winner %r disagrees with the scores (objectives %d-%d)",
            game_id,
            payload.winner,
            team_scores[0].objectives_completed,
            team_scores[1].objectives_completed,
        )

    meta.winning_team = winning_team
    meta.tie = winning_team is None
    return meta


def teams_completing_all_objectives(storage: GameStorage) -> list[int]:
    """Teams that completed every non-bonus objective of the game."""
    if storage.meta is None:
        return []
    required = storage.required_objective_ids()
    if not required:
        return []
    return [
        team
        for team, score in sorted(storage.meta.team_scores.items())
        if all(score.objectives.get(objective_id, False) for objective_id in required)
    ]


def merge_reported_objectives(storage: GameStorage, payload: ResultPayload) -> None:
    """Record objectives the game was created without, as reported by the result."""
    for reported in payload.objectives:
        key = str(reported.id)
        if key not in storage.objectives:
            storage.objectives[key] = Objective(id=reported.id, is_bonus=reported.bonus)
