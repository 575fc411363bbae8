"""Typed game storage document.

The game row keeps its templates, objectives, editor/player roster and result
meta in a single JSON column. These models are the only way the rest of the
code reads or writes that column; keys are camelCase on the wire to match the
live-game frame and the site.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

if TYPE_CHECKING:
    from devwars.db.models import Game

LANGUAGES: tuple[str, ...] = ("html", "css", "js")
TEAM_NAMES: dict[int, str] = {0: "blue", 1: "red"}
TEAM_IDS: dict[str, int] = {name: team for team, name in TEAM_NAMES.items()}


class _Document(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TemplateSet(_Document):
    html: str | None = None
    css: str | None = None
    js: str | None = None


class Objective(_Document):
    id: int
    description: str = ""
    is_bonus: bool = False


class EditorAssignment(_Document):
    id: int
    team: int
    player: int
    language: str


class PlayerEntry(_Document):
    id: int
    team: int
    username: str
    avatar_url: str | None = None


class TeamScore(_Document):
    objectives: dict[str, bool] = Field(default_factory=dict)
    objectives_completed: int = 0
    ui: int = 0
    ux: int = 0
    bets: int = 0


class BetTotals(_Document):
    blue: int = 0
    red: int = 0
    tie: int = 0


class GameMeta(_Document):
    team_scores: dict[int, TeamScore] = Field(default_factory=lambda: {0: TeamScore(), 1: TeamScore()})
    bets: BetTotals = Field(default_factory=BetTotals)
    winning_team: int | None = None
    tie: bool = False


class GameStorage(_Document):
    templates: TemplateSet = Field(default_factory=TemplateSet)
    objectives: dict[str, Objective] = Field(default_factory=dict)
    editors: dict[str, EditorAssignment] = Field(default_factory=dict)
    players: dict[str, PlayerEntry] = Field(default_factory=dict)
    meta: GameMeta | None = None

    def required_objective_ids(self) -> set[str]:
        """Ids of the objectives that are not bonus objectives."""
        return {key for key, objective in self.objectives.items() if not objective.is_bonus}


def editor_id(team: int, language: str) -> int:
    """Stable editor id: three editors per team, ordered html, css, js."""
    return team * len(LANGUAGES) + LANGUAGES.index(language)


def read_storage(game: Game) -> GameStorage:
    return GameStorage.model_validate(game.storage_document or {})


def write_storage(game: Game, storage: GameStorage) -> None:
    # Reassign rather than mutate so the ORM sees the change.
    game.storage_document = storage.model_dump(mode="json", by_alias=True)
