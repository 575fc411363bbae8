"""Pydantic request/response models for game endpoints.

Field names are camelCase on the wire to match the flattened game snapshot.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from devwars.db.models import GameMode, GameStatus
from devwars.games.storage import Objective, TemplateSet


class _Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# ── Requests ──


class CreateGameRequest(_Schema):
    title: str = Field(min_length=1, max_length=124)
    start_time: datetime
    season: int = Field(gt=0)
    mode: GameMode = GameMode.CLASSIC
    video_url: str | None = None
    objectives: list[Objective] = Field(default_factory=list)
    templates: TemplateSet = Field(default_factory=TemplateSet)


class UpdateGameRequest(_Schema):
    title: str | None = Field(default=None, min_length=1, max_length=124)
    start_time: datetime | None = None
    season: int | None = Field(default=None, gt=0)
    mode: GameMode | None = None
    video_url: str | None = None
    status: GameStatus | None = None
    objectives: list[Objective] | None = None
    templates: TemplateSet | None = None


class AssignPlayerRequest(_Schema):
    id: int = Field(gt=0)
    language: str
    team: int


class RemovePlayerRequest(_Schema):
    id: int = Field(gt=0)


# ── Responses ──


class ApplicantResponse(_Schema):
    id: int
    username: str
    avatar_url: str | None = None


class ApplicationResponse(_Schema):
    id: int
    game_id: int
    user_id: int
    team: int | None = None
    assigned_languages: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: ApplicantResponse | None = None


class GameListResponse(_Schema):
    data: list[dict]
    total: int
    first: int
    after: int
