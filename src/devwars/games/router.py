"""Game API endpoints: games, applications, players and live actions."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.dependencies import (
    ensure_self_or_moderator,
    get_current_user,
    require_admin,
    require_moderator,
    require_moderator_or_bot,
)
from devwars.database import get_session
from devwars.db.models import Game, GameStatus, User
from devwars.dependencies import bind_game, bind_user
from devwars.errors import ApplicationNotFound, BadRequestError, NotFoundError
from devwars.games import application_store, assignment, game_store, lifecycle
from devwars.games.schemas import (
    ApplicationResponse,
    AssignPlayerRequest,
    CreateGameRequest,
    GameListResponse,
    RemovePlayerRequest,
    UpdateGameRequest,
)
from devwars.games.snapshot import flatten_game
from devwars.outbox.service import deliver_outbox

router = APIRouter(prefix="/games", tags=["Games"])


def _schedule_delivery(background: BackgroundTasks) -> None:
    background.add_task(deliver_outbox)


# ── Games ──


@router.post("", status_code=201)
async def create_game(
    body: CreateGameRequest,
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Schedule a new game."""
    game = await game_store.create_game(
        db,
        title=body.title,
        start_time=body.start_time,
        season=body.season,
        mode=body.mode,
        video_url=body.video_url,
        objectives=body.objectives,
        templates=body.templates,
    )
    await db.commit()
    return flatten_game(game)


@router.get("", response_model=GameListResponse)
async def list_games(
    status: GameStatus | None = Query(None),
    season: int | None = Query(None, gt=0),
    first: int = Query(20, ge=1, le=100),
    after: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_session),
):
    games, total = await game_store.list_games(db, status=status, season=season, first=first, after=after)
    return GameListResponse(data=[flatten_game(g) for g in games], total=total, first=first, after=after)


@router.get("/latest")
async def get_latest_game(db: AsyncSession = Depends(get_session)):
    game = await game_store.get_latest_game(db)
    if game is None:
        raise NotFoundError("There is no latest game.")
    return flatten_game(game)


@router.get("/active")
async def get_active_game(db: AsyncSession = Depends(get_session)):
    game = await game_store.get_active_game(db)
    if game is None:
        raise NotFoundError("There is no active game.")
    return flatten_game(game)


@router.get("/search")
async def search_games(
    title: str = Query(..., min_length=1, max_length=124),
    db: AsyncSession = Depends(get_session),
):
    """Case-insensitive title search."""
    return [flatten_game(g) for g in await game_store.search_games_by_title(db, title)]


@router.get("/{game}")
async def get_game(game: Game = Depends(bind_game)):
    return flatten_game(game)


@router.patch("/{game}")
async def update_game(
    background: BackgroundTasks,
    body: UpdateGameRequest,
    game: Game = Depends(bind_game),
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    fields = {
        name: getattr(body, name)
        for name in body.model_fields_set
        if getattr(body, name) is not None or name == "video_url"
    }
    game = await lifecycle.update_game(db, game, fields)
    _schedule_delivery(background)
    return flatten_game(game)


@router.delete("/{game}")
async def delete_game(
    game: Game = Depends(bind_game),
    _admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
):
    snapshot = flatten_game(game)
    await game_store.delete_game(db, game)
    await db.commit()
    return snapshot


# ── Applications ──


@router.get("/{game}/applications", response_model=list[ApplicationResponse])
async def list_applications(
    game: Game = Depends(bind_game),
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    return await application_store.list_by_game(db, game.id)


@router.get("/{game}/applications/{user}", response_model=ApplicationResponse)
async def get_application(
    game: Game = Depends(bind_game),
    target: User = Depends(bind_user),
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    ensure_self_or_moderator(current, target.id)
    application = await application_store.get_application(db, game.id, target.id)
    if application is None:
        raise ApplicationNotFound()
    return application


@router.post("/{game}/applications/{user}", response_model=ApplicationResponse)
async def apply_to_game(
    background: BackgroundTasks,
    game: Game = Depends(bind_game),
    target: User = Depends(bind_user),
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Apply the user to the game (the user themself or a moderator)."""
    ensure_self_or_moderator(current, target.id)
    application = await assignment.apply_to_game(db, game, target)
    _schedule_delivery(background)
    return application


@router.delete("/{game}/applications/{user}")
async def resign_from_game(
    background: BackgroundTasks,
    game: Game = Depends(bind_game),
    target: User = Depends(bind_user),
    current: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    ensure_self_or_moderator(current, target.id)
    await assignment.resign_from_game(db, game, target)
    _schedule_delivery(background)
    return {}


# ── Players ──


@router.get("/{game}/players", response_model=list[ApplicationResponse])
async def list_players(
    game: Game = Depends(bind_game),
    db: AsyncSession = Depends(get_session),
):
    """Applications that have been seated on a team."""
    return await application_store.list_seated(db, game.id)


@router.post("/{game}/players", status_code=201)
async def assign_player(
    background: BackgroundTasks,
    body: AssignPlayerRequest,
    game: Game = Depends(bind_game),
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    """Seat an applicant on a team as one of its language editors."""
    try:
        game = await assignment.assign_player(db, game, body.id, body.team, body.language)
    except NotFoundError as e:
        raise BadRequestError(e.message) from e
    _schedule_delivery(background)
    return flatten_game(game)


@router.delete("/{game}/players")
async def remove_player(
    background: BackgroundTasks,
    body: RemovePlayerRequest = Body(...),
    game: Game = Depends(bind_game),
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    game = await assignment.unassign_player(db, game, body.id)
    _schedule_delivery(background)
    return flatten_game(game)


# ── Live actions ──


@router.post("/{game}/actions/activate")
async def activate_game(
    background: BackgroundTasks,
    game: Game = Depends(bind_game),
    _moderator: User = Depends(require_moderator),
    db: AsyncSession = Depends(get_session),
):
    game = await lifecycle.activate_game(db, game.id)
    _schedule_delivery(background)
    return flatten_game(game)


@router.post("/{game}/actions/end")
async def end_game(
    game: Game = Depends(bind_game),
    result: dict | None = Body(default=None),
    _caller: User | None = Depends(require_moderator_or_bot),
    db: AsyncSession = Depends(get_session),
):
    """End the game with its final result and settle it. Empty 200 on success."""
    await lifecycle.end_game(db, game.id, result)
    return Response(status_code=200)
