"""Applications and team/language seating for a game."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.models import Game, GameApplication, GameStatus, User
from devwars.errors import (
    AlreadyAssignedToAnotherTeam,
    ApplicationAlreadyExists,
    ApplicationNotFound,
    BadRequestError,
    ConflictError,
    LanguageAlreadyAssignedInTeam,
)
from devwars.games import application_store
from devwars.games.game_store import reload_game
from devwars.games.snapshot import rebuild_roster, roster_payload
from devwars.games.storage import LANGUAGES, TEAM_NAMES
from devwars.outbox.service import enqueue_broadcast, enqueue_email

logger = logging.getLogger(__name__)


def _email_context(game: Game, user: User) -> dict[str, str]:
    return {
        "username": user.username,
        "game_time": game.start_time.strftime("%a, %d %b %Y %H:%M UTC"),
        "game_mode": game.mode.value,
    }


async def _refresh_roster(db: AsyncSession, game: Game) -> Game:
    """Rebuild the storage roster from the seated applications and queue a push if live."""
    game = await reload_game(db, game.id)
    rebuild_roster(game, await application_store.list_seated(db, game.id))
    await db.flush()
    if game.status == GameStatus.ACTIVE:
        enqueue_broadcast(db, "game.players", roster_payload(game))
    return game


async def apply_to_game(db: AsyncSession, game: Game, user: User) -> GameApplication:
    """Create an unseated application for the user. Raises ApplicationAlreadyExists."""
    try:
        if await application_store.application_exists(db, game.id, user.id):
            raise ApplicationAlreadyExists()
        if not await application_store.insert_application(db, game.id, user.id):
            raise ApplicationAlreadyExists()

        enqueue_email(db, user.email, "game_application", _email_context(game, user))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("User %d applied to game %d", user.id, game.id)
    application = await application_store.get_application(db, game.id, user.id)
    if application is None:
        # Resigned between the commit and this read.
        raise ApplicationNotFound()
    return application


async def resign_from_game(db: AsyncSession, game: Game, user: User) -> None:
    """Withdraw the user's application, releasing any seats it held."""
    try:
        application = await application_store.get_application(db, game.id, user.id)
        if application is None:
            raise ConflictError("The user has not applied to the given game.")
        was_seated = application.team is not None

        await application_store.delete_application(db, application.id)
        if was_seated:
            await _refresh_roster(db, game)

        enqueue_email(db, user.email, "game_application_resign", _email_context(game, user))
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("User %d resigned from game %d", user.id, game.id)


async def assign_player(db: AsyncSession, game: Game, user_id: int, team: int, language: str) -> Game:
    """Seat an applicant on ``team`` as the ``language`` editor.

    Team exclusivity is a conditional update and seat exclusivity a unique
    insert, so concurrent requests for the same seat cannot both succeed.
    """
    if team not in TEAM_NAMES:
        raise BadRequestError(f"Unknown team {team}; expected one of {sorted(TEAM_NAMES)}.")
    if language not in LANGUAGES:
        raise BadRequestError(f"Unknown language {language!r}; expected one of {list(LANGUAGES)}.")

    try:
        application = await application_store.get_application(db, game.id, user_id)
        if application is None:
            raise ApplicationNotFound()

        if application.team is not None and application.team != team:
            raise AlreadyAssignedToAnotherTeam()
        if not await application_store.claim_team(db, application.id, team):
            raise AlreadyAssignedToAnotherTeam()

        if not await application_store.claim_seat(db, game.id, application.id, team, language):
            raise LanguageAlreadyAssignedInTeam()

        await application_store.sync_assigned_languages(db, application.id)
        game = await _refresh_roster(db, game)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("User %d seated on game %d: team=%s language=%s", user_id, game.id, TEAM_NAMES[team], language)
    return await reload_game(db, game.id)


async def unassign_player(db: AsyncSession, game: Game, user_id: int) -> Game:
    """Release the user's team and seats. A user without an application is a no-op."""
    try:
        application = await application_store.get_application(db, game.id, user_id)
        if application is not None:
            await application_store.clear_assignment(db, application.id)
            game = await _refresh_roster(db, game)
            await db.commit()
    except Exception:
        await db.rollback()
        raise

    if application is not None:
        logger.info("User %d removed from the teams of game %d", user_id, game.id)
    return await reload_game(db, game.id)
