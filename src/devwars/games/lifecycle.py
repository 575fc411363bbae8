"""Game lifecycle state machine.

State progression: SCHEDULED -> ACTIVE -> ENDED, with SCHEDULED -> ENDED for
games that never ran and ENDED -> ACTIVE for a rematch. Status writes are
conditional updates so two concurrent requests cannot both win a transition.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.db.models import Game, GameStatus
from devwars.errors import AlreadyActivated, AlreadyEnded, InvalidTransition
from devwars.games.game_store import apply_game_fields, reload_game
from devwars.games.results import build_meta, merge_reported_objectives, parse_result_payload
from devwars.games.settlement import SettlementResult, settle_game
from devwars.games.snapshot import live_game_payload
from devwars.games.storage import Objective, TemplateSet, read_storage, write_storage
from devwars.outbox.service import enqueue_broadcast

logger = logging.getLogger(__name__)

VALID_TRANSITIONS: dict[GameStatus, list[GameStatus]] = {
    GameStatus.SCHEDULED: [GameStatus.ACTIVE, GameStatus.ENDED],
    GameStatus.ACTIVE: [GameStatus.ENDED],
    GameStatus.ENDED: [GameStatus.ACTIVE],
}


def validate_transition(current_status: GameStatus, target_status: GameStatus) -> None:
    """Validate a state transition. Raises InvalidTransition if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidTransition(
            f"Invalid transition: {current_status.value} -> {target_status.value}. "
            f"Valid transitions: {[s.value for s in valid]}"
        )


async def _transition(db: AsyncSession, game_id: int, target: GameStatus) -> bool:
    """Move the game to ``target`` if its current status allows it. Returns False otherwise."""
    allowed_from = [current for current, targets in VALID_TRANSITIONS.items() if target in targets]
    result = await db.execute(
        update(Game)
        .where(Game.id == game_id, Game.status.in_(allowed_from))
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def broadcast_game(db: AsyncSession, game: Game) -> None:
    enqueue_broadcast(db, "game.update", live_game_payload(game), live=True)


async def activate_game(db: AsyncSession, game_id: int) -> Game:
    """Activate a scheduled (or rematch an ended) game and broadcast it."""
    try:
        if not await _transition(db, game_id, GameStatus.ACTIVE):
            raise AlreadyActivated()
        game = await reload_game(db, game_id)
        broadcast_game(db, game)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Game %d activated", game_id)
    return await reload_game(db, game_id)


async def end_game(db: AsyncSession, game_id: int, raw_result: Any) -> SettlementResult:
    """End a game with its result and settle it, all in one transaction.

    Raises AlreadyEnded if the game is already ENDED; any failure rolls back
    the status change together with the stats and badge writes.
    """
    payload = parse_result_payload(raw_result)

    try:
        if not await _transition(db, game_id, GameStatus.ENDED):
            raise AlreadyEnded()

        game = await reload_game(db, game_id)
        storage = read_storage(game)
        merge_reported_objectives(storage, payload)
        storage.meta = build_meta(payload, game_id)
        write_storage(game, storage)
        await db.flush()

        outcome = await settle_game(db, game_id, storage)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Game %d ended (winner=%s, tie=%s)", game_id, outcome.winning_team, outcome.tie)
    return outcome


async def update_game(db: AsyncSession, game: Game, fields: dict[str, Any]) -> Game:
    """Apply a moderator edit.

    The only status change accepted here is activation, guarded like
    ``activate_game``. Ending a game goes through ``end_game`` with its result.
    """
    game_id = game.id
    target = fields.get("status")
    if target == GameStatus.ENDED and game.status != GameStatus.ENDED:
        raise InvalidTransition("Games are ended with their result through /games/{game}/actions/end.")
    try:
        if target is not None and target != game.status:
            validate_transition(game.status, target)
            if not await _transition(db, game_id, target):
                raise AlreadyActivated()
            game = await reload_game(db, game_id)

        apply_game_fields(game, fields)

        if "objectives" in fields or "templates" in fields:
            storage = read_storage(game)
            if fields.get("objectives") is not None:
                objectives: list[Objective] = fields["objectives"]
                storage.objectives = {str(o.id): o for o in objectives}
            if fields.get("templates") is not None:
                templates: TemplateSet = fields["templates"]
                storage.templates = templates
            write_storage(game, storage)

        await db.flush()
        if game.status == GameStatus.ACTIVE:
            broadcast_game(db, game)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info("Game %d updated: %s", game_id, sorted(fields))
    return await reload_game(db, game_id)
