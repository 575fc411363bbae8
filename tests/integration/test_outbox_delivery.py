"""Outbox delivery: broadcasts to Redis, emails to the provider, failures recorded."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select

from devwars.config import get_settings
from devwars.database import session_scope
from devwars.db.models import GameStatus, OutboxEffect
from devwars.email.service import EmailService, LogTransport
from devwars.games import lifecycle
from devwars.outbox import service as outbox
from devwars.outbox.service import deliver_outbox, deliver_pending, enqueue_broadcast, enqueue_email
from devwars.redis_client import LIVE_GAME_KEY

pytestmark = pytest.mark.asyncio


async def _all_effects(db) -> list[OutboxEffect]:
    result = await db.execute(
        select(OutboxEffect).order_by(OutboxEffect.id).execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


class TestDeliverPending:
    async def test_broadcast_is_published(self, db_session, mock_redis):
        enqueue_broadcast(db_session, "game.players", {"id": 1, "teams": {}})
        await db_session.commit()

        delivered = await deliver_pending(db_session, mock_redis)

        assert delivered == 1
        channel, message = mock_redis.publish.await_args.args
        assert channel == get_settings().broadcast_channel
        assert json.loads(message) == {"event": "game.players", "data": {"id": 1, "teams": {}}}
        mock_redis.set.assert_not_awaited()
        (effect,) = await _all_effects(db_session)
        assert effect.delivered_at is not None

    async def test_live_broadcast_stores_snapshot(self, db_session, mock_redis):
        enqueue_broadcast(db_session, "game.update", {"id": 9}, live=True)
        await db_session.commit()

        await deliver_pending(db_session, mock_redis)

        mock_redis.set.assert_awaited_once_with(LIVE_GAME_KEY, json.dumps({"id": 9}))

    async def test_broadcast_waits_without_redis(self, db_session):
        enqueue_broadcast(db_session, "game.update", {"id": 9}, live=True)
        await db_session.commit()

        assert await deliver_pending(db_session, None) == 0

        (effect,) = await _all_effects(db_session)
        assert effect.delivered_at is None
        assert effect.attempts == 0

    async def test_email_is_sent(self, db_session, mock_redis, email_transport):
        enqueue_email(db_session, "zax@example.com", "game_application", {"username": "zax"})
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis) == 1

        assert email_transport.sent[0]["to"] == "zax@example.com"

    async def test_failure_is_recorded_and_retried(self, db_session, mock_redis):
        mock_redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        enqueue_broadcast(db_session, "game.update", {"id": 1})
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis) == 0

        (effect,) = await _all_effects(db_session)
        assert effect.attempts == 1
        assert "redis down" in effect.last_error

        mock_redis.publish = AsyncMock(return_value=1)
        assert await deliver_pending(db_session, mock_redis) == 1

    async def test_rejected_email_counts_an_attempt(self, db_session, mock_redis):
        transport = AsyncMock()
        transport.deliver = AsyncMock(return_value=False)
        service = EmailService(transport)
        enqueue_email(db_session, "zax@example.com", "game_application", {})
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis, email_service=service) == 0

        (effect,) = await _all_effects(db_session)
        assert effect.attempts == 1

    async def test_exhausted_effects_are_skipped(self, db_session, mock_redis):
        effect = enqueue_broadcast(db_session, "game.update", {"id": 1})
        effect.attempts = get_settings().outbox_max_attempts
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis) == 0
        mock_redis.publish.assert_not_awaited()

    async def test_effects_are_delivered_in_order(self, db_session, mock_redis):
        for number in range(3):
            enqueue_broadcast(db_session, "game.update", {"id": number})
        await db_session.commit()

        await deliver_pending(db_session, mock_redis)

        sent = [json.loads(call.args[1])["data"]["id"] for call in mock_redis.publish.await_args_list]
        assert sent == [0, 1, 2]


class OverlappingRunTransport(LogTransport):
    """Starts a second delivery run from inside the first one's send."""

    def __init__(self) -> None:
        super().__init__()
        self.overlapping_delivered: int | None = None

    async def deliver(self, to, email):
        if self.overlapping_delivered is None:
            self.overlapping_delivered = -1
            async with session_scope() as other:
                self.overlapping_delivered = await deliver_pending(other, None, email_service=EmailService(self))
        return await super().deliver(to, email)


class TestClaims:
    async def test_overlapping_runs_send_each_email_once(self, db_session):
        enqueue_email(db_session, "zax@example.com", "game_application", {"username": "zax"})
        await db_session.commit()
        transport = OverlappingRunTransport()

        assert await deliver_pending(db_session, None, email_service=EmailService(transport)) == 1

        assert transport.overlapping_delivered == 0
        assert [mail["to"] for mail in transport.sent] == ["zax@example.com"]

    async def test_fresh_claim_is_left_to_its_owner(self, db_session, mock_redis):
        effect = enqueue_broadcast(db_session, "game.update", {"id": 1})
        effect.claim_token = "a" * 32
        effect.claimed_at = datetime.now(timezone.utc)
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis) == 0
        mock_redis.publish.assert_not_awaited()

    async def test_stale_claim_is_taken_over(self, db_session, mock_redis):
        effect = enqueue_broadcast(db_session, "game.update", {"id": 1})
        effect.claim_token = "a" * 32
        effect.claimed_at = datetime.now(timezone.utc) - timedelta(seconds=get_settings().outbox_claim_seconds + 60)
        await db_session.commit()

        assert await deliver_pending(db_session, mock_redis) == 1

        (effect,) = await _all_effects(db_session)
        assert effect.delivered_at is not None
        assert effect.claim_token != "a" * 32

    async def test_failed_effect_is_released(self, db_session, mock_redis):
        mock_redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))
        enqueue_broadcast(db_session, "game.update", {"id": 1})
        await db_session.commit()

        await deliver_pending(db_session, mock_redis)

        (effect,) = await _all_effects(db_session)
        assert effect.claim_token is None
        assert effect.claimed_at is None


class TestCoreOperationsQueueEffects:
    async def test_activation_queues_live_snapshot(self, db_session, make_game, mock_redis):
        game = await make_game()

        await lifecycle.activate_game(db_session, game.id)
        await deliver_pending(db_session, mock_redis)

        key, snapshot = mock_redis.set.await_args.args
        assert key == LIVE_GAME_KEY
        data = json.loads(snapshot)
        assert data["id"] == game.id
        assert data["theme"] == "Portfolio Page"
        assert [o["number"] for o in data["objectives"]] == [1, 2, 3, 4]

    async def test_broadcast_failure_does_not_undo_activation(self, db_session, make_game, mock_redis):
        game = await make_game()
        mock_redis.publish = AsyncMock(side_effect=ConnectionError("redis down"))

        await lifecycle.activate_game(db_session, game.id)
        await deliver_pending(db_session, mock_redis)

        game = await lifecycle.reload_game(db_session, game.id)
        assert game.status == GameStatus.ACTIVE


class TestDeliverOutbox:
    async def test_uses_its_own_session(self, database, mock_redis, email_transport):
        async with session_scope() as db:
            enqueue_email(db, "zax@example.com", "game_application_resign", {"username": "zax"})
            await db.commit()

        assert await deliver_outbox(mock_redis) == 1
        assert email_transport.sent[0]["subject"] == "DevWars Game Application Update (Resign)"

    async def test_errors_are_logged_not_raised(self, database, monkeypatch):
        monkeypatch.setattr(outbox, "deliver_pending", AsyncMock(side_effect=RuntimeError("boom")))
        assert await deliver_outbox(None) == 0
