"""Transactional outbox for best-effort side effects.

Game operations enqueue broadcasts and emails in the same transaction as the
state change they describe. Delivery happens after commit (a FastAPI
background task, plus the arq cron as a safety net); a failed delivery is
recorded on the row and never raised back to the caller.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.config import get_settings
from devwars.database import session_scope
from devwars.db.models import OutboxEffect
from devwars.email.service import EmailService, get_email_service
from devwars.redis_client import get_redis_or_none, publish_game_event, store_live_game

logger = logging.getLogger(__name__)

BROADCAST = "broadcast"
EMAIL = "email"


class UndeliverableEffect(Exception):
    """An effect could not be delivered right now; it stays pending."""


def enqueue_broadcast(db: AsyncSession, event: str, data: dict[str, Any], live: bool = False) -> OutboxEffect:
    """Queue a real-time push to spectators. ``live`` also stores it as the current game."""
    effect = OutboxEffect(kind=BROADCAST, payload={"event": event, "data": data, "live": live})
    db.add(effect)
    return effect


def enqueue_email(db: AsyncSession, to: str | None, template: str, context: dict[str, str]) -> OutboxEffect | None:
    """Queue a templated email. Users without an address are skipped."""
    if not to:
        logger.info("Skipping %s email: recipient has no address", template)
        return None
    effect = OutboxEffect(kind=EMAIL, payload={"to": to, "template": template, "context": context})
    db.add(effect)
    return effect


async def _deliver_broadcast(redis: Any, payload: dict[str, Any]) -> None:
    await publish_game_event(redis, payload["event"], payload["data"])
    if payload.get("live"):
        await store_live_game(redis, payload["data"])


async def _deliver_email(email_service: EmailService, payload: dict[str, Any]) -> None:
    sent = await email_service.send_template(payload["to"], payload["template"], payload.get("context", {}))
    if not sent:
        raise UndeliverableEffect("email provider rejected the message")


async def _claim_batch(db: AsyncSession, redis: Any, limit: int | None) -> str | None:
    """Claim a batch of pending effects for this run. Returns the claim token, or None if nothing is due.

    The claim is a conditional update committed before anything is sent, so
    a concurrent run (another request's background task or the worker)
    either skips the rows or waits on them and then finds them claimed.
    """
    settings = get_settings()
    now = datetime.now(timezone.utc)
    due = [
        OutboxEffect.delivered_at.is_(None),
        OutboxEffect.attempts < settings.outbox_max_attempts,
        or_(
            OutboxEffect.claimed_at.is_(None),
            OutboxEffect.claimed_at < now - timedelta(seconds=settings.outbox_claim_seconds),
        ),
    ]
    if redis is None:
        due.append(OutboxEffect.kind != BROADCAST)

    ids = (
        await db.execute(
            select(OutboxEffect.id).where(*due).order_by(OutboxEffect.id).limit(limit or settings.outbox_batch_size)
        )
    ).scalars().all()
    if not ids:
        return None

    token = uuid.uuid4().hex
    result = await db.execute(
        update(OutboxEffect)
        .where(OutboxEffect.id.in_(ids), *due)
        .values(claim_token=token, claimed_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return token if result.rowcount else None


async def deliver_pending(
    db: AsyncSession,
    redis: Any,
    email_service: EmailService | None = None,
    limit: int | None = None,
) -> int:
    """Deliver pending effects in insertion order. Returns the number delivered.

    Each effect is sent by at most one run at a time. Effects that have
    failed ``outbox_max_attempts`` times are left alone, and broadcasts stay
    pending without counting an attempt while Redis is not configured.
    """
    token = await _claim_batch(db, redis, limit)
    if token is None:
        return 0

    result = await db.execute(
        select(OutboxEffect)
        .where(OutboxEffect.claim_token == token)
        .order_by(OutboxEffect.id)
        .execution_options(populate_existing=True)
    )
    effects = list(result.scalars().all())

    delivered = 0
    for effect in effects:
        try:
            if effect.kind == BROADCAST:
                await _deliver_broadcast(redis, effect.payload)
            elif effect.kind == EMAIL:
                await _deliver_email(email_service or get_email_service(), effect.payload)
            else:
                raise UndeliverableEffect(f"unknown effect kind {effect.kind!r}")
        except Exception as exc:
            effect.attempts += 1
            effect.last_error = str(exc)[:500]
            effect.claim_token = None
            effect.claimed_at = None
            logger.warning(
                "Failed to deliver %s effect %d (attempt %d)",
                effect.kind,
                effect.id,
                effect.attempts,
                exc_info=True,
            )
            continue

        effect.delivered_at = datetime.now(timezone.utc)
        delivered += 1

    await db.commit()
    if delivered:
        logger.info("Delivered %d outbox effect(s)", delivered)
    return delivered


async def deliver_outbox(redis: Any = None) -> int:
    """Deliver pending effects in a fresh session. Used after commit and by the worker."""
    if redis is None:
        redis = get_redis_or_none()
    try:
        async with session_scope() as db:
            return await deliver_pending(db, redis)
    except Exception:
        logger.exception("Outbox delivery run failed")
        return 0
