"""arq worker delivering the effect outbox.

Run with ``arq devwars.workers.outbox_worker.WorkerSettings``. It sweeps
effects the request-time background delivery did not get to: Redis was
down, SMTP failed, or the API restarted before delivering.
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from devwars.config import get_settings
from devwars.database import close_db, init_db
from devwars.outbox.service import deliver_outbox
from devwars.redis_client import connect

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["redis"] = connect(settings.redis_url, max_connections=10)
    logger.info("Outbox worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    publisher = ctx.get("redis")
    if publisher is not None:
        await publisher.aclose()
    await close_db()
    logger.info("Outbox worker shut down")


async def deliver_outbox_effects(ctx: dict) -> int:  # type: ignore[type-arg]
    """Periodic task: deliver pending broadcasts and emails."""
    delivered = await deliver_outbox(ctx.get("redis"))
    if delivered:
        logger.info("Outbox sweep delivered %d effect(s)", delivered)
    return delivered


def _poll_seconds() -> set[int]:
    """Seconds of the minute the sweep fires on, every ``outbox_poll_seconds``."""
    return set(range(0, 60, get_settings().outbox_poll_seconds))


class WorkerSettings:
    functions = [deliver_outbox_effects]
    cron_jobs = [
        cron(deliver_outbox_effects, second=_poll_seconds(), run_at_startup=True),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 1
    job_timeout = 120
