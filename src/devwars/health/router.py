"""Liveness, readiness and version endpoints."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.config import get_settings
from devwars.database import get_session
from devwars.db.models import OutboxEffect
from devwars.redis_client import get_redis_or_none

router = APIRouter(tags=["Health"])


async def _outbox_backlog(db: AsyncSession) -> dict[str, int]:
    """Undelivered effects, split into those still retried and those given up on."""
    exhausted = OutboxEffect.attempts >= get_settings().outbox_max_attempts
    row = (
        await db.execute(
            select(
                func.count(OutboxEffect.id),
                func.coalesce(func.sum(case((exhausted, 1), else_=0)), 0),
            ).where(OutboxEffect.delivered_at.is_(None))
        )
    ).one()
    total, failed = int(row[0]), int(row[1])
    return {"pending": total - failed, "failed": failed}


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(db: AsyncSession = Depends(get_session)) -> dict[str, object]:  # noqa: B008
    """Database, Redis and outbox backlog.

    Redis is optional: without it the API works and broadcasts wait in the
    outbox, so "not configured" still counts as ready.
    """
    checks: dict[str, object] = {}

    try:
        checks["outbox"] = await _outbox_backlog(db)
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    redis = get_redis_or_none()
    if redis is None:
        checks["redis"] = "not configured"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except (RedisError, OSError) as exc:
            checks["redis"] = f"error: {exc}"

    ready = checks["database"] == "ok" and checks["redis"] in ("ok", "not configured")
    return {"status": "ready" if ready else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {"version": settings.app_version, "environment": settings.environment}
