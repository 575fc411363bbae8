"""DevWars API application.

Run with ``uvicorn devwars.main:app``. The outbox sweeper runs separately as
``arq devwars.workers.outbox_worker.WorkerSettings``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from devwars.config import Settings, get_settings
from devwars.database import close_db, init_db, session_scope
from devwars.gamification.router import router as gamification_router
from devwars.gamification.seed import seed_badges
from devwars.games.router import router as games_router
from devwars.health.router import router as health_router
from devwars.middleware import setup_middleware
from devwars.outbox.service import deliver_outbox
from devwars.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


async def _prepare_game_core() -> None:
    """Make sure the badge catalog exists and flush effects left over from the last run."""
    try:
        async with session_scope() as db:
            await seed_badges(db)
    except SQLAlchemyError:
        logger.warning("Badge catalog not seeded; run the migrations first", exc_info=True)
        return
    await deliver_outbox()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    await _prepare_game_core()
    try:
        yield
    finally:
        await close_redis()
        await close_db()


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(
        title="DevWars API",
        description="Game lifecycle, team assignment and settlement for DevWars live-coding games",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )
    setup_middleware(app, settings)
    for router in (health_router, games_router, gamification_router):
        app.include_router(router)
    return app


app = create_app()
