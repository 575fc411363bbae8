"""Shared test fixtures."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

os.environ["DEVWARS_JWT_SECRET"] = "test-secret-with-enough-bytes-for-hs256"
os.environ["DEVWARS_BOT_API_KEY"] = "test-bot-key"
os.environ["DEVWARS_EMAIL_TRANSPORT"] = "log"
os.environ["DEVWARS_LOG_FORMAT"] = "console"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from devwars.auth.jwt import issue_access_token
from devwars.config import get_settings
from devwars.database import close_db, create_schema, init_db, session_scope
from devwars.db.models import Game, GameMode, GameStatus, User, UserRole
from devwars.email.service import EmailService, LogTransport, set_email_service
from devwars.games import game_store
from devwars.games.storage import Objective
from devwars.gamification.seed import seed_badges

get_settings.cache_clear()

BOT_KEY = "test-bot-key"


@pytest_asyncio.fixture
async def database(tmp_path) -> AsyncGenerator[None, None]:
    """A fresh SQLite database per test with the schema created and badges seeded."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'devwars.db'}")
    await create_schema()
    async with session_scope() as session:
        await seed_badges(session)

    yield

    await close_db()


@pytest_asyncio.fixture
async def db_session(database) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for test assertions."""
    async with session_scope() as session:
        yield session


@pytest.fixture
def email_transport() -> LogTransport:
    """Capture outgoing email instead of sending it."""
    transport = LogTransport()
    set_email_service(EmailService(transport))
    yield transport
    set_email_service(None)


@pytest.fixture
def mock_redis() -> AsyncMock:
    redis = AsyncMock()
    redis.publish = AsyncMock(return_value=1)
    redis.set = AsyncMock(return_value=True)
    return redis


@pytest_asyncio.fixture
async def client(database, email_transport, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against a fresh app. Post-commit outbox delivery is stubbed out."""
    from devwars.main import create_app

    monkeypatch.setattr("devwars.games.router.deliver_outbox", AsyncMock(return_value=0))

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(db_session: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory creating committed users."""
    counter = {"n": 0}

    async def _make(role: UserRole = UserRole.USER, username: str | None = None, email: str | None = "") -> User:
        counter["n"] += 1
        name = username or f"player{counter['n']}"
        user = User(
            username=name,
            email=f"{name}@example.com" if email == "" else email,
            role=role,
            avatar_url=f"https://cdn.devwars.tv/avatars/{name}.png",
        )
        db_session.add(user)
        await db_session.commit()
        return user

    return _make


@pytest_asyncio.fixture
async def make_game(db_session: AsyncSession) -> Callable[..., Awaitable[Game]]:
    """Factory creating committed games with three required objectives and one bonus."""

    async def _make(status: GameStatus = GameStatus.SCHEDULED, title: str = "Portfolio Page", **kwargs) -> Game:
        objectives = kwargs.pop(
            "objectives",
            [
                Objective(id=1, description="Add a navigation bar"),
                Objective(id=2, description="Add a contact form"),
                Objective(id=3, description="Make it responsive"),
                Objective(id=4, description="Animate the logo", is_bonus=True),
            ],
        )
        game = await game_store.create_game(
            db_session,
            title=title,
            start_time=kwargs.pop("start_time", datetime.now(timezone.utc) + timedelta(days=1)),
            season=kwargs.pop("season", 3),
            mode=kwargs.pop("mode", GameMode.CLASSIC),
            status=status,
            objectives=objectives,
            **kwargs,
        )
        await db_session.commit()
        return game

    return _make


def _auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {issue_access_token(user.id, user.role.value)}"}


@pytest.fixture
def headers_for() -> Callable[[User], dict[str, str]]:
    """Bearer headers for a user."""
    return _auth_headers


@pytest.fixture
def bot_headers() -> dict[str, str]:
    return {"X-Api-Key": BOT_KEY}


@pytest_asyncio.fixture
async def moderator(make_user) -> User:
    return await make_user(role=UserRole.MODERATOR, username="moderator")


@pytest_asyncio.fixture
async def admin(make_user) -> User:
    return await make_user(role=UserRole.ADMIN, username="admin")
