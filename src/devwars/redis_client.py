"""Redis connection used to push game events to spectators.

Broadcasting is optional. Without a ``redis_url`` no client is created and
pending broadcasts simply wait in the outbox.
"""

import json
from typing import Any

import redis.asyncio as redis

from devwars.config import get_settings

# Snapshot of the active game for spectators who join mid-game.
LIVE_GAME_KEY = "game:live"

_client: redis.Redis | None = None


def connect(url: str, max_connections: int = 20) -> redis.Redis:
    return redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=max_connections,
    )


async def init_redis(url: str | None) -> None:
    global _client  # noqa: PLW0603
    _client = connect(url) if url else None


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis_or_none() -> redis.Redis | None:
    """The shared client, or None when broadcasting is not configured."""
    return _client


async def publish_game_event(client: Any, event: str, data: dict[str, Any]) -> int:
    """Publish one event on the broadcast channel. Returns the receiver count."""
    message = json.dumps({"event": event, "data": data})
    return await client.publish(get_settings().broadcast_channel, message)


async def store_live_game(client: Any, snapshot: dict[str, Any]) -> None:
    await client.set(LIVE_GAME_KEY, json.dumps(snapshot))
