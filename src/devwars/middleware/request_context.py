"""Per-request log context.

Binds the request id, method, path and, on ``/games/{id}`` routes, the game
id into structlog's contextvars so every log line of the request carries
them. The request id is taken from ``X-Request-Id`` or generated, and echoed
on the response.
"""

import re
import uuid

import structlog
from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

REQUEST_ID_HEADER = "X-Request-Id"

_GAME_PATH = re.compile(r"^/games/(\d+)(?:/|$)")


def request_context(scope: Scope) -> dict[str, object]:
    context: dict[str, object] = {
        "request_id": Headers(scope=scope).get(REQUEST_ID_HEADER) or str(uuid.uuid4()),
        "method": scope["method"],
        "path": scope["path"],
    }
    match = _GAME_PATH.match(scope["path"])
    if match:
        context["game_id"] = int(match.group(1))
    return context


class RequestContextMiddleware:
    def __init__(self, app: ASGIApp) -> None:
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        context = request_context(scope)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(**context)

        async def send_with_request_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[REQUEST_ID_HEADER] = str(context["request_id"])
            await send(message)

        await self.app(scope, receive, send_with_request_id)
