"""Middleware registration."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from devwars.config import Settings
from devwars.middleware.error_handler import setup_error_handlers
from devwars.middleware.logging import setup_logging
from devwars.middleware.request_context import REQUEST_ID_HEADER, RequestContextMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Logging, error bodies, request context, then CORS as the outermost layer.

    The site and the live-game frame are the browser clients; the Twitch bot
    calls server to server and does not need CORS.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )
