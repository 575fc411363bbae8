"""Exception handlers. Every error leaves the API as ``{"error": message}``."""

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from devwars.errors import DevWarsError

logger = structlog.get_logger()


def error_response(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors reduced to ``type``, ``loc`` and ``msg``; the rest may not serialize."""
    return [{k: v for k, v in error.items() if k in ("type", "loc", "msg")} for error in exc.errors()]


async def handle_devwars_error(_request: Request, exc: DevWarsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", status=exc.status_code, error=exc.message)
    else:
        logger.info("request_rejected", status=exc.status_code, error=exc.message)
    return error_response(exc.status_code, exc.message)


async def handle_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(exc.status_code, exc.detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(422, "Validation error", errors=jsonable_errors(exc))


async def handle_unexpected(_request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error=str(exc), exc_info=exc)
    return error_response(500, "Internal server error")


def setup_error_handlers(app: FastAPI) -> None:
    # Method and path come from the request context bound by the middleware.
    app.add_exception_handler(DevWarsError, handle_devwars_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected)
