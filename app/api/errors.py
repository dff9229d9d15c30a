"""Exception handlers that keep every error response in the JSON envelope.

User routes map their own failures through app.services.error_mapper.
These handlers cover what escapes a route: unreadable JSON bodies,
framework-level HTTP errors (unknown path, wrong method) and anything
unhandled.
"""

from __future__ import annotations

import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import SETTINGS
from app.services.error_mapper import error_envelope

logger = logging.getLogger(__name__)


class InvalidJsonError(ValueError):
    """The request body could not be decoded as JSON."""


def _error_slug(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase.lower().replace(" ", "_")
    except ValueError:
        return "http_error"


async def invalid_json_handler(request: Request, exc: InvalidJsonError) -> JSONResponse:
    logger.warning(
        "JSON parsing error: %s url=%s method=%s", exc, request.url.path, request.method
    )
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            "invalid_json", "Request body contains invalid JSON", details=str(exc)
        ),
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else _error_slug(exc.status_code)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(_error_slug(exc.status_code), message),
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(loc) for loc in first.get("loc", ())[1:]) or None
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            "validation_error", first.get("msg", "Invalid request"), field=field
        ),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error url=%s method=%s", request.url.path, request.method
    )
    extra = {"details": str(exc)} if SETTINGS.is_dev else {}
    return JSONResponse(
        status_code=500,
        content=error_envelope(
            "internal_server_error", "An unexpected error occurred", **extra
        ),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InvalidJsonError, invalid_json_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, unhandled_error_handler)
