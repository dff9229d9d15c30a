from __future__ import annotations

import json
from typing import Any

from fastapi import Request

from app.api.errors import InvalidJsonError
from app.db.engine import Database
from app.repos.user_repo import UserGateway


def get_user_gateway(request: Request) -> UserGateway:
    """FastAPI dependency returning the gateway built by the app lifespan.

    Tests replace it through app.dependency_overrides.
    """
    gateway = getattr(request.app.state, "user_gateway", None)
    if gateway is None:
        raise RuntimeError("user gateway is not initialised; is the lifespan running?")
    return gateway


def get_database(request: Request) -> Database | None:
    """The open Database handle, or None when running on the in-memory gateway."""
    return getattr(request.app.state, "database", None)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"Unexpected token {token} in JSON")


def decode_json(raw: bytes) -> Any:
    """Strict JSON decode; NaN and Infinity are not JSON."""
    try:
        return json.loads(raw, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidJsonError(str(e)) from None


def _is_json_media_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


async def reject_malformed_json(request: Request) -> None:
    """App-wide dependency: a JSON-typed body must parse, whatever the route."""
    if not _is_json_media_type(request.headers.get("content-type", "")):
        return
    raw = await request.body()
    if raw.strip():
        decode_json(raw)
