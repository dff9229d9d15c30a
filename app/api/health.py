"""Liveness and readiness endpoints.

/health_check answers as long as the process can serve HTTP; it never
touches the database, so an orchestrator will not restart the service
just because PostgreSQL is down.

/ready reports whether this instance can actually serve user requests
right now.  A 503 here should take the instance out of rotation, not
restart it.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated, Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import get_database
from app.db.engine import Database
from app.models.user import iso8601
from app.repos.pg_user_repo import translate_errors
from app.repos.user_repo import DatabaseUnavailableError
from app.services.error_mapper import error_envelope

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

SERVICE_NAME = "api"


class HealthOut(BaseModel):
    status: Literal["ok"] = "ok"
    timestamp: str
    service: str = SERVICE_NAME


@router.get("/health_check", response_model=HealthOut)
async def health_check() -> HealthOut:
    return HealthOut(timestamp=iso8601(datetime.now(timezone.utc)))


@router.get("/ready")
async def ready(
    database: Annotated[Database | None, Depends(get_database)],
) -> JSONResponse:
    if database is None:
        # In-memory gateway: nothing external to wait for
        return JSONResponse(status_code=200, content={"status": "ready"})

    try:
        with translate_errors():
            await database.ping()
    except DatabaseUnavailableError as e:
        logger.warning("Readiness check failed: %s", e)
        return JSONResponse(
            status_code=503,
            content=error_envelope(
                "database_unavailable",
                "Unable to connect to database",
                details=str(e),
            ),
        )
    return JSONResponse(status_code=200, content={"status": "ready"})
