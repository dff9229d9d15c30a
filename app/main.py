from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI

from app.api.dependencies import reject_malformed_json
from app.api.errors import setup_exception_handlers
from app.api.health import router as health_router
from app.api.users import router as users_router
from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db.engine import lifespan_db
from app.middleware.request_context import RequestContextMiddleware, install_log_filter
from app.repos.pg_user_repo import PgUserGateway
from app.repos.user_repo import InMemoryUserGateway

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
install_log_filter()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # The database handle is opened here and passed down explicitly;
    # lifespan_db disposes of the pool on the way out.
    async with lifespan_db(SETTINGS) as database:
        app.state.database = database
        if database is None:
            app.state.user_gateway = InMemoryUserGateway()
        else:
            app.state.user_gateway = PgUserGateway(database)
        try:
            yield
        finally:
            app.state.user_gateway = None
            app.state.database = None


# only app setup + router registration

app = FastAPI(
    title="user-service",
    lifespan=lifespan,
    dependencies=[Depends(reject_malformed_json)],
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

app.add_middleware(RequestContextMiddleware)
setup_exception_handlers(app)

app.include_router(health_router)
app.include_router(users_router)

logger.info(
    "user-service configured  env=%s log_level=%s port=%d database=%s docs=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    "postgres" if SETTINGS.database_url else "in-memory",
    "on" if SETTINGS.is_dev else "off",
)
