"""Async SQLAlchemy engine wrapped in an explicitly managed handle.

`Database` owns the engine and its connection pool.  Nothing is created at
import time: the FastAPI lifespan builds one from Settings, calls open(),
hands it to the user gateway and closes it on shutdown.  Tests construct
their own or skip it entirely in favour of the in-memory gateway.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import Settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all table models."""


class Database:
    def __init__(
        self,
        url: str,
        *,
        pool_size: int = 10,
        max_overflow: int = 10,
        connect_timeout: float = 2.0,
        echo: bool = False,
    ) -> None:
        self.url = url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._connect_timeout = connect_timeout
        self._echo = echo
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> Database:
        if not settings.database_url:
            raise ValueError("DATABASE_URL is not configured")
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            connect_timeout=settings.db_connect_timeout,
            echo=settings.is_dev,  # log SQL in dev only
        )

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    def open(self) -> None:
        if self._engine is not None:
            return
        # asyncpg's connect timeout; the pool itself connects lazily
        self._engine = create_async_engine(
            self.url,
            echo=self._echo,
            pool_size=self._pool_size,
            max_overflow=self._max_overflow,
            pool_pre_ping=True,
            connect_args={"timeout": self._connect_timeout},
        )
        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine created: %s", self._engine.url)

    async def close(self) -> None:
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Yield a session in its own transaction.

        Commits on success, rolls back on exception.
        """
        if self._session_factory is None:
            raise RuntimeError("Database is not open; call open() first")
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> None:
        async with self.session() as session:
            await session.execute(text("SELECT 1"))

    async def create_schema(self) -> None:
        """Create any missing tables.  Existing tables are left untouched."""
        if self._engine is None:
            raise RuntimeError("Database is not open; call open() first")
        import app.db.tables  # noqa: F401  registers tables on Base.metadata

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ensured")


@asynccontextmanager
async def lifespan_db(settings: Settings) -> AsyncGenerator[Database | None, None]:
    """Startup/shutdown hook for the database.

    Yields None when no DATABASE_URL is configured.
    """
    if not settings.database_url:
        logger.info("No DATABASE_URL configured; using in-memory user gateway")
        yield None
        return

    database = Database.from_settings(settings)
    database.open()
    try:
        if settings.db_create_schema:
            await database.create_schema()
        yield database
    finally:
        await database.close()
