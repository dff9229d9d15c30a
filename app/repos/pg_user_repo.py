"""PostgreSQL implementation of UserGateway.

This is the only module that looks at engine-level error codes and
messages.  Everything leaving it is either a UserRecord, a row count, or
one of UniqueConstraintViolation / DatabaseUnavailableError; any other
engine failure propagates as-is.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import delete, insert, select
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError, IntegrityError, InterfaceError, OperationalError

from app.db.engine import Database
from app.db.tables import UserRow
from app.models.user import UserRecord
from app.repos.user_repo import DatabaseUnavailableError, UniqueConstraintViolation

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

_USER_COLUMNS = (
    UserRow.id,
    UserRow.name,
    UserRow.email,
    UserRow.created_at,
    UserRow.updated_at,
)


class PgUserGateway:
    """Satisfies the UserGateway Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, database: Database) -> None:
        self._database = database

    async def insert(
        self, name: str, email: str, password_digest: str
    ) -> UserRecord | None:
        stmt = (
            insert(UserRow)
            .values(name=name, email=email, password=password_digest)
            .returning(*_USER_COLUMNS)
        )
        with translate_errors():
            async with self._database.session() as session:
                row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def select_by_id(self, user_id: str) -> UserRecord | None:
        stmt = select(*_USER_COLUMNS).where(UserRow.id == uuid.UUID(user_id))
        with translate_errors():
            async with self._database.session() as session:
                row = (await session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return _row_to_user(row)

    async def delete_by_id(self, user_id: str) -> int:
        stmt = delete(UserRow).where(UserRow.id == uuid.UUID(user_id))
        with translate_errors():
            async with self._database.session() as session:
                result = await session.execute(stmt)
        return result.rowcount


def _sqlstate(exc: DBAPIError) -> str | None:
    orig = exc.orig
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_connection_failure(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        return True
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return "connect" in str(exc).lower()


@contextmanager
def translate_errors() -> Iterator[None]:
    try:
        yield
    except IntegrityError as exc:
        if _sqlstate(exc) == UNIQUE_VIOLATION:
            raise UniqueConstraintViolation(str(exc.orig)) from exc
        raise
    except (DBAPIError, OSError) as exc:
        if _is_connection_failure(exc):
            logger.error("Database connection failed: %s", exc)
            raise DatabaseUnavailableError(
                f"Unable to connect to database: {exc}"
            ) from exc
        raise


def _row_to_user(row: Row) -> UserRecord:
    return UserRecord(
        id=str(row.id),
        name=row.name,
        email=row.email,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
