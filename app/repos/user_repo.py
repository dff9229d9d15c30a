from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Protocol

from app.models.user import UserRecord


class UniqueConstraintViolation(Exception):
    """The store rejected an insert because the email is already taken."""


class DatabaseUnavailableError(ConnectionError):
    """The store could not be reached."""


class UserGateway(Protocol):
    async def insert(
        self, name: str, email: str, password_digest: str
    ) -> UserRecord | None: ...
    async def select_by_id(self, user_id: str) -> UserRecord | None: ...
    async def delete_by_id(self, user_id: str) -> int: ...


class InMemoryUserGateway:
    """Dict-backed gateway used when no DATABASE_URL is configured and in tests."""

    def __init__(self) -> None:
        self._by_id: dict[str, UserRecord] = {}
        self._digests: dict[str, str] = {}

    async def insert(
        self, name: str, email: str, password_digest: str
    ) -> UserRecord | None:
        if any(u.email == email for u in self._by_id.values()):
            raise UniqueConstraintViolation(
                f"duplicate key value violates unique constraint on email={email}"
            )
        now = datetime.now(timezone.utc)
        user = UserRecord(
            id=str(uuid.uuid4()),
            name=name,
            email=email,
            created_at=now,
            updated_at=now,
        )
        self._by_id[user.id] = user
        self._digests[user.id] = password_digest
        return user

    async def select_by_id(self, user_id: str) -> UserRecord | None:
        return self._by_id.get(user_id.lower())

    async def delete_by_id(self, user_id: str) -> int:
        user = self._by_id.pop(user_id.lower(), None)
        if user is None:
            return 0
        del self._digests[user.id]
        return 1

    def password_digest(self, user_id: str) -> str | None:
        return self._digests.get(user_id)
