from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True, slots=True)
class UserRecord:
    """A stored user as the outside world may see it.

    Carries no password field; the digest never leaves the persistence layer.
    """

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True, slots=True)
class CreateUserInput:
    """Normalized, validated input for creating a user."""

    name: str
    email: str
    password: str

    def __repr__(self) -> str:
        # Keep the plaintext password out of logs and tracebacks
        return f"CreateUserInput(name={self.name!r}, email={self.email!r}, password='***')"


def iso8601(value: datetime) -> str:
    """Render a timestamp as UTC ISO-8601 with milliseconds and a Z suffix.

    Naive datetimes are assumed to already be UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
