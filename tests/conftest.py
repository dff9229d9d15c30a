from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.api.dependencies import get_user_gateway  # noqa: E402
from app.main import app  # noqa: E402
from app.models.user import UserRecord  # noqa: E402
from app.repos.user_repo import DatabaseUnavailableError, InMemoryUserGateway  # noqa: E402

UNKNOWN_ID = "123e4567-e89b-12d3-a456-426614174000"


class RecordingGateway(InMemoryUserGateway):
    """In-memory gateway that counts calls, to prove validation short-circuits."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[str] = []

    async def insert(self, name: str, email: str, password_digest: str) -> UserRecord | None:
        self.calls.append("insert")
        return await super().insert(name, email, password_digest)

    async def select_by_id(self, user_id: str) -> UserRecord | None:
        self.calls.append("select_by_id")
        return await super().select_by_id(user_id)

    async def delete_by_id(self, user_id: str) -> int:
        self.calls.append("delete_by_id")
        return await super().delete_by_id(user_id)


class BrokenGateway:
    """Gateway whose every call fails with the given exception."""

    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    async def insert(self, name: str, email: str, password_digest: str) -> UserRecord | None:
        raise self.exc

    async def select_by_id(self, user_id: str) -> UserRecord | None:
        raise self.exc

    async def delete_by_id(self, user_id: str) -> int:
        raise self.exc


class NoRowsGateway(InMemoryUserGateway):
    async def insert(self, name: str, email: str, password_digest: str) -> UserRecord | None:
        return None


@pytest.fixture
def gateway() -> RecordingGateway:
    return RecordingGateway()


@pytest.fixture
def client(gateway: RecordingGateway):
    app.dependency_overrides[get_user_gateway] = lambda: gateway
    yield TestClient(app)
    app.dependency_overrides.clear()


def client_with(gateway: object) -> TestClient:
    """TestClient wired to an arbitrary gateway; caller clears overrides."""
    app.dependency_overrides[get_user_gateway] = lambda: gateway
    return TestClient(app)


@pytest.fixture
def unavailable_gateway() -> BrokenGateway:
    return BrokenGateway(
        DatabaseUnavailableError("Unable to connect to database: connect ECONNREFUSED")
    )


@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()
