from __future__ import annotations

import logging
import re

import pytest
from fastapi.testclient import TestClient

from tests.conftest import UNKNOWN_ID, BrokenGateway, NoRowsGateway, RecordingGateway, client_with

ISO_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z")
UUID_RE = re.compile(r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}")

JOHN = {"name": "John Doe", "email": "JOHN@Example.com", "password": "password123"}


def _create(client: TestClient, **overrides: object) -> dict:
    resp = client.post("/users", json={**JOHN, **overrides})
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


# ---- POST /users ----


def test_create_user_returns_201_envelope(client: TestClient) -> None:
    resp = client.post("/users", json=JOHN)
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "success"
    assert set(body["data"]) == {"id", "name", "email", "created_at", "updated_at"}
    assert body["data"]["name"] == "John Doe"
    assert body["data"]["email"] == "john@example.com"
    assert UUID_RE.fullmatch(body["data"]["id"])
    assert ISO_RE.fullmatch(body["data"]["created_at"])
    assert body["data"]["created_at"] == body["data"]["updated_at"]


def test_create_user_never_returns_password(client: TestClient) -> None:
    resp = client.post("/users", json=JOHN)
    assert "password" not in resp.json()["data"]
    assert "password123" not in resp.text


def test_create_user_missing_name(client: TestClient) -> None:
    resp = client.post("/users", json={"email": "a@example.com", "password": "password123"})
    assert resp.status_code == 400
    assert resp.json() == {
        "status": "error",
        "error": "validation_error",
        "message": "Name is required and must be a string",
        "field": "name",
    }


def test_create_user_reports_first_failing_field(client: TestClient) -> None:
    resp = client.post("/users", json={"name": "", "email": "bad", "password": "short"})
    assert resp.status_code == 400
    assert resp.json()["field"] == "name"
    assert "empty" in resp.json()["message"]


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"name": "a" * 256}, "name"),
        ({"email": "notanemail"}, "email"),
        ({"email": "a" * 250 + "@example.com"}, "email"),
        ({"password": None}, "password"),
        ({"password": "short"}, "password"),
        ({"password": "p" * 256}, "password"),
        ({"name": 123}, "name"),
    ],
)
def test_create_user_field_errors(client: TestClient, overrides: dict, field: str) -> None:
    resp = client.post("/users", json={**JOHN, **overrides})
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"] == "validation_error"
    assert body["field"] == field


def test_create_user_duplicate_email_is_409(client: TestClient) -> None:
    _create(client, email="dupe@example.com")
    resp = client.post("/users", json={**JOHN, "email": "  DUPE@example.COM "})
    assert resp.status_code == 409
    body = resp.json()
    assert body["error"] == "duplicate_email"
    assert body["field"] == "email"
    assert "DUPE@example.COM" in body["message"]


def test_create_user_invalid_json_is_400(client: TestClient) -> None:
    resp = client.post(
        "/users", content="{invalid json}", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == "error"
    assert body["error"] == "invalid_json"
    assert body["message"] == "Request body contains invalid JSON"
    assert "details" in body


@pytest.mark.parametrize("token", ["NaN", "Infinity", "-Infinity"])
def test_create_user_non_standard_number_is_invalid_json(client: TestClient, token: str) -> None:
    raw = f'{{"name": {token}, "email": "a@example.com", "password": "password123"}}'
    resp = client.post("/users", content=raw, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_json"


@pytest.mark.parametrize("method", ["GET", "DELETE"])
def test_malformed_json_body_is_400_on_every_route(
    client: TestClient, gateway: RecordingGateway, method: str
) -> None:
    resp = client.request(
        method,
        f"/users/{UNKNOWN_ID}",
        content="{bad",
        headers={"Content-Type": "application/json"},
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_json"
    assert gateway.calls == []


def test_malformed_json_body_is_400_on_health_check(client: TestClient) -> None:
    resp = client.request(
        "GET", "/health_check", content="{bad", headers={"Content-Type": "application/json"}
    )
    assert resp.status_code == 400
    assert resp.json()["error"] == "invalid_json"


def test_non_json_body_is_ignored_on_get(client: TestClient) -> None:
    resp = client.request(
        "GET", f"/users/{UNKNOWN_ID}", content="{bad", headers={"Content-Type": "text/plain"}
    )
    assert resp.status_code == 404


def test_create_user_non_object_body_is_400(client: TestClient) -> None:
    resp = client.post("/users", json=["not", "an", "object"])
    assert resp.status_code == 400
    assert resp.json() == {
        "status": "error",
        "error": "invalid_request",
        "message": "Request body must be a JSON object",
        "field": "body",
    }


def test_create_user_empty_body_is_a_name_error(client: TestClient) -> None:
    resp = client.post("/users")
    assert resp.status_code == 400
    assert resp.json()["field"] == "name"


def test_create_user_database_down_is_503(unavailable_gateway: BrokenGateway) -> None:
    resp = client_with(unavailable_gateway).post("/users", json=JOHN)
    assert resp.status_code == 503
    body = resp.json()
    assert body["error"] == "database_unavailable"
    assert body["message"] == "Unable to connect to database"
    assert "ECONNREFUSED" in body["details"]


def test_create_user_unexpected_error_is_500() -> None:
    gateway = BrokenGateway(RuntimeError("Unexpected database error"))
    resp = client_with(gateway).post("/users", json=JOHN)
    assert resp.status_code == 500
    assert resp.json() == {
        "status": "error",
        "error": "internal_server_error",
        "message": "An unexpected error occurred while creating user",
        "details": "Unexpected database error",
    }


def test_create_user_no_rows_returned_is_500() -> None:
    resp = client_with(NoRowsGateway()).post("/users", json=JOHN)
    assert resp.status_code == 500
    assert "no rows returned" in resp.json()["details"]


# ---- GET /users/{id} ----


def test_get_user_returns_created_user(client: TestClient) -> None:
    created = _create(client)
    resp = client.get(f"/users/{created['id']}")
    assert resp.status_code == 200
    assert resp.json() == {"status": "success", "data": created}


def test_get_user_invalid_uuid_is_400(client: TestClient, gateway: RecordingGateway) -> None:
    resp = client.get("/users/not-a-valid-uuid")
    assert resp.status_code == 400
    assert resp.json() == {
        "status": "error",
        "error": "validation_error",
        "message": "User ID must be a valid UUID",
        "field": "id",
    }
    assert gateway.calls == []


def test_get_user_unknown_is_404(client: TestClient) -> None:
    resp = client.get(f"/users/{UNKNOWN_ID}")
    assert resp.status_code == 404
    assert resp.json() == {
        "status": "error",
        "error": "user_not_found",
        "message": f"User with ID '{UNKNOWN_ID}' not found",
    }


def test_get_user_database_down_is_503(unavailable_gateway: BrokenGateway) -> None:
    resp = client_with(unavailable_gateway).get(f"/users/{UNKNOWN_ID}")
    assert resp.status_code == 503
    assert resp.json()["error"] == "database_unavailable"


def test_get_user_unexpected_error_is_500() -> None:
    resp = client_with(BrokenGateway(RuntimeError("boom"))).get(f"/users/{UNKNOWN_ID}")
    assert resp.status_code == 500
    assert resp.json()["message"] == "An unexpected error occurred while retrieving user"


# ---- DELETE /users/{id} ----


def test_delete_user_returns_204_empty(client: TestClient) -> None:
    created = _create(client)
    resp = client.delete(f"/users/{created['id']}")
    assert resp.status_code == 204
    assert resp.content == b""


def test_delete_user_twice_is_404_second_time(client: TestClient) -> None:
    created = _create(client)
    assert client.delete(f"/users/{created['id']}").status_code == 204
    resp = client.delete(f"/users/{created['id']}")
    assert resp.status_code == 404
    assert resp.json()["error"] == "user_not_found"


def test_delete_user_invalid_uuid_is_400(client: TestClient, gateway: RecordingGateway) -> None:
    resp = client.delete("/users/invalid-uuid-format")
    assert resp.status_code == 400
    assert set(resp.json()) == {"status", "error", "message", "field"}
    assert gateway.calls == []


def test_delete_user_unexpected_error_is_500() -> None:
    resp = client_with(BrokenGateway(RuntimeError("boom"))).delete(f"/users/{UNKNOWN_ID}")
    assert resp.status_code == 500
    assert resp.json()["message"] == "An unexpected error occurred while deleting user"


# ---- end to end ----


def test_create_get_delete_get(client: TestClient) -> None:
    created = _create(client)
    assert created["email"] == "john@example.com"

    fetched = client.get(f"/users/{created['id']}").json()["data"]
    assert (fetched["name"], fetched["email"]) == ("John Doe", "john@example.com")

    assert client.delete(f"/users/{created['id']}").status_code == 204
    assert client.get(f"/users/{created['id']}").status_code == 404


# ---- logging ----


def test_not_found_logs_warning(client: TestClient, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="app.api.users"):
        client.get(f"/users/{UNKNOWN_ID}")
    assert any("user_not_found" in m for m in caplog.messages)


def test_unexpected_error_logs_error_with_traceback(
    caplog: pytest.LogCaptureFixture,
) -> None:
    with caplog.at_level(logging.ERROR, logger="app.api.users"):
        client_with(BrokenGateway(RuntimeError("boom"))).get(f"/users/{UNKNOWN_ID}")
    records = [r for r in caplog.records if r.name == "app.api.users"]
    assert records and records[0].exc_info is not None
