"""Translate user-operation failures into HTTP status codes and envelopes.

Pure classification; the first matching rule wins and the same table
applies to every operation:

  UserValidationError          400  validation_error       (+ field)
  DuplicateEmailError          409  duplicate_email        (+ field="email")
  UserNotFoundError            404  user_not_found
  connection failure           503  database_unavailable   (+ details)
  anything else                500  internal_server_error  (+ details)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from app.services.users_service import (
    DuplicateEmailError,
    UserNotFoundError,
    UserValidationError,
)


@dataclass(frozen=True, slots=True)
class ErrorResponse:
    status_code: int
    body: dict[str, Any]


def error_envelope(error: str, message: str, **extra: Any) -> dict[str, Any]:
    return {"status": "error", "error": error, "message": message, **extra}


def is_connection_error(error: BaseException) -> bool:
    return isinstance(error, ConnectionError) or "connect" in str(error)


def map_error(error: BaseException, operation: str) -> ErrorResponse:
    """Map an error raised or returned while performing `operation`.

    `operation` is a short gerund phrase such as "creating user"; it only
    appears in the message of the catch-all 500 response.
    """
    if isinstance(error, UserValidationError):
        return ErrorResponse(
            400, error_envelope("validation_error", error.message, field=error.field)
        )

    if isinstance(error, DuplicateEmailError):
        return ErrorResponse(
            409, error_envelope("duplicate_email", str(error), field="email")
        )

    if isinstance(error, UserNotFoundError):
        return ErrorResponse(404, error_envelope("user_not_found", str(error)))

    if is_connection_error(error):
        return ErrorResponse(
            503,
            error_envelope(
                "database_unavailable",
                "Unable to connect to database",
                details=str(error),
            ),
        )

    return ErrorResponse(
        500,
        error_envelope(
            "internal_server_error",
            f"An unexpected error occurred while {operation}",
            details=str(error),
        ),
    )
