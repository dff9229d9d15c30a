"""Field validation for user input.

Pure functions, no I/O.  Checks run in a fixed order and the first failure
wins, so a request with several bad fields always reports the same one.
"""

from __future__ import annotations

import re

from app.models.user import CreateUserInput

MAX_FIELD_LENGTH = 255
MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_UUID_RE = re.compile(
    r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    re.IGNORECASE,
)


class UserValidationError(ValueError):
    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def is_valid_email(email: str) -> bool:
    return _EMAIL_RE.fullmatch(email) is not None


def is_valid_uuid(value: str) -> bool:
    return _UUID_RE.fullmatch(value) is not None


def validate_create_input(name: object, email: object, password: object) -> CreateUserInput:
    """Validate raw create-user fields and return them normalized.

    Raises UserValidationError naming the first offending field.
    """
    if not isinstance(name, str):
        raise UserValidationError("Name is required and must be a string", "name")
    if not name.strip():
        raise UserValidationError("Name cannot be empty", "name")
    if len(name) > MAX_FIELD_LENGTH:
        raise UserValidationError("Name must be 255 characters or less", "name")

    if not isinstance(email, str):
        raise UserValidationError("Email is required and must be a string", "email")
    # Surrounding whitespace is normalized away, not treated as malformed
    if not is_valid_email(email.strip()):
        raise UserValidationError("Email must be a valid email address", "email")
    if len(email) > MAX_FIELD_LENGTH:
        raise UserValidationError("Email must be 255 characters or less", "email")

    if not isinstance(password, str):
        raise UserValidationError(
            "Password is required and must be a string", "password"
        )
    if len(password) < MIN_PASSWORD_LENGTH:
        raise UserValidationError(
            "Password must be at least 8 characters long", "password"
        )
    if len(password) > MAX_FIELD_LENGTH:
        raise UserValidationError("Password must be 255 characters or less", "password")

    return CreateUserInput(
        name=name.strip(),
        email=email.strip().lower(),
        password=password,
    )


def validate_identifier(user_id: object) -> str:
    """Check that user_id is a canonical UUID string; return it lower-cased."""
    if not isinstance(user_id, str) or not user_id:
        raise UserValidationError("User ID is required and must be a string", "id")
    if not is_valid_uuid(user_id):
        raise UserValidationError("User ID must be a valid UUID", "id")
    return user_id.lower()
