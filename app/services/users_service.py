from __future__ import annotations

import hashlib
import logging

from app.models.user import UserRecord
from app.repos.user_repo import UniqueConstraintViolation, UserGateway
from app.services.result import Err, Ok, Result
from app.services.validation import (
    UserValidationError,
    validate_create_input,
    validate_identifier,
)

logger = logging.getLogger(__name__)

__all__ = [
    "DuplicateEmailError",
    "UserError",
    "UserNotFoundError",
    "UserValidationError",
    "create_user",
    "delete_user",
    "get_user",
    "hash_password",
]


class DuplicateEmailError(Exception):
    def __init__(self, email: str) -> None:
        super().__init__(f"User with email '{email}' already exists")
        self.email = email


class UserNotFoundError(Exception):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User with ID '{user_id}' not found")
        self.user_id = user_id


UserError = UserValidationError | DuplicateEmailError | UserNotFoundError


def hash_password(plain_password: str) -> str:
    # FIXME: unsalted SHA-256 is not a credential hash.  Kept because stored
    # rows already use this format; moving to argon2 needs a migration plan.
    return hashlib.sha256(plain_password.encode("utf-8")).hexdigest()


async def create_user(
    gateway: UserGateway, name: object, email: object, password: object
) -> Result[UserRecord, UserError]:
    try:
        data = validate_create_input(name, email, password)
    except UserValidationError as e:
        logger.warning("Rejected user input field=%s: %s", e.field, e.message)
        return Err(e)

    digest = hash_password(data.password)

    try:
        user = await gateway.insert(data.name, data.email, digest)
    except UniqueConstraintViolation:
        logger.warning("Rejected duplicate email=%s", data.email)
        return Err(DuplicateEmailError(str(email)))

    if user is None:
        raise RuntimeError("Failed to create user: no rows returned from database")

    logger.info(
        "Created user id=%s email=%s",
        user.id,
        user.email,
        extra={"operation": "create_user", "user_id": user.id},
    )
    return Ok(user)


async def get_user(
    gateway: UserGateway, user_id: object
) -> Result[UserRecord, UserError]:
    try:
        key = validate_identifier(user_id)
    except UserValidationError as e:
        logger.warning("Rejected user id %r: %s", user_id, e.message)
        return Err(e)

    user = await gateway.select_by_id(key)
    if user is None:
        logger.info("User not found id=%s", key)
        return Err(UserNotFoundError(str(user_id)))

    logger.info(
        "Retrieved user id=%s",
        user.id,
        extra={"operation": "get_user", "user_id": user.id},
    )
    return Ok(user)


async def delete_user(gateway: UserGateway, user_id: object) -> Result[None, UserError]:
    try:
        key = validate_identifier(user_id)
    except UserValidationError as e:
        logger.warning("Rejected user id %r: %s", user_id, e.message)
        return Err(e)

    deleted = await gateway.delete_by_id(key)
    if deleted == 0:
        logger.info("User not found for deletion id=%s", key)
        return Err(UserNotFoundError(str(user_id)))

    logger.info(
        "Deleted user id=%s",
        key,
        extra={"operation": "delete_user", "user_id": key},
    )
    return Ok(None)
