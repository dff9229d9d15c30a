"""User endpoints: POST /users, GET /users/{user_id}, DELETE /users/{user_id}.

Thin adapters.  Each route hands raw input to users_service, then turns
the Ok/Err result (or an unexpected exception) into a response via the
error mapper.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.dependencies import decode_json, get_user_gateway
from app.models.user import UserRecord, iso8601
from app.repos.user_repo import UserGateway
from app.services import users_service
from app.services.error_mapper import error_envelope, map_error
from app.services.result import Err

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


# --- Response schemas -------------------------------------------------------


class UserOut(BaseModel):
    id: str
    name: str
    email: str
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, user: UserRecord) -> UserOut:
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            created_at=iso8601(user.created_at),
            updated_at=iso8601(user.updated_at),
        )


class UserEnvelope(BaseModel):
    status: Literal["success"] = "success"
    data: UserOut


class ErrorOut(BaseModel):
    status: Literal["error"] = "error"
    error: str
    message: str
    field: str | None = None
    details: str | None = None


_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorOut},
    404: {"model": ErrorOut},
    500: {"model": ErrorOut},
    503: {"model": ErrorOut},
}


# --- Helpers -----------------------------------------------------------------


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    return decode_json(raw)


def _failure(request: Request, error: BaseException, operation: str) -> JSONResponse:
    mapped = map_error(error, operation)
    if mapped.status_code >= 500:
        logger.error(
            "Unexpected error %s: %s url=%s method=%s",
            operation,
            error,
            request.url.path,
            request.method,
            exc_info=error,
        )
    else:
        logger.warning(
            "%s while %s: %s",
            mapped.body["error"],
            operation,
            mapped.body["message"],
        )
    return JSONResponse(status_code=mapped.status_code, content=mapped.body)


# --- Routes ------------------------------------------------------------------


@router.post(
    "",
    response_model=UserEnvelope,
    status_code=status.HTTP_201_CREATED,
    responses={**_ERROR_RESPONSES, 409: {"model": ErrorOut}},
)
async def post_user(
    request: Request,
    gateway: Annotated[UserGateway, Depends(get_user_gateway)],
) -> UserEnvelope | JSONResponse:
    payload = await _read_json(request)
    if not isinstance(payload, dict):
        logger.warning("Invalid request body: body is not an object")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_envelope(
                "invalid_request", "Request body must be a JSON object", field="body"
            ),
        )

    try:
        result = await users_service.create_user(
            gateway,
            name=payload.get("name"),
            email=payload.get("email"),
            password=payload.get("password"),
        )
    except Exception as e:
        return _failure(request, e, "creating user")

    if isinstance(result, Err):
        return _failure(request, result.error, "creating user")
    return UserEnvelope(data=UserOut.from_record(result.value))


@router.get("/{user_id}", response_model=UserEnvelope, responses=_ERROR_RESPONSES)
async def get_user(
    user_id: str,
    request: Request,
    gateway: Annotated[UserGateway, Depends(get_user_gateway)],
) -> UserEnvelope | JSONResponse:
    try:
        result = await users_service.get_user(gateway, user_id)
    except Exception as e:
        return _failure(request, e, "retrieving user")

    if isinstance(result, Err):
        return _failure(request, result.error, "retrieving user")
    return UserEnvelope(data=UserOut.from_record(result.value))


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses=_ERROR_RESPONSES,
)
async def delete_user(
    user_id: str,
    request: Request,
    gateway: Annotated[UserGateway, Depends(get_user_gateway)],
) -> Response:
    try:
        result = await users_service.delete_user(gateway, user_id)
    except Exception as e:
        return _failure(request, e, "deleting user")

    if isinstance(result, Err):
        return _failure(request, result.error, "deleting user")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
