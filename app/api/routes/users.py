import json
import logging
from typing import Any

from fastapi import APIRouter, Request, status
from starlette.concurrency import run_in_threadpool

from app.core.errors import ValidationFailure
from app.core.exception_handlers import error_boundary
from app.core.rate_limit import (
    CREATE_USER,
    LIST_EXTERNAL_USERS,
    LIST_USERS,
    RouteRateLimiter,
    client_identity,
)
from app.schemas.user import ErrorEnvelope, UserResponse
from app.services.user_service import UserService
from app.utils.user_validators import validate_create_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorEnvelope},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorEnvelope},
}


def _service(request: Request) -> UserService:
    return request.app.state.user_service


def _limiter(request: Request) -> RouteRateLimiter:
    return request.app.state.rate_limiter


async def _read_json(request: Request) -> Any:
    """Decode the request body; an empty body counts as an empty object."""
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except (UnicodeDecodeError, json.JSONDecodeError):
        return ValidationFailure(message=["Request body must be valid JSON"])


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=UserResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorEnvelope},
        status.HTTP_409_CONFLICT: {"model": ErrorEnvelope},
        **_ERROR_RESPONSES,
    },
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {
                "application/json": {
                    "schema": {
                        "type": "object",
                        "additionalProperties": False,
                        "required": ["name", "email"],
                        "properties": {
                            "name": {"type": "string", "minLength": 2, "maxLength": 255},
                            "email": {"type": "string", "format": "email", "maxLength": 255},
                        },
                    }
                }
            },
        }
    },
)
@error_boundary
async def create_user(request: Request):
    """Create a user from ``{"name", "email"}``.

    Returns 201 with the created user, 400 listing every violation, 409 when
    the email is taken, 429 when the client exceeded the route's budget.
    """
    denied = _limiter(request).admit(CREATE_USER, client_identity(request))
    if denied is not None:
        return denied

    payload = await _read_json(request)
    if isinstance(payload, ValidationFailure):
        return payload

    new_user = validate_create_user(payload)
    if isinstance(new_user, ValidationFailure):
        return new_user

    return await run_in_threadpool(_service(request).create_user, new_user)


@router.get(
    "",
    response_model=list[UserResponse],
    responses=_ERROR_RESPONSES,
)
@error_boundary
async def list_users(request: Request):
    """List every stored user."""
    denied = _limiter(request).admit(LIST_USERS, client_identity(request))
    if denied is not None:
        return denied

    return await run_in_threadpool(_service(request).list_users)


@router.get(
    "/external",
    response_model=list[Any],
    responses=_ERROR_RESPONSES,
)
@error_boundary
async def list_external_users(request: Request):
    """List users from the external read-only directory."""
    denied = _limiter(request).admit(LIST_EXTERNAL_USERS, client_identity(request))
    if denied is not None:
        return denied

    return await _service(request).list_external_users()
