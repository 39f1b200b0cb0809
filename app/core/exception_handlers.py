"""Uniform error envelope and the boundary that produces it.

Every non-2xx response has the same body::

    {"statusCode", "timestamp", "path", "method", "message", "error"}

``error_boundary`` wraps each route handler: ``Failure`` values returned by
the handler are rendered with their own status and message, and any
exception escaping the handler is collapsed into a generic 500 whose detail
is only logged. Framework errors raised before a handler runs (unknown
route, wrong method, undecodable parameters) are rendered by the app-level
handlers registered in ``setup_exception_handlers``.
"""

from __future__ import annotations

import functools
import inspect
import json
import logging
from typing import Any, Callable

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import Failure
from app.core.logging import utc_timestamp
from app.core.middleware import request_target
from app.schemas.user import ErrorEnvelope

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"
INTERNAL_ERROR_LABEL = "Internal Server Error"


def build_envelope(
    request: Request,
    *,
    status_code: int,
    message: str | list[str],
    error: str,
) -> ErrorEnvelope:
    return ErrorEnvelope(
        statusCode=status_code,
        timestamp=utc_timestamp(),
        path=request_target(request),
        method=request.method,
        message=message,
        error=error,
    )


def _respond(
    envelope: ErrorEnvelope,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    content = envelope.model_dump()
    logger.error(
        "%s %s",
        envelope.method,
        envelope.path,
        extra={
            "request_method": envelope.method,
            "request_path": envelope.path,
            "status_code": envelope.statusCode,
            "envelope": json.dumps(content),
        },
    )
    return JSONResponse(status_code=envelope.statusCode, content=content, headers=headers or None)


def render_failure(request: Request, failure: Failure) -> JSONResponse:
    """Render a classified failure with its own status, message and label."""
    envelope = build_envelope(
        request,
        status_code=failure.status_code,
        message=failure.message,
        error=failure.error,
    )
    return _respond(envelope, failure.headers)


def render_unexpected(request: Request, exc: BaseException) -> JSONResponse:
    """Render any unclassified error as a generic 500.

    The exception type and message are logged, never returned.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    envelope = build_envelope(
        request,
        status_code=500,
        message=INTERNAL_ERROR_MESSAGE,
        error=INTERNAL_ERROR_LABEL,
    )
    return _respond(envelope)


def error_boundary(handler: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap a route handler so every outcome leaves as a proper response.

    The handler must accept a ``request: Request`` keyword argument. Sync
    handlers stay sync (FastAPI runs them in its threadpool).
    """

    def _finish(request: Request, outcome: Any) -> Any:
        if isinstance(outcome, Failure):
            return render_failure(request, outcome)
        return outcome

    if inspect.iscoroutinefunction(handler):

        @functools.wraps(handler)
        async def async_wrapper(*args: Any, request: Request, **kwargs: Any) -> Any:
            try:
                outcome = await handler(*args, request=request, **kwargs)
            except Exception as exc:
                return render_unexpected(request, exc)
            return _finish(request, outcome)

        return async_wrapper

    @functools.wraps(handler)
    def sync_wrapper(*args: Any, request: Request, **kwargs: Any) -> Any:
        try:
            outcome = handler(*args, request=request, **kwargs)
        except Exception as exc:
            return render_unexpected(request, exc)
        return _finish(request, outcome)

    return sync_wrapper


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework HTTP errors (404 unknown route, 405 wrong method)."""
    message = exc.detail if isinstance(exc.detail, (str, list)) else str(exc.detail)
    failure = Failure.from_status(exc.status_code, message)
    envelope = build_envelope(
        request,
        status_code=failure.status_code,
        message=failure.message,
        error=failure.error,
    )
    return _respond(envelope, dict(exc.headers or {}))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render parameter decoding errors as a 400 listing every problem."""
    violations = [
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}"
        for err in exc.errors()
    ]
    return render_failure(request, Failure.from_status(400, violations))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net for errors raised outside a route handler."""
    return render_unexpected(request, exc)


def setup_exception_handlers(app) -> None:
    """Register the envelope renderers with the FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(Exception)(general_exception_handler)
