"""HTTP middleware for request logging and correlation.

Registered as the outermost stage of the pipeline, so every inbound request
is logged before admission control, routing or validation run, including
requests that end up rejected by the rate limiter.

The middleware:
- Accepts incoming X-Request-ID header or generates a UUID
- Logs ``[<timestamp>] <METHOD> <path>`` for the request
- Injects request_id and duration into response headers
- Clears context after request completion to prevent context leaks

Usage:
    app.middleware("http")(request_logging_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.logging import clear_request_id, set_request_id, utc_timestamp

logger = logging.getLogger(__name__)


def request_target(request: Request) -> str:
    """Return the path plus query string, as the client sent it."""

    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def request_logging_middleware(request: Request, call_next) -> Response:
    """Log the inbound request, then run the rest of the pipeline.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)

    timestamp = utc_timestamp()
    target = request_target(request)
    logger.info(
        "[%s] %s %s",
        timestamp,
        request.method,
        target,
        extra={"method": request.method, "path": target, "received_at": timestamp},
    )

    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response
