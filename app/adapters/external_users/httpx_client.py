"""HTTP client for the external users directory."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.adapters.external_users.base import AbstractExternalUsersClient
from app.core.errors import ExternalServiceError

logger = logging.getLogger(__name__)


class HttpxExternalUsersClient(AbstractExternalUsersClient):
    """Fetches the listing with a single GET request per call."""

    def __init__(
        self,
        url: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            url: Endpoint returning the listing as JSON.
            timeout_seconds: Timeout for the whole request.
            transport: Optional transport override (e.g. ``httpx.MockTransport``).
        """
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def fetch_users(self) -> Any:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "external_users.bad_status",
                extra={"url": self.url, "status_code": exc.response.status_code},
            )
            raise ExternalServiceError(
                code="external_users_bad_status",
                message="Failed to fetch external users",
                details={"url": self.url, "status_code": exc.response.status_code},
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(
                "external_users.request_failed",
                extra={"url": self.url, "error_type": type(exc).__name__},
            )
            raise ExternalServiceError(
                code="external_users_unavailable",
                message="Failed to fetch external users",
                details={"url": self.url},
            ) from exc
