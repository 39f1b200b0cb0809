"""User management service.

Creation checks email uniqueness, persists the record and projects it; the
listing reads every record back. Classified outcomes are returned as values
(``ConflictFailure``); storage and external errors propagate as exceptions.

The email lookup before insert is only a fast path. Concurrent creations
with the same email are settled by the storage's unique constraint, whose
violation is reported as the same conflict.
"""

from __future__ import annotations

import logging
from typing import Any

from app.adapters.external_users.base import AbstractExternalUsersClient
from app.adapters.storage.base import AbstractUserRepository
from app.core.errors import ConflictFailure, DuplicateEmailError, ExternalServiceError
from app.schemas.user import NewUser, UserResponse

logger = logging.getLogger(__name__)


def extract_external_users(payload: Any) -> list[Any]:
    """Pull the user list out of the external directory's response.

    Accepts ``{"data": [...]}``, ``{"users": [...]}`` or a bare list.

    Raises:
        ExternalServiceError: If the payload has none of these shapes.
    """
    if isinstance(payload, dict):
        for key in ("data", "users"):
            if isinstance(payload.get(key), list):
                return payload[key]
    elif isinstance(payload, list):
        return payload

    raise ExternalServiceError(
        code="external_users_bad_payload",
        message="Failed to fetch external users",
        details={"context": {"payload_type": type(payload).__name__}},
    )


class UserService:
    """Business logic for user records; holds no state between calls."""

    def __init__(
        self,
        repository: AbstractUserRepository,
        external_client: AbstractExternalUsersClient | None = None,
    ) -> None:
        self._repository = repository
        self._external_client = external_client

    def create_user(self, new_user: NewUser) -> UserResponse | ConflictFailure:
        """Persist a new user unless the email is already taken.

        Args:
            new_user: Validated creation payload.

        Returns:
            The created user's projection, or a ConflictFailure when a record
            with the same email exists (nothing is written in that case).
        """
        if self._repository.find_by_email(new_user.email) is not None:
            logger.info("users.conflict", extra={"source": "lookup"})
            return ConflictFailure.for_email(new_user.email)

        try:
            record = self._repository.add(name=new_user.name, email=new_user.email)
        except DuplicateEmailError:
            logger.info("users.conflict", extra={"source": "constraint"})
            return ConflictFailure.for_email(new_user.email)

        logger.info("users.created", extra={"user_id": record.id})
        return UserResponse.from_record(record)

    def list_users(self) -> list[UserResponse]:
        """Return every stored user in storage order (empty list if none)."""
        records = self._repository.list_all()
        return [UserResponse.from_record(record) for record in records or []]

    async def list_external_users(self) -> list[Any]:
        """Fetch the read-only external users listing.

        Raises:
            ExternalServiceError: If no client is configured, the call fails
                or the payload shape is not recognised.
        """
        if self._external_client is None:
            raise ExternalServiceError(
                code="external_users_not_configured",
                message="Failed to fetch external users",
            )

        payload = await self._external_client.fetch_users()
        users = extract_external_users(payload)
        logger.info("users.external_fetched", extra={"count": len(users)})
        return users
