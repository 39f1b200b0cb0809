"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from app.adapters.storage.models import UserRecord


class NewUser(BaseModel):
    """A creation request that passed validation."""

    model_config = ConfigDict(frozen=True)

    name: str
    email: str


class UserResponse(BaseModel):
    """External representation of a stored user."""

    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., description="System-generated identifier.")
    name: str = Field(..., description="Full name.")
    email: str = Field(..., description="Unique email address.")
    created_at: datetime = Field(
        ...,
        alias="createdAt",
        description="Creation time (UTC, ISO-8601).",
    )

    @classmethod
    def from_record(cls, record: "UserRecord") -> "UserResponse":
        """Project a stored record onto the four public fields."""
        created_at = record.created_at
        # SQLite drops the offset on the way back
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=record.id,
            name=record.name,
            email=record.email,
            created_at=created_at,
        )


class ErrorEnvelope(BaseModel):
    """Uniform body of every non-2xx response."""

    statusCode: int
    timestamp: str
    path: str
    method: str
    message: str | list[str]
    error: str
