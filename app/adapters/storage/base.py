"""Repository interface for user records."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence

from app.adapters.storage.models import UserRecord


class AbstractUserRepository(ABC):
    """Storage operations the users service relies on."""

    @abstractmethod
    def find_by_email(self, email: str) -> UserRecord | None:
        """Return the record whose email equals ``email`` exactly, if any."""
        raise NotImplementedError

    @abstractmethod
    def add(self, *, name: str, email: str) -> UserRecord:
        """Persist a new record and return it with ``id``/``created_at`` set.

        Raises:
            DuplicateEmailError: If the unique email constraint rejects the row.
        """
        raise NotImplementedError

    @abstractmethod
    def list_all(self) -> Sequence[UserRecord]:
        """Return every stored record in the storage's natural order."""
        raise NotImplementedError
