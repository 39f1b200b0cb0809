"""SQLAlchemy implementation of the user repository."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from app.adapters.storage.base import AbstractUserRepository
from app.adapters.storage.models import UserRecord
from app.core.errors import DuplicateEmailError

logger = logging.getLogger(__name__)


class SqlAlchemyUserRepository(AbstractUserRepository):
    """Each call runs in its own short-lived session."""

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def find_by_email(self, email: str) -> UserRecord | None:
        with self._session_factory() as session:
            return session.scalars(
                select(UserRecord).where(UserRecord.email == email).limit(1)
            ).first()

    def add(self, *, name: str, email: str) -> UserRecord:
        record = UserRecord(name=name, email=email)
        with self._session_factory() as session:
            session.add(record)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                if "unique" not in str(exc.orig).lower():
                    raise
                logger.info(
                    "storage.unique_violation",
                    extra={"table": UserRecord.__tablename__, "constraint": "email"},
                )
                raise DuplicateEmailError(
                    code="duplicate_email",
                    message=f"User with email {email} already exists",
                    details={"email": email, "constraint": "users.email"},
                ) from exc
            return record

    def list_all(self) -> Sequence[UserRecord]:
        with self._session_factory() as session:
            return session.scalars(select(UserRecord)).all()
