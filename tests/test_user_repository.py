"""Tests for the SQLAlchemy user repository."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import delete

from app.adapters.storage.models import UserRecord
from app.core.errors import DuplicateEmailError


def test_add_assigns_id_and_creation_time(repository) -> None:
    before = datetime.now(timezone.utc)

    record = repository.add(name="John Doe", email="john@example.com")

    assert record.id == 1
    assert record.name == "John Doe"
    assert record.email == "john@example.com"
    assert before <= record.created_at <= datetime.now(timezone.utc)


def test_ids_increase_in_allocation_order(repository) -> None:
    first = repository.add(name="John Doe", email="john@example.com")
    second = repository.add(name="Jane Doe", email="jane@example.com")

    assert second.id > first.id


def test_ids_are_not_reused_after_deletion(repository, session_factory) -> None:
    repository.add(name="John Doe", email="john@example.com")
    with session_factory() as session:
        session.execute(delete(UserRecord))
        session.commit()

    again = repository.add(name="John Doe", email="john@example.com")

    assert again.id == 2


def test_find_by_email_is_exact(repository) -> None:
    repository.add(name="John Doe", email="john@example.com")

    assert repository.find_by_email("john@example.com").name == "John Doe"
    assert repository.find_by_email("JOHN@example.com") is None
    assert repository.find_by_email("nobody@example.com") is None


def test_unique_constraint_surfaces_as_duplicate_email(repository) -> None:
    repository.add(name="John Doe", email="john@example.com")

    with pytest.raises(DuplicateEmailError) as exc_info:
        repository.add(name="Johnny", email="john@example.com")

    assert exc_info.value.code == "duplicate_email"
    assert len(repository.list_all()) == 1


def test_list_all_returns_records_in_insertion_order(repository) -> None:
    assert list(repository.list_all()) == []

    repository.add(name="John Doe", email="john@example.com")
    repository.add(name="Jane Doe", email="jane@example.com")

    assert [r.email for r in repository.list_all()] == ["john@example.com", "jane@example.com"]
