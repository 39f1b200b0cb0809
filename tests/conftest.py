"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before any ``app`` import so the global
settings never point at the on-disk development database.
"""

import os

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("EXTERNAL_USERS_URL", "http://external.test/api/users")

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from app.adapters.external_users.base import AbstractExternalUsersClient
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.adapters.storage.database import create_session_factory, init_db
from app.adapters.storage.sqlalchemy_repository import SqlAlchemyUserRepository
from app.core.app_factory import create_app
from app.core.config import settings
from app.core.rate_limit import RatePolicy, RouteRateLimiter

EXTERNAL_USERS = [
    {"id": 7, "email": "michael.lawson@reqres.in", "first_name": "Michael"},
    {"id": 8, "email": "lindsay.ferguson@reqres.in", "first_name": "Lindsay"},
]


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repository(session_factory) -> SqlAlchemyUserRepository:
    return SqlAlchemyUserRepository(session_factory)


@pytest.fixture
def clock() -> Mock:
    """Frozen limiter clock; tests advance it by setting return_value."""
    return Mock(return_value=1_000.0)


@pytest.fixture
def rate_limiter(clock: Mock) -> RouteRateLimiter:
    def factory(policy: RatePolicy) -> InMemorySlidingWindowRateLimiter:
        return InMemorySlidingWindowRateLimiter(
            limit=policy.requests,
            window_seconds=policy.window_seconds,
            clock=clock,
        )

    return RouteRateLimiter.from_settings(settings.rate_limit, limiter_factory=factory)


@pytest.fixture
def external_client() -> AsyncMock:
    client = AsyncMock(spec=AbstractExternalUsersClient)
    client.fetch_users.return_value = {"page": 1, "data": EXTERNAL_USERS}
    return client


@pytest.fixture
def app(session_factory, rate_limiter, external_client) -> FastAPI:
    return create_app(
        settings,
        session_factory=session_factory,
        rate_limiter=rate_limiter,
        external_client=external_client,
    )


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Create FastAPI test client."""
    return TestClient(app)
