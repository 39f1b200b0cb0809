"""Engine and session factory construction."""

from __future__ import annotations

import logging

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.adapters.storage.models import Base
from app.core.config import DatabaseSettings

logger = logging.getLogger(__name__)


def create_engine_from_settings(db_settings: DatabaseSettings) -> Engine:
    """Create the SQLAlchemy engine for the configured URL.

    SQLite connections are shared across the server's worker threads, and an
    in-memory SQLite database is pinned to a single connection so every
    session sees the same data.
    """

    url = db_settings.url
    kwargs: dict = {"echo": db_settings.echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **kwargs)
    logger.info("storage.engine_created", extra={"dialect": engine.dialect.name})
    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables (no migrations)."""

    Base.metadata.create_all(engine)
