"""Application factory for the FastAPI app.

Builds the whole pipeline explicitly, in order: logging configuration,
storage, service, rate limiter, request logging middleware, exception
handlers and routers. Collaborators can be passed in (tests do this);
otherwise they are built from settings.
"""

from __future__ import annotations

from fastapi import FastAPI
from sqlalchemy.orm import Session, sessionmaker

from app.adapters.external_users.base import AbstractExternalUsersClient
from app.adapters.external_users.httpx_client import HttpxExternalUsersClient
from app.adapters.storage.database import (
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from app.adapters.storage.sqlalchemy_repository import SqlAlchemyUserRepository
from app.api.routes import health_router, users_router
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_logging_middleware
from app.core.rate_limit import RouteRateLimiter
from app.services.user_service import UserService


def create_app(
    app_settings: Settings | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    rate_limiter: RouteRateLimiter | None = None,
    external_client: AbstractExternalUsersClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; the global settings by default.
        session_factory: Pre-built session factory (tables must exist).
        rate_limiter: Pre-built admission gate.
        external_client: Client for the external users directory.

    Returns:
        Configured FastAPI app.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    log_cfg = cfg.log.model_copy(update={"level": "DEBUG"}) if cfg.app.debug else cfg.log
    configure_logging(log_cfg)

    if session_factory is None:
        engine = create_engine_from_settings(cfg.db)
        init_db(engine)
        session_factory = create_session_factory(engine)

    if external_client is None:
        external_client = HttpxExternalUsersClient(
            url=cfg.external_users.url,
            timeout_seconds=cfg.external_users.timeout_seconds,
        )

    app = FastAPI(
        title="Users API",
        description="Create and list user records.",
        version="0.1.0",
    )

    app.state.settings = cfg
    app.state.user_service = UserService(
        SqlAlchemyUserRepository(session_factory),
        external_client=external_client,
    )
    app.state.rate_limiter = rate_limiter or RouteRateLimiter.from_settings(cfg.rate_limit)

    # Outermost: every request is logged before admission control
    app.middleware("http")(request_logging_middleware)

    setup_exception_handlers(app)

    app.include_router(users_router)
    app.include_router(health_router)

    return app
