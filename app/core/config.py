"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first.
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=False)


def _default_port() -> int:
    """Fall back to the conventional PORT variable when APP_PORT is unset."""

    raw = os.getenv("PORT")
    return int(raw) if raw else 3000


class AppSettings(BaseSettings):
    """Process-level settings (bind address, debug)."""

    host: str = Field(
        "0.0.0.0",
        description="Interface the HTTP server binds to",
    )
    port: int = Field(
        default_factory=_default_port,
        description="Listening port (APP_PORT, else PORT, default 3000)",
        ge=1,
        le=65535,
    )
    debug: bool = Field(
        False,
        description="Log at DEBUG level regardless of LOG_LEVEL",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class DatabaseSettings(BaseSettings):
    """Relational storage configuration."""

    url: str = Field(
        "sqlite:///./database.sqlite",
        description="SQLAlchemy database URL",
    )
    echo: bool = Field(
        False,
        description="Log every SQL statement emitted by the engine",
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Per-route admission control.

    The default budget applies to any route without an override; the user
    routes have their own, stricter budgets.
    """

    enabled: bool = Field(
        True,
        description="Enable per-route rate limiting per client",
    )
    default_requests: int = Field(10, ge=1, description="Global fallback requests per window")
    default_window_seconds: int = Field(60, ge=1, description="Global fallback window size")
    create_user_requests: int = Field(5, ge=1, description="POST /users requests per window")
    create_user_window_seconds: int = Field(60, ge=1, description="POST /users window size")
    list_users_requests: int = Field(8, ge=1, description="GET /users requests per window")
    list_users_window_seconds: int = Field(60, ge=1, description="GET /users window size")
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class ExternalUsersSettings(BaseSettings):
    """Read-only external users directory."""

    url: str = Field(
        "https://reqres.in/api/users",
        description="Endpoint returning the external users listing",
    )
    timeout_seconds: float = Field(
        10.0,
        gt=0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="EXTERNAL_USERS_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(0, ge=0, description="Rotate the log file at this size (0 disables)")
    backup_count: int = Field(5, ge=0, description="Rotated files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to receive and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are invalid.
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=AppSettings)
    db: DatabaseSettings = Field(default_factory=DatabaseSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    external_users: ExternalUsersSettings = Field(default_factory=ExternalUsersSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
