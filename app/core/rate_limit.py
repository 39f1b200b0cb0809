"""Per-route admission control for the HTTP layer.

Routes call ``RouteRateLimiter.admit(route_key, client)`` before doing any
work. Each route key has its own limiter (budget and state); keys without an
override share the global fallback budget, still tracked per route.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from fastapi import Request

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import RateLimitFailure

logger = logging.getLogger(__name__)

CREATE_USER = "users:create"
LIST_USERS = "users:list"
LIST_EXTERNAL_USERS = "users:external"


@dataclass(frozen=True)
class RatePolicy:
    """Requests allowed per window for one route."""

    requests: int
    window_seconds: int


LimiterFactory = Callable[[RatePolicy], AbstractRateLimiter]


def _sliding_window(policy: RatePolicy) -> AbstractRateLimiter:
    return InMemorySlidingWindowRateLimiter(
        limit=policy.requests,
        window_seconds=policy.window_seconds,
    )


def client_identity(request: Request) -> str:
    """Identify the caller by peer address."""

    return request.client.host if request.client else "unknown"


def _hash_key(key: str) -> str:
    """Hash the client identity for logging."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]


class RouteRateLimiter:
    """Admission gate with a global fallback policy and per-route overrides."""

    def __init__(
        self,
        *,
        default: RatePolicy,
        overrides: dict[str, RatePolicy] | None = None,
        enabled: bool = True,
        include_headers: bool = True,
        limiter_factory: LimiterFactory = _sliding_window,
    ) -> None:
        self._default = default
        self._overrides = dict(overrides or {})
        self._enabled = enabled
        self._include_headers = include_headers
        self._factory = limiter_factory
        self._limiters: dict[str, AbstractRateLimiter] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        cfg: RateLimitSettings,
        *,
        limiter_factory: LimiterFactory = _sliding_window,
    ) -> "RouteRateLimiter":
        return cls(
            default=RatePolicy(cfg.default_requests, cfg.default_window_seconds),
            overrides={
                CREATE_USER: RatePolicy(cfg.create_user_requests, cfg.create_user_window_seconds),
                LIST_USERS: RatePolicy(cfg.list_users_requests, cfg.list_users_window_seconds),
            },
            enabled=cfg.enabled,
            include_headers=cfg.include_headers,
            limiter_factory=limiter_factory,
        )

    def policy_for(self, route_key: str) -> RatePolicy:
        return self._overrides.get(route_key, self._default)

    def _limiter_for(self, route_key: str) -> AbstractRateLimiter:
        with self._lock:
            limiter = self._limiters.get(route_key)
            if limiter is None:
                limiter = self._factory(self.policy_for(route_key))
                self._limiters[route_key] = limiter
            return limiter

    def admit(self, route_key: str, client: str) -> RateLimitFailure | None:
        """Consume one unit of the client's budget on ``route_key``.

        Returns:
            None when the request is admitted, otherwise a RateLimitFailure
            carrying the retry metadata.
        """

        if not self._enabled:
            return None

        result = self._limiter_for(route_key).consume(client)
        if result.allowed:
            logger.debug(
                "rate_limit.allowed",
                extra={
                    "route_key": route_key,
                    "client_hash": _hash_key(client),
                    "remaining": result.remaining,
                },
            )
            return None

        retry_after = result.retry_after_seconds or 0
        logger.warning(
            "rate_limit.exceeded",
            extra={
                "route_key": route_key,
                "client_hash": _hash_key(client),
                "limit": result.limit,
                "window_s": self.policy_for(route_key).window_seconds,
                "retry_after_s": retry_after,
            },
        )
        return RateLimitFailure(
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
            retry_after_seconds=retry_after,
            include_headers=self._include_headers,
        )
