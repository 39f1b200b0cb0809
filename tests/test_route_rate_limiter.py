"""Tests for per-route admission control."""

from unittest.mock import Mock

from app.adapters.rate_limit.in_memory import InMemorySlidingWindowRateLimiter
from app.core.config import RateLimitSettings
from app.core.errors import RateLimitFailure
from app.core.rate_limit import (
    CREATE_USER,
    LIST_EXTERNAL_USERS,
    LIST_USERS,
    RatePolicy,
    RouteRateLimiter,
)


def _limiter(clock: Mock, **overrides) -> RouteRateLimiter:
    cfg = RateLimitSettings(**overrides)

    def factory(policy: RatePolicy) -> InMemorySlidingWindowRateLimiter:
        return InMemorySlidingWindowRateLimiter(
            limit=policy.requests, window_seconds=policy.window_seconds, clock=clock
        )

    return RouteRateLimiter.from_settings(cfg, limiter_factory=factory)


def test_routes_use_their_own_overrides() -> None:
    limiter = _limiter(Mock(return_value=0.0))

    assert limiter.policy_for(CREATE_USER) == RatePolicy(5, 60)
    assert limiter.policy_for(LIST_USERS) == RatePolicy(8, 60)
    assert limiter.policy_for(LIST_EXTERNAL_USERS) == RatePolicy(10, 60)
    assert limiter.policy_for("anything:else") == RatePolicy(10, 60)


def test_sixth_create_within_a_minute_is_denied() -> None:
    limiter = _limiter(Mock(return_value=0.0))

    for _ in range(5):
        assert limiter.admit(CREATE_USER, "10.0.0.1") is None

    denied = limiter.admit(CREATE_USER, "10.0.0.1")
    assert isinstance(denied, RateLimitFailure)
    assert denied.status_code == 429
    assert denied.error == "Too Many Requests"
    assert denied.limit == 5
    assert denied.headers["Retry-After"] == str(denied.retry_after_seconds)


def test_budgets_are_per_route_and_per_client() -> None:
    limiter = _limiter(Mock(return_value=0.0), create_user_requests=1)

    assert limiter.admit(CREATE_USER, "a") is None
    assert limiter.admit(CREATE_USER, "a") is not None

    assert limiter.admit(CREATE_USER, "b") is None
    assert limiter.admit(LIST_USERS, "a") is None


def test_disabled_limiter_admits_everything() -> None:
    limiter = _limiter(Mock(return_value=0.0), enabled=False, create_user_requests=1)

    for _ in range(20):
        assert limiter.admit(CREATE_USER, "a") is None


def test_headers_can_be_suppressed() -> None:
    limiter = _limiter(Mock(return_value=0.0), create_user_requests=1, include_headers=False)

    limiter.admit(CREATE_USER, "a")
    denied = limiter.admit(CREATE_USER, "a")

    assert denied is not None
    assert denied.headers == {}


def test_create_budget_is_not_restored_before_the_window_ends() -> None:
    clock = Mock(return_value=0.0)
    limiter = _limiter(clock)

    for _ in range(5):
        assert limiter.admit(CREATE_USER, "10.0.0.1") is None

    clock.return_value = 59.0
    denied = limiter.admit(CREATE_USER, "10.0.0.1")
    assert denied is not None
    assert denied.retry_after_seconds == 1

    clock.return_value = 60.0
    assert limiter.admit(CREATE_USER, "10.0.0.1") is None
