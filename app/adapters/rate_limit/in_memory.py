"""In-memory sliding-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult


class InMemorySlidingWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting admitted units over the trailing window per key.

    Every admitted unit is stamped with its arrival time. A request is
    admitted only if the units stamped within the last ``window_seconds``
    plus its own cost stay within ``limit``, so no window-long span ever
    admits more than ``limit`` units.
    """

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: int,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the limiter.

        Args:
            limit: Maximum number of units admitted per window.
            window_seconds: Length of the trailing window in seconds.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If limit or window_seconds are invalid.
        """
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._limit = limit
        self._window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.RLock()
        self._hits_by_key: dict[str, deque[float]] = {}

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def _live_hits(self, key: str, now: float) -> deque[float]:
        """Return the key's hits, dropping those that left the window."""
        hits = self._hits_by_key.setdefault(key, deque())
        horizon = now - self._window_seconds
        while hits and hits[0] <= horizon:
            hits.popleft()
        return hits

    def _reset_at(self, hits: deque[float], now: float) -> int:
        """Epoch second at which the whole budget is available again."""
        newest = hits[-1] if hits else now
        return int(math.ceil(newest + self._window_seconds))

    def consume(self, key: str, *, cost: int = 1) -> RateLimitResult:
        """Admit ``cost`` units for ``key`` if the trailing window has room.

        Raises:
            ValueError: If key is empty or cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")
        if not key:
            raise ValueError("key must be a non-empty string")

        now = self._clock()

        with self._lock:
            hits = self._live_hits(key, now)

            if len(hits) + cost <= self._limit:
                hits.extend([now] * cost)
                return RateLimitResult(
                    allowed=True,
                    limit=self._limit,
                    remaining=self._limit - len(hits),
                    reset_at=self._reset_at(hits, now),
                    retry_after_seconds=None,
                )

            # Room appears once enough of the oldest hits expire
            overflow = len(hits) + cost - self._limit
            if overflow <= len(hits):
                freed_at = hits[overflow - 1] + self._window_seconds
            else:
                freed_at = now + self._window_seconds
            return RateLimitResult(
                allowed=False,
                limit=self._limit,
                remaining=max(0, self._limit - len(hits)),
                reset_at=self._reset_at(hits, now),
                retry_after_seconds=max(1, int(math.ceil(freed_at - now))),
            )
