"""Rate limiting adapters.

The HTTP layer only sees ``AbstractRateLimiter``; the in-memory sliding window
can be replaced by a shared store (e.g. Redis) without touching routes.
"""
