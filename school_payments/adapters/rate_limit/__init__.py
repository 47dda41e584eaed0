"""Rate limiting adapters.

This package provides a small abstraction layer so the API can start with an
in-memory limiter and later migrate to Redis or another shared store without
changing the HTTP layer.
"""

from school_payments.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientWindowState,
    RateLimitResult,
)
from school_payments.adapters.rate_limit.in_memory import InMemoryWindowRateLimiter, system_clock_ms
from school_payments.adapters.rate_limit.store import WindowStateStore
from school_payments.adapters.rate_limit.sweeper import WindowSweeper

__all__ = [
    "AbstractRateLimiter",
    "ClientWindowState",
    "InMemoryWindowRateLimiter",
    "RateLimitResult",
    "WindowStateStore",
    "WindowSweeper",
    "system_clock_ms",
]
