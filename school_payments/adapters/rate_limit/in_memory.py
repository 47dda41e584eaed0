"""In-memory per-client window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around the state store.
- A window starts at a client's first request after the previous one expired,
  so each client has its own window boundaries.
"""

from __future__ import annotations

import math
import threading
import time
from dataclasses import replace
from typing import Callable

from school_payments.adapters.rate_limit.base import (
    AbstractRateLimiter,
    ClientWindowState,
    RateLimitResult,
)
from school_payments.adapters.rate_limit.store import WindowStateStore


def system_clock_ms() -> int:
    """Return the current UNIX time in milliseconds."""
    return int(time.time() * 1000)


class InMemoryWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per identifier inside a time window.

    A request arriving exactly ``window_size_ms`` after the window began opens
    a new window. Blocked requests do not count against the budget.
    """

    def __init__(
        self,
        *,
        max_requests: int,
        window_size_ms: int,
        store: WindowStateStore | None = None,
        clock: Callable[[], int] = system_clock_ms,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            max_requests: Maximum number of admitted requests per window.
            window_size_ms: Size of the window in milliseconds.
            store: State store; a fresh unbounded store is used when omitted.
            clock: Time source returning UNIX time in milliseconds.

        Raises:
            ValueError: If max_requests or window_size_ms are invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_size_ms < 1:
            raise ValueError("window_size_ms must be >= 1")

        self._max_requests = max_requests
        self._window_size_ms = window_size_ms
        self._store = store if store is not None else WindowStateStore()
        self._clock = clock
        self._lock = threading.RLock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_size_ms(self) -> int:
        return self._window_size_ms

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)

    def _current_state(self, identifier: str, now: int) -> ClientWindowState:
        """Return the identifier's state, opening a new window when expired."""
        state = self._store.get(identifier)
        if state is None:
            return ClientWindowState(count=0, window_start=now)
        if now - state.window_start >= self._window_size_ms:
            state.count = 0
            state.window_start = now
        return state

    def consume(self, identifier: str, now: int | None = None) -> RateLimitResult:
        """Admit or reject one request for the identifier.

        Args:
            identifier: Client key. Empty strings form a single shared bucket.
            now: Epoch milliseconds; defaults to the injected clock.

        Returns:
            RateLimitResult with the admission decision and window metadata.
        """
        if now is None:
            now = self._clock()

        with self._lock:
            state = self._current_state(identifier, now)
            reset_at_ms = state.window_start + self._window_size_ms

            if state.count >= self._max_requests:
                retry_after = max(0, int(math.ceil((reset_at_ms - now) / 1000)))
                return RateLimitResult(
                    allowed=False,
                    limit=self._max_requests,
                    remaining=0,
                    reset_at_ms=reset_at_ms,
                    retry_after_seconds=retry_after,
                )

            state.count += 1
            self._store.put(identifier, state)
            return RateLimitResult(
                allowed=True,
                limit=self._max_requests,
                remaining=self._max_requests - state.count,
                reset_at_ms=reset_at_ms,
                retry_after_seconds=None,
            )

    def peek(self, identifier: str) -> ClientWindowState | None:
        """Return a copy of the identifier's stored state, if any."""
        with self._lock:
            state = self._store.peek(identifier)
            return replace(state) if state is not None else None

    def sweep(self, now: int | None = None) -> int:
        if now is None:
            now = self._clock()
        with self._lock:
            return self._store.sweep(now, self._window_size_ms)

    def reset(self) -> None:
        """Forget every tracked identifier."""
        with self._lock:
            self._store.clear()
