"""Rate limiter interfaces.

The API depends on this abstraction (not the concrete implementation) so the
state store can later move to a shared backend with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class ClientWindowState:
    """Per-identifier window bookkeeping.

    Attributes:
        count: Requests admitted in the current window.
        window_start: Epoch milliseconds at which the current window began.
    """

    count: int
    window_start: int


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at_ms: Epoch milliseconds when the current window expires.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_seconds: int | None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def consume(self, identifier: str, now: int | None = None) -> RateLimitResult:
        """Check the identifier's budget and admit the request when possible.

        Args:
            identifier: Client key (e.g., network address).
            now: Epoch milliseconds; the limiter's clock is used when omitted.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    def check_and_admit(self, identifier: str, now: int | None = None) -> bool:
        """Return the bare admission decision for the identifier."""
        return self.consume(identifier, now).allowed

    @abstractmethod
    def __len__(self) -> int:
        """Return the number of tracked identifiers."""
        raise NotImplementedError

    @abstractmethod
    def sweep(self, now: int | None = None) -> int:
        """Drop state whose window has expired. Returns the number removed."""
        raise NotImplementedError
