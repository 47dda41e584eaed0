"""Rate limiting dependency for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

- The limiter (and its state store) is built once per application by
  ``build_rate_limiter`` and kept on ``app.state``; routes reach it through
  the ``get_rate_limiter`` dependency, so tests can override it.
- Clients are identified by network address, ``"unknown"`` when the
  transport does not report one.
- Disabled requests skip the limiter entirely (``APP_RATE_LIMIT_ENABLED``).
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from school_payments.adapters.rate_limit import (
    AbstractRateLimiter,
    InMemoryWindowRateLimiter,
    WindowStateStore,
    WindowSweeper,
)
from school_payments.core.config import AppSettings, settings
from school_payments.core.logging import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def build_rate_limiter(app_settings: AppSettings | None = None) -> InMemoryWindowRateLimiter:
    """Create a limiter with its own state store from configuration."""

    cfg = app_settings or settings.app
    return InMemoryWindowRateLimiter(
        max_requests=cfg.rate_limit_max_requests,
        window_size_ms=cfg.rate_limit_window_ms,
        store=WindowStateStore(max_entries=cfg.rate_limit_max_clients),
    )


def build_sweeper(
    limiter: AbstractRateLimiter,
    app_settings: AppSettings | None = None,
) -> WindowSweeper | None:
    """Create the background sweeper, or None when sweeping is disabled."""

    cfg = app_settings or settings.app
    if cfg.rate_limit_sweep_interval_seconds <= 0:
        return None
    return WindowSweeper(limiter, interval_seconds=cfg.rate_limit_sweep_interval_seconds)


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application.

    Built lazily when the app was assembled without one (e.g., a bare
    FastAPI instance in tests).
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def resolve_client_identifier(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Derive the rate limit identifier for the current request.

    Args:
        request: FastAPI request.
        trust_forwarded_for: Use the first X-Forwarded-For hop when present.
            Only enable behind a proxy that sets the header.

    Returns:
        str: Namespaced limiter key, e.g. ``ip:10.0.0.1``.
    """

    if trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return f"ip:{first_hop}"

    client_host = request.client.host if request.client and request.client.host else UNKNOWN_CLIENT
    return f"ip:{client_host}"


async def enforce_rate_limit(
    request: Request,
    limiter: Annotated[AbstractRateLimiter, Depends(get_rate_limiter)],
) -> None:
    """FastAPI dependency enforcing per-client rate limits.

    Admits one request from the caller's budget. When the budget for the
    current window is spent, raises HTTP 429.

    Raises:
        HTTPException: 429 Too Many Requests when rate limit is exceeded.
    """

    cfg = settings.app
    if not cfg.rate_limit_enabled:
        return

    key = resolve_client_identifier(request, trust_forwarded_for=cfg.rate_limit_trust_forwarded_for)
    key_hash = hash_identifier(key)

    result = limiter.consume(key)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return

    retry_after = result.retry_after_seconds or 0
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "key_hash": key_hash,
            "limit": result.limit,
            "path": request.url.path,
            "retry_after_s": retry_after,
        },
    )

    headers: dict[str, str] = {}
    if cfg.rate_limit_include_headers:
        headers["Retry-After"] = str(retry_after)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = str(result.remaining)
        headers["X-RateLimit-Reset"] = str(result.reset_at_ms // 1000)

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Too many requests",
        headers=headers or None,
    )
