"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) and
owns the per-app collaborators: the rate limiter with its state store, the
background sweeper, and the ledger service.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from school_payments.adapters.rate_limit import AbstractRateLimiter
from school_payments.api.routes import fees_router, health_router, payments_router, students_router
from school_payments.core.config import settings
from school_payments.core.exception_handlers import setup_exception_handlers
from school_payments.core.logging import configure_logging
from school_payments.core.middleware import request_id_middleware
from school_payments.core.openapi import apply_openapi_customizations
from school_payments.core.rate_limit import build_rate_limiter, build_sweeper
from school_payments.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    sweeper = build_sweeper(app.state.rate_limiter)
    if sweeper is not None:
        sweeper.start()
    logger.info(
        "app.started",
        extra={
            "env": settings.app_env,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
            "rate_limit_max_requests": settings.app.rate_limit_max_requests,
            "rate_limit_window_ms": settings.app.rate_limit_window_ms,
        },
    )
    try:
        yield
    finally:
        if sweeper is not None:
            sweeper.stop()


def create_app(
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    ledger: LedgerService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        rate_limiter: Limiter to protect the API with; built from settings
            when omitted.
        ledger: Ledger service; a fresh in-memory ledger when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="School Payments API",
        description=(
            "Track student balances, post fees in bulk and record payments. "
            "Every /v1 route is rate limited per client address."
        ),
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.state.rate_limiter = rate_limiter if rate_limiter is not None else build_rate_limiter()
    app.state.ledger = ledger if ledger is not None else LedgerService()

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(students_router, prefix="/v1")
    app.include_router(fees_router, prefix="/v1")
    app.include_router(payments_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
