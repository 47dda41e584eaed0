from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check, never rate limited.

    Returns:
        dict: ``status`` plus the number of clients the limiter is tracking.
    """

    limiter = getattr(request.app.state, "rate_limiter", None)
    tracked = len(limiter) if limiter is not None else 0
    return {"status": "ok", "tracked_clients": tracked}
