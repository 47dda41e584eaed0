from __future__ import annotations

from fastapi import Request

from school_payments.services.ledger_service import LedgerService


def get_ledger_service(request: Request) -> LedgerService:
    """Return the ledger owned by the running application."""

    service = getattr(request.app.state, "ledger", None)
    if service is None:
        service = LedgerService()
        request.app.state.ledger = service
    return service
