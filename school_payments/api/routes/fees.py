from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from school_payments.api.dependencies import get_ledger_service
from school_payments.core.rate_limit import enforce_rate_limit
from school_payments.schemas.ledger import BulkFeeRequest, BulkFeeResponse
from school_payments.services.ledger_service import LedgerService

router = APIRouter(tags=["Fees"], dependencies=[Depends(enforce_rate_limit)])


@router.post("/fees/bulk-create", response_model=BulkFeeResponse)
def create_bulk_fees(
    payload: BulkFeeRequest,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
) -> BulkFeeResponse:
    """Post the same fee to every registered student.

    Each student receives one new pending balance and their payment status
    becomes 'pending'.
    """
    affected = ledger.create_bulk_fees(
        payload.fee_type,
        payload.amount,
        payload.due_date,
        payload.description,
    )
    return BulkFeeResponse(
        students_affected=affected,
        message=f"Added {payload.fee_type} fee to {affected} students",
    )
