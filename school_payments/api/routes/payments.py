from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from school_payments.api.dependencies import get_ledger_service
from school_payments.core.rate_limit import enforce_rate_limit
from school_payments.schemas.ledger import RecordPaymentRequest, RecordPaymentResponse
from school_payments.services.ledger_service import LedgerService

router = APIRouter(tags=["Payments"], dependencies=[Depends(enforce_rate_limit)])


@router.post(
    "/payments",
    response_model=RecordPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    payload: RecordPaymentRequest,
    ledger: Annotated[LedgerService, Depends(get_ledger_service)],
) -> RecordPaymentResponse:
    """Record a payment against one of a student's balances.

    Raises:
        NotFoundAppError: 404 when the student or balance is unknown.
        ValidationAppError: 400 when the balance is already paid.
    """
    payment, payment_status = ledger.record_payment(
        payload.balance_id,
        payload.student_id,
        payload.amount,
    )
    return RecordPaymentResponse(payment_id=payment.id, payment_status=payment_status)
