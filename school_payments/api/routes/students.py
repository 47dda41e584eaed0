from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, status

from school_payments.api.dependencies import get_ledger_service
from school_payments.core.rate_limit import enforce_rate_limit
from school_payments.schemas.ledger import (
    BalanceListResponse,
    CreateStudentRequest,
    Student,
    StudentListResponse,
)
from school_payments.services.ledger_service import LedgerService

router = APIRouter(tags=["Students"], dependencies=[Depends(enforce_rate_limit)])

Ledger = Annotated[LedgerService, Depends(get_ledger_service)]


@router.get("/students", response_model=StudentListResponse)
def list_students(ledger: Ledger) -> StudentListResponse:
    """List every registered student, oldest first."""
    return StudentListResponse(students=ledger.list_students())


@router.post("/students", response_model=Student, status_code=status.HTTP_201_CREATED)
def create_student(payload: CreateStudentRequest, ledger: Ledger) -> Student:
    """Register a student.

    Raises:
        ValidationAppError: 400 when the email is outside the student domain
            or already registered.
    """
    return ledger.create_student(
        payload.email,
        payload.name,
        section=payload.section,
        strand=payload.strand,
        grade=payload.grade,
    )


@router.get("/students/{student_id}", response_model=Student)
def get_student(student_id: str, ledger: Ledger) -> Student:
    return ledger.get_student(student_id)


@router.get("/students/{student_id}/balances", response_model=BalanceListResponse)
def list_student_balances(student_id: str, ledger: Ledger) -> BalanceListResponse:
    return BalanceListResponse(balances=ledger.list_balances(student_id))
