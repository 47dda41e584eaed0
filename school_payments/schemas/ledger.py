"""Pydantic schemas for students, balances and payments."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

PaymentStatus = Literal["pending", "paid"]

STUDENT_EMAIL_DOMAIN = "@student.com"
UNASSIGNED = "Unassigned"


class Student(BaseModel):
    """A student record as exposed by the API."""

    id: str
    email: str
    name: str
    section: str = UNASSIGNED
    strand: str = UNASSIGNED
    grade: str = UNASSIGNED
    payment_status: PaymentStatus = Field(
        "paid",
        description="'pending' while any balance is unpaid, otherwise 'paid'.",
    )
    created_at: datetime


class Balance(BaseModel):
    """A fee owed by a single student."""

    id: str
    student_id: str
    type: str = Field(..., description="Fee type, e.g. 'tuition' or 'laboratory'.")
    amount: float = Field(..., gt=0)
    due_date: date
    description: str = ""
    status: PaymentStatus = "pending"
    created_at: datetime
    paid_at: datetime | None = None


class Payment(BaseModel):
    """A settled payment against one balance."""

    id: str
    balance_id: str
    student_id: str
    amount: float
    status: Literal["paid"] = "paid"
    created_at: datetime


class CreateStudentRequest(BaseModel):
    email: str = Field(..., description=f"Student email, must end with {STUDENT_EMAIL_DOMAIN}.")
    name: str = Field(..., min_length=1)
    section: str = UNASSIGNED
    strand: str = UNASSIGNED
    grade: str = UNASSIGNED


class BulkFeeRequest(BaseModel):
    """Fee posted to every registered student at once."""

    fee_type: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    due_date: date
    description: str = ""


class BulkFeeResponse(BaseModel):
    success: bool = True
    students_affected: int
    message: str


class RecordPaymentRequest(BaseModel):
    balance_id: str
    student_id: str
    amount: float = Field(..., gt=0)


class RecordPaymentResponse(BaseModel):
    success: bool = True
    payment_id: str
    payment_status: PaymentStatus = Field(
        ...,
        description="The student's payment status after this payment.",
    )


class StudentListResponse(BaseModel):
    students: list[Student]


class BalanceListResponse(BaseModel):
    balances: list[Balance]
