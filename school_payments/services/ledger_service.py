"""Student ledger: students, the balances they owe, and payments against them.

Records live in process memory behind ``LedgerRepository``. The service
enforces the bookkeeping rules:
- Student emails must belong to the student domain and be unique
- Bulk fees add one pending balance to every registered student
- Recording a payment settles its balance and recomputes the student's
  payment status ('paid' once no pending balance remains)
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import date, datetime, timezone
from typing import Callable

from school_payments.core.errors import NotFoundAppError, ValidationAppError
from school_payments.core.logging import hash_identifier
from school_payments.schemas.ledger import (
    STUDENT_EMAIL_DOMAIN,
    UNASSIGNED,
    Balance,
    Payment,
    PaymentStatus,
    Student,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class LedgerRepository:
    """Thread-safe in-memory storage for ledger records."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.students: dict[str, Student] = {}
        self.balances: dict[str, Balance] = {}
        self.payments: dict[str, Payment] = {}

    def clear(self) -> None:
        with self.lock:
            self.students.clear()
            self.balances.clear()
            self.payments.clear()


class LedgerService:
    """Business operations over a ``LedgerRepository``."""

    def __init__(
        self,
        repository: LedgerRepository | None = None,
        *,
        now: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._repo = repository or LedgerRepository()
        self._now = now
        self._new_id = id_factory

    @property
    def repository(self) -> LedgerRepository:
        return self._repo

    def list_students(self) -> list[Student]:
        with self._repo.lock:
            return sorted(self._repo.students.values(), key=lambda s: s.created_at)

    def get_student(self, student_id: str) -> Student:
        with self._repo.lock:
            student = self._repo.students.get(student_id)
        if student is None:
            raise NotFoundAppError(
                code="student_not_found",
                message="Student not found",
                details={"student_id": student_id},
            )
        return student

    def create_student(
        self,
        email: str,
        name: str,
        *,
        section: str = UNASSIGNED,
        strand: str = UNASSIGNED,
        grade: str = UNASSIGNED,
    ) -> Student:
        """Register a student.

        Raises:
            ValidationAppError: If the email is outside the student domain or
                already registered.
        """
        email = email.strip().lower()
        if not email.endswith(STUDENT_EMAIL_DOMAIN) or len(email) == len(STUDENT_EMAIL_DOMAIN):
            raise ValidationAppError(
                code="invalid_student_email",
                message=f"Email must end with {STUDENT_EMAIL_DOMAIN}",
                details={"field": "email"},
            )

        with self._repo.lock:
            if any(s.email == email for s in self._repo.students.values()):
                raise ValidationAppError(
                    code="duplicate_student_email",
                    message="A student with this email already exists",
                    details={"field": "email"},
                )
            student = Student(
                id=self._new_id(),
                email=email,
                name=name,
                section=section,
                strand=strand,
                grade=grade,
                created_at=self._now(),
            )
            self._repo.students[student.id] = student

        logger.info("ledger.student_created", extra={"student_id": student.id})
        return student

    def list_balances(self, student_id: str) -> list[Balance]:
        self.get_student(student_id)
        with self._repo.lock:
            return [b for b in self._repo.balances.values() if b.student_id == student_id]

    def create_bulk_fees(
        self,
        fee_type: str,
        amount: float,
        due_date: date,
        description: str = "",
    ) -> int:
        """Add a pending balance of ``amount`` to every student.

        Returns:
            Number of students that received the fee.
        """
        if amount <= 0:
            raise ValidationAppError(
                code="invalid_fee_amount",
                message="Fee amount must be greater than zero",
                details={"field": "amount"},
            )

        with self._repo.lock:
            created_at = self._now()
            for student in list(self._repo.students.values()):
                balance = Balance(
                    id=self._new_id(),
                    student_id=student.id,
                    type=fee_type,
                    amount=amount,
                    due_date=due_date,
                    description=description,
                    created_at=created_at,
                )
                self._repo.balances[balance.id] = balance
                self._repo.students[student.id] = student.model_copy(
                    update={"payment_status": "pending"}
                )
            affected = len(self._repo.students)

        logger.info(
            "ledger.bulk_fees_created",
            extra={"fee_type": fee_type, "students_affected": affected},
        )
        return affected

    def record_payment(self, balance_id: str, student_id: str, amount: float) -> tuple[Payment, PaymentStatus]:
        """Settle a balance and refresh the owner's payment status.

        Returns:
            The created payment and the student's resulting payment status.

        Raises:
            NotFoundAppError: If the student or balance does not exist, or the
                balance belongs to another student.
            ValidationAppError: If the balance is already paid.
        """
        with self._repo.lock:
            student = self.get_student(student_id)
            balance = self._repo.balances.get(balance_id)
            if balance is None or balance.student_id != student_id:
                raise NotFoundAppError(
                    code="balance_not_found",
                    message="Balance not found for this student",
                    details={"balance_id": balance_id, "student_id": student_id},
                )
            if balance.status == "paid":
                raise ValidationAppError(
                    code="balance_already_paid",
                    message="This balance has already been paid",
                    details={"balance_id": balance_id},
                )

            now = self._now()
            payment = Payment(
                id=self._new_id(),
                balance_id=balance_id,
                student_id=student_id,
                amount=amount,
                created_at=now,
            )
            self._repo.payments[payment.id] = payment
            self._repo.balances[balance_id] = balance.model_copy(
                update={"status": "paid", "paid_at": now}
            )

            status = self._payment_status_locked(student_id)
            self._repo.students[student_id] = student.model_copy(update={"payment_status": status})

        logger.info(
            "ledger.payment_recorded",
            extra={
                "payment_id": payment.id,
                "student_hash": hash_identifier(student_id),
                "payment_status": status,
            },
        )
        return payment, status

    def _payment_status_locked(self, student_id: str) -> PaymentStatus:
        has_unpaid = any(
            b.status != "paid" for b in self._repo.balances.values() if b.student_id == student_id
        )
        return "pending" if has_unpaid else "paid"
