from __future__ import annotations

from school_payments.api.routes.fees import router as fees_router
from school_payments.api.routes.health import router as health_router
from school_payments.api.routes.payments import router as payments_router
from school_payments.api.routes.students import router as students_router

__all__ = ["fees_router", "health_router", "payments_router", "students_router"]
