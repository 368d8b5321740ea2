"""Role-gated purchase and hiring workflows."""

from .models import (
    APPLICATION_TRANSITIONS,
    PAYMENT_TRANSITIONS,
    ApplicationStatus,
    Download,
    PaymentStatus,
    can_decide_application,
    can_decide_payment,
)
from .service import (
    HiringWorkflow,
    PurchaseWorkflow,
    first_payment_status,
    has_approved_payment,
)

__all__ = [
    # Enums
    "PaymentStatus",
    "ApplicationStatus",
    # State machines
    "PAYMENT_TRANSITIONS",
    "APPLICATION_TRANSITIONS",
    "can_decide_payment",
    "can_decide_application",
    # Services
    "PurchaseWorkflow",
    "HiringWorkflow",
    "Download",
    # Lookups
    "first_payment_status",
    "has_approved_payment",
]
