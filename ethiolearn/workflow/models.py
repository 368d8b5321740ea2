"""State machines for payments and job applications.

Both share one shape: a single initial state, two terminal decisions made
by a privileged role, and no transitions out of a terminal state.
"""

import mimetypes
from dataclasses import dataclass
from enum import Enum


class PaymentStatus(str, Enum):
    """Manual payment verification states."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ApplicationStatus(str, Enum):
    """Job application review states."""

    applied = "applied"
    accepted = "accepted"
    rejected = "rejected"


PAYMENT_TRANSITIONS: dict[PaymentStatus, set[PaymentStatus]] = {
    PaymentStatus.pending: {PaymentStatus.approved, PaymentStatus.rejected},
}

APPLICATION_TRANSITIONS: dict[ApplicationStatus, set[ApplicationStatus]] = {
    ApplicationStatus.applied: {ApplicationStatus.accepted, ApplicationStatus.rejected},
}


def can_decide_payment(from_status: str, to_status: str) -> bool:
    """Check if an admin decision is valid from the current payment status."""
    try:
        current, target = PaymentStatus(from_status), PaymentStatus(to_status)
    except ValueError:
        return False
    return target in PAYMENT_TRANSITIONS.get(current, set())


def can_decide_application(from_status: str, to_status: str) -> bool:
    """Check if an employer decision is valid from the current application status."""
    try:
        current, target = ApplicationStatus(from_status), ApplicationStatus(to_status)
    except ValueError:
        return False
    return target in APPLICATION_TRANSITIONS.get(current, set())


@dataclass
class Download:
    """A blob fetched for the caller, ready to stream back."""

    filename: str
    content: bytes

    @property
    def media_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "application/octet-stream"
