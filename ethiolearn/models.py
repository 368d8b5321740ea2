"""Pydantic models for API requests and responses."""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

# =============================================================================
# Roles
# =============================================================================

# Profiles created by the first version of the front-end store learners as "user"
LEGACY_ROLE_ALIASES = {"user": "learner"}


class Role(str, Enum):
    """Closed set of account roles."""

    learner = "learner"
    instructor = "instructor"
    employer = "employer"
    admin = "admin"

    @classmethod
    def parse(cls, value: "Role | str") -> "Role":
        """Parse a stored role tag, accepting legacy aliases."""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        return cls(LEGACY_ROLE_ALIASES.get(normalized, normalized))


def _require_text(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


# =============================================================================
# Auth Models
# =============================================================================

class SignupRequest(BaseModel):
    """Request to create an account."""
    email: str = Field(..., min_length=3, max_length=320, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    password: str = Field(..., min_length=6, max_length=128)
    role: Role = Role.learner

    @field_validator("role")
    @classmethod
    def no_self_service_admin(cls, v: Role) -> Role:
        if v is Role.admin:
            raise ValueError("Admin accounts cannot be created through sign-up")
        return v


class LoginRequest(BaseModel):
    """Request for an access token."""
    email: str
    password: str


class TokenResponse(BaseModel):
    """JWT token response."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: str
    role: Role


class UserInfo(BaseModel):
    """The authenticated user."""
    user_id: str
    role: Role
    email: str | None = None


# =============================================================================
# Course Models
# =============================================================================

class CourseCreate(BaseModel):
    """Fields of a new course (the PDF travels separately as a file)."""
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    price: int = Field(..., gt=0)
    phone_number: str | None = Field(None, max_length=32)

    @field_validator("title", "description")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return _require_text(v)

    @field_validator("phone_number")
    @classmethod
    def blank_phone_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class CourseResponse(BaseModel):
    """Course details, annotated with the caller's purchase state for learners.

    ``purchase_status`` is the newest payment's status, while ``can_download``
    holds if any payment was approved; gate downloads on ``can_download``.
    """
    id: str
    title: str
    description: str
    price: int
    instructor_id: str
    phone_number: str | None = None
    instructor_email: str | None = None
    has_material: bool = False
    created_at: datetime | None = None
    purchase_status: str | None = None
    can_download: bool | None = None


class CourseListResponse(BaseModel):
    """List of courses."""
    courses: list[CourseResponse]
    total: int


# =============================================================================
# Payment Models
# =============================================================================

class PaymentResponse(BaseModel):
    """A payment row; listings also carry the course and payer details."""
    id: str
    user_id: str
    course_id: str
    amount: int
    status: str
    has_receipt: bool = False
    created_at: datetime | None = None
    course_title: str | None = None
    course_phone_number: str | None = None
    user_email: str | None = None


class PaymentListResponse(BaseModel):
    """List of payments."""
    payments: list[PaymentResponse]
    total: int


class PaymentInstructions(BaseModel):
    """How to pay off-platform before uploading a receipt."""
    amount: int
    currency: str
    phone_number: str | None = None
    message: str


class PurchaseResponse(BaseModel):
    """Result of a purchase intent."""
    payment: PaymentResponse
    instructions: PaymentInstructions


class PaymentDecisionRequest(BaseModel):
    """Admin decision on a pending payment."""
    decision: Literal["approved", "rejected"]


class PaymentStatusResponse(BaseModel):
    """The caller's purchase state for one course."""
    course_id: str
    status: str | None = None
    can_download: bool = False


# =============================================================================
# Job Models
# =============================================================================

class JobCreate(BaseModel):
    """Request to post a job."""
    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    requirements: str = Field(..., min_length=1)
    description: str | None = None
    salary: str | None = Field(None, max_length=100)

    @field_validator("title", "company", "location", "requirements")
    @classmethod
    def strip_required(cls, v: str) -> str:
        return _require_text(v)


class JobResponse(BaseModel):
    """Job details."""
    id: str
    title: str
    company: str | None = None
    location: str
    requirements: str
    description: str | None = None
    salary: str | None = None
    employer_id: str
    created_at: datetime | None = None
    has_applied: bool | None = None


class JobListResponse(BaseModel):
    """List of jobs."""
    jobs: list[JobResponse]
    total: int


class ApplicationResponse(BaseModel):
    """A job application row."""
    id: str
    user_id: str
    job_id: str
    status: str
    has_cv: bool = False
    created_at: datetime | None = None


class ApplicationListResponse(BaseModel):
    """List of job applications."""
    applications: list[ApplicationResponse]
    total: int


class ApplicationDecisionRequest(BaseModel):
    """Employer decision on an application."""
    decision: Literal["accepted", "rejected"]
