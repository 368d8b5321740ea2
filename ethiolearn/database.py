"""Database utilities for Supabase integration."""

from typing import Annotated

from fastapi import Depends

from supabase import Client, create_client

from .config import Settings, get_settings

_supabase_client: Client | None = None


def get_supabase_client(settings: Settings | None = None) -> Client:
    """Get cached Supabase client (service access, bypasses row level security)."""
    global _supabase_client
    if _supabase_client is None:
        if settings is None:
            settings = get_settings()
        # Prefer new secret key, fall back to legacy service_role_key
        api_key = settings.supabase_secret_key or settings.supabase_service_role_key
        if not api_key:
            raise ValueError("Either SUPABASE_SECRET_KEY or SUPABASE_SERVICE_ROLE_KEY must be set")
        _supabase_client = create_client(settings.supabase_url, api_key)
    return _supabase_client


def get_auth_client(settings: Settings | None = None) -> Client:
    """Create a client for Supabase Auth calls.

    Signing a user in switches the client's session to that user, so auth
    calls never go through the shared service client.
    """
    if settings is None:
        settings = get_settings()
    api_key = settings.supabase_publishable_key or settings.supabase_anon_key
    if not api_key:
        raise ValueError("Either SUPABASE_PUBLISHABLE_KEY or SUPABASE_ANON_KEY must be set")
    return create_client(settings.supabase_url, api_key)


def get_db(settings: Annotated[Settings, Depends(get_settings)]) -> Client:
    """FastAPI dependency for Supabase client."""
    return get_supabase_client(settings)


# Type alias for dependency injection
Database = Annotated[Client, Depends(get_db)]


# =============================================================================
# Table Names
# =============================================================================

PROFILES_TABLE = "profiles"
COURSES_TABLE = "courses"
PAYMENTS_TABLE = "payments"
JOBS_TABLE = "jobs"
JOB_APPLICATIONS_TABLE = "job_applications"

# Embedded selects: each joined row arrives as a nested dict under its alias
# (or table name), or None when the referenced row is missing
COURSE_COLUMNS = "*, profiles:instructor_id(email)"
PAYMENT_COLUMNS = "*, courses(title, phone_number), profiles(email)"


def _first(result) -> dict | None:
    return result.data[0] if result.data else None


# =============================================================================
# Profile Operations
# =============================================================================

async def create_profile(db: Client, user_id: str, email: str, role: str) -> dict:
    """Create the profile row that carries a user's role."""
    data = {"id": user_id, "email": email, "role": role}
    result = db.table(PROFILES_TABLE).insert(data).execute()
    return _first(result)


async def get_profile(db: Client, user_id: str) -> dict | None:
    """Get a profile by auth user ID."""
    result = db.table(PROFILES_TABLE).select("*").eq("id", user_id).execute()
    return _first(result)


# =============================================================================
# Course Operations
# =============================================================================

async def create_course(db: Client, data: dict) -> dict:
    """Insert a course row."""
    result = db.table(COURSES_TABLE).insert(data).execute()
    return _first(result)


async def get_course(db: Client, course_id: str) -> dict | None:
    """Get a course by ID."""
    result = db.table(COURSES_TABLE).select(COURSE_COLUMNS).eq("id", course_id).execute()
    return _first(result)


async def list_courses(db: Client, instructor_id: str | None = None) -> list[dict]:
    """List courses, newest first."""
    query = db.table(COURSES_TABLE).select(COURSE_COLUMNS)
    if instructor_id:
        query = query.eq("instructor_id", instructor_id)
    result = query.order("created_at", desc=True).execute()
    return result.data or []


# =============================================================================
# Payment Operations
# =============================================================================

async def create_payment(db: Client, user_id: str, course_id: str, amount: int) -> dict:
    """Record a purchase intent. No funds move in-system."""
    data = {
        "user_id": user_id,
        "course_id": course_id,
        "amount": amount,
        "status": "pending",
    }
    result = db.table(PAYMENTS_TABLE).insert(data).execute()
    return _first(result)


async def get_payment(db: Client, payment_id: str) -> dict | None:
    """Get a payment by ID."""
    result = db.table(PAYMENTS_TABLE).select("*").eq("id", payment_id).execute()
    return _first(result)


async def list_payments(
    db: Client,
    user_id: str | None = None,
    course_id: str | None = None,
    status_filter: str | None = None,
) -> list[dict]:
    """List payments newest first, with the course title/phone and payer email.

    ``user_id=None`` means every user's.
    """
    query = db.table(PAYMENTS_TABLE).select(PAYMENT_COLUMNS)
    if user_id:
        query = query.eq("user_id", user_id)
    if course_id:
        query = query.eq("course_id", course_id)
    if status_filter:
        query = query.eq("status", status_filter)
    result = query.order("created_at", desc=True).order("id", desc=True).execute()
    return result.data or []


async def update_payment(
    db: Client,
    payment_id: str,
    updates: dict,
    expected_status: str | None = None,
) -> dict | None:
    """Update a payment by ID, optionally only while it is in ``expected_status``."""
    query = db.table(PAYMENTS_TABLE).update(updates).eq("id", payment_id)
    if expected_status:
        query = query.eq("status", expected_status)
    return _first(query.execute())


async def atomic_update_payment_status(
    db: Client,
    payment_id: str,
    expected_status: str,
    new_status: str,
) -> tuple[dict | None, str | None]:
    """Atomically update payment status with optimistic locking.

    Returns:
        Tuple of (updated_payment, error_message).
        - If successful: (payment_dict, None)
        - If not found: (None, "not_found")
        - If status mismatch: (None, "conflict")
    """
    result = (
        db.table(PAYMENTS_TABLE)
        .update({"status": new_status})
        .eq("id", payment_id)
        .eq("status", expected_status)
        .execute()
    )

    if result.data:
        return result.data[0], None

    payment = await get_payment(db, payment_id)
    if not payment:
        return None, "not_found"
    return None, "conflict"


# =============================================================================
# Job Operations
# =============================================================================

async def create_job(db: Client, data: dict) -> dict:
    """Insert a job listing."""
    result = db.table(JOBS_TABLE).insert(data).execute()
    return _first(result)


async def get_job(db: Client, job_id: str) -> dict | None:
    """Get a job by ID."""
    result = db.table(JOBS_TABLE).select("*").eq("id", job_id).execute()
    return _first(result)


async def list_jobs(db: Client, employer_id: str | None = None) -> list[dict]:
    """List jobs, newest first."""
    query = db.table(JOBS_TABLE).select("*")
    if employer_id:
        query = query.eq("employer_id", employer_id)
    result = query.order("created_at", desc=True).execute()
    return result.data or []


# =============================================================================
# Job Application Operations
# =============================================================================

async def create_application(db: Client, user_id: str, job_id: str, cv_storage_path: str) -> dict:
    """Insert a job application in 'applied' status."""
    data = {
        "user_id": user_id,
        "job_id": job_id,
        "status": "applied",
        "cv_storage_path": cv_storage_path,
    }
    result = db.table(JOB_APPLICATIONS_TABLE).insert(data).execute()
    return _first(result)


async def get_application(db: Client, application_id: str) -> dict | None:
    """Get an application by ID."""
    result = db.table(JOB_APPLICATIONS_TABLE).select("*").eq("id", application_id).execute()
    return _first(result)


async def list_applications(
    db: Client,
    user_id: str | None = None,
    job_ids: list[str] | None = None,
) -> list[dict]:
    """List applications, newest first.

    Args:
        user_id: Only the applicant's own applications
        job_ids: Only applications to these jobs (an empty list matches nothing)
    """
    if job_ids is not None and not job_ids:
        return []

    query = db.table(JOB_APPLICATIONS_TABLE).select("*")
    if user_id:
        query = query.eq("user_id", user_id)
    if job_ids is not None:
        query = query.in_("job_id", job_ids)
    result = query.order("created_at", desc=True).execute()
    return result.data or []


async def atomic_update_application_status(
    db: Client,
    application_id: str,
    expected_status: str,
    new_status: str,
) -> tuple[dict | None, str | None]:
    """Atomically update application status with optimistic locking.

    Returns:
        Tuple of (updated_application, error_message).
        - If successful: (app_dict, None)
        - If not found: (None, "not_found")
        - If status mismatch: (None, "conflict")
    """
    result = (
        db.table(JOB_APPLICATIONS_TABLE)
        .update({"status": new_status})
        .eq("id", application_id)
        .eq("status", expected_status)
        .execute()
    )

    if result.data:
        return result.data[0], None

    app = await get_application(db, application_id)
    if not app:
        return None, "not_found"
    return None, "conflict"
