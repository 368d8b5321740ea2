"""Purchase and hiring workflows.

Courses are paid for off-platform by mobile money. A learner records a
purchase intent, uploads a receipt, and an admin approves or rejects it;
only an approved payment unlocks the course PDF. Job applications follow
the same shape, with the employer who owns the job as the decider.

Every store or blob failure is logged and surfaced as ``StoreError``.
There are no retries: each call is one best-effort attempt.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TypeVar

from supabase import Client

from .. import database
from ..auth import AuthContext
from ..config import Settings
from ..errors import (
    NotFoundError,
    PermissionDeniedError,
    StoreError,
    TransitionError,
    WorkflowValidationError,
    store_call,
)
from ..logging_config import get_logger, log_workflow_event
from ..models import CourseCreate, JobCreate, Role
from ..storage import Upload, download_blob, upload_blob
from .models import (
    ApplicationStatus,
    Download,
    PaymentStatus,
    can_decide_application,
    can_decide_payment,
)

logger = get_logger("ethiolearn.workflow")

T = TypeVar("T")


async def _store(action: str, awaitable: Awaitable[T]) -> T:
    with store_call(action):
        return await awaitable


def _require_role(user: AuthContext, *roles: Role, action: str) -> None:
    if not user.has_role(*roles):
        allowed = " or ".join(f"{r.value}s" for r in roles)
        raise PermissionDeniedError(f"Only {allowed} can {action}")


def _require_file(upload: Upload | None, what: str) -> Upload:
    if upload is None or not upload.content:
        raise WorkflowValidationError(f"Please upload your {what}")
    return upload


# =============================================================================
# Status lookups over fetched rows
# =============================================================================


def first_payment_status(payments: list[dict], course_id: str) -> str | None:
    """Status of the first payment for a course in the given (newest-first) order.

    Repeated purchase intents leave several rows per course; the first one
    found wins.
    """
    for payment in payments:
        if payment["course_id"] == course_id:
            return payment["status"]
    return None


def has_approved_payment(payments: list[dict], course_id: str) -> bool:
    """True if any payment for the course has been approved."""
    return any(
        p["course_id"] == course_id and p["status"] == PaymentStatus.approved.value
        for p in payments
    )


def _annotate_course(course: dict, payments: list[dict]) -> dict:
    return {
        **course,
        "purchase_status": first_payment_status(payments, course["id"]),
        "can_download": bool(course.get("pdf_storage_path"))
        and has_approved_payment(payments, course["id"]),
    }


# =============================================================================
# Purchase workflow
# =============================================================================


class PurchaseWorkflow:
    """Stateless service: every method receives a Supabase `Client`."""

    # ------------------------------------------------------------------
    # Course catalogue
    # ------------------------------------------------------------------

    @staticmethod
    async def create_course(
        db: Client,
        settings: Settings,
        user: AuthContext,
        course: CourseCreate,
        pdf: Upload | None = None,
    ) -> dict:
        """Create a course owned by the calling instructor, uploading its PDF first."""
        _require_role(user, Role.instructor, action="create courses")

        pdf_path = None
        if pdf is not None and pdf.content:
            pdf_path = await upload_blob(db, settings.course_pdf_bucket, pdf)

        data = {
            "title": course.title,
            "description": course.description,
            "price": course.price,
            "phone_number": course.phone_number,
            "pdf_storage_path": pdf_path,
            "instructor_id": user.user_id,
        }
        created = await _store("create course", database.create_course(db, data))
        if not created:
            raise StoreError()

        log_workflow_event("course_created", user.user_id, course=created["id"], price=course.price)
        return created

    @staticmethod
    async def list_courses(db: Client, user: AuthContext, mine: bool = False) -> list[dict]:
        """List courses newest first; learners get their purchase state per course."""
        instructor_id = user.user_id if mine and user.role is Role.instructor else None
        courses = await _store("list courses", database.list_courses(db, instructor_id))

        if user.role is not Role.learner:
            return courses

        payments = await _store(
            "list payments", database.list_payments(db, user_id=user.user_id)
        )
        return [_annotate_course(c, payments) for c in courses]

    @staticmethod
    async def get_course(db: Client, user: AuthContext, course_id: str) -> dict:
        """Get one course, annotated for learners."""
        course = await _store("get course", database.get_course(db, course_id))
        if not course:
            raise NotFoundError("Course not found")

        if user.role is not Role.learner:
            return course

        payments = await _store(
            "list payments",
            database.list_payments(db, user_id=user.user_id, course_id=course_id),
        )
        return _annotate_course(course, payments)

    # ------------------------------------------------------------------
    # Purchase lifecycle
    # ------------------------------------------------------------------

    @staticmethod
    async def initiate_purchase(
        db: Client,
        user: AuthContext,
        course_id: str,
    ) -> tuple[dict, dict]:
        """Record a learner's intent to buy a course.

        Creates a pending payment for the course price with no receipt.
        Nothing is charged. Returns ``(payment, course)``.
        """
        _require_role(user, Role.learner, action="purchase courses")

        course = await _store("get course", database.get_course(db, course_id))
        if not course:
            raise NotFoundError("Course not found")

        payment = await _store(
            "create payment",
            database.create_payment(db, user.user_id, course_id, course["price"]),
        )
        if not payment:
            raise StoreError()

        log_workflow_event(
            "purchase_initiated",
            user.user_id,
            payment=payment["id"],
            course=course_id,
            amount=course["price"],
        )
        return payment, course

    @staticmethod
    async def submit_receipt(
        db: Client,
        settings: Settings,
        user: AuthContext,
        payment_id: str,
        receipt: Upload | None,
    ) -> dict:
        """Attach a proof-of-payment image to the caller's payment.

        Only pending payments take a receipt; decided payments are terminal.
        Each call stores a new blob and earlier receipts are left in place.
        """
        receipt = _require_file(receipt, "payment receipt")

        payment = await _store("get payment", database.get_payment(db, payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if payment["user_id"] != user.user_id:
            raise PermissionDeniedError("You can only upload receipts for your own payments")
        if payment["status"] != PaymentStatus.pending.value:
            raise TransitionError(f"Payment is already {payment['status']}")

        name = await upload_blob(db, settings.receipt_bucket, receipt)
        updated = await _store(
            "attach receipt",
            database.update_payment(
                db,
                payment_id,
                {"receipt_storage_path": name},
                expected_status=PaymentStatus.pending.value,
            ),
        )
        if not updated:
            # Decided between our read and our write
            raise TransitionError(
                "Payment status was modified by another request. Please refresh and try again."
            )

        log_workflow_event("receipt_submitted", user.user_id, payment=payment_id, receipt=name)
        return updated

    @staticmethod
    async def decide_payment(
        db: Client,
        user: AuthContext,
        payment_id: str,
        decision: str,
    ) -> dict:
        """Approve or reject a pending payment that carries a receipt.

        Decided payments are terminal. The update is conditional on the
        row still being pending, so a concurrent second decision fails
        with a conflict instead of overwriting the first.
        """
        _require_role(user, Role.admin, action="review payments")

        if decision not in (PaymentStatus.approved.value, PaymentStatus.rejected.value):
            raise WorkflowValidationError("Decision must be 'approved' or 'rejected'")

        payment = await _store("get payment", database.get_payment(db, payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if not can_decide_payment(payment["status"], decision):
            raise TransitionError(f"Payment is already {payment['status']}")
        if not payment.get("receipt_storage_path"):
            raise TransitionError("No receipt has been submitted for this payment")

        updated, error = await _store(
            "decide payment",
            database.atomic_update_payment_status(
                db, payment_id, expected_status=PaymentStatus.pending.value, new_status=decision
            ),
        )
        if error == "not_found":
            raise NotFoundError("Payment not found")
        if error == "conflict":
            logger.warning(f"Concurrent decision on payment {payment_id}")
            raise TransitionError(
                "Payment status was modified by another request. Please refresh and try again."
            )

        log_workflow_event("payment_decided", user.user_id, payment=payment_id, decision=decision)
        return updated

    @staticmethod
    async def list_payments(
        db: Client,
        user: AuthContext,
        status_filter: str | None = None,
    ) -> list[dict]:
        """Admins see every payment; everyone else sees their own."""
        user_id = None if user.is_admin else user.user_id
        return await _store(
            "list payments",
            database.list_payments(db, user_id=user_id, status_filter=status_filter),
        )

    @staticmethod
    async def payment_status_for_course(
        db: Client,
        user: AuthContext,
        course_id: str,
    ) -> tuple[str | None, bool]:
        """Return ``(status, can_download)`` of the caller's purchase of a course."""
        course = await _store("get course", database.get_course(db, course_id))
        if not course:
            raise NotFoundError("Course not found")

        payments = await _store(
            "list payments",
            database.list_payments(db, user_id=user.user_id, course_id=course_id),
        )
        can_download = bool(course.get("pdf_storage_path")) and has_approved_payment(
            payments, course_id
        )
        return first_payment_status(payments, course_id), can_download

    @staticmethod
    async def download_course_material(
        db: Client,
        settings: Settings,
        user: AuthContext,
        course_id: str,
    ) -> Download | None:
        """Fetch the course PDF for a learner with an approved payment.

        Refused before any blob access unless an approved payment exists.
        Returns None when the course has no stored PDF.
        """
        course = await _store("get course", database.get_course(db, course_id))
        if not course:
            raise NotFoundError("Course not found")

        payments = await _store(
            "list payments",
            database.list_payments(db, user_id=user.user_id, course_id=course_id),
        )
        if not has_approved_payment(payments, course_id):
            raise PermissionDeniedError("Your payment for this course has not been approved")

        pdf_path = course.get("pdf_storage_path")
        if not pdf_path:
            logger.warning(f"Course {course_id} has no stored PDF")
            return None

        content = await download_blob(db, settings.course_pdf_bucket, pdf_path)
        log_workflow_event("course_downloaded", user.user_id, course=course_id)
        return Download(filename=f"{course['title']}.pdf", content=content)

    @staticmethod
    async def view_receipt(
        db: Client,
        settings: Settings,
        user: AuthContext,
        payment_id: str,
    ) -> Download:
        """Fetch a payment's receipt for an admin or the paying learner."""
        payment = await _store("get payment", database.get_payment(db, payment_id))
        if not payment:
            raise NotFoundError("Payment not found")
        if not user.is_admin and payment["user_id"] != user.user_id:
            raise PermissionDeniedError("You can only view your own receipts")

        receipt_path = payment.get("receipt_storage_path")
        if not receipt_path:
            raise NotFoundError("No receipt has been uploaded for this payment")

        content = await download_blob(db, settings.receipt_bucket, receipt_path)
        return Download(filename=receipt_path, content=content)


# =============================================================================
# Hiring workflow
# =============================================================================


class HiringWorkflow:
    """Stateless service: every method receives a Supabase `Client`."""

    @staticmethod
    async def post_job(db: Client, user: AuthContext, job: JobCreate) -> dict:
        """Post a job owned by the calling employer."""
        _require_role(user, Role.employer, action="post jobs")

        data = {
            "title": job.title,
            "company": job.company,
            "location": job.location,
            "requirements": job.requirements,
            "description": job.description,
            "salary": job.salary,
            "employer_id": user.user_id,
        }
        created = await _store("create job", database.create_job(db, data))
        if not created:
            raise StoreError()

        log_workflow_event("job_posted", user.user_id, job=created["id"])
        return created

    @staticmethod
    async def list_jobs(db: Client, user: AuthContext, mine: bool = False) -> list[dict]:
        """List jobs newest first; learners see whether they already applied."""
        employer_id = user.user_id if mine and user.role is Role.employer else None
        jobs = await _store("list jobs", database.list_jobs(db, employer_id))

        if user.role is not Role.learner:
            return jobs

        applications = await _store(
            "list applications", database.list_applications(db, user_id=user.user_id)
        )
        applied = {a["job_id"] for a in applications}
        return [{**j, "has_applied": j["id"] in applied} for j in jobs]

    @staticmethod
    async def get_job(db: Client, user: AuthContext, job_id: str) -> dict:
        """Get one job."""
        job = await _store("get job", database.get_job(db, job_id))
        if not job:
            raise NotFoundError("Job not found")

        if user.role is Role.learner:
            applications = await _store(
                "list applications", database.list_applications(db, user_id=user.user_id)
            )
            job = {**job, "has_applied": any(a["job_id"] == job_id for a in applications)}
        return job

    @staticmethod
    async def apply_to_job(
        db: Client,
        settings: Settings,
        user: AuthContext,
        job_id: str,
        cv: Upload | None,
    ) -> dict:
        """Submit a learner's application with a CV.

        One application per learner and job; a repeat is refused before
        the CV is uploaded.
        """
        _require_role(user, Role.learner, action="apply to jobs")
        cv = _require_file(cv, "CV")

        job = await _store("get job", database.get_job(db, job_id))
        if not job:
            raise NotFoundError("Job not found")

        existing = await _store(
            "list applications", database.list_applications(db, user_id=user.user_id)
        )
        if any(a["job_id"] == job_id for a in existing):
            raise TransitionError("You have already applied to this job")

        name = await upload_blob(db, settings.cv_bucket, cv)
        created = await _store(
            "create application", database.create_application(db, user.user_id, job_id, name)
        )
        if not created:
            raise StoreError()

        log_workflow_event("application_submitted", user.user_id, job=job_id, application=created["id"])
        return created

    @staticmethod
    async def list_applications(db: Client, user: AuthContext) -> list[dict]:
        """Learners see their own applications, employers those to their jobs."""
        if user.role is Role.learner:
            return await _store(
                "list applications", database.list_applications(db, user_id=user.user_id)
            )

        if user.role is Role.employer:
            jobs = await _store("list jobs", database.list_jobs(db, employer_id=user.user_id))
            return await _store(
                "list applications",
                database.list_applications(db, job_ids=[j["id"] for j in jobs]),
            )

        if user.is_admin:
            return await _store("list applications", database.list_applications(db))

        raise PermissionDeniedError("Instructors have no job applications to view")

    @staticmethod
    async def _application_with_job(db: Client, application_id: str) -> tuple[dict, dict]:
        application = await _store("get application", database.get_application(db, application_id))
        if not application:
            raise NotFoundError("Application not found")

        job = await _store("get job", database.get_job(db, application["job_id"]))
        if not job:
            raise NotFoundError("Job not found")
        return application, job

    @staticmethod
    async def decide_application(
        db: Client,
        user: AuthContext,
        application_id: str,
        decision: str,
    ) -> dict:
        """Accept or reject an application to one of the caller's jobs."""
        _require_role(user, Role.employer, action="review applications")

        if decision not in (ApplicationStatus.accepted.value, ApplicationStatus.rejected.value):
            raise WorkflowValidationError("Decision must be 'accepted' or 'rejected'")

        application, job = await HiringWorkflow._application_with_job(db, application_id)
        if job["employer_id"] != user.user_id:
            raise PermissionDeniedError("Only the employer who posted this job can review it")
        if not can_decide_application(application["status"], decision):
            raise TransitionError(f"Application is already {application['status']}")

        updated, error = await _store(
            "decide application",
            database.atomic_update_application_status(
                db,
                application_id,
                expected_status=ApplicationStatus.applied.value,
                new_status=decision,
            ),
        )
        if error == "not_found":
            raise NotFoundError("Application not found")
        if error == "conflict":
            logger.warning(f"Concurrent decision on application {application_id}")
            raise TransitionError(
                "Application status was modified by another request. Please refresh and try again."
            )

        log_workflow_event(
            "application_decided", user.user_id, application=application_id, decision=decision
        )
        return updated

    @staticmethod
    async def download_cv(
        db: Client,
        settings: Settings,
        user: AuthContext,
        application_id: str,
    ) -> Download:
        """Fetch an applicant's CV for the owning employer or the applicant."""
        application, job = await HiringWorkflow._application_with_job(db, application_id)
        if job["employer_id"] != user.user_id and application["user_id"] != user.user_id:
            raise PermissionDeniedError("Only the employer who posted this job can view the CV")

        cv_path = application.get("cv_storage_path")
        if not cv_path:
            raise NotFoundError("No CV was uploaded with this application")

        content = await download_blob(db, settings.cv_bucket, cv_path)
        _, dot, ext = cv_path.rpartition(".")
        filename = f"{application_id}_CV.{ext}" if dot else f"{application_id}_CV"
        return Download(filename=filename, content=content)
