"""Shared response helpers for the route modules."""

from urllib.parse import quote

from fastapi import Response

from ..models import ApplicationResponse, CourseResponse, JobResponse, PaymentResponse
from ..workflow import Download


def attachment(download: Download) -> Response:
    """Stream a fetched blob back as a file download."""
    # RFC 5987 form keeps non-ASCII course titles intact
    disposition = f"attachment; filename*=UTF-8''{quote(download.filename)}"
    return Response(
        content=download.content,
        media_type=download.media_type,
        headers={"Content-Disposition": disposition},
    )


def to_course_response(course: dict) -> CourseResponse:
    """Convert DB course dict to response model."""
    instructor = course.get("profiles") or {}
    return CourseResponse(
        id=course["id"],
        title=course["title"],
        description=course["description"],
        price=course["price"],
        instructor_id=course["instructor_id"],
        phone_number=course.get("phone_number"),
        instructor_email=instructor.get("email"),
        has_material=bool(course.get("pdf_storage_path")),
        created_at=course.get("created_at"),
        purchase_status=course.get("purchase_status"),
        can_download=course.get("can_download"),
    )


def to_payment_response(payment: dict) -> PaymentResponse:
    """Convert DB payment dict to response model."""
    course = payment.get("courses") or {}
    payer = payment.get("profiles") or {}
    return PaymentResponse(
        id=payment["id"],
        user_id=payment["user_id"],
        course_id=payment["course_id"],
        amount=payment["amount"],
        status=payment["status"],
        has_receipt=bool(payment.get("receipt_storage_path")),
        created_at=payment.get("created_at"),
        course_title=course.get("title"),
        course_phone_number=course.get("phone_number"),
        user_email=payer.get("email"),
    )


def to_job_response(job: dict) -> JobResponse:
    """Convert DB job dict to response model."""
    return JobResponse(
        id=job["id"],
        title=job["title"],
        company=job.get("company"),
        location=job["location"],
        requirements=job["requirements"],
        description=job.get("description"),
        salary=job.get("salary"),
        employer_id=job["employer_id"],
        created_at=job.get("created_at"),
        has_applied=job.get("has_applied"),
    )


def to_application_response(application: dict) -> ApplicationResponse:
    """Convert DB application dict to response model."""
    return ApplicationResponse(
        id=application["id"],
        user_id=application["user_id"],
        job_id=application["job_id"],
        status=application["status"],
        has_cv=bool(application.get("cv_storage_path")),
        created_at=application.get("created_at"),
    )
