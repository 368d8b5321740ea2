"""Course routes: catalogue, purchase intent and material download."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from ..auth import CurrentUser
from ..config import Settings, get_settings
from ..database import Database
from ..logging_config import get_logger
from ..models import (
    CourseCreate,
    CourseListResponse,
    CourseResponse,
    PaymentInstructions,
    PaymentStatusResponse,
    PurchaseResponse,
)
from ..rate_limit import limiter
from ..storage import read_upload
from ..workflow import PurchaseWorkflow
from .responses import attachment, to_course_response, to_payment_response

logger = get_logger("ethiolearn.routes.courses")
router = APIRouter(prefix="/courses", tags=["courses"])


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def create_course(
    request: Request,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
    title: str = Form(...),
    description: str = Form(...),
    price: int = Form(...),
    phone_number: str | None = Form(None),
    pdf: UploadFile | None = File(None),
):
    """
    Create a course (instructors only).

    Sent as multipart form data; the optional ``pdf`` file is the course
    material unlocked by an approved payment.
    """
    logger.info(f"POST /courses | user={user.user_id} | title={title[:50]}")

    try:
        course = CourseCreate(
            title=title, description=description, price=price, phone_number=phone_number
        )
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    material = await read_upload(pdf, settings)
    created = await PurchaseWorkflow.create_course(db, settings, user, course, material)
    return to_course_response(created)


@router.get("", response_model=CourseListResponse)
@limiter.limit("60/minute")
async def list_courses(
    request: Request,
    user: CurrentUser,
    db: Database,
    mine: bool = Query(False, description="Instructors: only courses I created"),
):
    """List courses, newest first. Learners see their purchase status per course."""
    courses = await PurchaseWorkflow.list_courses(db, user, mine=mine)
    return CourseListResponse(
        courses=[to_course_response(c) for c in courses],
        total=len(courses),
    )


@router.get("/{course_id}", response_model=CourseResponse)
@limiter.limit("60/minute")
async def get_course(
    request: Request,
    course_id: str,
    user: CurrentUser,
    db: Database,
):
    """Get details of a specific course."""
    course = await PurchaseWorkflow.get_course(db, user, course_id)
    return to_course_response(course)


@router.post(
    "/{course_id}/purchase",
    response_model=PurchaseResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("20/minute")
async def purchase_course(
    request: Request,
    course_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Start buying a course (learners only).

    Creates a pending payment for the course price. The learner then pays
    off-platform and uploads a receipt via ``POST /payments/{id}/receipt``.
    """
    logger.info(f"POST /courses/{course_id}/purchase | user={user.user_id}")

    payment, course = await PurchaseWorkflow.initiate_purchase(db, user, course_id)

    phone = course.get("phone_number")
    message = f"Please send {course['price']} {settings.currency}"
    if phone:
        message += f" to {phone}"
    message += " and upload your receipt in the Payments tab."

    return PurchaseResponse(
        payment=to_payment_response(payment),
        instructions=PaymentInstructions(
            amount=course["price"],
            currency=settings.currency,
            phone_number=phone,
            message=message,
        ),
    )


@router.get("/{course_id}/payment-status", response_model=PaymentStatusResponse)
@limiter.limit("60/minute")
async def course_payment_status(
    request: Request,
    course_id: str,
    user: CurrentUser,
    db: Database,
):
    """The caller's purchase status for a course and whether it can be downloaded."""
    payment_status, can_download = await PurchaseWorkflow.payment_status_for_course(
        db, user, course_id
    )
    return PaymentStatusResponse(
        course_id=course_id, status=payment_status, can_download=can_download
    )


@router.get("/{course_id}/download")
@limiter.limit("30/minute")
async def download_course(
    request: Request,
    course_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """
    Download the course PDF.

    Requires an approved payment for the course. Returns 204 when the
    course has no material attached.
    """
    logger.info(f"GET /courses/{course_id}/download | user={user.user_id}")

    download = await PurchaseWorkflow.download_course_material(db, settings, user, course_id)
    if download is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return attachment(download)
