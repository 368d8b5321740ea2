"""Jobs routes: listings, applications with CVs and employer review."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status

from ..auth import CurrentUser
from ..config import Settings, get_settings
from ..database import Database
from ..logging_config import get_logger
from ..models import (
    ApplicationDecisionRequest,
    ApplicationListResponse,
    ApplicationResponse,
    JobCreate,
    JobListResponse,
    JobResponse,
)
from ..rate_limit import limiter
from ..storage import read_upload
from ..workflow import HiringWorkflow
from .responses import attachment, to_application_response, to_job_response

logger = get_logger("ethiolearn.routes.jobs")
router = APIRouter(prefix="/jobs", tags=["jobs"])
applications_router = APIRouter(prefix="/applications", tags=["jobs"])


# =============================================================================
# Jobs
# =============================================================================


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("20/minute")
async def post_job(
    request: Request,
    job: JobCreate,
    user: CurrentUser,
    db: Database,
):
    """Post a job listing (employers only)."""
    logger.info(f"POST /jobs | employer={user.user_id} | title={job.title[:50]}")

    created = await HiringWorkflow.post_job(db, user, job)
    return to_job_response(created)


@router.get("", response_model=JobListResponse)
@limiter.limit("60/minute")
async def list_jobs(
    request: Request,
    user: CurrentUser,
    db: Database,
    mine: bool = Query(False, description="Employers: only jobs I posted"),
):
    """List jobs, newest first. Learners see whether they already applied."""
    jobs = await HiringWorkflow.list_jobs(db, user, mine=mine)
    return JobListResponse(jobs=[to_job_response(j) for j in jobs], total=len(jobs))


@router.get("/{job_id}", response_model=JobResponse)
@limiter.limit("60/minute")
async def get_job(
    request: Request,
    job_id: str,
    user: CurrentUser,
    db: Database,
):
    """Get details of a specific job."""
    job = await HiringWorkflow.get_job(db, user, job_id)
    return to_job_response(job)


@router.post(
    "/{job_id}/apply",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
async def apply_to_job(
    request: Request,
    job_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
    cv: UploadFile | None = File(None),
):
    """
    Apply to a job with a CV (learners only).

    Sent as multipart form data with a ``cv`` file. One application per job.
    """
    logger.info(f"POST /jobs/{job_id}/apply | user={user.user_id}")

    upload = await read_upload(cv, settings)
    created = await HiringWorkflow.apply_to_job(db, settings, user, job_id, upload)
    return to_application_response(created)


# =============================================================================
# Applications
# =============================================================================


@applications_router.get("", response_model=ApplicationListResponse)
@limiter.limit("60/minute")
async def list_applications(
    request: Request,
    user: CurrentUser,
    db: Database,
):
    """
    List job applications.

    Learners see their own; employers see applications to jobs they posted.
    """
    applications = await HiringWorkflow.list_applications(db, user)
    return ApplicationListResponse(
        applications=[to_application_response(a) for a in applications],
        total=len(applications),
    )


@applications_router.post("/{application_id}/decision", response_model=ApplicationResponse)
@limiter.limit("30/minute")
async def decide_application(
    request: Request,
    application_id: str,
    body: ApplicationDecisionRequest,
    user: CurrentUser,
    db: Database,
):
    """Accept or reject an application (the employer who posted the job only)."""
    logger.info(
        f"POST /applications/{application_id}/decision | employer={user.user_id} | {body.decision}"
    )

    updated = await HiringWorkflow.decide_application(db, user, application_id, body.decision)
    return to_application_response(updated)


@applications_router.get("/{application_id}/cv")
@limiter.limit("30/minute")
async def download_cv(
    request: Request,
    application_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Download the CV attached to an application."""
    download = await HiringWorkflow.download_cv(db, settings, user, application_id)
    return attachment(download)
