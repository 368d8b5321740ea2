"""Payment routes: history, receipt upload and admin review."""

from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile

from ..auth import AdminUser, CurrentUser
from ..config import Settings, get_settings
from ..database import Database
from ..logging_config import get_logger
from ..models import PaymentDecisionRequest, PaymentListResponse, PaymentResponse
from ..rate_limit import limiter
from ..storage import read_upload
from ..workflow import PurchaseWorkflow
from .responses import attachment, to_payment_response

logger = get_logger("ethiolearn.routes.payments")
router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=PaymentListResponse)
@limiter.limit("60/minute")
async def list_payments(
    request: Request,
    user: CurrentUser,
    db: Database,
    status_filter: Literal["pending", "approved", "rejected"] | None = Query(None, alias="status"),
):
    """
    List payments, newest first.

    Admins see every payment for review; everyone else sees their own history.
    """
    payments = await PurchaseWorkflow.list_payments(db, user, status_filter)
    return PaymentListResponse(
        payments=[to_payment_response(p) for p in payments],
        total=len(payments),
    )


@router.post("/{payment_id}/receipt", response_model=PaymentResponse)
@limiter.limit("10/minute")
async def upload_receipt(
    request: Request,
    payment_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
    receipt: UploadFile | None = File(None),
):
    """
    Upload a proof-of-payment image for one of your payments.

    The payment returns to ``pending`` until an admin reviews it.
    """
    logger.info(f"POST /payments/{payment_id}/receipt | user={user.user_id}")

    upload = await read_upload(receipt, settings)
    updated = await PurchaseWorkflow.submit_receipt(db, settings, user, payment_id, upload)
    return to_payment_response(updated)


@router.get("/{payment_id}/receipt")
@limiter.limit("30/minute")
async def view_receipt(
    request: Request,
    payment_id: str,
    user: CurrentUser,
    db: Database,
    settings: Annotated[Settings, Depends(get_settings)],
):
    """Download a payment receipt (admins, or the learner who paid)."""
    download = await PurchaseWorkflow.view_receipt(db, settings, user, payment_id)
    return attachment(download)


@router.post("/{payment_id}/decision", response_model=PaymentResponse)
@limiter.limit("30/minute")
async def decide_payment(
    request: Request,
    payment_id: str,
    body: PaymentDecisionRequest,
    admin: AdminUser,
    db: Database,
):
    """Approve or reject a pending payment (admins only)."""
    logger.info(f"POST /payments/{payment_id}/decision | admin={admin.user_id} | {body.decision}")

    updated = await PurchaseWorkflow.decide_payment(db, admin, payment_id, body.decision)
    return to_payment_response(updated)
