"""Booking workflow API routers: group requests, quotations, payments, dashboard."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, File, Query, Request, Response, UploadFile
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock, get_clock
from groupdesk.database.session import get_db
from groupdesk.models.enums import GroupRequestStatus, PaymentViewStatus, QuotationStatus
from groupdesk.models.payment import Payment
from groupdesk.models.quotation import Quotation
from groupdesk.modules.auth.auth import AuthenticatedUser, get_current_user
from groupdesk.modules.booking.attachment_storage import content_disposition
from groupdesk.modules.booking.dashboard_service import DashboardService
from groupdesk.modules.booking.expiry import (
    ResendMode,
    compute_effective_status,
    compute_payment_status,
)
from groupdesk.modules.booking.group_request_service import GroupRequestService
from groupdesk.modules.booking.payment_service import PaymentService
from groupdesk.modules.booking.quotation_service import QuotationService
from groupdesk.modules.booking.schemas import (
    AcceptanceResponse,
    AttachmentResponse,
    CancelRequest,
    DashboardResponse,
    GroupRequestCreate,
    GroupRequestDetailsResponse,
    GroupRequestListResponse,
    GroupRequestResponse,
    GroupRequestUpdate,
    PaymentListResponse,
    PaymentResponse,
    PnrRequest,
    QuotationCreate,
    QuotationListResponse,
    QuotationResend,
    QuotationResponse,
    ResendResponse,
    SegmentExtrasUpdate,
    SegmentResponse,
)

group_request_router = APIRouter(prefix="/group-requests", tags=["group-requests"])
public_router = APIRouter(prefix="/public", tags=["public"])
quotation_router = APIRouter(prefix="/quotations", tags=["quotations"])
payment_router = APIRouter(prefix="/payments", tags=["payments"])
dashboard_router = APIRouter(prefix="/dashboard", tags=["dashboard"])

limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _quotation_out(quotation: Quotation, clock: Clock) -> QuotationResponse:
    out = QuotationResponse.model_validate(quotation)
    out.effective_status = compute_effective_status(quotation, clock.now())
    return out


def _payment_out(payment: Payment, clock: Clock) -> PaymentResponse:
    out = PaymentResponse.model_validate(payment)
    out.display_status = compute_payment_status(payment, clock.now().date())
    return out


# ---------------------------------------------------------------------------
# Public intake
# ---------------------------------------------------------------------------


@public_router.post("/group-requests", response_model=GroupRequestResponse, status_code=201)
@limiter.limit("10/minute")
async def submit_public_group_request(
    request: Request,
    body: GroupRequestCreate,
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Unauthenticated submission from the public booking form."""
    return await GroupRequestService(db, clock).submit_public_request(body)


# ---------------------------------------------------------------------------
# Group requests
# ---------------------------------------------------------------------------


@group_request_router.get("", response_model=GroupRequestListResponse)
async def list_group_requests(
    status: GroupRequestStatus | None = Query(None),
    search: str | None = Query(None, max_length=100),
    assigned_rc: str | None = Query(None, alias="assignedRc"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    items, total = await GroupRequestService(db).list_group_requests(
        status=status, search=search, assigned_rc=assigned_rc, page=page, size=size
    )
    return GroupRequestListResponse(items=items, total=total, page=page, size=size)


@group_request_router.post("", response_model=GroupRequestResponse, status_code=201)
async def create_group_request(
    body: GroupRequestCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Desk entry of a group request in NEW status."""
    return await GroupRequestService(db, clock).create_group_request(user, body)


@group_request_router.get("/{request_id}", response_model=GroupRequestResponse)
async def get_group_request(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GroupRequestService(db).get_group_request(request_id)


@group_request_router.get("/{request_id}/details", response_model=GroupRequestDetailsResponse)
async def get_group_request_details(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    details = await GroupRequestService(db, clock).get_details(request_id)
    return GroupRequestDetailsResponse(
        request=GroupRequestResponse.model_validate(details["request"]),
        quotations=[_quotation_out(q, clock) for q in details["quotations"]],
        payments=[_payment_out(p, clock) for p in details["payments"]],
        segments=[SegmentResponse.model_validate(s) for s in details["segments"]],
    )


@group_request_router.put("/{request_id}", response_model=GroupRequestResponse)
async def update_group_request(
    request_id: uuid.UUID,
    body: GroupRequestUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await GroupRequestService(db, clock).update_group_request(user, request_id, body)


@group_request_router.patch("/{request_id}/send-to-rc", response_model=GroupRequestResponse)
async def send_to_route_controller(
    request_id: uuid.UUID,
    assigned_rc: str = Query(..., alias="assignedRc"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Assign a NEW request to a route controller (moves it to REVIEWING)."""
    return await GroupRequestService(db, clock).assign_route_controller(user, request_id, assigned_rc)


@group_request_router.patch("/{request_id}/mark-ticketed", response_model=GroupRequestResponse)
async def mark_ticketed(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await GroupRequestService(db, clock).mark_ticketed(user, request_id)


@group_request_router.patch("/{request_id}/pnr", response_model=GroupRequestResponse)
async def issue_pnr(
    request_id: uuid.UUID,
    body: PnrRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await GroupRequestService(db, clock).issue_pnr(user, request_id, body.pnr)


@group_request_router.patch("/{request_id}/cancel", response_model=GroupRequestResponse)
async def cancel_group_request(
    request_id: uuid.UUID,
    body: CancelRequest | None = None,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    reason = body.reason if body else None
    return await GroupRequestService(db, clock).cancel_group_request(user, request_id, reason)


@group_request_router.delete("/{request_id}", status_code=204)
async def delete_group_request(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await GroupRequestService(db).delete_group_request(user, request_id)
    return Response(status_code=204)


@group_request_router.get("/{request_id}/segments", response_model=list[SegmentResponse])
async def list_segments(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = GroupRequestService(db)
    await svc.get_group_request(request_id)
    return await svc.get_segments(request_id)


@group_request_router.patch(
    "/{request_id}/segments/{index}/date", response_model=SegmentResponse
)
async def update_segment_date(
    request_id: uuid.UUID,
    index: int,
    travel_date: date = Query(..., alias="date"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GroupRequestService(db).update_segment_date(user, request_id, index, travel_date)


@group_request_router.patch(
    "/{request_id}/segments/{index}/extras", response_model=SegmentResponse
)
async def update_segment_extras(
    request_id: uuid.UUID,
    index: int,
    body: SegmentExtrasUpdate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await GroupRequestService(db).update_segment_extras(user, request_id, index, body)


@group_request_router.post("/{request_id}/segments/notify-agent", status_code=202)
async def notify_agent_segments(
    request_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Queue an itinerary e-mail to the agent."""
    event = await GroupRequestService(db).notify_agent_segments(user, request_id)
    return {"status": "queued", "event_id": str(event.id)}


# ---------------------------------------------------------------------------
# Quotations
# ---------------------------------------------------------------------------


@quotation_router.get("", response_model=QuotationListResponse)
async def list_quotations(
    group_request_id: uuid.UUID | None = Query(None, alias="groupRequestId"),
    status: QuotationStatus | None = Query(None),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    items, total = await QuotationService(db, clock).list_quotations(
        group_request_id=group_request_id, status=status, page=page, size=size
    )
    return QuotationListResponse(
        items=[_quotation_out(q, clock) for q in items], total=total, page=page, size=size
    )


@quotation_router.get("/{quotation_id}", response_model=QuotationResponse)
async def get_quotation(
    quotation_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    quotation = await QuotationService(db, clock).get_quotation(quotation_id)
    return _quotation_out(quotation, clock)


@quotation_router.post("", response_model=QuotationResponse, status_code=201)
async def create_quotation(
    body: QuotationCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    quotation = await QuotationService(db, clock).create_quotation(
        user, body.group_request_id, body.total_fare, body.currency, body.note
    )
    return _quotation_out(quotation, clock)


@quotation_router.patch("/{quotation_id}/send-to-agent", response_model=QuotationResponse)
async def send_quotation_to_agent(
    quotation_id: uuid.UUID,
    subject: str | None = Query(None, max_length=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    quotation = await QuotationService(db, clock).send_to_agent(user, quotation_id, subject)
    return _quotation_out(quotation, clock)


@quotation_router.patch("/{quotation_id}/accept", response_model=AcceptanceResponse)
async def accept_quotation(
    quotation_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    result = await QuotationService(db, clock).accept(user, quotation_id)
    return AcceptanceResponse(
        quotation=_quotation_out(result.quotation, clock),
        group_request=GroupRequestResponse.model_validate(result.group_request),
        payments=[_payment_out(p, clock) for p in result.payments],
    )


async def _resend(
    db: AsyncSession,
    clock: Clock,
    user: AuthenticatedUser,
    quotation_id: uuid.UUID,
    mode: ResendMode,
    body: QuotationResend | None = None,
) -> ResendResponse:
    result = await QuotationService(db, clock).resend(
        user,
        quotation_id,
        mode,
        new_fare=body.total_fare if body else None,
        currency=body.currency if body else None,
        note=body.note if body else None,
    )
    return ResendResponse(
        previous=_quotation_out(result.previous, clock),
        quotation=_quotation_out(result.quotation, clock),
        group_request=GroupRequestResponse.model_validate(result.group_request),
    )


@quotation_router.patch("/{quotation_id}/resend", response_model=ResendResponse)
async def resend_quotation(
    quotation_id: uuid.UUID,
    body: QuotationResend,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Reject the quotation and issue a new DRAFT with the revised fare."""
    return await _resend(db, clock, user, quotation_id, ResendMode.FULL, body)


@quotation_router.patch("/{quotation_id}/resend-simple", response_model=ResendResponse)
async def resend_quotation_simple(
    quotation_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    """Expire the quotation and issue a new DRAFT with the same values."""
    return await _resend(db, clock, user, quotation_id, ResendMode.SIMPLE)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@payment_router.get("", response_model=PaymentListResponse)
async def list_payments(
    status: PaymentViewStatus | None = Query(None),
    group_request_id: uuid.UUID | None = Query(None, alias="groupRequestId"),
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=200),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    items, total = await PaymentService(db, clock).list_payments(
        status=status, group_request_id=group_request_id, page=page, size=size
    )
    return PaymentListResponse(
        items=[_payment_out(p, clock) for p in items], total=total, page=page, size=size
    )


@payment_router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    payment = await PaymentService(db, clock).get_payment(payment_id)
    return _payment_out(payment, clock)


@payment_router.patch("/{payment_id}/mark-paid", response_model=PaymentResponse)
async def mark_payment_paid(
    payment_id: uuid.UUID,
    reference: str | None = Query(None, max_length=100),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    payment = await PaymentService(db, clock).mark_paid(user, payment_id, reference)
    return _payment_out(payment, clock)


@payment_router.get("/{payment_id}/attachments", response_model=list[AttachmentResponse])
async def list_payment_attachments(
    payment_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await PaymentService(db).list_attachments(payment_id)


@payment_router.post(
    "/{payment_id}/attachments", response_model=AttachmentResponse, status_code=201
)
async def upload_payment_attachment(
    payment_id: uuid.UUID,
    file: UploadFile = File(...),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    data = await file.read()
    return await PaymentService(db, clock).upload_attachment(
        user, payment_id, file.filename, file.content_type, data
    )


@payment_router.get("/attachments/{attachment_id}/download")
async def download_payment_attachment(
    attachment_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    attachment, content = await PaymentService(db).get_attachment_content(attachment_id)
    return Response(
        content=content,
        media_type=attachment.content_type,
        headers={"Content-Disposition": content_disposition(attachment.filename)},
    )


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


@dashboard_router.get("", response_model=DashboardResponse)
async def get_dashboard(
    last_login_date: date | None = Query(None, alias="lastLoginDate"),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    clock: Clock = Depends(get_clock),
):
    return await DashboardService(db, clock).summary(last_login_date)
