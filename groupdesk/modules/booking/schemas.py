"""Pydantic v2 schemas for the booking workflow API."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from groupdesk.models.enums import (
    GroupRequestStatus,
    GroupType,
    PaymentStatus,
    PaymentViewStatus,
    QuotationStatus,
    RequestCategory,
    RoutingType,
    Salutation,
)

IATA_PATTERN = r"^[A-Za-z]{3}$"
CURRENCY_PATTERN = r"^[A-Za-z]{3}$"

# ---------------------------------------------------------------------------
# Segment schemas
# ---------------------------------------------------------------------------


class SegmentInput(BaseModel):
    from_airport: str = Field("", max_length=3)
    to_airport: str = Field("", max_length=3)
    travel_date: date | None = None
    extras: dict = Field(default_factory=dict)


class SegmentExtrasUpdate(BaseModel):
    proposed_date: date | None = None
    proposed_time: str | None = Field(None, max_length=10)
    offered_baggage_kg: int | None = Field(None, ge=0, le=500)
    note: str | None = Field(None, max_length=500)
    extra_baggage_kg: int | None = Field(None, ge=0, le=500)
    meal: str | None = Field(None, max_length=50)
    special_requirements: list[str] | None = None


class SegmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: int
    from_airport: str
    to_airport: str
    travel_date: date | None = None
    extras: dict = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Group request schemas
# ---------------------------------------------------------------------------


class GroupRequestCreate(BaseModel):
    salutation: Salutation | None = None
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    contact_email: str = Field(..., min_length=3, max_length=255)
    contact_number: str | None = Field(None, max_length=50)
    agent_name: str | None = Field(None, max_length=255)
    from_airport: str = Field(..., pattern=IATA_PATTERN)
    to_airport: str = Field(..., pattern=IATA_PATTERN)
    routing: RoutingType
    pax_adult: int = Field(0, ge=0, le=999)
    pax_child: int = Field(0, ge=0, le=999)
    pax_infant: int = Field(0, ge=0, le=999)
    category: RequestCategory = RequestCategory.DIRECT_CUSTOMER
    pos_code: str | None = Field(None, max_length=10)
    currency: str = Field("USD", pattern=CURRENCY_PATTERN)
    group_type: GroupType | None = None
    flight_number: str | None = Field(None, max_length=20)
    special_request: str | None = Field(None, max_length=2000)
    partner_id: str | None = Field(None, max_length=50)
    segments: list[SegmentInput] = Field(default_factory=list)

    @field_validator("contact_email")
    @classmethod
    def _email_shape(cls, value: str) -> str:
        value = value.strip()
        if "@" not in value:
            raise ValueError("must be an e-mail address")
        return value


class GroupRequestUpdate(GroupRequestCreate):
    """Full replacement of the editable fields, validated as one request."""


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class PnrRequest(BaseModel):
    pnr: str = Field(..., max_length=20)


class GroupRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    status: GroupRequestStatus
    salutation: Salutation | None = None
    first_name: str
    last_name: str
    contact_email: str
    contact_number: str | None = None
    agent_name: str | None = None
    from_airport: str
    to_airport: str
    route: str
    routing: RoutingType
    pax_adult: int
    pax_child: int
    pax_infant: int
    pax_count: int
    request_date: date
    departure_date: date | None = None
    return_date: date | None = None
    category: RequestCategory
    pos_code: str | None = None
    currency: str
    group_type: GroupType | None = None
    flight_number: str | None = None
    special_request: str | None = None
    partner_id: str | None = None
    quoted_fare: Decimal | None = None
    assigned_rc_username: str | None = None
    pnr_code: str | None = None
    pnr_issued_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None
    created_at: datetime
    updated_at: datetime


class GroupRequestListResponse(BaseModel):
    items: list[GroupRequestResponse]
    total: int
    page: int
    size: int


# ---------------------------------------------------------------------------
# Quotation schemas
# ---------------------------------------------------------------------------


class QuotationCreate(BaseModel):
    group_request_id: uuid.UUID
    total_fare: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    currency: str = Field(..., pattern=CURRENCY_PATTERN)
    note: str | None = Field(None, max_length=2000)


class QuotationResend(BaseModel):
    total_fare: Decimal = Field(..., gt=0, max_digits=15, decimal_places=2)
    currency: str | None = Field(None, pattern=CURRENCY_PATTERN)
    note: str | None = Field(None, max_length=2000)


class QuotationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    group_request_id: uuid.UUID
    status: QuotationStatus
    effective_status: QuotationStatus | None = None
    total_fare: Decimal
    currency: str
    note: str | None = None
    created_date: datetime
    expiry_date: datetime
    created_by: str | None = None
    approved_by: str | None = None
    sent_at: datetime | None = None
    accepted_at: datetime | None = None
    superseded_by_id: uuid.UUID | None = None


class QuotationListResponse(BaseModel):
    items: list[QuotationResponse]
    total: int
    page: int
    size: int


class ResendResponse(BaseModel):
    previous: QuotationResponse
    quotation: QuotationResponse
    group_request: GroupRequestResponse


# ---------------------------------------------------------------------------
# Payment schemas
# ---------------------------------------------------------------------------


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    group_request_id: uuid.UUID
    quotation_id: uuid.UUID | None = None
    installment_number: int
    status: PaymentStatus
    display_status: PaymentViewStatus | None = None
    amount: Decimal
    currency: str
    due_date: date
    reference: str | None = None
    paid_at: datetime | None = None
    paid_by: str | None = None


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int
    page: int
    size: int


class AttachmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    payment_id: uuid.UUID
    filename: str
    content_type: str
    size: int
    uploaded_by: str | None = None
    uploaded_at: datetime


class AcceptanceResponse(BaseModel):
    quotation: QuotationResponse
    group_request: GroupRequestResponse
    payments: list[PaymentResponse]


class GroupRequestDetailsResponse(BaseModel):
    request: GroupRequestResponse
    quotations: list[QuotationResponse]
    payments: list[PaymentResponse]
    segments: list[SegmentResponse]


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class DashboardResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_requests_since_login: int = Field(alias="newRequestsSinceLogin")
    expiring_quotations_today: int = Field(alias="expiringQuotationsToday")
    confirmed_groups_with_payments_due_today: int = Field(
        alias="confirmedGroupsWithPaymentsDueToday"
    )
    quotations_for_follow_up_today: int = Field(alias="quotationsForFollowUpToday")
