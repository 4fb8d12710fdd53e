"""Pure projections over stored status: quotation expiry, payment overdue, resend plans.

None of these functions mutate their inputs; callers decide whether to persist.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from groupdesk.clock import as_utc
from groupdesk.exceptions import ValidationException
from groupdesk.models.enums import PaymentStatus, PaymentViewStatus, QuotationStatus
from groupdesk.modules.booking.constants import FINAL_QUOTATION_STATUSES

DEFAULT_VALIDITY_HOURS = 48


class ResendMode(str, enum.Enum):
    FULL = "FULL"
    SIMPLE = "SIMPLE"


@dataclass(frozen=True)
class ResendPlan:
    """What a resend does: the status the old quotation moves to and the new draft's values."""

    old_status: QuotationStatus
    total_fare: Decimal
    currency: str
    note: str | None
    created_date: datetime
    expiry_date: datetime


def quotation_expiry(created: datetime, validity_hours: int = DEFAULT_VALIDITY_HOURS) -> datetime:
    return created + timedelta(hours=validity_hours)


def compute_effective_status(quotation, now: datetime) -> QuotationStatus:
    """EXPIRED once ``now`` is past expiry unless the quotation was accepted or rejected.

    Exactly at the expiry instant the quotation is still live.
    """
    status = quotation.status
    if status in FINAL_QUOTATION_STATUSES:
        return status
    if as_utc(now) > as_utc(quotation.expiry_date):
        return QuotationStatus.EXPIRED
    return status


def is_expired(quotation, now: datetime) -> bool:
    return compute_effective_status(quotation, now) == QuotationStatus.EXPIRED


def compute_payment_status(payment, today: date) -> PaymentViewStatus:
    """OVERDUE is shown for PENDING payments whose due date has passed. Never stored."""
    if payment.status == PaymentStatus.PAID:
        return PaymentViewStatus.PAID
    if payment.due_date is not None and payment.due_date < today:
        return PaymentViewStatus.OVERDUE
    return PaymentViewStatus.PENDING


def resend_plan(
    mode: ResendMode,
    old,
    now: datetime,
    new_fare: Decimal | None = None,
    currency: str | None = None,
    note: str | None = None,
    validity_hours: int = DEFAULT_VALIDITY_HOURS,
) -> ResendPlan:
    """Plan a resend of ``old``.

    FULL replaces the fare (required) and optionally currency / note, and
    rejects the old quotation. SIMPLE carries the old values forward and
    expires the old quotation.
    """
    if mode == ResendMode.FULL:
        if new_fare is None:
            raise ValidationException(
                "A new fare is required for a full resend",
                details=[{"field": "total_fare", "message": "required"}],
            )
        return ResendPlan(
            old_status=QuotationStatus.REJECTED,
            total_fare=Decimal(new_fare),
            currency=(currency or old.currency).upper(),
            note=note if note is not None else old.note,
            created_date=now,
            expiry_date=quotation_expiry(now, validity_hours),
        )

    return ResendPlan(
        old_status=QuotationStatus.EXPIRED,
        total_fare=old.total_fare,
        currency=old.currency,
        note=old.note,
        created_date=now,
        expiry_date=quotation_expiry(now, validity_hours),
    )
