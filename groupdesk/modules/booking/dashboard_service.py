"""Dashboard counters for the desk landing page."""

from __future__ import annotations

from datetime import UTC, date, datetime, time, timedelta

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock
from groupdesk.config import settings
from groupdesk.models.enums import GroupRequestStatus, PaymentStatus, QuotationStatus
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.payment import Payment
from groupdesk.models.quotation import Quotation
from groupdesk.modules.booking.constants import ACTIVE_QUOTATION_STATUSES
from groupdesk.modules.booking.schemas import DashboardResponse


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


class DashboardService:
    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or Clock()

    async def _count(self, query) -> int:
        return (await self.db.execute(query)).scalar() or 0

    async def summary(self, last_login_date: date | None = None) -> DashboardResponse:
        now = self.clock.now()
        today = now.date()
        today_start = _day_start(today)
        tomorrow_start = today_start + timedelta(days=1)
        since = _day_start(last_login_date) if last_login_date else today_start

        new_requests = await self._count(
            select(func.count())
            .select_from(GroupRequest)
            .where(GroupRequest.created_at >= since)
        )
        expiring_today = await self._count(
            select(func.count())
            .select_from(Quotation)
            .where(
                Quotation.status.in_(ACTIVE_QUOTATION_STATUSES),
                Quotation.expiry_date >= today_start,
                Quotation.expiry_date < tomorrow_start,
            )
        )
        payments_due_today = await self._count(
            select(func.count(distinct(GroupRequest.id)))
            .select_from(GroupRequest)
            .join(Payment, Payment.group_request_id == GroupRequest.id)
            .where(
                GroupRequest.status == GroupRequestStatus.CONFIRMED,
                Payment.status == PaymentStatus.PENDING,
                Payment.due_date == today,
            )
        )
        follow_up = await self._count(
            select(func.count())
            .select_from(Quotation)
            .where(
                Quotation.status == QuotationStatus.SENT,
                Quotation.sent_at <= now - timedelta(hours=settings.follow_up_after_hours),
                Quotation.expiry_date >= now,
            )
        )

        return DashboardResponse(
            new_requests_since_login=new_requests,
            expiring_quotations_today=expiring_today,
            confirmed_groups_with_payments_due_today=payments_due_today,
            quotations_for_follow_up_today=follow_up,
        )
