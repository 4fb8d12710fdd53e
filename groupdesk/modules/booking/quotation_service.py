"""Quotation lifecycle: create, send to agent, accept, resend, expire."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock
from groupdesk.config import settings
from groupdesk.exceptions import (
    DuplicateActiveQuotationException,
    ExpiredException,
    InvalidTransitionException,
    NotFoundException,
)
from groupdesk.models.enums import (
    GroupRequestAction,
    GroupRequestStatus,
    PaymentStatus,
    QuotationAction,
    QuotationStatus,
)
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.payment import Payment
from groupdesk.models.quotation import Quotation
from groupdesk.modules.auth.auth import AuthenticatedUser, require_role
from groupdesk.modules.booking.constants import (
    ACTIVE_QUOTATION_STATUSES,
    EVENT_QUOTATION_ACCEPTED,
    EVENT_QUOTATION_EXPIRED,
    EVENT_QUOTATION_RESENT,
    EVENT_QUOTATION_SENT,
    RESEND_REQUEST_STATUSES,
    RESENDABLE_QUOTATION_STATUSES,
    ROLE_GATES,
)
from groupdesk.modules.booking.expiry import (
    ResendMode,
    compute_effective_status,
    is_expired,
    quotation_expiry,
    resend_plan,
)
from groupdesk.modules.booking.group_request_service import GroupRequestService
from groupdesk.modules.booking.payment_schedule import build_payment_schedule
from groupdesk.modules.booking.state_machine import (
    resolve_group_request_transition,
    resolve_quotation_transition,
)
from groupdesk.modules.events.outbox_service import OutboxService

logger = logging.getLogger(__name__)

_PLAN_ACTION = {
    QuotationStatus.REJECTED: QuotationAction.REJECT,
    QuotationStatus.EXPIRED: QuotationAction.EXPIRE,
}


@dataclass
class AcceptanceResult:
    quotation: Quotation
    group_request: GroupRequest
    payments: list[Payment]


@dataclass
class ResendResult:
    previous: Quotation
    quotation: Quotation
    group_request: GroupRequest


class QuotationService:
    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or Clock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def get_quotation(self, quotation_id: uuid.UUID) -> Quotation:
        result = await self.db.execute(select(Quotation).where(Quotation.id == quotation_id))
        quotation = result.scalar_one_or_none()
        if quotation is None:
            raise NotFoundException(f"Quotation {quotation_id} not found")
        return quotation

    async def list_quotations(
        self,
        group_request_id: uuid.UUID | None = None,
        status: QuotationStatus | None = None,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[Quotation], int]:
        """List quotations. Filtering by EXPIRED includes time-expired DRAFT/SENT rows."""
        filters = []
        if group_request_id is not None:
            filters.append(Quotation.group_request_id == group_request_id)
        if status == QuotationStatus.EXPIRED:
            filters.append(
                or_(
                    Quotation.status == QuotationStatus.EXPIRED,
                    and_(
                        Quotation.status.in_(ACTIVE_QUOTATION_STATUSES),
                        Quotation.expiry_date < self.clock.now(),
                    ),
                )
            )
        elif status is not None:
            filters.append(Quotation.status == status)

        count_query = select(func.count()).select_from(Quotation)
        query = select(Quotation)
        if filters:
            count_query = count_query.where(*filters)
            query = query.where(*filters)

        total = (await self.db.execute(count_query)).scalar() or 0
        query = query.order_by(Quotation.created_date.desc()).offset((page - 1) * size).limit(size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def _lock(self, quotation_id: uuid.UUID) -> tuple[GroupRequest, Quotation]:
        """Row-lock the owning group request first, then the quotation."""
        result = await self.db.execute(
            select(GroupRequest)
            .join(Quotation, Quotation.group_request_id == GroupRequest.id)
            .where(Quotation.id == quotation_id)
            .with_for_update(of=GroupRequest)
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundException(f"Quotation {quotation_id} not found")

        result = await self.db.execute(
            select(Quotation)
            .where(Quotation.id == quotation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        quotation = result.scalar_one_or_none()
        if quotation is None:
            raise NotFoundException(f"Quotation {quotation_id} not found")
        return request, quotation

    async def _count_active(
        self, group_request_id: uuid.UUID, exclude_id: uuid.UUID | None = None
    ) -> int:
        query = (
            select(func.count())
            .select_from(Quotation)
            .where(
                Quotation.group_request_id == group_request_id,
                Quotation.status.in_(ACTIVE_QUOTATION_STATUSES),
            )
        )
        if exclude_id is not None:
            query = query.where(Quotation.id != exclude_id)
        return (await self.db.execute(query)).scalar() or 0

    async def _publish(self, event_type: str, quotation: Quotation, payload: dict) -> None:
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=event_type,
            aggregate_type="quotation",
            aggregate_id=str(quotation.id),
            payload={
                "quotation_id": str(quotation.id),
                "group_request_id": str(quotation.group_request_id),
                **payload,
            },
        )

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_quotation(
        self,
        caller: AuthenticatedUser,
        group_request_id: uuid.UUID,
        total_fare: Decimal,
        currency: str,
        note: str | None = None,
    ) -> Quotation:
        """Create a DRAFT quotation valid for 48h and move the request to QUOTED."""
        require_role(caller, ROLE_GATES["create_quotation"], "create_quotation")
        requests = GroupRequestService(self.db, self.clock)
        request = await requests._get_for_update(group_request_id)

        if await self._count_active(group_request_id) > 0:
            raise DuplicateActiveQuotationException(
                f"Group request {group_request_id} already has a DRAFT or SENT quotation"
            )
        resolve_group_request_transition(request.status, GroupRequestAction.QUOTE)

        now = self.clock.now()
        quotation = Quotation(
            id=uuid.uuid4(),
            group_request_id=group_request_id,
            status=QuotationStatus.DRAFT,
            total_fare=Decimal(total_fare),
            currency=currency.upper(),
            note=note,
            created_date=now,
            expiry_date=quotation_expiry(now, settings.quotation_validity_hours),
            created_by=caller.username,
        )
        self.db.add(quotation)
        await self.db.flush()

        await requests.apply_transition(
            request,
            GroupRequestAction.QUOTE,
            caller,
            metadata={"quotation_id": str(quotation.id)},
        )
        logger.info(
            "Created quotation %s for group request %s: %s %s",
            quotation.id, group_request_id, quotation.total_fare, quotation.currency,
        )
        return quotation

    async def send_to_agent(
        self, caller: AuthenticatedUser, quotation_id: uuid.UUID, subject: str | None = None
    ) -> Quotation:
        require_role(caller, ROLE_GATES["send_quotation_to_agent"], "send_quotation_to_agent")
        request, quotation = await self._lock(quotation_id)

        new_status = resolve_quotation_transition(quotation.status, QuotationAction.SEND)
        now = self.clock.now()
        if is_expired(quotation, now):
            raise ExpiredException(f"Quotation {quotation_id} expired at {quotation.expiry_date}")

        quotation.status = new_status
        quotation.sent_at = now
        await self.db.flush()

        await self._publish(
            EVENT_QUOTATION_SENT,
            quotation,
            {
                "agent_email": request.contact_email,
                "agent_name": request.agent_name,
                "contact_name": f"{request.first_name} {request.last_name}".strip(),
                "route": request.route,
                "subject": subject,
                "total_fare": str(quotation.total_fare),
                "currency": quotation.currency,
                "note": quotation.note,
                "expiry_date": quotation.expiry_date.isoformat(),
                "sent_by": caller.username,
            },
        )
        logger.info("Quotation %s sent to agent %s", quotation_id, request.contact_email)
        return quotation

    async def accept(self, caller: AuthenticatedUser, quotation_id: uuid.UUID) -> AcceptanceResult:
        """Accept a SENT quotation, confirm the request and create its payment schedule."""
        require_role(caller, ROLE_GATES["accept_quotation"], "accept_quotation")
        request, quotation = await self._lock(quotation_id)

        new_status = resolve_quotation_transition(quotation.status, QuotationAction.ACCEPT)
        now = self.clock.now()
        if is_expired(quotation, now):
            raise ExpiredException(f"Quotation {quotation_id} expired at {quotation.expiry_date}")
        # Validate the request side before writing anything
        resolve_group_request_transition(request.status, GroupRequestAction.ACCEPT_QUOTATION)

        quotation.status = new_status
        quotation.approved_by = caller.username
        quotation.accepted_at = now
        request.quoted_fare = quotation.total_fare

        payments = []
        for planned in build_payment_schedule(
            quotation.total_fare,
            quotation.currency,
            accepted_at=now,
            installments=settings.payment_installments,
            first_due_days=settings.payment_first_due_days,
            interval_days=settings.payment_interval_days,
        ):
            payment = Payment(
                id=uuid.uuid4(),
                group_request_id=request.id,
                quotation_id=quotation.id,
                installment_number=planned.installment_number,
                status=PaymentStatus.PENDING,
                amount=planned.amount,
                currency=planned.currency,
                due_date=planned.due_date,
            )
            self.db.add(payment)
            payments.append(payment)
        await self.db.flush()

        await GroupRequestService(self.db, self.clock).apply_transition(
            request,
            GroupRequestAction.ACCEPT_QUOTATION,
            caller,
            metadata={"quotation_id": str(quotation.id)},
        )
        await self._publish(
            EVENT_QUOTATION_ACCEPTED,
            quotation,
            {
                "approved_by": caller.username,
                "total_fare": str(quotation.total_fare),
                "currency": quotation.currency,
                "payment_ids": [str(p.id) for p in payments],
            },
        )
        logger.info(
            "Quotation %s accepted by %s; %d payment(s) scheduled",
            quotation_id, caller.username, len(payments),
        )
        return AcceptanceResult(quotation=quotation, group_request=request, payments=payments)

    async def resend(
        self,
        caller: AuthenticatedUser,
        quotation_id: uuid.UUID,
        mode: ResendMode,
        new_fare: Decimal | None = None,
        currency: str | None = None,
        note: str | None = None,
    ) -> ResendResult:
        """Supersede a quotation with a fresh DRAFT.

        FULL rejects the old quotation and uses the new fare; SIMPLE expires
        it and carries its values forward.
        """
        require_role(caller, ROLE_GATES["resend_quotation"], "resend_quotation")
        request, old = await self._lock(quotation_id)

        if old.status not in RESENDABLE_QUOTATION_STATUSES:
            raise InvalidTransitionException(
                f"Quotation {quotation_id} in status '{old.status.value}' cannot be resent"
            )
        if request.status not in RESEND_REQUEST_STATUSES:
            raise InvalidTransitionException(
                f"Cannot resend a quotation while group request {request.id} is {request.status.value}"
            )
        if await self._count_active(request.id, exclude_id=old.id) > 0:
            raise DuplicateActiveQuotationException(
                f"Group request {request.id} already has another DRAFT or SENT quotation"
            )

        now = self.clock.now()
        plan = resend_plan(
            mode,
            old,
            now,
            new_fare=new_fare,
            currency=currency,
            note=note,
            validity_hours=settings.quotation_validity_hours,
        )
        if old.status != plan.old_status:
            old.status = resolve_quotation_transition(old.status, _PLAN_ACTION[plan.old_status])

        quotation = Quotation(
            id=uuid.uuid4(),
            group_request_id=request.id,
            status=QuotationStatus.DRAFT,
            total_fare=plan.total_fare,
            currency=plan.currency,
            note=plan.note,
            created_date=plan.created_date,
            expiry_date=plan.expiry_date,
            created_by=caller.username,
        )
        self.db.add(quotation)
        await self.db.flush()
        # Set after the insert so the self-referencing key resolves
        old.superseded_by_id = quotation.id
        await self.db.flush()

        if request.status == GroupRequestStatus.REVIEWING:
            await GroupRequestService(self.db, self.clock).apply_transition(
                request,
                GroupRequestAction.QUOTE,
                caller,
                metadata={"quotation_id": str(quotation.id), "resend_of": str(old.id)},
            )

        await self._publish(
            EVENT_QUOTATION_RESENT,
            quotation,
            {
                "previous_quotation_id": str(old.id),
                "previous_status": old.status.value,
                "mode": mode.value,
                "total_fare": str(quotation.total_fare),
                "currency": quotation.currency,
            },
        )
        logger.info(
            "Quotation %s resent (%s) as %s; old status %s",
            old.id, mode.value, quotation.id, old.status.value,
        )
        return ResendResult(previous=old, quotation=quotation, group_request=request)

    # ------------------------------------------------------------------
    # Expiry sweep
    # ------------------------------------------------------------------

    async def expire_stale_quotations(self, batch_size: int = 200) -> dict:
        """Persist EXPIRED on DRAFT/SENT quotations past their expiry.

        Rows locked by a concurrent request are skipped and picked up by the
        next run. Each row is re-checked against the projection after locking
        and written in its own savepoint, so a failed row leaves no partial writes.
        """
        now = self.clock.now()
        result = await self.db.execute(
            select(Quotation)
            .where(
                Quotation.status.in_(ACTIVE_QUOTATION_STATUSES),
                Quotation.expiry_date < now,
            )
            .order_by(Quotation.expiry_date)
            .limit(batch_size)
            .with_for_update(skip_locked=True)
        )
        quotations = list(result.scalars().all())
        stats = {"checked": len(quotations), "expired": 0, "errors": 0}

        for quotation in quotations:
            if compute_effective_status(quotation, now) != QuotationStatus.EXPIRED:
                continue
            quotation_id = quotation.id
            try:
                async with self.db.begin_nested():
                    previous = quotation.status
                    new_status = resolve_quotation_transition(previous, QuotationAction.EXPIRE)
                    await self._publish(
                        EVENT_QUOTATION_EXPIRED,
                        quotation,
                        {"previous_status": previous.value, "expiry_date": quotation.expiry_date.isoformat()},
                    )
                    quotation.status = new_status
                stats["expired"] += 1
            except Exception:
                logger.exception("Error expiring quotation %s", quotation_id)
                stats["errors"] += 1

        await self.db.flush()
        return stats
