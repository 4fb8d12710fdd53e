"""Group request lifecycle: intake, edits, assignment, ticketing, PNR, cancel, delete."""

from __future__ import annotations

import logging
import uuid
from datetime import date

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock
from groupdesk.config import settings
from groupdesk.exceptions import (
    AlreadyIssuedException,
    InvalidFormatException,
    InvalidTransitionException,
    NotDeletableException,
    NotEligibleException,
    NotFoundException,
    ValidationException,
)
from groupdesk.models.enums import (
    GroupRequestAction,
    GroupRequestStatus,
    PaymentStatus,
    QuotationStatus,
)
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.group_request_transition import GroupRequestTransition
from groupdesk.models.payment import Payment
from groupdesk.models.quotation import Quotation
from groupdesk.models.segment import Segment
from groupdesk.modules.auth.auth import AuthenticatedUser, require_role
from groupdesk.modules.booking.constants import (
    ACTIVE_QUOTATION_STATUSES,
    DELETABLE_STATUSES,
    EDITABLE_STATUSES,
    EVENT_GROUP_REQUEST_CREATED,
    EVENT_PNR_ISSUED,
    EVENT_SEGMENTS_CHANGED,
    ROLE_GATES,
    TERMINAL_STATUSES,
    TRANSITION_EVENT_MAP,
)
from groupdesk.modules.booking.intake import prepare_group_request, unknown_special_requirements
from groupdesk.modules.booking.schemas import (
    GroupRequestCreate,
    GroupRequestUpdate,
    SegmentExtrasUpdate,
    SegmentInput,
)
from groupdesk.modules.booking.segments import normalize_special_requirement
from groupdesk.modules.booking.state_machine import (
    is_valid_pnr,
    normalize_pnr,
    resolve_group_request_transition,
)
from groupdesk.modules.events.outbox_service import OutboxService
from groupdesk.modules.users.assignment import AssignmentResolver

logger = logging.getLogger(__name__)


def _agent_payload(request: GroupRequest) -> dict:
    """Fields every agent e-mail event carries."""
    return {
        "group_request_id": str(request.id),
        "agent_email": request.contact_email,
        "agent_name": request.agent_name,
        "contact_name": f"{request.first_name} {request.last_name}".strip(),
        "route": request.route,
    }


class GroupRequestService:
    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or Clock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def get_group_request(self, request_id: uuid.UUID) -> GroupRequest:
        result = await self.db.execute(
            select(GroupRequest).where(GroupRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundException(f"Group request {request_id} not found")
        return request

    async def _get_for_update(self, request_id: uuid.UUID) -> GroupRequest:
        """Load and row-lock a group request for the rest of the transaction."""
        result = await self.db.execute(
            select(GroupRequest)
            .where(GroupRequest.id == request_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundException(f"Group request {request_id} not found")
        return request

    async def get_segments(self, request_id: uuid.UUID) -> list[Segment]:
        result = await self.db.execute(
            select(Segment)
            .where(Segment.group_request_id == request_id)
            .order_by(Segment.position)
        )
        return list(result.scalars().all())

    async def list_group_requests(
        self,
        status: GroupRequestStatus | None = None,
        search: str | None = None,
        assigned_rc: str | None = None,
        page: int = 1,
        size: int = 20,
    ) -> tuple[list[GroupRequest], int]:
        query = select(GroupRequest)
        count_query = select(func.count()).select_from(GroupRequest)

        filters = []
        if status is not None:
            filters.append(GroupRequest.status == status)
        if assigned_rc:
            filters.append(GroupRequest.assigned_rc_username == assigned_rc)
        if search:
            pattern = f"%{search.strip()}%"
            filters.append(
                or_(
                    GroupRequest.first_name.ilike(pattern),
                    GroupRequest.last_name.ilike(pattern),
                    GroupRequest.contact_email.ilike(pattern),
                    GroupRequest.agent_name.ilike(pattern),
                    GroupRequest.route.ilike(pattern),
                )
            )
        if filters:
            query = query.where(*filters)
            count_query = count_query.where(*filters)

        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(GroupRequest.created_at.desc()).offset((page - 1) * size).limit(size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get_details(self, request_id: uuid.UUID) -> dict:
        """Request with its quotations, payments and segments."""
        request = await self.get_group_request(request_id)
        quotations = await self.db.execute(
            select(Quotation)
            .where(Quotation.group_request_id == request_id)
            .order_by(Quotation.created_date.desc())
        )
        payments = await self.db.execute(
            select(Payment)
            .where(Payment.group_request_id == request_id)
            .order_by(Payment.installment_number)
        )
        return {
            "request": request,
            "quotations": list(quotations.scalars().all()),
            "payments": list(payments.scalars().all()),
            "segments": await self.get_segments(request_id),
        }

    # ------------------------------------------------------------------
    # Intake and edits
    # ------------------------------------------------------------------

    async def submit_public_request(self, data: GroupRequestCreate) -> GroupRequest:
        """Unauthenticated submission from the public booking form."""
        return await self._create(data, created_by=None, source="public")

    async def create_group_request(
        self, caller: AuthenticatedUser, data: GroupRequestCreate
    ) -> GroupRequest:
        require_role(caller, ROLE_GATES["create_group_request"], "create_group_request")
        return await self._create(data, created_by=caller.username, source="desk")

    async def _create(
        self, data: GroupRequestCreate, created_by: str | None, source: str
    ) -> GroupRequest:
        prepared = prepare_group_request(
            data,
            today=self.clock.now().date(),
            hub=settings.hub_airport,
            min_group_size=settings.min_group_size,
            max_infants=settings.max_infants,
        )
        request = GroupRequest(
            id=uuid.uuid4(),
            status=GroupRequestStatus.NEW,
            **prepared.fields,
        )
        self.db.add(request)
        self._add_segments(request.id, prepared.segments)
        await self.db.flush()

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_GROUP_REQUEST_CREATED,
            aggregate_type="group_request",
            aggregate_id=str(request.id),
            payload={
                "group_request_id": str(request.id),
                "route": request.route,
                "source": source,
                "created_by": created_by,
            },
        )
        logger.info("Created group request %s (%s) from %s", request.id, request.route, source)
        return request

    def _add_segments(self, request_id: uuid.UUID, plans) -> None:
        for position, plan in enumerate(plans, start=1):
            self.db.add(
                Segment(
                    group_request_id=request_id,
                    position=position,
                    from_airport=plan.from_airport,
                    to_airport=plan.to_airport,
                    travel_date=plan.travel_date,
                    extras=plan.extras,
                )
            )

    async def update_group_request(
        self, caller: AuthenticatedUser, request_id: uuid.UUID, data: GroupRequestUpdate
    ) -> GroupRequest:
        """Replace the editable fields in one validated update. Allowed while NEW or REVIEWING."""
        require_role(caller, ROLE_GATES["update_group_request"], "update_group_request")
        request = await self._get_for_update(request_id)
        if request.status not in EDITABLE_STATUSES:
            raise InvalidTransitionException(
                f"Group request {request_id} cannot be edited in status '{request.status.value}'"
            )

        if not data.segments:
            existing = await self.get_segments(request_id)
            data = data.model_copy(
                update={
                    "segments": [
                        SegmentInput(
                            from_airport=s.from_airport,
                            to_airport=s.to_airport,
                            travel_date=s.travel_date,
                            extras=s.extras or {},
                        )
                        for s in existing
                    ]
                }
            )

        prepared = prepare_group_request(
            data,
            today=request.request_date,
            hub=settings.hub_airport,
            min_group_size=settings.min_group_size,
            max_infants=settings.max_infants,
        )
        for key, value in prepared.fields.items():
            if key != "request_date":
                setattr(request, key, value)

        await self.db.execute(delete(Segment).where(Segment.group_request_id == request_id))
        self._add_segments(request_id, prepared.segments)
        await self.db.flush()
        logger.info("Updated group request %s by %s", request_id, caller.username)
        return request

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def apply_transition(
        self,
        request: GroupRequest,
        action: GroupRequestAction,
        caller: AuthenticatedUser | None,
        reason: str | None = None,
        metadata: dict | None = None,
    ) -> GroupRequest:
        """Move a locked group request along the transition table.

        Records the audit row and emits the outbox event in the caller's
        transaction. Callers run their own guards first.
        """
        old_status = request.status
        new_status = resolve_group_request_transition(old_status, action)
        request.status = new_status
        triggered_by = caller.username if caller else "system"

        self.db.add(
            GroupRequestTransition(
                group_request_id=request.id,
                from_status=old_status,
                to_status=new_status,
                action=action,
                triggered_by=triggered_by,
                reason=reason,
                metadata_extra=metadata or {},
            )
        )
        await self.db.flush()

        event_type = TRANSITION_EVENT_MAP.get(action)
        if event_type:
            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=event_type,
                aggregate_type="group_request",
                aggregate_id=str(request.id),
                payload={
                    "group_request_id": str(request.id),
                    "from_status": old_status.value,
                    "to_status": new_status.value,
                    "triggered_by": triggered_by,
                    "reason": reason,
                    "metadata": metadata,
                },
            )

        logger.info(
            "Group request %s transitioned %s -> %s via %s",
            request.id, old_status.value, new_status.value, action.value,
        )
        return request

    async def assign_route_controller(
        self, caller: AuthenticatedUser, request_id: uuid.UUID, rc_username: str | None
    ) -> GroupRequest:
        require_role(caller, ROLE_GATES["assign_route_controller"], "assign_route_controller")
        request = await self._get_for_update(request_id)

        # Status check before the assignee lookup
        resolve_group_request_transition(request.status, GroupRequestAction.ASSIGN_RC)
        rc = await AssignmentResolver(self.db).resolve_route_controller(rc_username)

        request.assigned_rc_username = rc.username
        return await self.apply_transition(
            request,
            GroupRequestAction.ASSIGN_RC,
            caller,
            metadata={"assigned_rc": rc.username},
        )

    async def mark_ticketed(self, caller: AuthenticatedUser, request_id: uuid.UUID) -> GroupRequest:
        require_role(caller, ROLE_GATES["mark_ticketed"], "mark_ticketed")
        request = await self._get_for_update(request_id)
        resolve_group_request_transition(request.status, GroupRequestAction.MARK_TICKETED)

        if settings.ticketing_requires_full_payment:
            result = await self.db.execute(
                select(Payment.status).where(Payment.group_request_id == request_id)
            )
            statuses = list(result.scalars().all())
            if not statuses or any(s != PaymentStatus.PAID for s in statuses):
                raise NotEligibleException(
                    f"Group request {request_id} cannot be ticketed before every payment is PAID"
                )

        return await self.apply_transition(request, GroupRequestAction.MARK_TICKETED, caller)

    async def issue_pnr(
        self, caller: AuthenticatedUser, request_id: uuid.UUID, pnr_code: str | None
    ) -> GroupRequest:
        """Store the PNR once at least one payment is PAID, then e-mail the agent."""
        require_role(caller, ROLE_GATES["issue_pnr"], "issue_pnr")
        request = await self._get_for_update(request_id)
        code = normalize_pnr(pnr_code)

        if request.status == GroupRequestStatus.CANCELLED:
            raise InvalidTransitionException(
                f"Cannot issue a PNR for cancelled group request {request_id}"
            )
        if request.pnr_code:
            raise AlreadyIssuedException(
                f"PNR {request.pnr_code} was already issued for group request {request_id}"
            )

        paid_count = (
            await self.db.execute(
                select(func.count())
                .select_from(Payment)
                .where(
                    Payment.group_request_id == request_id,
                    Payment.status == PaymentStatus.PAID,
                )
            )
        ).scalar() or 0
        if paid_count == 0:
            raise NotEligibleException(
                f"Group request {request_id} has no PAID payment; PNR cannot be issued"
            )

        if not is_valid_pnr(code):
            raise InvalidFormatException(
                "PNR must be 6 to 8 letters or digits",
                details=[{"field": "pnr", "message": code}],
            )

        request.pnr_code = code
        request.pnr_issued_at = self.clock.now()
        await self.db.flush()

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_PNR_ISSUED,
            aggregate_type="group_request",
            aggregate_id=str(request.id),
            payload={**_agent_payload(request), "pnr_code": code, "issued_by": caller.username},
        )
        logger.info("PNR %s issued for group request %s by %s", code, request_id, caller.username)
        return request

    async def cancel_group_request(
        self, caller: AuthenticatedUser, request_id: uuid.UUID, reason: str | None = None
    ) -> GroupRequest:
        require_role(caller, ROLE_GATES["cancel_group_request"], "cancel_group_request")
        request = await self._get_for_update(request_id)

        if (
            request.status in TERMINAL_STATUSES
            or request.status.value not in settings.cancellable_status_list
        ):
            raise InvalidTransitionException(
                f"Cannot cancel a group request in status '{request.status.value}'"
            )

        result = await self.db.execute(
            select(Quotation)
            .where(
                Quotation.group_request_id == request_id,
                Quotation.status.in_(ACTIVE_QUOTATION_STATUSES),
            )
            .with_for_update()
        )
        for quotation in result.scalars().all():
            quotation.status = QuotationStatus.REJECTED

        request.cancelled_at = self.clock.now()
        request.cancellation_reason = reason
        return await self.apply_transition(request, GroupRequestAction.CANCEL, caller, reason=reason)

    async def delete_group_request(self, caller: AuthenticatedUser, request_id: uuid.UUID) -> None:
        require_role(caller, ROLE_GATES["delete_group_request"], "delete_group_request")
        request = await self._get_for_update(request_id)
        if request.status not in DELETABLE_STATUSES:
            raise NotDeletableException(
                f"Group request {request_id} is {request.status.value}; only NEW requests can be deleted"
            )
        await self.db.delete(request)
        await self.db.flush()
        logger.info("Deleted NEW group request %s", request_id)

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    async def _locked_segment(
        self, request_id: uuid.UUID, index: int
    ) -> tuple[GroupRequest, list[Segment], Segment]:
        request = await self._get_for_update(request_id)
        segments = await self.get_segments(request_id)
        if index < 1 or index > len(segments):
            raise NotFoundException(f"Segment {index} not found on group request {request_id}")
        return request, segments, segments[index - 1]

    async def update_segment_date(
        self, caller: AuthenticatedUser, request_id: uuid.UUID, index: int, travel_date: date
    ) -> Segment:
        require_role(caller, ROLE_GATES["update_segment"], "update_segment")
        request, segments, segment = await self._locked_segment(request_id, index)

        segment.travel_date = travel_date
        request.departure_date = segments[0].travel_date
        if request.return_date is not None:
            request.return_date = segments[-1].travel_date
        await self.db.flush()
        logger.info("Segment %d of group request %s dated %s", index, request_id, travel_date)
        return segment

    async def update_segment_extras(
        self,
        caller: AuthenticatedUser,
        request_id: uuid.UUID,
        index: int,
        extras: SegmentExtrasUpdate,
    ) -> Segment:
        require_role(caller, ROLE_GATES["update_segment"], "update_segment")
        changes = extras.model_dump(exclude_none=True, mode="json")
        if "special_requirements" in changes:
            tags = [normalize_special_requirement(tag) for tag in changes["special_requirements"]]
            unknown = unknown_special_requirements(tags)
            if unknown:
                raise ValidationException(
                    "Unknown special requirement",
                    details=[{"field": "special_requirements", "message": ", ".join(unknown)}],
                )
            changes["special_requirements"] = tags

        _, _, segment = await self._locked_segment(request_id, index)
        # Reassign so the JSON column is flagged dirty
        segment.extras = {**(segment.extras or {}), **changes}
        await self.db.flush()
        return segment

    async def notify_agent_segments(self, caller: AuthenticatedUser, request_id: uuid.UUID):
        """Queue an e-mail to the agent with the current itinerary."""
        require_role(caller, ROLE_GATES["notify_agent_segments"], "notify_agent_segments")
        request = await self.get_group_request(request_id)
        segments = await self.get_segments(request_id)

        outbox = OutboxService(self.db)
        event = await outbox.publish_event(
            event_type=EVENT_SEGMENTS_CHANGED,
            aggregate_type="group_request",
            aggregate_id=str(request.id),
            payload={
                **_agent_payload(request),
                "notified_by": caller.username,
                "segments": [
                    {
                        "position": s.position,
                        "from_airport": s.from_airport,
                        "to_airport": s.to_airport,
                        "travel_date": s.travel_date.isoformat() if s.travel_date else None,
                        "extras": s.extras or {},
                    }
                    for s in segments
                ],
            },
        )
        logger.info("Queued itinerary e-mail for group request %s", request_id)
        return event
