"""Unit tests for GroupRequestService: intake, assignment, ticketing, PNR, cancel, segments."""

from __future__ import annotations

import uuid
from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from groupdesk.exceptions import (
    AlreadyIssuedException,
    ForbiddenException,
    InvalidFormatException,
    InvalidTransitionException,
    NotDeletableException,
    NotEligibleException,
    NotFoundException,
    UnknownAssigneeException,
    ValidationException,
)
from groupdesk.models.enums import (
    GroupRequestAction,
    GroupRequestStatus,
    PaymentStatus,
    QuotationStatus,
    UserRole,
)
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.group_request_transition import GroupRequestTransition
from groupdesk.models.segment import Segment
from groupdesk.models.user import User
from groupdesk.modules.booking.group_request_service import GroupRequestService
from groupdesk.modules.booking.schemas import GroupRequestUpdate, SegmentExtrasUpdate
from tests.factories import (
    NOW,
    group_request_create,
    group_request_payload,
    make_group_request,
    make_quotation,
    make_result,
    make_segment,
)

OUTBOX = "groupdesk.modules.booking.group_request_service.OutboxService"


@pytest.fixture
def outbox():
    with patch(OUTBOX) as outbox_cls:
        instance = outbox_cls.return_value
        instance.publish_event = AsyncMock(return_value=MagicMock(id=uuid.uuid4()))
        yield instance


@pytest.fixture
def service(mock_db, clock):
    return GroupRequestService(mock_db, clock)


def _added(mock_db, model):
    return [c.args[0] for c in mock_db.add.call_args_list if isinstance(c.args[0], model)]


def _published_types(outbox):
    return [c.kwargs["event_type"] for c in outbox.publish_event.await_args_list]


# ---------------------------------------------------------------------------
# Intake
# ---------------------------------------------------------------------------


class TestCreate:
    @pytest.mark.asyncio
    async def test_desk_create_adds_request_and_segments(self, service, mock_db, outbox, desk_user):
        request = await service.create_group_request(desk_user, group_request_create())

        assert request.status == GroupRequestStatus.NEW
        assert request.request_date == NOW.date()
        assert request.route == "CMB-DXB"
        segments = _added(mock_db, Segment)
        assert [s.position for s in segments] == [1, 2]
        assert all(s.group_request_id == request.id for s in segments)
        assert _published_types(outbox) == ["group_request.created"]
        assert outbox.publish_event.await_args.kwargs["payload"]["source"] == "desk"

    @pytest.mark.asyncio
    async def test_route_controller_cannot_create(self, service, mock_db, outbox, rc_user):
        with pytest.raises(ForbiddenException):
            await service.create_group_request(rc_user, group_request_create())
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_public_submission_needs_no_caller(self, service, outbox):
        request = await service.submit_public_request(group_request_create())
        assert request.status == GroupRequestStatus.NEW
        assert outbox.publish_event.await_args.kwargs["payload"]["source"] == "public"

    @pytest.mark.asyncio
    async def test_invalid_request_is_not_persisted(self, service, mock_db, outbox):
        with pytest.raises(ValidationException):
            await service.submit_public_request(group_request_create(pax_adult=3))
        mock_db.add.assert_not_called()
        outbox.publish_event.assert_not_awaited()


class TestUpdate:
    @pytest.mark.asyncio
    async def test_update_replaces_fields_and_keeps_request_date(self, service, mock_db, outbox, desk_user):
        original_date = date(2026, 2, 1)
        request = make_group_request(GroupRequestStatus.REVIEWING, request_date=original_date)
        mock_db.execute.side_effect = [make_result(request), MagicMock()]

        data = GroupRequestUpdate.model_validate(group_request_payload(pax_adult=20, first_name="Kamal"))
        updated = await service.update_group_request(desk_user, request.id, data)

        assert updated.pax_adult == 20
        assert updated.first_name == "Kamal"
        assert updated.request_date == original_date
        assert len(_added(mock_db, Segment)) == 2

    @pytest.mark.asyncio
    async def test_update_without_segments_replans_existing(self, service, mock_db, outbox, desk_user):
        request = make_group_request()
        existing = [
            make_segment(1, "CMB", "DXB", date(2026, 4, 10), request.id),
            make_segment(2, "DXB", "CMB", date(2026, 4, 20), request.id),
        ]
        mock_db.execute.side_effect = [
            make_result(request),
            make_result(values=existing),
            MagicMock(),
        ]

        data = GroupRequestUpdate.model_validate(group_request_payload(segments=[], pax_adult=15))
        await service.update_group_request(desk_user, request.id, data)

        added = _added(mock_db, Segment)
        assert [s.travel_date for s in added] == [date(2026, 4, 10), date(2026, 4, 20)]

    @pytest.mark.asyncio
    async def test_quoted_request_cannot_be_edited(self, service, mock_db, desk_user):
        request = make_group_request(GroupRequestStatus.QUOTED)
        mock_db.execute.return_value = make_result(request)

        data = GroupRequestUpdate.model_validate(group_request_payload())
        with pytest.raises(InvalidTransitionException):
            await service.update_group_request(desk_user, request.id, data)


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


class TestAssignRouteController:
    @pytest.mark.asyncio
    async def test_assign_moves_new_to_reviewing(self, service, mock_db, outbox, desk_user):
        request = make_group_request()
        rc = User(id=uuid.uuid4(), username="rc1", role=UserRole.ROUTE_CONTROLLER, enabled=True)
        mock_db.execute.side_effect = [make_result(request), make_result(rc)]

        result = await service.assign_route_controller(desk_user, request.id, "rc1")

        assert result.status == GroupRequestStatus.REVIEWING
        assert result.assigned_rc_username == "rc1"
        transitions = _added(mock_db, GroupRequestTransition)
        assert len(transitions) == 1
        assert transitions[0].action == GroupRequestAction.ASSIGN_RC
        assert transitions[0].from_status == GroupRequestStatus.NEW
        assert transitions[0].triggered_by == "desk1"
        assert _published_types(outbox) == ["group_request.assigned"]

    @pytest.mark.asyncio
    async def test_unknown_assignee(self, service, mock_db, outbox, desk_user):
        request = make_group_request()
        mock_db.execute.side_effect = [make_result(request), make_result(None)]

        with pytest.raises(UnknownAssigneeException):
            await service.assign_route_controller(desk_user, request.id, "ghost")
        assert request.status == GroupRequestStatus.NEW
        assert request.assigned_rc_username is None

    @pytest.mark.asyncio
    async def test_blank_assignee_rejected_without_lookup(self, service, mock_db, outbox, desk_user):
        request = make_group_request()
        mock_db.execute.side_effect = [make_result(request)]

        with pytest.raises(UnknownAssigneeException):
            await service.assign_route_controller(desk_user, request.id, "  ")
        assert mock_db.execute.await_count == 1

    @pytest.mark.asyncio
    async def test_status_checked_before_assignee(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.REVIEWING)
        mock_db.execute.side_effect = [make_result(request)]

        with pytest.raises(InvalidTransitionException):
            await service.assign_route_controller(desk_user, request.id, "rc1")

    @pytest.mark.asyncio
    async def test_admin_cannot_assign(self, service, admin_user):
        with pytest.raises(ForbiddenException):
            await service.assign_route_controller(admin_user, uuid.uuid4(), "rc1")

    @pytest.mark.asyncio
    async def test_missing_request(self, service, mock_db, desk_user):
        mock_db.execute.return_value = make_result(None)
        with pytest.raises(NotFoundException):
            await service.assign_route_controller(desk_user, uuid.uuid4(), "rc1")


# ---------------------------------------------------------------------------
# Ticketing and PNR
# ---------------------------------------------------------------------------


class TestMarkTicketed:
    @pytest.mark.asyncio
    async def test_confirmed_to_ticketed(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.return_value = make_result(request)

        result = await service.mark_ticketed(desk_user, request.id)

        assert result.status == GroupRequestStatus.TICKETED
        assert _published_types(outbox) == ["group_request.ticketed"]

    @pytest.mark.asyncio
    async def test_cancelled_cannot_be_ticketed(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CANCELLED)
        mock_db.execute.return_value = make_result(request)

        with pytest.raises(InvalidTransitionException):
            await service.mark_ticketed(desk_user, request.id)

    @pytest.mark.asyncio
    async def test_full_payment_gate(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.side_effect = [
            make_result(request),
            make_result(values=[PaymentStatus.PAID, PaymentStatus.PENDING]),
        ]

        with patch("groupdesk.modules.booking.group_request_service.settings") as settings:
            settings.ticketing_requires_full_payment = True
            with pytest.raises(NotEligibleException):
                await service.mark_ticketed(desk_user, request.id)
        assert request.status == GroupRequestStatus.CONFIRMED


class TestIssuePnr:
    @pytest.mark.asyncio
    async def test_issue_stores_code_and_emails_agent(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.side_effect = [make_result(request), make_result(count=1)]

        result = await service.issue_pnr(desk_user, request.id, " ab12cd ")

        assert result.pnr_code == "AB12CD"
        assert result.pnr_issued_at == NOW
        assert result.status == GroupRequestStatus.CONFIRMED
        kwargs = outbox.publish_event.await_args.kwargs
        assert kwargs["event_type"] == "group_request.pnr_issued"
        assert kwargs["payload"]["agent_email"] == "agent@travel.example"
        assert kwargs["payload"]["pnr_code"] == "AB12CD"

    @pytest.mark.asyncio
    async def test_requires_a_paid_payment(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.side_effect = [make_result(request), make_result(count=0)]

        with pytest.raises(NotEligibleException):
            await service.issue_pnr(desk_user, request.id, "AB12CD")
        assert request.pnr_code is None

    @pytest.mark.asyncio
    async def test_already_issued(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED, pnr_code="ZZ99ZZ")
        mock_db.execute.side_effect = [make_result(request)]

        with pytest.raises(AlreadyIssuedException):
            await service.issue_pnr(desk_user, request.id, "AB12CD")
        assert request.pnr_code == "ZZ99ZZ"

    @pytest.mark.asyncio
    async def test_bad_format(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.side_effect = [make_result(request), make_result(count=1)]

        with pytest.raises(InvalidFormatException) as exc_info:
            await service.issue_pnr(desk_user, request.id, "AB-1")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_cancelled_request(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.CANCELLED)
        mock_db.execute.side_effect = [make_result(request)]

        with pytest.raises(InvalidTransitionException):
            await service.issue_pnr(desk_user, request.id, "AB12CD")


# ---------------------------------------------------------------------------
# Cancel / delete
# ---------------------------------------------------------------------------


class TestCancel:
    @pytest.mark.asyncio
    async def test_cancel_rejects_active_quotations(self, service, mock_db, outbox, desk_user):
        request = make_group_request(GroupRequestStatus.QUOTED)
        quotation = make_quotation(QuotationStatus.SENT, group_request_id=request.id)
        mock_db.execute.side_effect = [make_result(request), make_result(values=[quotation])]

        result = await service.cancel_group_request(desk_user, request.id, "client withdrew")

        assert result.status == GroupRequestStatus.CANCELLED
        assert result.cancelled_at == NOW
        assert result.cancellation_reason == "client withdrew"
        assert quotation.status == QuotationStatus.REJECTED
        assert _published_types(outbox) == ["group_request.cancelled"]

    @pytest.mark.asyncio
    async def test_ticketed_cannot_be_cancelled(self, service, mock_db, desk_user):
        request = make_group_request(GroupRequestStatus.TICKETED)
        mock_db.execute.return_value = make_result(request)

        with pytest.raises(InvalidTransitionException):
            await service.cancel_group_request(desk_user, request.id)

    @pytest.mark.asyncio
    async def test_cancel_policy_is_configurable(self, service, mock_db, desk_user):
        request = make_group_request(GroupRequestStatus.CONFIRMED)
        mock_db.execute.return_value = make_result(request)

        with patch("groupdesk.modules.booking.group_request_service.settings") as settings:
            settings.cancellable_status_list = ["NEW", "REVIEWING"]
            with pytest.raises(InvalidTransitionException):
                await service.cancel_group_request(desk_user, request.id)


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_new_request(self, service, mock_db, desk_user):
        request = make_group_request()
        mock_db.execute.return_value = make_result(request)

        await service.delete_group_request(desk_user, request.id)
        mock_db.delete.assert_awaited_once_with(request)

    @pytest.mark.asyncio
    async def test_reviewing_request_not_deletable(self, service, mock_db, desk_user):
        request = make_group_request(GroupRequestStatus.REVIEWING)
        mock_db.execute.return_value = make_result(request)

        with pytest.raises(NotDeletableException):
            await service.delete_group_request(desk_user, request.id)
        mock_db.delete.assert_not_awaited()


# ---------------------------------------------------------------------------
# Segments
# ---------------------------------------------------------------------------


class TestSegments:
    def _setup(self, mock_db):
        request = make_group_request()
        segments = [
            make_segment(1, "CMB", "DXB", date(2026, 4, 10), request.id),
            make_segment(2, "DXB", "CMB", date(2026, 4, 20), request.id),
        ]
        mock_db.execute.side_effect = [make_result(request), make_result(values=segments)]
        return request, segments

    @pytest.mark.asyncio
    async def test_update_last_date_moves_return_date(self, service, mock_db, rc_user):
        request, segments = self._setup(mock_db)

        segment = await service.update_segment_date(rc_user, request.id, 2, date(2026, 4, 22))

        assert segment is segments[1]
        assert segment.travel_date == date(2026, 4, 22)
        assert request.return_date == date(2026, 4, 22)
        assert request.departure_date == date(2026, 4, 10)

    @pytest.mark.asyncio
    async def test_index_out_of_range(self, service, mock_db, rc_user):
        request, _ = self._setup(mock_db)
        with pytest.raises(NotFoundException):
            await service.update_segment_date(rc_user, request.id, 3, date(2026, 4, 22))

    @pytest.mark.asyncio
    async def test_extras_merge(self, service, mock_db, rc_user):
        request, segments = self._setup(mock_db)
        segments[0].extras = {"meal": "VGML"}

        extras = SegmentExtrasUpdate(offered_baggage_kg=30, special_requirements=["insurance"])
        segment = await service.update_segment_extras(rc_user, request.id, 1, extras)

        assert segment.extras == {
            "meal": "VGML",
            "offered_baggage_kg": 30,
            "special_requirements": ["FIRTSSHIELD"],
        }

    @pytest.mark.asyncio
    async def test_extras_reject_unknown_requirement(self, service, mock_db, rc_user):
        request, segments = self._setup(mock_db)

        extras = SegmentExtrasUpdate(special_requirements=["wheelchair", "lounge"])
        with pytest.raises(ValidationException) as exc_info:
            await service.update_segment_extras(rc_user, request.id, 1, extras)

        assert exc_info.value.details == [{"field": "special_requirements", "message": "LOUNGE"}]
        assert segments[0].extras == {}

    @pytest.mark.asyncio
    async def test_notify_agent_publishes_itinerary(self, service, mock_db, outbox, rc_user):
        request, _ = self._setup(mock_db)

        await service.notify_agent_segments(rc_user, request.id)

        kwargs = outbox.publish_event.await_args.kwargs
        assert kwargs["event_type"] == "group_request.segments_changed"
        assert [s["position"] for s in kwargs["payload"]["segments"]] == [1, 2]
        assert kwargs["payload"]["segments"][0]["travel_date"] == "2026-04-10"


class TestListing:
    @pytest.mark.asyncio
    async def test_list_returns_items_and_total(self, service, mock_db):
        requests = [make_group_request(), make_group_request()]
        mock_db.execute.side_effect = [make_result(count=7), make_result(values=requests)]

        items, total = await service.list_group_requests(status=GroupRequestStatus.NEW, page=2, size=2)

        assert total == 7
        assert items == requests

    @pytest.mark.asyncio
    async def test_get_details(self, service, mock_db):
        request = make_group_request(GroupRequestStatus.QUOTED)
        quotation = make_quotation(group_request_id=request.id)
        mock_db.execute.side_effect = [
            make_result(request),
            make_result(values=[quotation]),
            make_result(values=[]),
            make_result(values=[]),
        ]

        details = await service.get_details(request.id)

        assert isinstance(details["request"], GroupRequest)
        assert details["quotations"] == [quotation]
        assert details["payments"] == []
