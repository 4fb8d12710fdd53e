"""Builders for model instances, callers and mocked query results."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal
from unittest.mock import MagicMock

from groupdesk.clock import Clock
from groupdesk.models.enums import (
    GroupRequestStatus,
    PaymentStatus,
    QuotationStatus,
    RequestCategory,
    RoutingType,
    UserRole,
)
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.payment import Payment
from groupdesk.models.quotation import Quotation
from groupdesk.models.segment import Segment
from groupdesk.modules.auth.auth import AuthenticatedUser, create_access_token
from groupdesk.modules.booking.schemas import GroupRequestCreate, SegmentInput

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)


class FixedClock(Clock):
    """Clock pinned to a given instant; ``advance`` moves it forward."""

    def __init__(self, current: datetime) -> None:
        if current.tzinfo is None:
            current = current.replace(tzinfo=UTC)
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current = self.current + delta


def make_user(role: UserRole = UserRole.GROUP_DESK, username: str | None = None) -> AuthenticatedUser:
    return AuthenticatedUser(id=uuid.uuid4(), username=username or role.value.lower(), role=role)


def auth_headers(user: AuthenticatedUser) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.username, user.role)}"}


def make_result(value=None, values=None, count=None):
    """Mock of an AsyncSession.execute() result."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar_one.return_value = value
    result.scalar.return_value = count if count is not None else value
    scalars = MagicMock()
    scalars.all.return_value = values if values is not None else ([value] if value else [])
    result.scalars.return_value = scalars
    return result


def make_group_request(status: GroupRequestStatus = GroupRequestStatus.NEW, **overrides) -> GroupRequest:
    fields = dict(
        id=uuid.uuid4(),
        status=status,
        first_name="Nimal",
        last_name="Perera",
        contact_email="agent@travel.example",
        agent_name="Lanka Tours",
        from_airport="CMB",
        to_airport="DXB",
        route="CMB-DXB",
        routing=RoutingType.RETURN,
        pax_adult=12,
        pax_child=0,
        pax_infant=0,
        pax_count=12,
        request_date=NOW.date(),
        departure_date=date(2026, 4, 10),
        return_date=date(2026, 4, 20),
        category=RequestCategory.DIRECT_CUSTOMER,
        currency="USD",
        created_at=NOW,
        updated_at=NOW,
    )
    fields.update(overrides)
    return GroupRequest(**fields)


def make_quotation(
    status: QuotationStatus = QuotationStatus.DRAFT,
    group_request_id: uuid.UUID | None = None,
    created: datetime = NOW,
    **overrides,
) -> Quotation:
    fields = dict(
        id=uuid.uuid4(),
        group_request_id=group_request_id or uuid.uuid4(),
        status=status,
        total_fare=Decimal("12000.00"),
        currency="USD",
        note=None,
        created_date=created,
        expiry_date=created + timedelta(hours=48),
        created_by="rc1",
    )
    fields.update(overrides)
    return Quotation(**fields)


def make_payment(
    status: PaymentStatus = PaymentStatus.PENDING,
    group_request_id: uuid.UUID | None = None,
    due_date: date | None = None,
    **overrides,
) -> Payment:
    fields = dict(
        id=uuid.uuid4(),
        group_request_id=group_request_id or uuid.uuid4(),
        installment_number=1,
        status=status,
        amount=Decimal("12000.00"),
        currency="USD",
        due_date=due_date or NOW.date() + timedelta(days=7),
    )
    fields.update(overrides)
    return Payment(**fields)


def make_segment(position: int, from_airport: str, to_airport: str, travel_date=None, request_id=None) -> Segment:
    return Segment(
        id=uuid.uuid4(),
        group_request_id=request_id or uuid.uuid4(),
        position=position,
        from_airport=from_airport,
        to_airport=to_airport,
        travel_date=travel_date,
        extras={},
    )


def group_request_payload(**overrides) -> dict:
    payload = dict(
        first_name="Nimal",
        last_name="Perera",
        contact_email="agent@travel.example",
        agent_name="Lanka Tours",
        from_airport="CMB",
        to_airport="DXB",
        routing="RETURN",
        pax_adult=12,
        pax_child=0,
        pax_infant=0,
        currency="usd",
        segments=[
            {"from_airport": "CMB", "to_airport": "DXB", "travel_date": "2026-04-10"},
            {"from_airport": "DXB", "to_airport": "CMB", "travel_date": "2026-04-20"},
        ],
    )
    payload.update(overrides)
    return payload


def group_request_create(**overrides) -> GroupRequestCreate:
    return GroupRequestCreate.model_validate(group_request_payload(**overrides))


__all__ = [
    "NOW",
    "SegmentInput",
    "auth_headers",
    "group_request_create",
    "group_request_payload",
    "make_group_request",
    "make_payment",
    "make_quotation",
    "make_result",
    "make_segment",
    "make_user",
]
