"""GroupRequest model: one group booking enquiry and its workflow status."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from groupdesk.models.enums import (
    GroupRequestStatus,
    GroupType,
    RequestCategory,
    RoutingType,
    Salutation,
)

if TYPE_CHECKING:
    from groupdesk.models.group_request_transition import GroupRequestTransition
    from groupdesk.models.payment import Payment
    from groupdesk.models.quotation import Quotation
    from groupdesk.models.segment import Segment


class GroupRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "group_requests"

    status: Mapped[GroupRequestStatus] = mapped_column(
        SQLAlchemyEnum(GroupRequestStatus, name="grouprequeststatus"),
        nullable=False,
        default=GroupRequestStatus.NEW,
        server_default="NEW",
    )

    # Contact
    salutation: Mapped[Salutation | None] = mapped_column(
        SQLAlchemyEnum(Salutation, name="salutation")
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str | None] = mapped_column(String(50))
    agent_name: Mapped[str | None] = mapped_column(String(255))

    # Itinerary
    from_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    to_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    route: Mapped[str] = mapped_column(String(20), nullable=False)
    routing: Mapped[RoutingType] = mapped_column(
        SQLAlchemyEnum(RoutingType, name="routingtype"), nullable=False
    )
    departure_date: Mapped[date | None] = mapped_column(Date)
    return_date: Mapped[date | None] = mapped_column(Date)
    flight_number: Mapped[str | None] = mapped_column(String(20))

    # Passengers
    pax_adult: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pax_child: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pax_infant: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    pax_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Commercial
    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    category: Mapped[RequestCategory] = mapped_column(
        SQLAlchemyEnum(RequestCategory, name="requestcategory"),
        nullable=False,
        default=RequestCategory.DIRECT_CUSTOMER,
    )
    pos_code: Mapped[str | None] = mapped_column(String(10))
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    group_type: Mapped[GroupType | None] = mapped_column(
        SQLAlchemyEnum(GroupType, name="grouptype")
    )
    special_request: Mapped[str | None] = mapped_column(Text)
    partner_id: Mapped[str | None] = mapped_column(String(50))

    # Workflow
    quoted_fare: Mapped[Decimal | None] = mapped_column(Numeric(15, 2))
    assigned_rc_username: Mapped[str | None] = mapped_column(String(100))
    pnr_code: Mapped[str | None] = mapped_column(String(8))
    pnr_issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Relationships
    segments: Mapped[list[Segment]] = relationship(
        "Segment",
        back_populates="group_request",
        order_by="Segment.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    quotations: Mapped[list[Quotation]] = relationship(
        "Quotation",
        back_populates="group_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    payments: Mapped[list[Payment]] = relationship(
        "Payment",
        back_populates="group_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )
    transitions: Mapped[list[GroupRequestTransition]] = relationship(
        "GroupRequestTransition",
        back_populates="group_request",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_group_requests_status", "status"),
        Index("ix_group_requests_created_at", "created_at"),
        Index("ix_group_requests_assigned_rc", "assigned_rc_username"),
    )

    def __repr__(self) -> str:
        return f"<GroupRequest id={self.id} route={self.route} status={self.status}>"
