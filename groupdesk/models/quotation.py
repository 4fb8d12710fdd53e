from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from groupdesk.models.enums import QuotationStatus

if TYPE_CHECKING:
    from groupdesk.models.group_request import GroupRequest


class Quotation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "quotations"

    group_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_requests.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[QuotationStatus] = mapped_column(
        SQLAlchemyEnum(QuotationStatus, name="quotationstatus"),
        nullable=False,
        default=QuotationStatus.DRAFT,
        server_default="DRAFT",
    )
    total_fare: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    note: Mapped[str | None] = mapped_column(Text)
    created_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expiry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_by: Mapped[str | None] = mapped_column(String(100))
    approved_by: Mapped[str | None] = mapped_column(String(100))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    superseded_by_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("quotations.id", ondelete="SET NULL")
    )

    group_request: Mapped[GroupRequest] = relationship(
        "GroupRequest", back_populates="quotations", lazy="noload"
    )

    __table_args__ = (
        Index("ix_quotations_group_request_id", "group_request_id"),
        Index("ix_quotations_status_expiry", "status", "expiry_date"),
    )

    def __repr__(self) -> str:
        return f"<Quotation id={self.id} request={self.group_request_id} status={self.status}>"
