from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from groupdesk.models.enums import PaymentStatus

if TYPE_CHECKING:
    from groupdesk.models.group_request import GroupRequest
    from groupdesk.models.payment_attachment import PaymentAttachment


class Payment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Installment owed for an accepted quotation. OVERDUE is never stored."""

    __tablename__ = "payments"

    group_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_requests.id", ondelete="CASCADE"), nullable=False
    )
    quotation_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("quotations.id", ondelete="SET NULL")
    )
    installment_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLAlchemyEnum(PaymentStatus, name="paymentstatus"),
        nullable=False,
        default=PaymentStatus.PENDING,
        server_default="PENDING",
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(15, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    reference: Mapped[str | None] = mapped_column(String(100))
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    paid_by: Mapped[str | None] = mapped_column(String(100))

    group_request: Mapped[GroupRequest] = relationship(
        "GroupRequest", back_populates="payments", lazy="noload"
    )
    attachments: Mapped[list[PaymentAttachment]] = relationship(
        "PaymentAttachment",
        back_populates="payment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="noload",
    )

    __table_args__ = (
        Index("ix_payments_group_request_id", "group_request_id"),
        Index("ix_payments_status_due_date", "status", "due_date"),
    )

    def __repr__(self) -> str:
        return f"<Payment id={self.id} amount={self.amount} {self.currency} status={self.status}>"
