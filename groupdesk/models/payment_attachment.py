from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, UUIDPrimaryKeyMixin, utcnow

if TYPE_CHECKING:
    from groupdesk.models.payment import Payment


class PaymentAttachment(UUIDPrimaryKeyMixin, Base):
    """Metadata for a payment proof file. Bytes live in attachment storage."""

    __tablename__ = "payment_attachments"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("payments.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    storage_key: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    uploaded_by: Mapped[str | None] = mapped_column(String(100))
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    payment: Mapped[Payment] = relationship(
        "Payment", back_populates="attachments", lazy="noload"
    )

    __table_args__ = (
        Index("ix_payment_attachments_payment_id", "payment_id"),
    )
