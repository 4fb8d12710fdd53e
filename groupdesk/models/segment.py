from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Integer, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from groupdesk.models.group_request import GroupRequest


class Segment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """One ordered leg of a group request itinerary. ``position`` is 1-based."""

    __tablename__ = "segments"

    group_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_requests.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    from_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    to_airport: Mapped[str] = mapped_column(String(3), nullable=False)
    travel_date: Mapped[date | None] = mapped_column(Date)
    extras: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    group_request: Mapped[GroupRequest] = relationship(
        "GroupRequest", back_populates="segments", lazy="noload"
    )

    __table_args__ = (
        UniqueConstraint("group_request_id", "position", name="uq_segments_request_position"),
        CheckConstraint("from_airport <> to_airport", name="ck_segments_distinct_endpoints"),
    )

    def __repr__(self) -> str:
        return f"<Segment {self.position} {self.from_airport}-{self.to_airport} date={self.travel_date}>"
