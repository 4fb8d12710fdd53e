from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy import Enum as SQLAlchemyEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from groupdesk.database.base import Base, JSONType, UUIDPrimaryKeyMixin, utcnow
from groupdesk.models.enums import GroupRequestAction, GroupRequestStatus

if TYPE_CHECKING:
    from groupdesk.models.group_request import GroupRequest


class GroupRequestTransition(UUIDPrimaryKeyMixin, Base):
    """Immutable audit log for group request status changes. No updated_at column."""

    __tablename__ = "group_request_transitions"

    group_request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("group_requests.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[GroupRequestStatus] = mapped_column(
        SQLAlchemyEnum(GroupRequestStatus, name="grouprequeststatus"), nullable=False
    )
    to_status: Mapped[GroupRequestStatus] = mapped_column(
        SQLAlchemyEnum(GroupRequestStatus, name="grouprequeststatus"), nullable=False
    )
    action: Mapped[GroupRequestAction] = mapped_column(
        SQLAlchemyEnum(GroupRequestAction, name="grouprequestaction"), nullable=False
    )
    triggered_by: Mapped[str | None] = mapped_column(String(100))
    reason: Mapped[str | None] = mapped_column(Text)
    metadata_extra: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    group_request: Mapped[GroupRequest] = relationship(
        "GroupRequest", back_populates="transitions", lazy="noload"
    )

    __table_args__ = (
        Index("ix_group_request_transitions_request_id", "group_request_id"),
    )
