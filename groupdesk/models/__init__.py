# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from groupdesk.models.enums import (
    EventStatus,
    GroupRequestAction,
    GroupRequestStatus,
    GroupType,
    PaymentStatus,
    PaymentViewStatus,
    QuotationAction,
    QuotationStatus,
    RequestCategory,
    RoutingType,
    Salutation,
    UserRole,
)
from groupdesk.models.event_outbox import EventOutbox
from groupdesk.models.group_request import GroupRequest
from groupdesk.models.group_request_transition import GroupRequestTransition
from groupdesk.models.payment import Payment
from groupdesk.models.payment_attachment import PaymentAttachment
from groupdesk.models.processed_event import ProcessedEvent
from groupdesk.models.quotation import Quotation
from groupdesk.models.segment import Segment
from groupdesk.models.user import User

__all__ = [
    "EventOutbox",
    "EventStatus",
    "GroupRequest",
    "GroupRequestAction",
    "GroupRequestStatus",
    "GroupRequestTransition",
    "GroupType",
    "Payment",
    "PaymentAttachment",
    "PaymentStatus",
    "PaymentViewStatus",
    "ProcessedEvent",
    "Quotation",
    "QuotationAction",
    "QuotationStatus",
    "RequestCategory",
    "RoutingType",
    "Salutation",
    "User",
]
