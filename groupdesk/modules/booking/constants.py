"""Booking state machine transitions, role gates, and event types."""

from __future__ import annotations

import re

from groupdesk.models.enums import (
    GroupRequestAction,
    GroupRequestStatus,
    QuotationAction,
    QuotationStatus,
    UserRole,
)

# Valid transitions: from_status -> {action -> to_status}
GROUP_REQUEST_TRANSITIONS: dict[GroupRequestStatus, dict[GroupRequestAction, GroupRequestStatus]] = {
    GroupRequestStatus.NEW: {
        GroupRequestAction.ASSIGN_RC: GroupRequestStatus.REVIEWING,
        GroupRequestAction.MARK_TICKETED: GroupRequestStatus.TICKETED,
        GroupRequestAction.CANCEL: GroupRequestStatus.CANCELLED,
    },
    GroupRequestStatus.REVIEWING: {
        GroupRequestAction.QUOTE: GroupRequestStatus.QUOTED,
        GroupRequestAction.MARK_TICKETED: GroupRequestStatus.TICKETED,
        GroupRequestAction.CANCEL: GroupRequestStatus.CANCELLED,
    },
    GroupRequestStatus.QUOTED: {
        GroupRequestAction.ACCEPT_QUOTATION: GroupRequestStatus.CONFIRMED,
        GroupRequestAction.MARK_TICKETED: GroupRequestStatus.TICKETED,
        GroupRequestAction.CANCEL: GroupRequestStatus.CANCELLED,
    },
    GroupRequestStatus.CONFIRMED: {
        GroupRequestAction.MARK_TICKETED: GroupRequestStatus.TICKETED,
        GroupRequestAction.CANCEL: GroupRequestStatus.CANCELLED,
    },
}

QUOTATION_TRANSITIONS: dict[QuotationStatus, dict[QuotationAction, QuotationStatus]] = {
    QuotationStatus.DRAFT: {
        QuotationAction.SEND: QuotationStatus.SENT,
        QuotationAction.REJECT: QuotationStatus.REJECTED,
        QuotationAction.EXPIRE: QuotationStatus.EXPIRED,
    },
    QuotationStatus.SENT: {
        QuotationAction.ACCEPT: QuotationStatus.ACCEPTED,
        QuotationAction.REJECT: QuotationStatus.REJECTED,
        QuotationAction.EXPIRE: QuotationStatus.EXPIRED,
    },
    QuotationStatus.EXPIRED: {
        QuotationAction.REJECT: QuotationStatus.REJECTED,
    },
    QuotationStatus.REJECTED: {
        QuotationAction.EXPIRE: QuotationStatus.EXPIRED,
    },
}

# At most one quotation per group request may be in these statuses
ACTIVE_QUOTATION_STATUSES: set[QuotationStatus] = {
    QuotationStatus.DRAFT,
    QuotationStatus.SENT,
}

# Stored statuses the expiry projection never overrides
FINAL_QUOTATION_STATUSES: set[QuotationStatus] = {
    QuotationStatus.ACCEPTED,
    QuotationStatus.REJECTED,
}

RESENDABLE_QUOTATION_STATUSES: set[QuotationStatus] = {
    QuotationStatus.DRAFT,
    QuotationStatus.SENT,
    QuotationStatus.EXPIRED,
    QuotationStatus.REJECTED,
}

# Group request statuses in which a quotation can be resent
RESEND_REQUEST_STATUSES: set[GroupRequestStatus] = {
    GroupRequestStatus.REVIEWING,
    GroupRequestStatus.QUOTED,
}

# Statuses where the request content (contact, itinerary, pax) can still be edited
EDITABLE_STATUSES: set[GroupRequestStatus] = {
    GroupRequestStatus.NEW,
    GroupRequestStatus.REVIEWING,
}

DELETABLE_STATUSES: set[GroupRequestStatus] = {
    GroupRequestStatus.NEW,
}

TERMINAL_STATUSES: set[GroupRequestStatus] = {
    GroupRequestStatus.TICKETED,
    GroupRequestStatus.CANCELLED,
    GroupRequestStatus.CONFIRMED_PNR,
    GroupRequestStatus.SETTLED,
}

# ---------------------------------------------------------------------------
# Role gates (operation -> roles allowed to invoke it)
# ---------------------------------------------------------------------------

DESK_ROLES = frozenset({UserRole.GROUP_DESK, UserRole.ADMIN})
QUOTING_ROLES = frozenset({UserRole.ROUTE_CONTROLLER, UserRole.GROUP_DESK})
SEGMENT_ROLES = frozenset({UserRole.ROUTE_CONTROLLER, UserRole.GROUP_DESK, UserRole.ADMIN})

ROLE_GATES: dict[str, frozenset[UserRole]] = {
    "create_group_request": DESK_ROLES,
    "update_group_request": DESK_ROLES,
    "cancel_group_request": DESK_ROLES,
    "delete_group_request": DESK_ROLES,
    "assign_route_controller": frozenset({UserRole.GROUP_DESK}),
    "create_quotation": QUOTING_ROLES,
    "resend_quotation": QUOTING_ROLES,
    "send_quotation_to_agent": DESK_ROLES,
    "accept_quotation": frozenset({UserRole.GROUP_DESK}),
    "mark_payment_paid": DESK_ROLES,
    "upload_payment_attachment": DESK_ROLES,
    "mark_ticketed": DESK_ROLES,
    "issue_pnr": DESK_ROLES,
    "update_segment": SEGMENT_ROLES,
    "notify_agent_segments": SEGMENT_ROLES,
    "manage_users": frozenset({UserRole.ADMIN}),
}

# ---------------------------------------------------------------------------
# PNR
# ---------------------------------------------------------------------------

PNR_PATTERN = re.compile(r"^[A-Z0-9]{6,8}$")

# ---------------------------------------------------------------------------
# Event type strings for the outbox
# ---------------------------------------------------------------------------

EVENT_GROUP_REQUEST_CREATED = "group_request.created"
EVENT_GROUP_REQUEST_ASSIGNED = "group_request.assigned"
EVENT_GROUP_REQUEST_QUOTED = "group_request.quoted"
EVENT_GROUP_REQUEST_CONFIRMED = "group_request.confirmed"
EVENT_GROUP_REQUEST_TICKETED = "group_request.ticketed"
EVENT_GROUP_REQUEST_CANCELLED = "group_request.cancelled"
EVENT_PNR_ISSUED = "group_request.pnr_issued"
EVENT_SEGMENTS_CHANGED = "group_request.segments_changed"
EVENT_QUOTATION_SENT = "quotation.sent_to_agent"
EVENT_QUOTATION_ACCEPTED = "quotation.accepted"
EVENT_QUOTATION_RESENT = "quotation.resent"
EVENT_QUOTATION_EXPIRED = "quotation.expired"
EVENT_PAYMENT_PAID = "payment.paid"

TRANSITION_EVENT_MAP: dict[GroupRequestAction, str] = {
    GroupRequestAction.ASSIGN_RC: EVENT_GROUP_REQUEST_ASSIGNED,
    GroupRequestAction.QUOTE: EVENT_GROUP_REQUEST_QUOTED,
    GroupRequestAction.ACCEPT_QUOTATION: EVENT_GROUP_REQUEST_CONFIRMED,
    GroupRequestAction.MARK_TICKETED: EVENT_GROUP_REQUEST_TICKETED,
    GroupRequestAction.CANCEL: EVENT_GROUP_REQUEST_CANCELLED,
}
