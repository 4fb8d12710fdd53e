"""Pure transition resolution over the central transition tables."""

from __future__ import annotations

from groupdesk.exceptions import InvalidTransitionException
from groupdesk.models.enums import (
    GroupRequestAction,
    GroupRequestStatus,
    QuotationAction,
    QuotationStatus,
)
from groupdesk.modules.booking.constants import (
    GROUP_REQUEST_TRANSITIONS,
    PNR_PATTERN,
    QUOTATION_TRANSITIONS,
)


def resolve_group_request_transition(
    current: GroupRequestStatus, action: GroupRequestAction
) -> GroupRequestStatus:
    """Return the target status for ``action`` or raise InvalidTransitionException."""
    allowed = GROUP_REQUEST_TRANSITIONS.get(current, {})
    if action not in allowed:
        raise InvalidTransitionException(
            f"Cannot perform '{action.value}' on a group request in status '{current.value}'",
            details=[
                {"field": "status", "message": f"allowed: {[a.value for a in allowed]}"}
            ],
        )
    return allowed[action]


def resolve_quotation_transition(
    current: QuotationStatus, action: QuotationAction
) -> QuotationStatus:
    allowed = QUOTATION_TRANSITIONS.get(current, {})
    if action not in allowed:
        raise InvalidTransitionException(
            f"Cannot perform '{action.value}' on a quotation in status '{current.value}'",
            details=[
                {"field": "status", "message": f"allowed: {[a.value for a in allowed]}"}
            ],
        )
    return allowed[action]


def normalize_pnr(raw: str | None) -> str:
    return (raw or "").strip().upper()


def is_valid_pnr(code: str) -> bool:
    return bool(PNR_PATTERN.match(code))
