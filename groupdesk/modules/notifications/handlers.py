"""Outbox handlers that e-mail the agent about quotations, PNRs and itinerary changes."""

from __future__ import annotations

import logging

from groupdesk.modules.booking.constants import (
    EVENT_PNR_ISSUED,
    EVENT_QUOTATION_SENT,
    EVENT_SEGMENTS_CHANGED,
)
from groupdesk.modules.events.handlers import EventHandlerRegistry
from groupdesk.modules.notifications.email_client import EmailClient
from groupdesk.modules.notifications.templates import pnr_email, quotation_email, segments_email

logger = logging.getLogger(__name__)


def _send(payload: dict, subject: str, body: str) -> None:
    recipient = payload.get("agent_email")
    if not recipient:
        logger.warning(
            "No agent e-mail on group request %s; '%s' not sent",
            payload.get("group_request_id"), subject,
        )
        return
    EmailClient().send(recipient, subject, body)


def send_quotation_email(payload: dict) -> None:
    _send(payload, *quotation_email(payload))


def send_pnr_email(payload: dict) -> None:
    _send(payload, *pnr_email(payload))


def send_segments_email(payload: dict) -> None:
    _send(payload, *segments_email(payload))


def register_notification_handlers() -> None:
    EventHandlerRegistry.register(EVENT_QUOTATION_SENT, send_quotation_email)
    EventHandlerRegistry.register(EVENT_PNR_ISSUED, send_pnr_email)
    EventHandlerRegistry.register(EVENT_SEGMENTS_CHANGED, send_segments_email)
