"""Tests for agent e-mail delivery and the outbox handlers that trigger it."""

import json
from unittest.mock import patch

import httpx
import pytest

from groupdesk.modules.booking.constants import (
    EVENT_PNR_ISSUED,
    EVENT_QUOTATION_SENT,
    EVENT_SEGMENTS_CHANGED,
)
from groupdesk.modules.events.handlers import EventHandlerRegistry
from groupdesk.modules.notifications.email_client import EmailClient, EmailDeliveryError
from groupdesk.modules.notifications.handlers import (
    register_notification_handlers,
    send_pnr_email,
    send_quotation_email,
    send_segments_email,
)
from groupdesk.modules.notifications.templates import pnr_email, quotation_email, segments_email


def _client(handler, **kwargs) -> EmailClient:
    return EmailClient(
        api_url="https://mail.test/emails",
        api_key="key-123",
        sender="Group Desk <groups@test>",
        enabled=True,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestEmailClient:
    def test_posts_message(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"id": "msg_1"})

        result = _client(handler).send("agent@travel.example", "Hello", "Body text")

        assert result == {"id": "msg_1"}
        assert seen["auth"] == "Bearer key-123"
        assert seen["body"]["to"] == ["agent@travel.example"]
        assert seen["body"]["subject"] == "Hello"
        assert "html" not in seen["body"]

    def test_disabled_does_not_call_api(self):
        def handler(request):
            raise AssertionError("should not be called")

        client = EmailClient(enabled=False, transport=httpx.MockTransport(handler))
        assert client.send("agent@travel.example", "Hello", "Body") is None

    def test_api_error_raises(self):
        client = _client(lambda request: httpx.Response(422, json={"message": "bad"}))
        with pytest.raises(EmailDeliveryError):
            client.send("agent@travel.example", "Hello", "Body")

    def test_transport_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(EmailDeliveryError):
            _client(handler).send("agent@travel.example", "Hello", "Body")


class TestTemplates:
    def test_quotation_email(self):
        subject, body = quotation_email({
            "route": "CMB-DXB",
            "total_fare": "12000.00",
            "currency": "USD",
            "expiry_date": "2026-03-04T09:00:00+00:00",
            "contact_name": "Nimal Perera",
            "note": "Fare excludes taxes",
        })
        assert subject == "Group fare quotation for CMB-DXB"
        assert body.startswith("Dear Nimal Perera,")
        assert "12000.00 USD" in body
        assert "Note: Fare excludes taxes" in body

    def test_quotation_email_custom_subject(self):
        subject, _ = quotation_email({"subject": "Revised offer"})
        assert subject == "Revised offer"

    def test_pnr_email(self):
        subject, body = pnr_email({"pnr_code": "AB12CD", "route": "CMB-DXB"})
        assert subject == "PNR AB12CD issued for CMB-DXB"
        assert "Dear Sir/Madam," in body

    def test_segments_email_lists_extras(self):
        _, body = segments_email({
            "segments": [
                {
                    "position": 1,
                    "from_airport": "CMB",
                    "to_airport": "DXB",
                    "travel_date": "2026-04-10",
                    "extras": {"proposed_date": "2026-04-11", "offered_baggage_kg": 30},
                },
                {"position": 2, "from_airport": "DXB", "to_airport": "CMB", "travel_date": None},
            ]
        })
        assert "1. CMB -> DXB on 2026-04-10 (proposed 2026-04-11), baggage 30 kg" in body
        assert "2. DXB -> CMB on TBA" in body


class TestHandlers:
    @patch("groupdesk.modules.notifications.handlers.EmailClient")
    def test_quotation_handler_sends_to_agent(self, client_cls):
        send_quotation_email({"agent_email": "agent@travel.example", "route": "CMB-DXB"})

        to, subject, _ = client_cls.return_value.send.call_args.args
        assert to == "agent@travel.example"
        assert subject == "Group fare quotation for CMB-DXB"

    @patch("groupdesk.modules.notifications.handlers.EmailClient")
    def test_missing_agent_email_skips(self, client_cls):
        send_pnr_email({"group_request_id": "r1", "pnr_code": "AB12CD"})
        client_cls.return_value.send.assert_not_called()

    @patch("groupdesk.modules.notifications.handlers.EmailClient")
    def test_delivery_error_propagates_for_retry(self, client_cls):
        client_cls.return_value.send.side_effect = EmailDeliveryError("down")
        with pytest.raises(EmailDeliveryError):
            send_segments_email({"agent_email": "agent@travel.example", "segments": []})

    def test_registration_is_idempotent(self):
        EventHandlerRegistry.clear()
        try:
            register_notification_handlers()
            register_notification_handlers()

            assert EventHandlerRegistry.get_handlers(EVENT_QUOTATION_SENT) == [send_quotation_email]
            assert EventHandlerRegistry.get_handlers(EVENT_PNR_ISSUED) == [send_pnr_email]
            assert EventHandlerRegistry.get_handlers(EVENT_SEGMENTS_CHANGED) == [send_segments_email]
        finally:
            EventHandlerRegistry.clear()
