"""Outbound e-mail through an HTTP e-mail API (Resend-compatible payload)."""

from __future__ import annotations

import logging

import httpx

from groupdesk.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the e-mail API rejects a message or cannot be reached."""


class EmailClient:
    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender: str | None = None,
        enabled: bool | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.api_url = api_url or settings.email_api_url
        self.api_key = api_key if api_key is not None else settings.email_api_key
        self.sender = sender or settings.email_from
        self.enabled = settings.email_enabled if enabled is None else enabled
        self._transport = transport

    def send(self, to_email: str, subject: str, text: str, html: str | None = None) -> dict | None:
        """Send one message. Returns the API response body, or None when e-mail is disabled."""
        if not self.enabled:
            logger.info("E-mail disabled; skipping '%s' to %s", subject, to_email)
            return None

        payload: dict = {
            "from": self.sender,
            "to": [to_email],
            "subject": subject,
            "text": text,
        }
        if html:
            payload["html"] = html

        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        with httpx.Client(timeout=settings.email_timeout_seconds, transport=self._transport) as client:
            try:
                resp = client.post(self.api_url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                logger.exception("E-mail request to %s failed", to_email)
                raise EmailDeliveryError(f"E-mail request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.error("E-mail API error %s: %s", resp.status_code, resp.text)
            raise EmailDeliveryError(f"E-mail API returned {resp.status_code}")

        logger.info("Sent '%s' to %s", subject, to_email)
        return resp.json() if resp.content else {}
