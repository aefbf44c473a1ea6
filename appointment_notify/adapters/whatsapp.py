from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://graph.facebook.com"
DEFAULT_API_VERSION = "v22.0"


@dataclass(slots=True)
class WhatsAppSettings:
    token: str
    phone_number_id: str
    api_base: str = DEFAULT_API_BASE
    api_version: str = DEFAULT_API_VERSION
    timeout_s: float = 10.0


class WhatsAppCloudSender:
    """Send text messages through the WhatsApp Cloud API."""

    def __init__(self, settings: WhatsAppSettings, client: httpx.Client | None = None) -> None:
        self.settings = settings
        self._client = client

    def _message_url(self) -> str:
        return f"{self.settings.api_base}/{self.settings.api_version}/{self.settings.phone_number_id}/messages"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.settings.token}",
            "Content-Type": "application/json",
        }

    def send(self, phone: str, text: str) -> bool:
        if not self.settings.token or not self.settings.phone_number_id:
            logger.error("WhatsApp API credentials missing")
            return False

        payload = {
            "messaging_product": "whatsapp",
            "to": phone,
            "type": "text",
            "text": {"body": text},
        }
        try:
            if self._client is not None:
                response = self._client.post(self._message_url(), json=payload, headers=self._headers())
            else:
                with httpx.Client(timeout=self.settings.timeout_s) as client:
                    response = client.post(self._message_url(), json=payload, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.error("WhatsApp send error to %s: %s", phone, exc)
            return False

        if response.is_success:
            logger.info("WhatsApp message sent to %s", phone)
            return True

        logger.error("WhatsApp send error to %s: HTTP %s %s", phone, response.status_code, response.text)
        return False
