"""Console transports for local development and dry runs."""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class ConsoleEmailSender:
    def send(self, kind: str, recipient_email: str, template_data: dict[str, Any]) -> bool:
        logger.info("[console email] kind=%s to=%s data=%s", kind, recipient_email, template_data)
        return True


class ConsoleMessageSender:
    def send(self, phone: str, text: str) -> bool:
        logger.info("[console message] to=%s text=%r", phone, text)
        return True
