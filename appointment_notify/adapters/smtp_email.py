from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Any

from appointment_notify.domain.models import EmailKind

logger = logging.getLogger(__name__)

SUBJECTS = {
    EmailKind.CONFIRMATION: "Appointment Confirmation - {hospital_name}",
    EmailKind.CANCELLATION: "Appointment Cancellation - {hospital_name}",
    EmailKind.RESCHEDULE: "Appointment Rescheduled - {hospital_name}",
    EmailKind.REMINDER: "Reminder: Your appointment tomorrow at {hospital_name}",
    EmailKind.FOLLOWUP: "Thank you for your visit - {hospital_name}",
}

_BODY_FIELDS = (
    ("Patient", "patient_name"),
    ("Date", "date"),
    ("Time", "time"),
    ("Type", "type"),
    ("Doctor", "doctor_name"),
    ("Department", "department"),
    ("Notes", "notes"),
)


@dataclass(slots=True)
class SmtpSettings:
    host: str
    port: int
    username: str
    password: str
    sender_email: str
    timeout_s: float = 10.0


def render_plain_body(template_data: dict[str, Any]) -> str:
    lines = [f"Hello {template_data.get('name') or template_data.get('patient_name') or ''},", ""]
    for label, key in _BODY_FIELDS:
        value = template_data.get(key)
        if value:
            lines.append(f"{label}: {value}")
    lines.extend(["", f"{template_data.get('hospital_name', '')}"])
    if template_data.get("hospital_phone"):
        lines.append(f"Phone: {template_data['hospital_phone']}")
    return "\n".join(lines) + "\n"


class SmtpEmailSender:
    """Send appointment emails over SMTP (SSL on port 465, STARTTLS otherwise)."""

    def __init__(self, settings: SmtpSettings) -> None:
        self.settings = settings

    def _build_message(self, kind: str, recipient_email: str, template_data: dict[str, Any]) -> EmailMessage:
        hospital_name = template_data.get("hospital_name") or "Hospital"
        message = EmailMessage()
        message["Subject"] = SUBJECTS.get(kind, "Appointment update - {hospital_name}").format(
            hospital_name=hospital_name
        )
        message["From"] = f"{hospital_name} <{self.settings.sender_email}>"
        message["To"] = recipient_email
        message.set_content(render_plain_body(template_data))
        return message

    def send(self, kind: str, recipient_email: str, template_data: dict[str, Any]) -> bool:
        message = self._build_message(kind, recipient_email, template_data)
        settings = self.settings
        try:
            if settings.port == 465:
                server: smtplib.SMTP = smtplib.SMTP_SSL(settings.host, settings.port, timeout=settings.timeout_s)
            else:
                server = smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout_s)
            with server:
                if settings.port != 465:
                    server.starttls()
                server.login(settings.username, settings.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Error sending %s email to %s: %s", kind, recipient_email, exc)
            return False

        logger.info("Appointment %s email sent to %s", kind, recipient_email)
        return True
