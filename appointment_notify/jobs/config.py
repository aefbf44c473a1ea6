"""Environment-driven runtime configuration."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from appointment_notify.adapters.smtp_email import SmtpSettings
from appointment_notify.adapters.whatsapp import DEFAULT_API_BASE, DEFAULT_API_VERSION, WhatsAppSettings
from appointment_notify.domain.errors import ConfigError
from appointment_notify.workflows.context import OutcomePolicy

logger = logging.getLogger(__name__)

EMAIL_TRANSPORTS = ("console", "smtp")
MESSAGE_TRANSPORTS = ("console", "whatsapp")
REMINDER_POLICIES = (OutcomePolicy.ATTEMPTED, OutcomePolicy.ANY_CHANNEL_SUCCEEDED)


@dataclass(slots=True)
class NotifyConfig:
    timezone: ZoneInfo | None
    data_path: Path
    email_transport: str = "console"
    message_transport: str = "console"
    channel_timeout_s: float = 5.0
    batch_workers: int = 4
    country_code: str = "+91"
    reminder_policy: str = OutcomePolicy.ATTEMPTED
    dedup_store_path: Path | None = None
    dedup_ttl_s: float = 86400.0
    artifacts_dir: Path | None = None
    retry_delay_s: float = 0.5
    smtp: SmtpSettings | None = None
    whatsapp: WhatsAppSettings | None = None


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _number(name: str, default: str, cast: type[int] | type[float]) -> int | float:
    raw = _env(name, default)
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value < 0:
        raise ConfigError(f"{name} must be >= 0, got {raw!r}")
    return value


def _channel_timeout() -> float:
    timeout = float(_number("NOTIFY_CHANNEL_TIMEOUT_SECONDS", "5", float))
    if timeout == 0:
        raise ConfigError("NOTIFY_CHANNEL_TIMEOUT_SECONDS must be > 0")
    return timeout


def _choice(name: str, default: str, choices: tuple[str, ...]) -> str:
    value = _env(name, default).lower()
    if value not in choices:
        raise ConfigError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def _optional_path(name: str) -> Path | None:
    raw = _env(name)
    return Path(raw) if raw else None


def resolve_timezone() -> ZoneInfo | None:
    """Return the pinned IANA timezone, or None to follow the host's local time."""
    name = _env("NOTIFY_TIMEZONE")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigError(f"NOTIFY_TIMEZONE is not a known timezone: {name!r}") from exc


def _smtp_settings() -> SmtpSettings:
    missing = [
        key
        for key in ("SMTP_HOST", "SMTP_PORT", "SMTP_USERNAME", "SMTP_PASSWORD", "SMTP_SENDER_EMAIL")
        if not _env(key)
    ]
    if missing:
        raise ConfigError(f"Missing email configuration: {', '.join(missing)}")
    return SmtpSettings(
        host=_env("SMTP_HOST"),
        port=int(_number("SMTP_PORT", "587", int)),
        username=_env("SMTP_USERNAME"),
        password=_env("SMTP_PASSWORD"),
        sender_email=_env("SMTP_SENDER_EMAIL"),
    )


def _whatsapp_settings() -> WhatsAppSettings:
    missing = [key for key in ("WHATSAPP_TOKEN", "WHATSAPP_PHONE_NUMBER_ID") if not _env(key)]
    if missing:
        raise ConfigError(f"Missing WhatsApp configuration: {', '.join(missing)}")
    return WhatsAppSettings(
        token=_env("WHATSAPP_TOKEN"),
        phone_number_id=_env("WHATSAPP_PHONE_NUMBER_ID"),
        api_base=_env("WHATSAPP_API_BASE", DEFAULT_API_BASE),
        api_version=_env("WHATSAPP_API_VERSION", DEFAULT_API_VERSION),
    )


def resolve_config() -> NotifyConfig:
    email_transport = _choice("NOTIFY_EMAIL_TRANSPORT", "console", EMAIL_TRANSPORTS)
    message_transport = _choice("NOTIFY_MESSAGE_TRANSPORT", "console", MESSAGE_TRANSPORTS)
    config = NotifyConfig(
        timezone=resolve_timezone(),
        data_path=Path(_env("NOTIFY_DATA_PATH", "state/clinic.json")),
        email_transport=email_transport,
        message_transport=message_transport,
        channel_timeout_s=_channel_timeout(),
        batch_workers=max(1, int(_number("NOTIFY_BATCH_WORKERS", "4", int))),
        country_code=_env("NOTIFY_COUNTRY_CODE", "+91"),
        reminder_policy=_choice("NOTIFY_REMINDER_POLICY", OutcomePolicy.ATTEMPTED, REMINDER_POLICIES),
        dedup_store_path=_optional_path("NOTIFY_DEDUP_STORE_PATH"),
        dedup_ttl_s=float(_number("NOTIFY_DEDUP_TTL_SECONDS", "86400", float)),
        artifacts_dir=_optional_path("NOTIFY_ARTIFACT_ROOT"),
        retry_delay_s=float(_number("NOTIFY_RETRY_DELAY_SECONDS", "0.5", float)),
        smtp=_smtp_settings() if email_transport == "smtp" else None,
        whatsapp=_whatsapp_settings() if message_transport == "whatsapp" else None,
    )
    logger.info(
        "Resolved config (timezone=%s, email=%s, message=%s, workers=%s, policy=%s)",
        config.timezone.key if config.timezone else "host-local",
        config.email_transport,
        config.message_transport,
        config.batch_workers,
        config.reminder_policy,
    )
    return config
