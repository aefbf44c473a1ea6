"""Build workflow dependencies from configuration and run triggers."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from appointment_notify.adapters.console_senders import ConsoleEmailSender, ConsoleMessageSender
from appointment_notify.adapters.json_store import JsonClinicStore
from appointment_notify.adapters.smtp_email import SmtpEmailSender
from appointment_notify.adapters.whatsapp import WhatsAppCloudSender
from appointment_notify.domain.models import CronTick, EventTrigger, WorkflowResult
from appointment_notify.domain.ports import EmailSender, MessageSender
from appointment_notify.jobs.config import NotifyConfig, resolve_config
from appointment_notify.notifications.dispatcher import NotificationDispatcher
from appointment_notify.triggers import TriggerRouter
from appointment_notify.utils.idempotency import IdempotencyStore
from appointment_notify.workflows.context import WorkflowDeps
from appointment_notify.workflows.runtime import build_router
from appointment_notify.workflows.steps import retrying_runner_factory

logger = logging.getLogger(__name__)


def _email_sender(config: NotifyConfig) -> EmailSender:
    if config.email_transport == "smtp" and config.smtp is not None:
        return SmtpEmailSender(config.smtp)
    return ConsoleEmailSender()


def _message_sender(config: NotifyConfig) -> MessageSender:
    if config.message_transport == "whatsapp" and config.whatsapp is not None:
        return WhatsAppCloudSender(config.whatsapp)
    return ConsoleMessageSender()


def build_deps(
    config: NotifyConfig,
    *,
    email_sender: EmailSender | None = None,
    message_sender: MessageSender | None = None,
) -> WorkflowDeps:
    store = JsonClinicStore(config.data_path, tz=config.timezone)
    dedup_store = (
        IdempotencyStore(config.dedup_store_path, ttl_s=config.dedup_ttl_s)
        if config.dedup_store_path is not None
        else None
    )
    dispatcher = NotificationDispatcher(
        email_sender or _email_sender(config),
        message_sender or _message_sender(config),
        timeout_s=config.channel_timeout_s,
        country_code=config.country_code,
        dedup_store=dedup_store,
    )
    return WorkflowDeps(
        appointments=store,
        patients=store,
        hospital=store,
        dispatcher=dispatcher,
        step_runner_factory=retrying_runner_factory(config.retry_delay_s),
        batch_workers=config.batch_workers,
        reminder_policy=config.reminder_policy,
        artifacts_dir=config.artifacts_dir,
        timezone=config.timezone,
    )


def build_runtime(config: NotifyConfig | None = None, **sender_overrides: Any) -> TriggerRouter:
    return build_router(build_deps(config or resolve_config(), **sender_overrides))


def run_schedule(
    schedule_id: str,
    *,
    fired_at: datetime | None = None,
    router: TriggerRouter | None = None,
) -> WorkflowResult:
    """Deliver one cron tick; used by the scheduler jobs and manual runs."""
    config = None if router is not None else resolve_config()
    router = router or build_runtime(config)
    if fired_at is None:
        tz = config.timezone if config is not None else None
        fired_at = datetime.now(tz=tz) if tz is not None else datetime.now().astimezone()
    result = router.deliver(CronTick(schedule_id=schedule_id, fired_at=fired_at))
    logger.info(
        "Schedule %s finished: success=%s processed=%s error=%s",
        schedule_id,
        result.success,
        result.processed,
        result.error,
    )
    return result


def emit_event(
    name: str,
    payload: dict[str, Any],
    *,
    event_id: str | None = None,
    router: TriggerRouter | None = None,
) -> WorkflowResult:
    """Deliver one event; ``event_id`` keys deduplication across redeliveries."""
    router = router or build_runtime()
    if event_id:
        trigger = EventTrigger(name=name, payload=payload, id=event_id)
    else:
        trigger = EventTrigger(name=name, payload=payload)
    result = router.deliver(trigger)
    logger.info("Event %s finished: success=%s error=%s", name, result.success, result.error)
    return result
