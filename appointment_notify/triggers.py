"""Trigger names, payload contracts and routing of triggers to workflows."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any, Callable

from appointment_notify.domain.errors import PayloadError
from appointment_notify.domain.models import CronTick, EventTrigger, Trigger, WorkflowResult

logger = logging.getLogger(__name__)

CONFIRMATION_EVENT = "appointment/confirmation"
CANCELLATION_EVENT = "appointment/cancellation"
RESCHEDULE_EVENT = "appointment/reschedule"
SUGGEST_FOLLOWUP_EVENT = "appointment/suggest-followup"
CANCELLED_EVENT = "appointment/cancelled"

REMINDER_SCHEDULE = "appointment-reminder-24h"
FOLLOWUP_SCHEDULE = "appointment-followup"
REMINDER_CRON = "0 9 * * *"
FOLLOWUP_CRON = "0 10 * * *"

EVENT_FIELDS: dict[str, tuple[str, ...]] = {
    CONFIRMATION_EVENT: ("to", "appointmentDetails"),
    CANCELLATION_EVENT: ("to", "appointmentDetails"),
    RESCHEDULE_EVENT: ("to", "appointmentDetails"),
    SUGGEST_FOLLOWUP_EVENT: ("patientId", "appointmentType", "completedDate"),
    CANCELLED_EVENT: ("cancelledAppointment",),
}

Handler = Callable[[Trigger], WorkflowResult]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case_keys(payload: dict[str, Any]) -> dict[str, Any]:
    return {_CAMEL_BOUNDARY.sub("_", key).lower(): value for key, value in payload.items()}


def parse_event_payload(name: str, payload: Any) -> dict[str, Any]:
    """Validate an event payload and return it with snake_case keys."""
    if not isinstance(payload, dict):
        raise PayloadError(f"{name} payload must be an object")
    missing = [key for key in EVENT_FIELDS.get(name, ()) if payload.get(key) in (None, "")]
    if missing:
        raise PayloadError(f"{name} payload missing required field(s): {', '.join(missing)}")
    return snake_case_keys(payload)


def parse_when(value: Any) -> datetime | date | Any:
    """Parse ISO-8601 date/datetime strings; other values are returned unchanged."""
    if not isinstance(value, str):
        return value
    text = value.strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return value


class TriggerRouter:
    """Deliver each trigger to exactly one registered workflow."""

    def __init__(self) -> None:
        self._events: dict[str, Handler] = {}
        self._schedules: dict[str, tuple[str, Handler]] = {}

    def register_event(self, name: str, handler: Handler) -> None:
        if name in self._events:
            raise ValueError(f"Event {name!r} already has a workflow")
        self._events[name] = handler

    def register_schedule(self, schedule_id: str, cron: str, handler: Handler) -> None:
        if schedule_id in self._schedules:
            raise ValueError(f"Schedule {schedule_id!r} already has a workflow")
        self._schedules[schedule_id] = (cron, handler)

    @property
    def events(self) -> list[str]:
        return sorted(self._events)

    @property
    def schedules(self) -> dict[str, str]:
        return {schedule_id: cron for schedule_id, (cron, _handler) in self._schedules.items()}

    def _handler_for(self, trigger: Trigger) -> tuple[str, Handler | None]:
        if isinstance(trigger, EventTrigger):
            return trigger.name, self._events.get(trigger.name)
        entry = self._schedules.get(trigger.schedule_id)
        return trigger.schedule_id, entry[1] if entry else None

    def deliver(self, trigger: Trigger) -> WorkflowResult:
        name, handler = self._handler_for(trigger)
        if handler is None:
            logger.error("No workflow registered for trigger %s", name)
            return WorkflowResult.failed(name, f"no workflow registered for {name}")

        logger.info("Delivering trigger %s (id=%s)", name, trigger.id)
        try:
            return handler(trigger)
        except Exception as exc:  # workflows report failures; this guards the host boundary
            logger.exception("Workflow for %s raised past its boundary", name)
            return WorkflowResult.failed(name, str(exc), batch=isinstance(trigger, CronTick))
