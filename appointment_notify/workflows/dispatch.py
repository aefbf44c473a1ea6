"""Single-recipient appointment emails triggered by booking events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from appointment_notify.domain.errors import TransportError
from appointment_notify.domain.models import (
    ChannelAttempt,
    EmailKind,
    EventTrigger,
    NotificationOutcome,
    OutcomeStatus,
    WorkflowResult,
)
from appointment_notify.notifications.messages import (
    build_template_data,
    format_appointment_message,
    format_long_date,
)
from appointment_notify.triggers import (
    CANCELLATION_EVENT,
    CONFIRMATION_EVENT,
    RESCHEDULE_EVENT,
    parse_event_payload,
    parse_when,
    snake_case_keys,
)
from appointment_notify.workflows.context import WorkflowDeps, load_hospital_context
from appointment_notify.workflows.steps import StepRunner

logger = logging.getLogger(__name__)

RETRIES = 2


@dataclass(frozen=True, slots=True)
class EmailRoute:
    event: str
    kind: str
    step_name: str


CONFIRMATION = EmailRoute(CONFIRMATION_EVENT, EmailKind.CONFIRMATION, "send-confirmation-email")
CANCELLATION = EmailRoute(CANCELLATION_EVENT, EmailKind.CANCELLATION, "send-cancellation-email")
RESCHEDULE = EmailRoute(RESCHEDULE_EVENT, EmailKind.RESCHEDULE, "send-reschedule-email")


def _require_delivered(attempt: ChannelAttempt, what: str) -> ChannelAttempt:
    if attempt.status == OutcomeStatus.FAILED:
        raise TransportError(f"Failed to send {what}: {attempt.error}")
    return attempt


def _appointment_details(raw: Any) -> dict[str, Any]:
    details = snake_case_keys(raw) if isinstance(raw, dict) else {}
    details["date"] = parse_when(details.get("date"))
    return details


def _send_confirmation_message(
    deps: WorkflowDeps,
    runner: StepRunner,
    trigger: EventTrigger,
    *,
    phone: str,
    name: str,
    details: dict[str, Any],
    hospital_name: str,
    hospital_phone: str,
) -> dict[str, Any]:
    text = format_appointment_message(
        patient_name=details.get("patient_name") or name,
        date=format_long_date(details.get("date"), deps.timezone),
        time=str(details.get("time") or ""),
        type=str(details.get("type") or ""),
        doctor_name=str(details.get("doctor_name") or ""),
        department=str(details.get("department") or ""),
        hospital_name=hospital_name,
        hospital_phone=hospital_phone,
    )
    result = runner.run(
        "send-confirmation-message",
        lambda: _require_delivered(
            deps.dispatcher.send_message(phone, text, trigger_id=trigger.id, recipient_key=phone),
            "appointment confirmation message",
        ),
    )
    if result.ok:
        return result.value.to_dict()
    return {
        "channel": "message",
        "status": OutcomeStatus.FAILED,
        "to": deps.dispatcher.normalize(phone) or phone,
        "error": str(result.error),
    }


def run_email_dispatch(route: EmailRoute, deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    """Send one appointment email, retrying the send step on failure."""
    runner = deps.runner(route.event, RETRIES, trigger.id)
    try:
        payload = parse_event_payload(route.event, trigger.payload)
        to = str(payload["to"])
        name = payload.get("name")
        details = _appointment_details(payload["appointment_details"])

        hospital = load_hospital_context(runner, deps.hospital)
        template_data = build_template_data(details, hospital, name=name, tz=deps.timezone)

        attempt = runner.run(
            route.step_name,
            lambda: _require_delivered(
                deps.dispatcher.send_email(route.kind, to, template_data, trigger_id=trigger.id, recipient_key=to),
                f"appointment {route.kind} email",
            ),
        ).unwrap()
    except Exception as exc:
        logger.error("Error sending appointment %s email: %s", route.kind, exc)
        return WorkflowResult.failed(route.event, str(exc))

    data: dict[str, Any] = {"to": to, "type": route.kind}
    phone = payload.get("phone")
    if route is CONFIRMATION and phone:
        data["message"] = _send_confirmation_message(
            deps,
            runner,
            trigger,
            phone=str(phone),
            name=name or "",
            details=details,
            hospital_name=hospital.name,
            hospital_phone=hospital.phone,
        )

    outcome = NotificationOutcome(
        recipient_key=to,
        recipient_name=name or str(details.get("patient_name") or ""),
        status=attempt.status,
        channels=[attempt],
    )
    return WorkflowResult(workflow=route.event, success=True, processed=1, outcomes=[outcome], data=data)


def run_confirmation_workflow(deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    return run_email_dispatch(CONFIRMATION, deps, trigger)


def run_cancellation_workflow(deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    return run_email_dispatch(CANCELLATION, deps, trigger)


def run_reschedule_workflow(deps: WorkflowDeps, trigger: EventTrigger) -> WorkflowResult:
    return run_email_dispatch(RESCHEDULE, deps, trigger)
