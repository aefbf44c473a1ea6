"""Daily reminder for appointments confirmed for tomorrow."""

from __future__ import annotations

import logging

from appointment_notify.domain.models import (
    AppointmentSnapshot,
    Channel,
    ChannelAttempt,
    CronTick,
    EmailKind,
    NotificationOutcome,
    OutcomeStatus,
    WorkflowResult,
)
from appointment_notify.notifications.messages import (
    appointment_details,
    build_template_data,
    format_long_date,
    format_reminder_message,
)
from appointment_notify.triggers import REMINDER_SCHEDULE
from appointment_notify.workflows.batch import run_batch
from appointment_notify.workflows.context import (
    OutcomePolicy,
    WorkflowDeps,
    finish_batch,
    load_hospital_context,
)
from appointment_notify.workflows.resolver import RecipientResolver
from appointment_notify.utils.windows import day_window

logger = logging.getLogger(__name__)

WORKFLOW = REMINDER_SCHEDULE
RETRIES = 2


def reminder_status(channels: list[ChannelAttempt], policy: str) -> tuple[str, str | None]:
    """Collapse per-channel attempts into the appointment-level status."""
    errors = [f"{attempt.channel}: {attempt.error}" for attempt in channels if attempt.status == OutcomeStatus.FAILED]
    if policy == OutcomePolicy.ANY_CHANNEL_SUCCEEDED:
        if any(attempt.status != OutcomeStatus.FAILED for attempt in channels):
            return OutcomeStatus.SENT, None
        return OutcomeStatus.FAILED, "; ".join(errors) or None
    return OutcomeStatus.SENT, None


def run_reminder_workflow(deps: WorkflowDeps, trigger: CronTick | None = None) -> WorkflowResult:
    tick = trigger or CronTick(schedule_id=WORKFLOW, fired_at=deps.now())
    runner = deps.runner(WORKFLOW, RETRIES, tick.id)
    reference = deps.localize(tick.fired_at)

    try:
        start, end = day_window(reference, 1)
        appointments = runner.run(
            "get-upcoming-appointments",
            lambda: deps.appointments.find_confirmed_in_range(start, end),
        ).unwrap()
        logger.info("Found %s appointments for tomorrow", len(appointments))

        hospital = load_hospital_context(runner, deps.hospital)
        resolver = RecipientResolver(deps.patients)
        dispatcher = deps.dispatcher

        def _remind(appointment: AppointmentSnapshot) -> NotificationOutcome | None:
            patient = resolver.resolve(appointment)
            if patient is None:
                if not deps.record_unresolved:
                    return None
                return NotificationOutcome(
                    recipient_key=appointment.id,
                    recipient_name="",
                    status=OutcomeStatus.SKIPPED,
                    reason="no_patient",
                )

            available = dispatcher.channels_for(patient)
            if not available:
                return NotificationOutcome(
                    recipient_key=appointment.id,
                    recipient_name=patient.name,
                    status=OutcomeStatus.SKIPPED,
                    reason="no_channel",
                )

            channels: list[ChannelAttempt] = []
            if Channel.EMAIL in available:
                template_data = build_template_data(
                    appointment_details(appointment, patient),
                    hospital,
                    name=patient.name,
                    tz=deps.timezone,
                )
                channels.append(
                    dispatcher.send_email(
                        EmailKind.REMINDER,
                        patient.email,
                        template_data,
                        trigger_id=tick.id,
                        recipient_key=appointment.id,
                    )
                )
            if Channel.MESSAGE in available:
                text = format_reminder_message(
                    patient_name=patient.name,
                    date=format_long_date(appointment.date, deps.timezone),
                    time=appointment.time,
                    type=appointment.type,
                    doctor_name=appointment.doctor_name or "",
                    hospital_name=hospital.name,
                    hospital_phone=hospital.phone,
                )
                channels.append(
                    dispatcher.send_message(
                        patient.phone,
                        text,
                        trigger_id=tick.id,
                        recipient_key=appointment.id,
                    )
                )

            status, error = reminder_status(channels, deps.reminder_policy)
            return NotificationOutcome(
                recipient_key=appointment.id,
                recipient_name=patient.name,
                status=status,
                error=error,
                channels=channels,
            )

        outcomes = runner.run(
            "send-reminders",
            lambda: run_batch(
                appointments,
                _remind,
                key_fn=lambda appointment: appointment.id,
                max_workers=deps.batch_workers,
                cancel_event=deps.cancel_event,
            ),
        ).unwrap()
        return finish_batch(WORKFLOW, deps, outcomes, total=len(appointments), reference=reference)
    except Exception as exc:
        logger.error("Error in appointment reminder workflow: %s", exc)
        return WorkflowResult.failed(WORKFLOW, str(exc), batch=True)
