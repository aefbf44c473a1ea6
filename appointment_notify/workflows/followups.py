"""Daily follow-up email for appointments completed yesterday."""

from __future__ import annotations

import logging

from appointment_notify.domain.models import (
    AppointmentSnapshot,
    CronTick,
    EmailKind,
    NotificationOutcome,
    OutcomeStatus,
    WorkflowResult,
)
from appointment_notify.notifications.messages import appointment_details, build_template_data
from appointment_notify.triggers import FOLLOWUP_SCHEDULE
from appointment_notify.workflows.batch import run_batch
from appointment_notify.workflows.context import WorkflowDeps, finish_batch, load_hospital_context
from appointment_notify.workflows.resolver import RecipientResolver
from appointment_notify.utils.windows import day_window

logger = logging.getLogger(__name__)

WORKFLOW = FOLLOWUP_SCHEDULE
RETRIES = 2


def run_followup_workflow(deps: WorkflowDeps, trigger: CronTick | None = None) -> WorkflowResult:
    tick = trigger or CronTick(schedule_id=WORKFLOW, fired_at=deps.now())
    runner = deps.runner(WORKFLOW, RETRIES, tick.id)
    reference = deps.localize(tick.fired_at)

    try:
        start, end = day_window(reference, -1)
        appointments = runner.run(
            "get-completed-appointments",
            lambda: deps.appointments.find_completed_in_range(start, end),
        ).unwrap()
        logger.info("Found %s completed appointments for follow-up", len(appointments))

        hospital = load_hospital_context(runner, deps.hospital)
        resolver = RecipientResolver(deps.patients)

        def _follow_up(appointment: AppointmentSnapshot) -> NotificationOutcome | None:
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
            if not patient.email:
                return NotificationOutcome(
                    recipient_key=appointment.id,
                    recipient_name=patient.name,
                    status=OutcomeStatus.SKIPPED,
                    reason="no_email",
                )

            attempt = deps.dispatcher.send_email(
                EmailKind.FOLLOWUP,
                patient.email,
                build_template_data(
                    appointment_details(appointment, patient),
                    hospital,
                    name=patient.name,
                    tz=deps.timezone,
                ),
                trigger_id=tick.id,
                recipient_key=appointment.id,
            )
            failed = attempt.status == OutcomeStatus.FAILED
            return NotificationOutcome(
                recipient_key=appointment.id,
                recipient_name=patient.name,
                status=OutcomeStatus.FAILED if failed else OutcomeStatus.SENT,
                error=attempt.error if failed else None,
                channels=[attempt],
            )

        outcomes = runner.run(
            "send-followups",
            lambda: run_batch(
                appointments,
                _follow_up,
                key_fn=lambda appointment: appointment.id,
                max_workers=deps.batch_workers,
                cancel_event=deps.cancel_event,
            ),
        ).unwrap()
        return finish_batch(WORKFLOW, deps, outcomes, total=len(appointments), reference=reference)
    except Exception as exc:
        logger.error("Error in appointment follow-up workflow: %s", exc)
        return WorkflowResult.failed(WORKFLOW, str(exc), batch=True)
