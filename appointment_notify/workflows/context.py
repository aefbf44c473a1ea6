"""Dependencies and helpers shared by every workflow."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from pathlib import Path
from typing import Callable

from appointment_notify.domain.models import HospitalContext, NotificationOutcome, WorkflowResult
from appointment_notify.domain.ports import (
    AppointmentRepository,
    HospitalSettingsProvider,
    PatientRepository,
    SuggestionSink,
    WaitlistStrategy,
)
from appointment_notify.notifications.dispatcher import NotificationDispatcher
from appointment_notify.reporting.summary import compute_summary
from appointment_notify.reporting.triage import write_triage_outputs
from appointment_notify.workflows.steps import StepRunner, StepRunnerFactory, retrying_runner_factory
from appointment_notify.utils.windows import local_now

logger = logging.getLogger(__name__)


class OutcomePolicy:
    # "sent" once every available channel was attempted, whatever the result
    ATTEMPTED = "attempted"
    # "sent" only when at least one channel succeeded, otherwise "failed"
    ANY_CHANNEL_SUCCEEDED = "any_channel"


REMINDER_OUTCOME_POLICY = OutcomePolicy.ATTEMPTED


@dataclass(slots=True)
class WorkflowDeps:
    appointments: AppointmentRepository
    patients: PatientRepository
    hospital: HospitalSettingsProvider
    dispatcher: NotificationDispatcher
    suggestion_sink: SuggestionSink | None = None
    waitlist: WaitlistStrategy | None = None
    step_runner_factory: StepRunnerFactory = field(default_factory=retrying_runner_factory)
    batch_workers: int = 1
    reminder_policy: str = REMINDER_OUTCOME_POLICY
    record_unresolved: bool = True
    artifacts_dir: Path | None = None
    timezone: tzinfo | None = None
    clock: Callable[[tzinfo | None], datetime] = local_now
    cancel_event: threading.Event | None = None

    def runner(self, workflow: str, retries: int, run_id: str) -> StepRunner:
        return self.step_runner_factory(workflow, retries, run_id)

    def now(self) -> datetime:
        return self.clock(self.timezone)

    def localize(self, moment: datetime) -> datetime:
        """Express ``moment`` in the configured timezone (host local when unset)."""
        if self.timezone is not None:
            if moment.tzinfo is None:
                return moment.replace(tzinfo=self.timezone)
            return moment.astimezone(self.timezone)
        return moment.astimezone()


def load_hospital_context(runner: StepRunner, provider: HospitalSettingsProvider) -> HospitalContext:
    """Read hospital settings once per run; missing or unreadable settings use defaults."""
    result = runner.run("load-hospital-context", provider.get)
    if not result.ok:
        logger.warning("Hospital settings unavailable, using defaults: %s", result.error)
        return HospitalContext.default()
    return result.value or HospitalContext.default()


def finish_batch(
    workflow: str,
    deps: WorkflowDeps,
    outcomes: list[NotificationOutcome],
    *,
    total: int,
    reference: datetime,
) -> WorkflowResult:
    summary = compute_summary(outcomes, total_appointments=total)
    data: dict[str, object] = {"summary": summary}
    if deps.artifacts_dir is not None:
        json_path, md_path = write_triage_outputs(
            artifacts_dir=deps.artifacts_dir,
            workflow=workflow,
            summary=summary,
            outcomes=outcomes,
            report_date=reference.date(),
        )
        data.update({"triage_json": str(json_path), "triage_md": str(md_path)})

    logger.info(
        "Workflow %s completed: processed=%s sent=%s skipped=%s failed=%s",
        workflow,
        total,
        summary["sent"],
        summary["skipped"]["total"],
        summary["failed"]["total"],
    )
    return WorkflowResult(
        workflow=workflow,
        success=True,
        processed=total,
        outcomes=outcomes,
        data=data,
        batch=True,
    )
