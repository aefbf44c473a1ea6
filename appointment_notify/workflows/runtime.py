"""Wire every workflow to the trigger that starts it."""

from __future__ import annotations

from functools import partial

from appointment_notify.triggers import (
    CANCELLATION_EVENT,
    CANCELLED_EVENT,
    CONFIRMATION_EVENT,
    FOLLOWUP_CRON,
    FOLLOWUP_SCHEDULE,
    REMINDER_CRON,
    REMINDER_SCHEDULE,
    RESCHEDULE_EVENT,
    SUGGEST_FOLLOWUP_EVENT,
    TriggerRouter,
)
from appointment_notify.workflows.context import WorkflowDeps
from appointment_notify.workflows.dispatch import (
    run_cancellation_workflow,
    run_confirmation_workflow,
    run_reschedule_workflow,
)
from appointment_notify.workflows.followups import run_followup_workflow
from appointment_notify.workflows.reminders import run_reminder_workflow
from appointment_notify.workflows.suggestions import run_suggestion_workflow
from appointment_notify.workflows.waitlist import run_waitlist_workflow


def build_router(deps: WorkflowDeps) -> TriggerRouter:
    router = TriggerRouter()
    router.register_event(CONFIRMATION_EVENT, partial(run_confirmation_workflow, deps))
    router.register_event(CANCELLATION_EVENT, partial(run_cancellation_workflow, deps))
    router.register_event(RESCHEDULE_EVENT, partial(run_reschedule_workflow, deps))
    router.register_event(SUGGEST_FOLLOWUP_EVENT, partial(run_suggestion_workflow, deps))
    router.register_event(CANCELLED_EVENT, partial(run_waitlist_workflow, deps))
    router.register_schedule(REMINDER_SCHEDULE, REMINDER_CRON, partial(run_reminder_workflow, deps))
    router.register_schedule(FOLLOWUP_SCHEDULE, FOLLOWUP_CRON, partial(run_followup_workflow, deps))
    return router
