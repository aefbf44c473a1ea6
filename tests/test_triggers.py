from __future__ import annotations

from datetime import datetime

import pytest

from appointment_notify.domain.models import CronTick, EventTrigger, WorkflowResult
from appointment_notify.triggers import (
    CANCELLED_EVENT,
    CONFIRMATION_EVENT,
    FOLLOWUP_SCHEDULE,
    REMINDER_SCHEDULE,
    TriggerRouter,
)
from appointment_notify.workflows.runtime import build_router

from conftest import FIXED_NOW, FakeAppointments, build_deps


def test_router_delivers_each_trigger_to_its_workflow() -> None:
    seen = []
    router = TriggerRouter()
    router.register_event("a/b", lambda trigger: seen.append(trigger) or WorkflowResult("a/b", True))

    result = router.deliver(EventTrigger(name="a/b", payload={}))

    assert result.success is True
    assert len(seen) == 1


def test_duplicate_registration_rejected() -> None:
    router = TriggerRouter()
    router.register_schedule("daily", "0 9 * * *", lambda trigger: WorkflowResult("daily", True))

    with pytest.raises(ValueError, match="already has a workflow"):
        router.register_schedule("daily", "0 10 * * *", lambda trigger: WorkflowResult("daily", True))


def test_unknown_trigger_reports_failure() -> None:
    result = TriggerRouter().deliver(EventTrigger(name="appointment/unknown", payload={}))

    assert result.success is False
    assert result.error == "no workflow registered for appointment/unknown"


def test_handler_exception_contained_at_router() -> None:
    router = TriggerRouter()

    def _boom(_trigger):
        raise RuntimeError("unexpected")

    router.register_schedule("daily", "0 9 * * *", _boom)

    result = router.deliver(CronTick(schedule_id="daily", fired_at=FIXED_NOW))

    assert result.success is False
    assert result.batch is True
    assert result.error == "unexpected"


def test_cron_tick_id_is_stable_per_day() -> None:
    first = CronTick(schedule_id=REMINDER_SCHEDULE, fired_at=datetime(2026, 1, 14, 9, 0))
    again = CronTick(schedule_id=REMINDER_SCHEDULE, fired_at=datetime(2026, 1, 14, 9, 20))

    assert first.id == again.id == "appointment-reminder-24h:2026-01-14"
    assert EventTrigger(name="x", payload={}).id != EventTrigger(name="x", payload={}).id


def test_runtime_registers_all_workflows() -> None:
    router = build_router(build_deps())

    assert router.events == sorted(
        [
            "appointment/cancellation",
            "appointment/cancelled",
            "appointment/confirmation",
            "appointment/reschedule",
            "appointment/suggest-followup",
        ]
    )
    assert router.schedules == {REMINDER_SCHEDULE: "0 9 * * *", FOLLOWUP_SCHEDULE: "0 10 * * *"}


def test_runtime_routes_event_and_tick(email_sender) -> None:
    router = build_router(build_deps(email_sender=email_sender, appointments=FakeAppointments()))

    confirmation = router.deliver(
        EventTrigger(
            name=CONFIRMATION_EVENT,
            payload={"to": "asha@example.com", "appointmentDetails": {"date": "2026-01-15"}},
        )
    )
    waitlist = router.deliver(EventTrigger(name=CANCELLED_EVENT, payload={"cancelledAppointment": {}}))
    reminders = router.deliver(CronTick(schedule_id=REMINDER_SCHEDULE, fired_at=FIXED_NOW))

    assert confirmation.success is True
    assert email_sender.calls[0]["kind"] == "confirmation"
    assert waitlist.success is True
    assert reminders.success is True
    assert reminders.appointments_processed == 0
