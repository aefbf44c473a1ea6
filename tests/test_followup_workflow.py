from __future__ import annotations

from datetime import datetime

from appointment_notify.domain.models import CronTick, PatientSnapshot
from appointment_notify.triggers import FOLLOWUP_SCHEDULE
from appointment_notify.workflows.followups import run_followup_workflow

from conftest import (
    FIXED_NOW,
    IST,
    FakeAppointments,
    RecordingEmailSender,
    build_deps,
    make_appointment,
    raising,
)


def _tick() -> CronTick:
    return CronTick(schedule_id=FOLLOWUP_SCHEDULE, fired_at=FIXED_NOW.replace(hour=10))


def test_queries_yesterday_completed_and_emails_patients(email_sender, message_sender) -> None:
    patient = PatientSnapshot(id="p1", name="Asha", email="asha@example.com", phone="9876543210")
    appointments = FakeAppointments(completed=[make_appointment("a1", day=13, status="Completed", patient=patient)])
    deps = build_deps(appointments=appointments, email_sender=email_sender, message_sender=message_sender)

    result = run_followup_workflow(deps, _tick())

    kind, start, end = appointments.calls[0]
    assert kind == "completed"
    assert start == datetime(2026, 1, 13, tzinfo=IST)
    assert end.date() == start.date()
    assert result.success is True
    assert result.appointments_processed == 1
    assert email_sender.calls[0]["kind"] == "followup"
    assert email_sender.calls[0]["data"]["name"] == "Asha"
    assert message_sender.calls == []


def test_patients_without_email_are_skipped(email_sender) -> None:
    deps = build_deps(
        appointments=FakeAppointments(
            completed=[
                make_appointment("a1", day=13, patient=PatientSnapshot(id="p1", name="Ravi", phone="9876543210")),
                make_appointment("a2", day=13),
            ]
        ),
        email_sender=email_sender,
    )

    result = run_followup_workflow(deps, _tick())

    assert [(o.status, o.reason) for o in result.outcomes] == [("skipped", "no_email"), ("skipped", "no_patient")]
    assert email_sender.calls == []


def test_failed_send_isolated_to_its_patient() -> None:
    asha = PatientSnapshot(id="p1", name="Asha", email="asha@example.com")
    ravi = PatientSnapshot(id="p2", name="Ravi", email="ravi@example.com")

    def _behavior(to: str) -> bool:
        if to == "asha@example.com":
            return raising("mailbox full")(to)
        return True

    email_sender = RecordingEmailSender(behavior=_behavior)
    deps = build_deps(
        appointments=FakeAppointments(
            completed=[make_appointment("a1", day=13, patient=asha), make_appointment("a2", day=13, patient=ravi)]
        ),
        email_sender=email_sender,
    )

    result = run_followup_workflow(deps, _tick())

    assert [o.status for o in result.outcomes] == ["failed", "sent"]
    assert result.outcomes[0].error == "mailbox full"
    assert result.data["summary"]["failed"] == {"total": 1, "reasons": {"mailbox full": 1}}


def test_query_failure_reported_as_failed_run() -> None:
    appointments = FakeAppointments(error=TimeoutError("query timed out"))

    result = run_followup_workflow(build_deps(appointments=appointments), _tick())

    assert len(appointments.calls) == 3
    assert result.success is False
    assert result.error == "query timed out"
