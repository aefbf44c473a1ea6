from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path

import pytest

from appointment_notify.jobs.config import NotifyConfig
from appointment_notify.jobs.tasks import build_runtime, run_schedule
from appointment_notify.triggers import REMINDER_SCHEDULE

from conftest import IST, RecordingEmailSender, RecordingMessageSender


@pytest.mark.e2e
def test_reminder_batch_through_json_store_and_router(tmp_path: Path) -> None:
    data_path = tmp_path / "clinic.json"
    data_path.write_text(
        json.dumps(
            {
                "hospital": {"name": "City Care", "phone": "080-1234"},
                "patients": [
                    {"id": "PA", "name": "Alice", "email": "alice@example.com"},
                    {"id": "PB", "name": "Bala", "phone": "9123456780"},
                ],
                "appointments": [
                    {"id": "A1", "date": "2026-01-14T18:30:00.000Z", "time": "12:00 AM", "type": "Follow-up", "status": "Confirmed", "patientId": "PA"},
                    {"id": "A2", "date": "2026-01-15T15:30:00", "time": "03:30 PM", "type": "Specialist", "status": "Confirmed", "patientPhone": "9123456780"},
                    {"id": "A3", "date": "2026-01-15", "status": "Cancelled", "patientId": "PA"},
                ],
            }
        ),
        encoding="utf-8",
    )
    email_sender = RecordingEmailSender()
    message_sender = RecordingMessageSender()
    config = NotifyConfig(
        timezone=IST,
        data_path=data_path,
        batch_workers=2,
        retry_delay_s=0.0,
        dedup_store_path=tmp_path / "state" / "dedup.json",
        artifacts_dir=tmp_path / "artifacts",
    )
    router = build_runtime(config, email_sender=email_sender, message_sender=message_sender)
    fired_at = datetime(2026, 1, 14, 9, 0, tzinfo=IST)

    result = run_schedule(REMINDER_SCHEDULE, fired_at=fired_at, router=router)
    rerun = run_schedule(REMINDER_SCHEDULE, fired_at=fired_at, router=router)

    assert result.success is True
    assert result.appointments_processed == 2
    assert [outcome.recipient_key for outcome in result.outcomes] == ["A1", "A2"]
    assert [call["to"] for call in email_sender.calls] == ["alice@example.com"]
    assert email_sender.calls[0]["data"]["date"] == "Thursday, 15 January 2026"
    assert [call["phone"] for call in message_sender.calls] == ["+919123456780"]
    assert "Hello Bala," in message_sender.calls[0]["text"]
    assert result.data["summary"]["sent"] == 2
    assert Path(result.data["triage_json"]).exists()

    assert rerun.success is True
    assert len(email_sender.calls) == 1
    assert len(message_sender.calls) == 1
