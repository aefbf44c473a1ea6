from __future__ import annotations

import time
from datetime import datetime
from typing import Any, Callable
from zoneinfo import ZoneInfo

import pytest

from appointment_notify.domain.models import AppointmentSnapshot, HospitalContext, PatientSnapshot
from appointment_notify.notifications.dispatcher import NotificationDispatcher
from appointment_notify.workflows.context import WorkflowDeps


IST = ZoneInfo("Asia/Kolkata")
FIXED_NOW = datetime(2026, 1, 14, 9, 0, tzinfo=IST)


def make_appointment(
    appointment_id: str,
    *,
    day: int = 15,
    status: str = "Confirmed",
    patient: PatientSnapshot | None = None,
    patient_phone: str | None = None,
    **overrides: Any,
) -> AppointmentSnapshot:
    values: dict[str, Any] = {
        "id": appointment_id,
        "date": datetime(2026, 1, day, tzinfo=IST),
        "time": "10:30 AM",
        "type": "General Consultation",
        "status": status,
        "doctor_name": "Dr. Rao",
        "department": "Cardiology",
        "patient_id": patient.id if patient else None,
        "patient_phone": patient_phone,
        "patient": patient,
    }
    values.update(overrides)
    return AppointmentSnapshot(**values)


class FakeAppointments:
    def __init__(
        self,
        confirmed: list[AppointmentSnapshot] | None = None,
        completed: list[AppointmentSnapshot] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.confirmed = confirmed or []
        self.completed = completed or []
        self.error = error
        self.calls: list[tuple[str, datetime, datetime]] = []

    def _find(self, kind: str, items: list[AppointmentSnapshot], start: datetime, end: datetime):
        self.calls.append((kind, start, end))
        if self.error is not None:
            raise self.error
        return [item for item in items if start <= item.date <= end]

    def find_confirmed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]:
        return self._find("confirmed", self.confirmed, start, end)

    def find_completed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]:
        return self._find("completed", self.completed, start, end)


class FakePatients:
    def __init__(self, by_phone: dict[str, PatientSnapshot] | None = None) -> None:
        self.by_phone = by_phone or {}
        self.lookups: list[str] = []

    def find_by_phone(self, phone: str) -> PatientSnapshot | None:
        self.lookups.append(phone)
        return self.by_phone.get(phone)


class FakeHospital:
    def __init__(self, context: HospitalContext | None = None, error: Exception | None = None) -> None:
        self.context = context
        self.error = error

    def get(self) -> HospitalContext | None:
        if self.error is not None:
            raise self.error
        return self.context


class RecordingEmailSender:
    """Records every call; ``behavior`` decides the return value or raises."""

    def __init__(self, behavior: Callable[[str], bool] | None = None) -> None:
        self.behavior = behavior or (lambda _to: True)
        self.calls: list[dict[str, Any]] = []

    def send(self, kind: str, recipient_email: str, template_data: dict[str, Any]) -> bool:
        self.calls.append({"kind": kind, "to": recipient_email, "data": template_data})
        return self.behavior(recipient_email)


class RecordingMessageSender:
    def __init__(self, behavior: Callable[[str], bool] | None = None, delay_s: float = 0.0) -> None:
        self.behavior = behavior or (lambda _phone: True)
        self.delay_s = delay_s
        self.calls: list[dict[str, str]] = []

    def send(self, phone: str, text: str) -> bool:
        self.calls.append({"phone": phone, "text": text})
        if self.delay_s:
            time.sleep(self.delay_s)
        return self.behavior(phone)


def raising(message: str) -> Callable[[str], bool]:
    def _behavior(_target: str) -> bool:
        raise RuntimeError(message)

    return _behavior


def build_deps(
    *,
    appointments: FakeAppointments | None = None,
    patients: FakePatients | None = None,
    hospital: FakeHospital | None = None,
    email_sender: RecordingEmailSender | None = None,
    message_sender: RecordingMessageSender | None = None,
    timeout_s: float | None = 2.0,
    dedup_store: Any = None,
    **overrides: Any,
) -> WorkflowDeps:
    dispatcher = NotificationDispatcher(
        email_sender or RecordingEmailSender(),
        message_sender or RecordingMessageSender(),
        timeout_s=timeout_s,
        dedup_store=dedup_store,
    )
    values: dict[str, Any] = {
        "appointments": appointments or FakeAppointments(),
        "patients": patients or FakePatients(),
        "hospital": hospital or FakeHospital(HospitalContext(name="City Care", phone="080-1234")),
        "dispatcher": dispatcher,
        "timezone": IST,
        "clock": lambda _tz: FIXED_NOW,
    }
    values.update(overrides)
    return WorkflowDeps(**values)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    return RecordingEmailSender()


@pytest.fixture
def message_sender() -> RecordingMessageSender:
    return RecordingMessageSender()
