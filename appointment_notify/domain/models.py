from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any


class OutcomeStatus:
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


class Channel:
    EMAIL = "email"
    MESSAGE = "message"


class EmailKind:
    CONFIRMATION = "confirmation"
    CANCELLATION = "cancellation"
    RESCHEDULE = "reschedule"
    REMINDER = "reminder"
    FOLLOWUP = "followup"


def _new_trigger_id() -> str:
    return uuid.uuid4().hex


@dataclass(slots=True, frozen=True)
class EventTrigger:
    name: str
    payload: dict[str, Any]
    id: str = field(default_factory=_new_trigger_id)


@dataclass(slots=True, frozen=True)
class CronTick:
    schedule_id: str
    fired_at: datetime
    id: str = ""

    def __post_init__(self) -> None:
        if not self.id:
            object.__setattr__(self, "id", f"{self.schedule_id}:{self.fired_at.date().isoformat()}")


Trigger = EventTrigger | CronTick


@dataclass(slots=True)
class PatientSnapshot:
    id: str
    name: str
    email: str | None = None
    phone: str | None = None


@dataclass(slots=True)
class AppointmentSnapshot:
    id: str
    date: datetime
    time: str
    type: str
    status: str
    doctor_name: str = ""
    department: str = ""
    notes: str = ""
    patient_id: str | None = None
    patient_phone: str | None = None
    patient: PatientSnapshot | None = None


@dataclass(slots=True)
class HospitalContext:
    name: str
    phone: str
    address: str = ""
    email: str = ""

    @classmethod
    def default(cls) -> HospitalContext:
        return cls(name="Hospital", phone="")


@dataclass(slots=True)
class ChannelAttempt:
    channel: str
    status: str
    to: str = ""
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"channel": self.channel, "status": self.status, "to": self.to}
        if self.error is not None:
            payload["error"] = self.error
        return payload


@dataclass(slots=True)
class NotificationOutcome:
    recipient_key: str
    recipient_name: str
    status: str
    error: str | None = None
    reason: str | None = None
    channels: list[ChannelAttempt] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "recipient_key": self.recipient_key,
            "recipient_name": self.recipient_name,
            "status": self.status,
        }
        if self.reason is not None:
            payload["reason"] = self.reason
        if self.error is not None:
            payload["error"] = self.error
        if self.channels:
            payload["channels"] = [attempt.to_dict() for attempt in self.channels]
        return payload


@dataclass(slots=True)
class WorkflowResult:
    workflow: str
    success: bool
    processed: int = 0
    outcomes: list[NotificationOutcome] = field(default_factory=list)
    error: str | None = None
    data: dict[str, Any] = field(default_factory=dict)
    batch: bool = False

    @classmethod
    def failed(cls, workflow: str, error: str, *, batch: bool = False) -> WorkflowResult:
        return cls(workflow=workflow, success=False, error=error, batch=batch)

    @property
    def appointments_processed(self) -> int:
        return self.processed

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"workflow": self.workflow, "success": self.success}
        if self.error is not None:
            payload["error"] = self.error
            return payload
        payload["processed"] = self.processed
        if self.batch:
            payload["appointments_processed"] = self.processed
        payload["outcomes"] = [outcome.to_dict() for outcome in self.outcomes]
        payload.update(self.data)
        return payload


@dataclass(slots=True)
class Suggestion:
    patient_id: str
    suggested_date: date
    message: str
    appointment_type: str
    priority: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "suggested_date": self.suggested_date.isoformat(),
            "message": self.message,
            "appointment_type": self.appointment_type,
            "priority": self.priority,
        }


@dataclass(slots=True)
class WaitlistReport:
    slot_available: bool
    date: str
    time: str
    notified: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "slot_available": self.slot_available,
            "date": self.date,
            "time": self.time,
            "notified": self.notified,
        }
