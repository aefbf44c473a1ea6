"""Collaborator interfaces consumed by the notification workflows."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from appointment_notify.domain.models import (
    AppointmentSnapshot,
    HospitalContext,
    PatientSnapshot,
    Suggestion,
)


class AppointmentRepository(Protocol):
    def find_confirmed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]: ...

    def find_completed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]: ...


class PatientRepository(Protocol):
    def find_by_phone(self, phone: str) -> PatientSnapshot | None: ...


class HospitalSettingsProvider(Protocol):
    def get(self) -> HospitalContext | None: ...


class EmailSender(Protocol):
    def send(self, kind: str, recipient_email: str, template_data: dict[str, Any]) -> bool: ...


class MessageSender(Protocol):
    def send(self, phone: str, text: str) -> bool: ...


class SuggestionSink(Protocol):
    def store(self, suggestion: Suggestion) -> None: ...


class WaitlistStrategy(Protocol):
    """Offer a freed slot to waiting patients.

    Implementations own candidate ordering, the confirmation window per
    candidate and fallback to the next candidate. Returns how many patients
    were notified.
    """

    def offer_slot(self, slot: dict[str, Any]) -> int: ...


class DedupStore(Protocol):
    def has_been_sent(self, key: str) -> bool: ...

    def mark_sent(self, key: str) -> None: ...
