from __future__ import annotations

import json
import logging
from datetime import date, datetime, time, tzinfo
from pathlib import Path
from typing import Any

from appointment_notify.domain.models import AppointmentSnapshot, HospitalContext, PatientSnapshot
from appointment_notify.triggers import snake_case_keys

logger = logging.getLogger(__name__)

CONFIRMED = "Confirmed"
COMPLETED = "Completed"


def _parse_moment(value: Any, tz: tzinfo | None) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    else:
        text = str(value).strip().replace("Z", "+00:00")
        moment = datetime.fromisoformat(text) if len(text) > 10 else datetime.combine(date.fromisoformat(text), time.min)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=tz) if tz is not None else moment.astimezone()
    return moment


class JsonClinicStore:
    """Read-only clinic data (appointments, patients, hospital) from a JSON file.

    Expected shape::

        {
          "hospital": {"name": "...", "phone": "..."},
          "patients": [{"id": "P1", "name": "...", "email": "...", "phone": "..."}],
          "appointments": [{"id": "A1", "date": "2026-01-15", "time": "10:00 AM",
                            "type": "...", "status": "Confirmed", "patientId": "P1"}]
        }

    Data is re-read on every call so each workflow run sees fresh snapshots.
    """

    def __init__(self, path: Path | str, tz: tzinfo | None = None) -> None:
        self.path = Path(path)
        self.tz = tz

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.info("No clinic data at %s; treating as empty", self.path)
            return {}
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise ValueError(f"Clinic data in {self.path} must be a JSON object")
        return payload

    @staticmethod
    def _patient(raw: dict[str, Any]) -> PatientSnapshot:
        item = snake_case_keys(raw)
        return PatientSnapshot(
            id=str(item["id"]),
            name=str(item.get("name") or ""),
            email=item.get("email") or None,
            phone=item.get("phone") or None,
        )

    def _appointments(self, status: str, start: datetime, end: datetime) -> list[AppointmentSnapshot]:
        payload = self._load()
        patients = {patient.id: patient for patient in map(self._patient, payload.get("patients", []))}

        matched: list[AppointmentSnapshot] = []
        for raw in payload.get("appointments", []):
            item = snake_case_keys(raw)
            if item.get("status") != status:
                continue
            moment = _parse_moment(item["date"], self.tz)
            if not start <= moment <= end:
                continue
            patient_id = item.get("patient_id")
            matched.append(
                AppointmentSnapshot(
                    id=str(item["id"]),
                    date=moment,
                    time=str(item.get("time") or ""),
                    type=str(item.get("type") or ""),
                    status=status,
                    doctor_name=item.get("doctor_name") or "",
                    department=item.get("department") or "",
                    notes=item.get("notes") or "",
                    patient_id=str(patient_id) if patient_id is not None else None,
                    patient_phone=item.get("patient_phone") or None,
                    patient=patients.get(str(patient_id)) if patient_id is not None else None,
                )
            )
        return matched

    def find_confirmed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]:
        return self._appointments(CONFIRMED, start, end)

    def find_completed_in_range(self, start: datetime, end: datetime) -> list[AppointmentSnapshot]:
        return self._appointments(COMPLETED, start, end)

    def find_by_phone(self, phone: str) -> PatientSnapshot | None:
        for raw in self._load().get("patients", []):
            patient = self._patient(raw)
            if patient.phone == phone:
                return patient
        return None

    def get(self) -> HospitalContext | None:
        raw = self._load().get("hospital")
        if not raw:
            return None
        item = snake_case_keys(raw)
        return HospitalContext(
            name=item.get("name") or "Hospital",
            phone=item.get("phone") or "",
            address=item.get("address") or "",
            email=item.get("email") or "",
        )
