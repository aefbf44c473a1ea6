"""Text rendering for appointment notifications."""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Any

from appointment_notify.domain.models import AppointmentSnapshot, HospitalContext, PatientSnapshot


def format_long_date(value: date | datetime | str | None, tz: tzinfo | None = None) -> str:
    """Render a date like ``Monday, 15 January 2024``.

    Timezone-aware datetimes are shown on their calendar day in ``tz`` (host
    local when None). Values that are not dates are returned as text unchanged.
    """
    if value is None:
        return ""
    if not isinstance(value, date):
        return str(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(tz) if tz is not None else value.astimezone()
    return f"{value:%A}, {value.day} {value:%B} {value.year}"


def format_reminder_message(
    *,
    patient_name: str,
    date: str,
    time: str,
    type: str,
    doctor_name: str,
    hospital_name: str,
    hospital_phone: str,
) -> str:
    lines = [
        "APPOINTMENT REMINDER",
        "",
        f"Hello {patient_name},",
        "",
        f"This is a reminder for your appointment TOMORROW at {hospital_name}.",
        "",
        f"Date: {date}",
        f"Time: {time}",
        f"Type: {type}",
    ]
    if doctor_name:
        lines.append(f"Doctor: {doctor_name}")
    lines.extend(
        [
            "",
            "Please remember to:",
            "- Arrive 15 minutes early",
            "- Bring valid ID & insurance",
            "- Bring medical records if any",
            "- Wear mask if required",
            "",
            f"Need to reschedule? Contact: {hospital_phone}",
            "",
            f"Thank you! - {hospital_name}",
        ]
    )
    return "\n".join(lines)


def format_appointment_message(
    *,
    patient_name: str,
    date: str,
    time: str,
    type: str,
    doctor_name: str,
    department: str,
    hospital_name: str,
    hospital_phone: str,
) -> str:
    """Booking confirmation text message."""
    lines = [
        f"Hello {patient_name},",
        "",
        f"Your appointment is confirmed at {hospital_name}.",
        "",
        f"Date: {date}",
        f"Time: {time}",
        f"Type: {type}",
    ]
    if doctor_name:
        lines.append(f"Doctor: {doctor_name}")
    if department:
        lines.append(f"Department: {department}")
    lines.extend(["", f"For queries, contact: {hospital_phone}", "", "Thank you!"])
    return "\n".join(lines)


def appointment_details(appointment: AppointmentSnapshot, patient: PatientSnapshot) -> dict[str, Any]:
    return {
        "date": appointment.date,
        "time": appointment.time,
        "type": appointment.type,
        "doctor_name": appointment.doctor_name or "",
        "department": appointment.department or "",
        "notes": appointment.notes or "",
        "patient_name": patient.name,
    }


def build_template_data(
    details: dict[str, Any],
    hospital: HospitalContext,
    *,
    name: str | None = None,
    tz: tzinfo | None = None,
) -> dict[str, Any]:
    """Merge appointment details with hospital info for email templates."""
    data = dict(details)
    raw_date = data.get("date")
    if isinstance(raw_date, (date, datetime)):
        data["date"] = format_long_date(raw_date, tz)
    if name is not None:
        data["name"] = name
    data.update(
        {
            "hospital_name": hospital.name,
            "hospital_address": hospital.address,
            "hospital_phone": hospital.phone,
            "hospital_email": hospital.email,
            "current_year": datetime.now().year,
        }
    )
    return data
