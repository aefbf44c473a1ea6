from __future__ import annotations

import logging

from appointment_notify.domain.models import AppointmentSnapshot, PatientSnapshot
from appointment_notify.domain.ports import PatientRepository

logger = logging.getLogger(__name__)


class RecipientResolver:
    """Find the patient that owns an appointment."""

    def __init__(self, patients: PatientRepository) -> None:
        self.patients = patients

    def resolve(self, appointment: AppointmentSnapshot) -> PatientSnapshot | None:
        if appointment.patient is not None:
            return appointment.patient
        if appointment.patient_phone:
            patient = self.patients.find_by_phone(appointment.patient_phone)
            if patient is None:
                logger.info("No patient found by phone for appointment %s", appointment.id)
            return patient
        logger.info("Appointment %s has no patient relation or phone", appointment.id)
        return None
