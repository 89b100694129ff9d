"""Daily appointment and medication reminder generation.

Generation is pure: callers fetch patients and existing reminders, pass an
explicit ``now`` and persist whatever comes back. Reminder ids are derived
from (UTC day, patient, kind, medication) so a second run on the same day
with the same inputs yields nothing new.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import datetime, timedelta
from typing import Any

from care_scheduler.domain.models import CHANNELS, Medication, Patient, Reminder
from care_scheduler.reminders.timing import resolve_medication_time
from care_scheduler.utils.datemath import as_utc, parse_timestamp
from care_scheduler.utils.idempotency import (
    build_appointment_reminder_id,
    build_medication_reminder_id,
    collect_reminder_ids,
)

logger = logging.getLogger(__name__)

APPOINTMENT_WINDOW = timedelta(hours=24)
APPOINTMENT_LEAD_TIME = timedelta(hours=2)

MESSAGE_TEMPLATES: dict[str, dict[str, str]] = {
    "sw": {
        "appointment": (
            "Habari {first_name}. Hii ni kumbukumbu yako ya miadi ya ANC kesho. "
            "Tafadhali fika kwa kliniki kama ilivyopangwa."
        ),
        "medication": (
            "Habari {first_name}. Tafadhali kumbuka kuchukua {medication} ({dosage}) "
            "kama ilivyoelekezwa."
        ),
    },
    "en": {
        "appointment": (
            "Hello {first_name}. This is a reminder of your upcoming clinic appointment. "
            "Please attend the clinic as scheduled."
        ),
        "medication": (
            "Hello {first_name}. Please remember to take {medication} ({dosage}) "
            "as directed."
        ),
    },
}


class ReminderGenerator:
    def __init__(self, *, language: str = "sw", default_channel: str = "whatsapp") -> None:
        if language not in MESSAGE_TEMPLATES:
            raise ValueError(f"Unsupported reminder language: {language!r}")
        if default_channel not in CHANNELS:
            raise ValueError(f"Unsupported reminder channel: {default_channel!r}")
        self.templates = MESSAGE_TEMPLATES[language]
        self.default_channel = default_channel

    def generate_daily_reminders(
        self,
        patients: Sequence[Patient],
        existing_reminders: Iterable[Any],
        now: datetime,
    ) -> list[Reminder]:
        seen = collect_reminder_ids(existing_reminders)
        new_reminders: list[Reminder] = []

        for patient in patients:
            candidates: list[Reminder] = []
            appointment = self._appointment_candidate(patient, now)
            if appointment is not None:
                candidates.append(appointment)
            for medication in patient.medications:
                candidate = self._medication_candidate(patient, medication, now)
                if candidate is not None:
                    candidates.append(candidate)

            for candidate in candidates:
                if candidate.id in seen:
                    continue
                seen.add(candidate.id)
                new_reminders.append(candidate)

        logger.debug("Generated %s new reminders for %s patients", len(new_reminders), len(patients))
        return new_reminders

    def _appointment_candidate(self, patient: Patient, now: datetime) -> Reminder | None:
        appointment_at = parse_timestamp(patient.next_appointment)
        if appointment_at is None:
            return None

        until = as_utc(appointment_at) - as_utc(now)
        if until < timedelta(0) or until > APPOINTMENT_WINDOW:
            return None

        return self._build(
            patient,
            reminder_id=build_appointment_reminder_id(now, patient.id),
            reminder_type="appointment",
            message=self.templates["appointment"].format(first_name=patient.first_name),
            scheduled_for=appointment_at - APPOINTMENT_LEAD_TIME,
        )

    def _medication_candidate(
        self,
        patient: Patient,
        medication: Medication,
        now: datetime,
    ) -> Reminder | None:
        scheduled_for = resolve_medication_time(medication, now)
        if scheduled_for is None:
            return None

        return self._build(
            patient,
            reminder_id=build_medication_reminder_id(now, patient.id, medication.id),
            reminder_type="medication",
            message=self.templates["medication"].format(
                first_name=patient.first_name,
                medication=medication.name,
                dosage=medication.dosage,
            ),
            scheduled_for=scheduled_for,
        )

    def _build(
        self,
        patient: Patient,
        *,
        reminder_id: str,
        reminder_type: str,
        message: str,
        scheduled_for: datetime,
    ) -> Reminder:
        channel = patient.preferred_channel if patient.preferred_channel in CHANNELS else self.default_channel
        return Reminder(
            id=reminder_id,
            patient_id=patient.id,
            patient_name=patient.name,
            phone=patient.phone,
            channel=channel,
            type=reminder_type,
            message=message,
            scheduled_for=scheduled_for,
        )


def generate_daily_reminders(
    patients: Sequence[Patient],
    existing_reminders: Iterable[Any],
    now: datetime,
) -> list[Reminder]:
    return ReminderGenerator().generate_daily_reminders(patients, existing_reminders, now)
