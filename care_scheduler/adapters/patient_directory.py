"""Read patient and medication snapshots exported by the records application."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from care_scheduler.domain.models import Medication, Patient

logger = logging.getLogger(__name__)


def _pick(item: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if item.get(key) not in (None, ""):
            return item[key]
    return None


def parse_medication(item: dict[str, Any]) -> Medication:
    medication_id = _pick(item, "id")
    if medication_id is None:
        raise ValueError("Medication entry is missing an id.")
    return Medication(
        id=str(medication_id),
        name=str(_pick(item, "name") or ""),
        dosage=str(_pick(item, "dosage") or ""),
        time=_pick(item, "time"),
        type=str(_pick(item, "type") or ""),
    )


def parse_patient(item: dict[str, Any]) -> Patient:
    patient_id = _pick(item, "id")
    name = _pick(item, "name")
    if patient_id is None or name is None:
        raise ValueError("Patient entry requires id and name.")

    medications = [
        parse_medication(med)
        for med in item.get("medications") or []
        if isinstance(med, dict)
    ]
    return Patient(
        id=str(patient_id),
        name=str(name).strip(),
        phone=str(_pick(item, "phone") or ""),
        next_appointment=_pick(item, "next_appointment", "nextAppointment"),
        medications=medications,
        preferred_channel=_pick(item, "preferred_channel", "preferredChannel"),
    )


def load_patients(path: Path | str) -> list[Patient]:
    payload_path = Path(path)
    if not payload_path.exists():
        logger.info("Patient file %s not found; returning zero patients", payload_path)
        return []

    raw = json.loads(payload_path.read_text(encoding="utf-8"))
    if not isinstance(raw, list):
        raise ValueError("Patients JSON must be a list of objects.")

    patients: list[Patient] = []
    for index, item in enumerate(raw):
        if not isinstance(item, dict):
            continue
        try:
            patients.append(parse_patient(item))
        except ValueError as exc:
            logger.warning("Skipping patient entry %s: %s", index, exc)
    return patients
