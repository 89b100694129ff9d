from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Any

from care_scheduler.utils.datemath import day_key


def build_appointment_reminder_id(day: date | datetime, patient_id: str) -> str:
    return f"{day_key(day)}_{patient_id}_appointment"


def build_medication_reminder_id(day: date | datetime, patient_id: str, medication_id: str) -> str:
    return f"{day_key(day)}_{patient_id}_med_{medication_id}"


def collect_reminder_ids(existing: Iterable[Any]) -> set[str]:
    """Collect ids from reminders, ``{"id": ...}`` dicts or bare id strings."""
    ids: set[str] = set()
    for item in existing:
        if isinstance(item, str):
            ids.add(item)
        elif isinstance(item, dict):
            if item.get("id") is not None:
                ids.add(str(item["id"]))
        else:
            reminder_id = getattr(item, "id", None)
            if reminder_id is not None:
                ids.add(str(reminder_id))
    return ids
