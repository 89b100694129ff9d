from __future__ import annotations

from datetime import datetime, time

from care_scheduler.domain.models import Medication
from care_scheduler.utils.datemath import on_same_day, parse_time_of_day

SLOT_DEFAULTS: dict[str, time] = {
    "morning": time(8, 0),
    "afternoon": time(14, 0),
    "evening": time(19, 0),
}
FALLBACK_TIME = time(9, 0)


def default_time_for(slot: str | None) -> time:
    return SLOT_DEFAULTS.get(slot or "", FALLBACK_TIME)


def resolve_medication_time(medication: Medication, now: datetime) -> datetime | None:
    """Resolve today's dose time for ``medication``.

    An explicit ``H:MM AM|PM`` time wins; otherwise the slot default for
    ``medication.type`` is used. Slots that are not strictly after ``now``
    return None.
    """
    at = parse_time_of_day(medication.time) or default_time_for(medication.type)
    scheduled = on_same_day(now, at)
    if scheduled <= now:
        return None
    return scheduled
