from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from care_scheduler.domain.models import Medication, Patient


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 3, 10, 6, 0, tzinfo=UTC)


@pytest.fixture
def make_patient():
    def _make(
        patient_id: str = "p1",
        *,
        name: str = "Amina Wanjiru",
        phone: str = "+254712345678",
        next_appointment=None,
        medications: list[Medication] | None = None,
        preferred_channel: str | None = None,
    ) -> Patient:
        return Patient(
            id=patient_id,
            name=name,
            phone=phone,
            next_appointment=next_appointment,
            medications=medications or [],
            preferred_channel=preferred_channel,
        )

    return _make


@pytest.fixture
def scenario_patient(make_patient, now):
    return make_patient(
        next_appointment=now + timedelta(hours=5),
        medications=[Medication(id="m1", name="Iron", dosage="200mg", time="08:00 AM", type="morning")],
    )
