from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from care_scheduler import cli
from care_scheduler.storage.reminder_store import JsonReminderStore

EAT = timezone(timedelta(hours=3))


@pytest.mark.e2e
def test_generate_then_dispatch_dry_run_e2e(tmp_path: Path, monkeypatch, capsys) -> None:
    patients_path = tmp_path / "patients.json"
    store_path = tmp_path / "state" / "reminders.json"
    monkeypatch.setenv("CARE_ARTIFACT_ROOT", str(tmp_path / "artifacts"))
    monkeypatch.setenv("CARE_TIMEZONE", "Africa/Nairobi")
    patients_path.write_text(
        json.dumps(
            [
                {
                    "id": "p1",
                    "name": "Amina Wanjiru",
                    "phone": "0712345678",
                    "nextAppointment": "2026-01-15T11:00:00+03:00",
                    "medications": [{"id": "m1", "name": "Iron", "dosage": "200mg", "time": "08:00 AM"}],
                },
                {
                    "id": "p2",
                    "name": "Grace Achieng",
                    "phone": "+254700000002",
                    "medications": [{"id": "m2", "name": "Folic acid", "dosage": "5mg", "type": "evening"}],
                },
            ]
        ),
        encoding="utf-8",
    )

    base = ["--store", str(store_path), "--now"]
    cli.main(["generate", "--patients", str(patients_path), *base, "2026-01-15T06:00:00+03:00"])
    cli.main(["generate", "--patients", str(patients_path), *base, "2026-01-15T06:30:00+03:00"])

    stored = JsonReminderStore(store_path).list_reminders()
    assert sorted(r.id for r in stored) == [
        "2026-01-15_p1_appointment",
        "2026-01-15_p1_med_m1",
        "2026-01-15_p2_med_m2",
    ]
    scheduled = {r.id: r.scheduled_for for r in stored}
    assert scheduled["2026-01-15_p1_med_m1"] == datetime(2026, 1, 15, 8, 0, tzinfo=EAT)
    assert scheduled["2026-01-15_p1_appointment"] == datetime(2026, 1, 15, 9, 0, tzinfo=EAT)

    code = cli.main(["dispatch", *base, "2026-01-15T09:30:00+03:00"])
    output = capsys.readouterr().out

    assert code == 0
    assert "due=2" in output
    assert all(not r.sent for r in JsonReminderStore(store_path).list_reminders())
    assert (tmp_path / "artifacts" / "triage_2026-01-15.json").exists()
