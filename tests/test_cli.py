from __future__ import annotations

import importlib
import json
from pathlib import Path

import pytest

from care_scheduler import cli


def test_generate_command_passes_flags(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    called = {}

    def fake_job(*, now, dry_run, patient_loader, store):
        called.update(now=now, dry_run=dry_run, patient_loader=patient_loader, store=store)
        return {"generated": [{"id": "2026-02-13_p1_appointment"}], "inserted": 0}

    monkeypatch.setattr(cli, "generate_daily_reminders_job", fake_job)

    out = tmp_path / "generated.json"
    code = cli.main(
        [
            "generate",
            "--now",
            "2026-02-13T06:00:00Z",
            "--dry-run",
            "--store",
            str(tmp_path / "reminders.json"),
            "--out",
            str(out),
        ]
    )

    assert code == 0
    assert called["dry_run"] is True
    assert called["now"].isoformat() == "2026-02-13T06:00:00+00:00"
    assert called["patient_loader"] is None
    assert called["store"].path == tmp_path / "reminders.json"
    assert json.loads(out.read_text())[0]["id"] == "2026-02-13_p1_appointment"


def test_dispatch_command_defaults_to_dry_run(monkeypatch: pytest.MonkeyPatch) -> None:
    called = {}

    def fake_job(*, now, dry_run, senders, store):
        called["dry_run"] = dry_run
        called["senders"] = senders
        return {
            "summary": {
                "total_reminders": 0,
                "successful_sends": 0,
                "skipped": {"total": 0},
                "failed": {"total": 0},
            },
            "triage_md": "triage.md",
        }

    monkeypatch.setattr(cli, "dispatch_pending_reminders_job", fake_job)

    assert cli.main(["dispatch"]) == 0
    assert called["dry_run"] is True
    assert called["senders"] is None


def test_suggest_prints_suggestion(capsys: pytest.CaptureFixture[str]) -> None:
    code = cli.main(
        [
            "suggest",
            "--severity",
            "mild",
            "--condition",
            "pregnancy",
            "--diagnosis",
            "routine ANC",
            "--date",
            "2028-02-29",
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["days_from_now"] == 28
    assert payload["suggested_date"] == "2028-03-28"


def test_invalid_now_is_rejected() -> None:
    with pytest.raises(SystemExit):
        cli.main(["generate", "--now", "yesterday"])


def test_confirm_send_uses_sender_flag(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    (tmp_path / "clinic_senders_cli.py").write_text(
        "SENT = []\n\n\ndef send(reminder, phone):\n    SENT.append(phone)\n    return True\n",
        encoding="utf-8",
    )
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setenv("CARE_ENABLE_DISPATCH", "true")
    monkeypatch.setenv("CARE_ARTIFACT_ROOT", str(tmp_path / "artifacts"))
    store_path = tmp_path / "reminders.json"
    store_path.write_text(
        json.dumps(
            [
                {
                    "id": "2026-02-13_p1_appointment",
                    "patient_id": "p1",
                    "patient_name": "Amina Wanjiru",
                    "phone": "+254712345678",
                    "channel": "whatsapp",
                    "type": "appointment",
                    "message": "Habari Amina.",
                    "scheduled_for": "2026-02-13T05:00:00+00:00",
                    "sent": False,
                }
            ]
        ),
        encoding="utf-8",
    )

    code = cli.main(
        [
            "dispatch",
            "--mode",
            "confirm-send",
            "--sender",
            "whatsapp=clinic_senders_cli:send",
            "--store",
            str(store_path),
            "--now",
            "2026-02-13T06:00:00Z",
        ]
    )

    stored = json.loads(store_path.read_text(encoding="utf-8"))
    assert code == 0
    assert importlib.import_module("clinic_senders_cli").SENT == ["+254712345678"]
    assert stored[0]["sent"] is True
    assert stored[0]["sent_at"] == "2026-02-13T06:00:00+00:00"


def test_now_without_offset_is_read_as_utc(monkeypatch: pytest.MonkeyPatch) -> None:
    called = {}

    def fake_job(*, now, dry_run, patient_loader, store):
        called["now"] = now
        return {"generated": [], "inserted": 0}

    monkeypatch.setattr(cli, "generate_daily_reminders_job", fake_job)

    assert cli.main(["generate", "--now", "2026-02-13T06:00:00"]) == 0
    assert called["now"].isoformat() == "2026-02-13T06:00:00+00:00"
