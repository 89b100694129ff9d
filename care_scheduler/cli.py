"""Top-level care scheduling command line interface."""

from __future__ import annotations

import argparse
import json
from datetime import date as Date
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from care_scheduler.adapters.patient_directory import load_patients
from care_scheduler.domain.models import DiagnosisContext
from care_scheduler.jobs.tasks import dispatch_pending_reminders_job, generate_daily_reminders_job, resolve_senders
from care_scheduler.planning.appointments import suggest_next_appointment
from care_scheduler.storage.reminder_store import JsonReminderStore
from care_scheduler.utils.datemath import parse_timestamp

MODE_CHOICES = ("dry-run", "confirm-send")
SEVERITY_CHOICES = ("mild", "moderate", "severe", "critical")
CONDITION_CHOICES = ("pregnancy", "diabetes", "hypertension", "tuberculosis", "other", "none")
VISIT_CHOICES = ("outpatient", "inpatient", "emergency", "followup")


def _aware_datetime(value: str) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise argparse.ArgumentTypeError(
            "--now must be an ISO-8601 datetime (example: 2026-02-13T06:00:00+03:00)"
        )
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="care-scheduler", description="Care scheduling operations CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    gen_parser = subparsers.add_parser("generate", help="Generate today's appointment and medication reminders")
    gen_parser.add_argument("--patients", type=Path, help="Patients JSON export (overrides CARE_PATIENTS_PATH)")
    gen_parser.add_argument("--store", type=Path, help="Reminder store JSON (overrides CARE_REMINDER_STORE_PATH)")
    gen_parser.add_argument("--now", type=_aware_datetime, help="Reference time; defaults to the current time")
    gen_parser.add_argument("--dry-run", action="store_true", help="Preview new reminders without persisting them")
    gen_parser.add_argument("--out", type=Path, help="Optional path for the generated reminders JSON")
    gen_parser.set_defaults(handler=_handle_generate)

    dispatch_parser = subparsers.add_parser("dispatch", help="Send reminders that are due")
    dispatch_parser.add_argument(
        "--mode",
        choices=MODE_CHOICES,
        default="dry-run",
        help="Execution mode: dry-run (safe preview) or confirm-send (sends and marks sent)",
    )
    dispatch_parser.add_argument("--store", type=Path, help="Reminder store JSON (overrides CARE_REMINDER_STORE_PATH)")
    dispatch_parser.add_argument("--now", type=_aware_datetime, help="Reference time; defaults to the current time")
    dispatch_parser.add_argument(
        "--sender",
        action="append",
        default=[],
        metavar="CHANNEL=MODULE:CALLABLE",
        help="Channel sender, e.g. whatsapp=clinic.messaging:send_whatsapp (overrides CARE_SENDERS). May be repeated.",
    )
    dispatch_parser.set_defaults(handler=_handle_dispatch)

    suggest_parser = subparsers.add_parser("suggest", help="Suggest a next appointment date")
    suggest_parser.add_argument("--severity", choices=SEVERITY_CHOICES)
    suggest_parser.add_argument("--condition", choices=CONDITION_CHOICES, default="other")
    suggest_parser.add_argument("--visit-type", choices=VISIT_CHOICES, default="outpatient")
    suggest_parser.add_argument("--diagnosis", default="", help="Diagnosis name used in the rationale")
    suggest_parser.add_argument("--date", type=Date.fromisoformat, help="Reference date in YYYY-MM-DD format")
    suggest_parser.set_defaults(handler=_handle_suggest)

    return parser


def _handle_generate(args: argparse.Namespace) -> int:
    result = generate_daily_reminders_job(
        now=args.now,
        dry_run=args.dry_run,
        patient_loader=(lambda: load_patients(args.patients)) if args.patients else None,
        store=JsonReminderStore(args.store) if args.store else None,
    )
    if args.out:
        args.out.parent.mkdir(parents=True, exist_ok=True)
        args.out.write_text(json.dumps(result["generated"], indent=2, ensure_ascii=False) + "\n")
    print(f"Generated {len(result['generated'])} reminders ({result['inserted']} stored)")
    return 0


def _handle_dispatch(args: argparse.Namespace) -> int:
    result = dispatch_pending_reminders_job(
        now=args.now,
        dry_run=args.mode == "dry-run",
        senders=resolve_senders(args.sender) if args.sender else None,
        store=JsonReminderStore(args.store) if args.store else None,
    )
    summary = result["summary"]
    print(
        f"Dispatch {args.mode}: due={summary['total_reminders']} sent={summary['successful_sends']} "
        f"skipped={summary['skipped']['total']} failed={summary['failed']['total']} "
        f"triage={result['triage_md']}"
    )
    return 0 if summary["failed"]["total"] == 0 else 1


def _handle_suggest(args: argparse.Namespace) -> int:
    context = DiagnosisContext(
        severity=args.severity,
        condition_type=args.condition,
        visit_type=args.visit_type,
        diagnosis_name=args.diagnosis,
    )
    reference = args.date or datetime.now(tz=timezone.utc).date()
    suggestion = suggest_next_appointment(context, reference)
    print(
        json.dumps(
            {
                "suggested_date": suggestion.suggested_date.isoformat(),
                "days_from_now": suggestion.days_from_now,
                "rationale": suggestion.rationale,
            },
            indent=2,
        )
    )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
