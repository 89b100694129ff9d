"""Pending reminder dispatch with dry-run support and triage outputs.

Reminders that cannot be delivered are closed in the store (invalid phone at
once, other failures after ``max_attempts``) so they leave the pending queue
instead of holding the oldest slots on every pass.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from pathlib import Path
from typing import Any, Callable

from care_scheduler.domain.models import Reminder
from care_scheduler.reporting.summary import compute_summary
from care_scheduler.reporting.triage import write_triage_outputs
from care_scheduler.storage.reminder_store import ReminderStore
from care_scheduler.utils.datemath import utc_day
from care_scheduler.utils.logging import get_structured_logger, log_reminder_event, mask_patient_name
from care_scheduler.utils.phone import DEFAULT_COUNTRY_CODE, validate_phone

SendFn = Callable[[Reminder, str], bool]

DEFAULT_DISPATCH_LIMIT = 50
DEFAULT_MAX_ATTEMPTS = 3


def run_dispatch_workflow(
    store: ReminderStore,
    *,
    now: datetime,
    senders: Mapping[str, SendFn],
    dry_run: bool = False,
    artifacts_dir: str | Path = "artifacts",
    limit: int | None = DEFAULT_DISPATCH_LIMIT,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    default_country_code: str = DEFAULT_COUNTRY_CODE,
    workflow_step: str = "reminder_dispatch",
) -> dict[str, Any]:
    """Send due reminders through their channel sender and mark them sent."""
    logger = get_structured_logger()
    due = store.pending(now, limit=limit)
    records: list[dict[str, Any]] = []

    for reminder in due:
        record: dict[str, Any] = {
            "patient_name": mask_patient_name(reminder.patient_name),
            "reminder_id": reminder.id,
            "type": reminder.type,
            "channel": reminder.channel,
        }

        def _fail(reason: str, message: str, *, error_code: str, error_message: str, permanent: bool = False) -> None:
            closed = permanent or reminder.attempts + 1 >= max_attempts
            if not dry_run:
                store.record_failure(reminder.id, reason, terminal=closed)
            status = "skipped" if dry_run else "failed"
            records.append({**record, "status": status, "reason": reason, "closed": closed and not dry_run})
            log_reminder_event(
                logger,
                reminder,
                workflow_step=workflow_step,
                status=status,
                message=message,
                error_code=error_code,
                error_message=error_message,
            )

        phone = validate_phone(reminder.phone, default_country_code)
        if phone is None:
            _fail(
                "invalid_phone",
                "Phone cannot be normalized; reminder closed",
                error_code="INVALID_PHONE",
                error_message="phone is not a valid E.164 number",
                permanent=True,
            )
            continue

        if dry_run:
            records.append({**record, "status": "skipped", "reason": "dry_run"})
            log_reminder_event(logger, reminder, workflow_step=workflow_step, status="skipped", message="Dry-run: send skipped")
            continue

        sender = senders.get(reminder.channel)
        if sender is None:
            _fail(
                "missing_sender",
                "No sender configured for channel",
                error_code="MISSING_SENDER",
                error_message=f"channel={reminder.channel}",
            )
            continue

        log_reminder_event(logger, reminder, workflow_step=workflow_step, status="attempted", message="Attempting send")
        try:
            sent = sender(reminder, phone)
        except Exception as exc:  # broad to ensure triage completeness
            _fail(
                type(exc).__name__,
                "Send raised exception",
                error_code=type(exc).__name__.upper(),
                error_message=str(exc),
            )
            continue

        if not sent:
            _fail(
                "send_returned_false",
                "Send failed",
                error_code="SEND_FALSE",
                error_message="Sender returned false",
            )
            continue

        store.mark_sent(reminder.id, now)
        records.append({**record, "status": "sent"})
        log_reminder_event(logger, reminder, workflow_step=workflow_step, status="sent", message="Send succeeded")

    summary = compute_summary(records, total_reminders=len(due))
    json_path, md_path = write_triage_outputs(
        artifacts_dir=artifacts_dir,
        summary=summary,
        records=records,
        report_date=utc_day(now),
    )

    return {
        "summary": summary,
        "records": records,
        "triage_json": str(json_path),
        "triage_md": str(md_path),
    }
