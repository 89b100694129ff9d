"""Task functions executed by the scheduler."""

from __future__ import annotations

import importlib
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Callable
from zoneinfo import ZoneInfo

from care_scheduler.adapters.patient_directory import load_patients
from care_scheduler.domain.models import CHANNELS, Patient
from care_scheduler.reminders.generator import ReminderGenerator
from care_scheduler.storage.reminder_store import JsonReminderStore, ReminderStore
from care_scheduler.utils.phone import DEFAULT_COUNTRY_CODE
from care_scheduler.workflows.dispatch import (
    DEFAULT_DISPATCH_LIMIT,
    DEFAULT_MAX_ATTEMPTS,
    SendFn,
    run_dispatch_workflow,
)

logger = logging.getLogger(__name__)

PatientLoader = Callable[[], list[Patient]]

TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True)
class JobConfig:
    timezone: str
    patients_path: Path
    reminder_store_path: Path
    artifacts_dir: Path
    language: str
    default_channel: str
    default_country_code: str
    dispatch_limit: int
    max_attempts: int
    dispatch_enabled: bool
    senders: str


class DispatchError(RuntimeError):
    """Raised when live dispatch is disabled or has no channel senders."""


def resolve_config() -> JobConfig:
    config = JobConfig(
        timezone=os.getenv("CARE_TIMEZONE", "Africa/Nairobi"),
        patients_path=Path(os.getenv("CARE_PATIENTS_PATH", "state/patients.json")),
        reminder_store_path=Path(os.getenv("CARE_REMINDER_STORE_PATH", "state/reminders.json")),
        artifacts_dir=Path(os.getenv("CARE_ARTIFACT_ROOT", "artifacts/dispatch")),
        language=os.getenv("CARE_REMINDER_LANGUAGE", "sw"),
        default_channel=os.getenv("CARE_DEFAULT_CHANNEL", "whatsapp"),
        default_country_code=os.getenv("CARE_DEFAULT_COUNTRY_CODE", DEFAULT_COUNTRY_CODE),
        dispatch_limit=int(os.getenv("CARE_DISPATCH_LIMIT", str(DEFAULT_DISPATCH_LIMIT))),
        max_attempts=int(os.getenv("CARE_MAX_DELIVERY_ATTEMPTS", str(DEFAULT_MAX_ATTEMPTS))),
        dispatch_enabled=os.getenv("CARE_ENABLE_DISPATCH", "").strip().lower() in TRUTHY,
        senders=os.getenv("CARE_SENDERS", ""),
    )
    logger.info(
        "Resolved job config (timezone=%s, patients=%s, store=%s, dispatch_enabled=%s)",
        config.timezone,
        config.patients_path,
        config.reminder_store_path,
        config.dispatch_enabled,
    )
    return config


def load_sender(target: str) -> SendFn:
    """Import a sender given as ``package.module:callable``."""
    module_name, sep, attr = target.strip().partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Sender must be given as module:callable, got {target!r}")
    sender = getattr(importlib.import_module(module_name), attr, None)
    if not callable(sender):
        raise ValueError(f"Sender {target!r} is not a callable")
    return sender


def resolve_senders(spec: str | list[str]) -> dict[str, SendFn]:
    """Parse ``channel=module:callable`` pairs, comma separated or as a list."""
    entries = spec.split(",") if isinstance(spec, str) else spec
    senders: dict[str, SendFn] = {}
    for entry in entries:
        if not entry.strip():
            continue
        channel, sep, target = entry.partition("=")
        channel = channel.strip().lower()
        if not sep or channel not in CHANNELS:
            raise ValueError(f"Sender entry must be whatsapp=... or sms=..., got {entry!r}")
        senders[channel] = load_sender(target)
    return senders


def _resolve_now(config: JobConfig, now: datetime | None) -> datetime:
    return now or datetime.now(tz=ZoneInfo(config.timezone))


def generate_daily_reminders_job(
    *,
    now: datetime | None = None,
    dry_run: bool = False,
    patient_loader: PatientLoader | None = None,
    store: ReminderStore | None = None,
) -> dict[str, Any]:
    """Generate today's reminders and persist the new ones."""
    config = resolve_config()
    current = _resolve_now(config, now)
    loader = patient_loader or (lambda: load_patients(config.patients_path))
    reminder_store = store or JsonReminderStore(config.reminder_store_path)

    patients = loader()
    existing = reminder_store.list_reminders()
    generator = ReminderGenerator(language=config.language, default_channel=config.default_channel)
    new_reminders = generator.generate_daily_reminders(patients, existing, current)

    inserted = [] if dry_run else reminder_store.insert_new(new_reminders)
    logger.info(
        "Reminder generation completed: patients=%s existing=%s generated=%s inserted=%s dry_run=%s",
        len(patients),
        len(existing),
        len(new_reminders),
        len(inserted),
        dry_run,
    )
    return {
        "now": current.isoformat(),
        "patients": len(patients),
        "generated": [r.to_dict() for r in new_reminders],
        "inserted": len(inserted),
        "dry_run": dry_run,
    }


def dispatch_pending_reminders_job(
    *,
    now: datetime | None = None,
    dry_run: bool = True,
    senders: Mapping[str, SendFn] | None = None,
    store: ReminderStore | None = None,
) -> dict[str, Any]:
    """Send due reminders; live sends require CARE_ENABLE_DISPATCH and senders.

    Senders default to the ``CARE_SENDERS`` setting.
    """
    config = resolve_config()
    if not dry_run and not config.dispatch_enabled:
        raise DispatchError("Live dispatch is disabled. Set CARE_ENABLE_DISPATCH=true to send reminders.")
    if senders is None:
        senders = resolve_senders(config.senders)
    if not dry_run and not senders:
        raise DispatchError("No channel senders configured. Set CARE_SENDERS=whatsapp=module:callable.")

    current = _resolve_now(config, now)
    result = run_dispatch_workflow(
        store or JsonReminderStore(config.reminder_store_path),
        now=current,
        senders=senders,
        dry_run=dry_run,
        artifacts_dir=config.artifacts_dir,
        limit=config.dispatch_limit,
        max_attempts=config.max_attempts,
        default_country_code=config.default_country_code,
    )

    logger.info(
        "Dispatch completed: due=%s attempted=%s successful=%s skipped=%s failed=%s triage_json=%s",
        result["summary"]["total_reminders"],
        result["summary"]["attempted_sends"],
        result["summary"]["successful_sends"],
        result["summary"]["skipped"]["total"],
        result["summary"]["failed"]["total"],
        result["triage_json"],
    )
    return result
