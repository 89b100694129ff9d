"""Reminder persistence with insert-if-absent semantics."""

from __future__ import annotations

import json
import threading
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Protocol

from care_scheduler.domain.models import Reminder
from care_scheduler.utils.datemath import as_utc

DEFAULT_STORE_PATH = Path("state/reminders.json")


class ReminderStore(Protocol):
    def list_reminders(self) -> list[Reminder]: ...

    def insert_new(self, reminders: Iterable[Reminder]) -> list[Reminder]: ...

    def pending(self, now: datetime, limit: int | None = None) -> list[Reminder]: ...

    def mark_sent(self, reminder_id: str, sent_at: datetime) -> bool: ...

    def record_failure(self, reminder_id: str, reason: str, *, terminal: bool) -> bool: ...


def _apply_failure(reminder: Reminder, reason: str, terminal: bool) -> None:
    reminder.attempts += 1
    if terminal:
        reminder.failed_reason = reason


def _select_pending(reminders: Iterable[Reminder], now: datetime, limit: int | None) -> list[Reminder]:
    cutoff = as_utc(now)
    due = [r for r in reminders if not r.closed and as_utc(r.scheduled_for) <= cutoff]
    due.sort(key=lambda r: as_utc(r.scheduled_for))
    return due[:limit] if limit is not None else due


class InMemoryReminderStore:
    def __init__(self, reminders: Iterable[Reminder] = ()) -> None:
        self._reminders: dict[str, Reminder] = {}
        self._lock = threading.Lock()
        self.insert_new(reminders)

    def list_reminders(self) -> list[Reminder]:
        with self._lock:
            return list(self._reminders.values())

    def insert_new(self, reminders: Iterable[Reminder]) -> list[Reminder]:
        inserted: list[Reminder] = []
        with self._lock:
            for reminder in reminders:
                if reminder.id in self._reminders:
                    continue
                self._reminders[reminder.id] = reminder
                inserted.append(reminder)
        return inserted

    def pending(self, now: datetime, limit: int | None = None) -> list[Reminder]:
        return _select_pending(self.list_reminders(), now, limit)

    def mark_sent(self, reminder_id: str, sent_at: datetime) -> bool:
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                return False
            reminder.sent = True
            reminder.sent_at = sent_at
            return True

    def record_failure(self, reminder_id: str, reason: str, *, terminal: bool) -> bool:
        with self._lock:
            reminder = self._reminders.get(reminder_id)
            if reminder is None:
                return False
            _apply_failure(reminder, reason, terminal)
            return True


class JsonReminderStore:
    """Reminders kept as a JSON list on disk, keyed by reminder id."""

    def __init__(self, path: Path | str = DEFAULT_STORE_PATH) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> dict[str, Reminder]:
        if not self.path.exists():
            return {}
        payload = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(payload, list):
            raise ValueError(f"Reminder store {self.path} must contain a JSON list.")
        reminders: dict[str, Reminder] = {}
        for item in payload:
            if isinstance(item, dict) and item.get("id"):
                reminder = Reminder.from_dict(item)
                reminders[reminder.id] = reminder
        return reminders

    def _save(self, reminders: dict[str, Reminder]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps([r.to_dict() for r in reminders.values()], indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def list_reminders(self) -> list[Reminder]:
        with self._lock:
            return list(self._load().values())

    def insert_new(self, reminders: Iterable[Reminder]) -> list[Reminder]:
        with self._lock:
            stored = self._load()
            inserted: list[Reminder] = []
            for reminder in reminders:
                if reminder.id in stored:
                    continue
                stored[reminder.id] = reminder
                inserted.append(reminder)
            if inserted:
                self._save(stored)
            return inserted

    def pending(self, now: datetime, limit: int | None = None) -> list[Reminder]:
        return _select_pending(self.list_reminders(), now, limit)

    def mark_sent(self, reminder_id: str, sent_at: datetime) -> bool:
        with self._lock:
            stored = self._load()
            reminder = stored.get(reminder_id)
            if reminder is None:
                return False
            reminder.sent = True
            reminder.sent_at = sent_at
            self._save(stored)
            return True

    def record_failure(self, reminder_id: str, reason: str, *, terminal: bool) -> bool:
        with self._lock:
            stored = self._load()
            reminder = stored.get(reminder_id)
            if reminder is None:
                return False
            _apply_failure(reminder, reason, terminal)
            self._save(stored)
            return True
