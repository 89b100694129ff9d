"""Dispatch run counters, broken down by reminder kind and channel."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Any

STATUSES = ("sent", "skipped", "failed")


def compute_summary(records: list[dict[str, Any]], total_reminders: int) -> dict[str, Any]:
    statuses = Counter(record["status"] for record in records)
    by_type: dict[str, Counter[str]] = defaultdict(Counter)
    by_channel: dict[str, Counter[str]] = defaultdict(Counter)
    reasons: dict[str, Counter[str]] = {"skipped": Counter(), "failed": Counter()}

    for record in records:
        status = record["status"]
        by_type[record["type"]][status] += 1
        by_channel[record["channel"]][status] += 1
        if status in reasons:
            reasons[status][record.get("reason", "unknown")] += 1

    def _table(grouped: dict[str, Counter[str]]) -> dict[str, dict[str, int]]:
        return {key: {status: counts[status] for status in STATUSES} for key, counts in sorted(grouped.items())}

    return {
        "total_reminders": total_reminders,
        "attempted_sends": statuses["sent"] + statuses["failed"],
        "successful_sends": statuses["sent"],
        "closed_undeliverable": sum(1 for record in records if record.get("closed")),
        "by_type": _table(by_type),
        "by_channel": _table(by_channel),
        "skipped": {"total": statuses["skipped"], "reasons": dict(reasons["skipped"])},
        "failed": {"total": statuses["failed"], "reasons": dict(reasons["failed"])},
    }
