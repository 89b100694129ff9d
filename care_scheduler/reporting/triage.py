"""Utilities for writing dispatch triage artifacts in JSON and Markdown."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path
from typing import Any


def write_triage_outputs(
    *,
    artifacts_dir: str | Path,
    summary: dict[str, Any],
    records: list[dict[str, Any]],
    report_date: date,
) -> tuple[Path, Path]:
    """Write JSON and Markdown triage output files for the provided date."""
    out_dir = Path(artifacts_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    slug = report_date.isoformat()
    json_path = out_dir / f"triage_{slug}.json"
    md_path = out_dir / f"triage_{slug}.md"

    payload = {
        "date": slug,
        "summary": summary,
        "records": records,
    }
    json_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

    md_lines = [
        f"# Reminder Dispatch Triage ({slug})",
        "",
        "## Summary",
        f"- Due reminders: {summary['total_reminders']}",
        f"- Attempted sends: {summary['attempted_sends']}",
        f"- Successful sends: {summary['successful_sends']}",
        f"- Skipped: {summary['skipped']['total']}",
        f"- Failed: {summary['failed']['total']}",
        f"- Closed as undeliverable: {summary['closed_undeliverable']}",
    ]

    for title, key in (("By Reminder Type", "by_type"), ("By Channel", "by_channel")):
        md_lines.extend(["", f"## {title}"])
        for name, counts in summary[key].items():
            md_lines.append(f"- {name}: " + ", ".join(f"{status}={count}" for status, count in counts.items()))
        if not summary[key]:
            md_lines.append("- none")

    for title, key in (("Skipped Reasons", "skipped"), ("Failed Reasons", "failed")):
        md_lines.extend(["", f"## {title}"])
        reasons = summary[key]["reasons"]
        if reasons:
            md_lines.extend(f"- {reason}: {count}" for reason, count in reasons.items())
        else:
            md_lines.append("- none")

    md_lines.extend(["", "## Records", ""])
    for record in records:
        reason = record.get("reason")
        reason_part = f" ({reason})" if reason else ""
        md_lines.append(
            f"- {record.get('reminder_id', '')} [{record.get('channel', '')}] "
            f"{record.get('patient_name', '')}: {record.get('status', '')}{reason_part}"
        )

    md_path.write_text("\n".join(md_lines) + "\n", encoding="utf-8")
    return json_path, md_path
