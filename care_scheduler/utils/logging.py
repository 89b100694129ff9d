"""Structured JSON logging for reminder delivery events.

Each event carries the reminder's id, kind and channel. Patient names and
phone numbers are masked before they reach the log stream.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Any

from care_scheduler.domain.models import Reminder

REMINDER_FIELDS = ("reminder_id", "reminder_type", "channel", "attempts")


class JsonFormatter(logging.Formatter):
    """Format log records as one JSON object per reminder event."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "workflow_step": getattr(record, "workflow_step", "unknown"),
            "status": getattr(record, "status", record.levelname.lower()),
            "patient_name": mask_patient_name(getattr(record, "patient_name", "")),
            "phone": mask_phone(getattr(record, "phone", "")),
        }
        for name in REMINDER_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value

        error_code = getattr(record, "error_code", None)
        if error_code is not None:
            payload["error_code"] = error_code
            payload["error_message"] = getattr(record, "error_message", None)

        message = record.getMessage()
        if message:
            payload["message"] = message

        return json.dumps(payload, ensure_ascii=False)


def mask_patient_name(name: str) -> str:
    """Keep the first character of a patient name and mask the rest."""
    if not name:
        return ""
    if len(name) <= 1:
        return "*"
    return f"{name[0]}{'*' * (len(name) - 1)}"


def mask_phone(phone: str) -> str:
    """Keep the last three digits of a phone number."""
    digits = [ch for ch in phone if ch.isdigit()]
    if len(digits) <= 3:
        return "*" * len(digits)
    return f"{'*' * (len(digits) - 3)}{''.join(digits[-3:])}"


def get_structured_logger(name: str = "care_scheduler.events") -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def log_reminder_event(
    logger: logging.Logger,
    reminder: Reminder,
    *,
    workflow_step: str,
    status: str,
    message: str = "",
    error_code: str | None = None,
    error_message: str | None = None,
) -> None:
    level = logging.WARNING if status == "failed" else logging.INFO
    logger.log(
        level,
        message,
        extra={
            "workflow_step": workflow_step,
            "status": status,
            "patient_name": reminder.patient_name,
            "phone": reminder.phone,
            "reminder_id": reminder.id,
            "reminder_type": reminder.type,
            "channel": reminder.channel,
            "attempts": reminder.attempts,
            "error_code": error_code,
            "error_message": error_message,
        },
    )
