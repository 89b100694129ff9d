from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Literal

from care_scheduler.utils.datemath import parse_timestamp

Channel = Literal["whatsapp", "sms"]
ReminderType = Literal["appointment", "medication", "symptom_checkin"]
Severity = Literal["mild", "moderate", "severe", "critical"]
ConditionType = Literal["pregnancy", "diabetes", "hypertension", "tuberculosis", "other", "none"]
VisitType = Literal["outpatient", "inpatient", "emergency", "followup"]

CHANNELS: tuple[str, ...] = ("whatsapp", "sms")


@dataclass(slots=True)
class Medication:
    id: str
    name: str
    dosage: str
    time: str | None = None
    type: str = "morning"


@dataclass(slots=True)
class Patient:
    id: str
    name: str
    phone: str
    next_appointment: datetime | str | None = None
    medications: list[Medication] = field(default_factory=list)
    preferred_channel: Channel | None = None

    @property
    def first_name(self) -> str:
        parts = self.name.split()
        return parts[0] if parts else ""


@dataclass(slots=True)
class DiagnosisContext:
    severity: Severity | None = None
    condition_type: ConditionType = "other"
    visit_type: VisitType = "outpatient"
    diagnosis_name: str = ""


@dataclass(slots=True, frozen=True)
class AppointmentSuggestion:
    suggested_date: date
    days_from_now: int
    rationale: str


@dataclass(slots=True)
class Reminder:
    id: str
    patient_id: str
    patient_name: str
    phone: str
    channel: Channel
    type: ReminderType
    message: str
    scheduled_for: datetime
    sent: bool = False
    sent_at: datetime | None = None
    attempts: int = 0
    failed_reason: str | None = None

    @property
    def closed(self) -> bool:
        """Sent, or given up on after a permanent delivery failure."""
        return self.sent or self.failed_reason is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "patient_name": self.patient_name,
            "phone": self.phone,
            "channel": self.channel,
            "type": self.type,
            "message": self.message,
            "scheduled_for": self.scheduled_for.isoformat(),
            "sent": self.sent,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "attempts": self.attempts,
            "failed_reason": self.failed_reason,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> Reminder:
        scheduled_for = parse_timestamp(payload.get("scheduled_for"))
        if scheduled_for is None:
            raise ValueError(f"Reminder {payload.get('id')!r} has no valid scheduled_for")
        return cls(
            id=str(payload["id"]),
            patient_id=str(payload.get("patient_id", "")),
            patient_name=str(payload.get("patient_name", "")),
            phone=str(payload.get("phone", "")),
            channel=str(payload.get("channel", "whatsapp")),
            type=str(payload.get("type", "appointment")),
            message=str(payload.get("message", "")),
            scheduled_for=scheduled_for,
            sent=bool(payload.get("sent", False)),
            sent_at=parse_timestamp(payload.get("sent_at")),
            attempts=int(payload.get("attempts") or 0),
            failed_reason=payload.get("failed_reason"),
        )
