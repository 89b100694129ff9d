"""Next-visit suggestions from diagnosis severity, condition and visit type.

Suggestions are advisory: nothing is persisted and the clinician keeps the
final say over the booked date.
"""

from __future__ import annotations

from datetime import date, datetime

from care_scheduler.domain.models import AppointmentSuggestion, DiagnosisContext
from care_scheduler.utils.datemath import add_days, utc_day

CHRONIC_CONDITIONS = frozenset({"diabetes", "hypertension"})

CONDITION_CLAUSES = {
    "pregnancy": "Follow-up interval aligned with ANC best practice for maternal risk level.",
    "diabetes": "Interval reflects chronic care review frequency for blood pressure / glycaemic control.",
    "hypertension": "Interval reflects chronic care review frequency for blood pressure / glycaemic control.",
    "tuberculosis": "TB care typically uses monthly review milestones.",
}


class AppointmentOffsetCalculator:
    def suggest_next_appointment(
        self,
        context: DiagnosisContext,
        reference_date: date | datetime,
    ) -> AppointmentSuggestion:
        base = utc_day(reference_date)
        days = self.offset_days(context.severity, context.condition_type, context.visit_type)
        return AppointmentSuggestion(
            suggested_date=add_days(base, days),
            days_from_now=days,
            rationale=self.build_rationale(context, days),
        )

    def offset_days(self, severity: str | None, condition: str | None, visit_type: str | None) -> int:
        if severity == "critical" or visit_type == "emergency":
            return 1

        if severity == "severe":
            return 3

        if condition == "pregnancy":
            if severity == "moderate":
                return 7
            if severity == "mild":
                return 28
            return 21

        if condition in CHRONIC_CONDITIONS:
            if severity == "moderate":
                return 14
            # shadowed by the global severe rule above
            if severity == "severe":
                return 7
            return 30

        if condition == "tuberculosis":
            return 30

        if severity == "moderate":
            return 14
        # shadowed by the global severe rule above
        if severity == "severe":
            return 7
        return 30

    def build_rationale(self, context: DiagnosisContext, days: int) -> str:
        severity = context.severity or "unspecified-severity"
        diagnosis = context.diagnosis_name or "condition"
        parts = [f"Based on a {severity} {diagnosis} during a {context.visit_type} visit."]

        clause = CONDITION_CLAUSES.get(context.condition_type or "")
        if clause:
            parts.append(clause)

        if days <= 3:
            parts.append("Short interval recommended due to higher clinical risk.")
        elif days <= 14:
            parts.append("Two-week review suitable for monitoring response to treatment.")
        else:
            parts.append("Longer interval appropriate for stable / lower-risk cases.")

        return " ".join(parts)


def suggest_next_appointment(
    context: DiagnosisContext,
    reference_date: date | datetime,
) -> AppointmentSuggestion:
    return AppointmentOffsetCalculator().suggest_next_appointment(context, reference_date)
