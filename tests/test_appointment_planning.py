from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from care_scheduler.domain.models import DiagnosisContext
from care_scheduler.planning.appointments import AppointmentOffsetCalculator, suggest_next_appointment

REFERENCE = date(2026, 3, 10)


@pytest.mark.parametrize("condition", ["pregnancy", "diabetes", "tuberculosis", "other"])
@pytest.mark.parametrize("visit_type", ["outpatient", "inpatient", "followup"])
def test_critical_severity_is_next_day(condition: str, visit_type: str) -> None:
    context = DiagnosisContext(severity="critical", condition_type=condition, visit_type=visit_type)
    assert suggest_next_appointment(context, REFERENCE).days_from_now == 1


@pytest.mark.parametrize("severity", [None, "mild", "moderate", "severe"])
def test_emergency_visit_is_next_day(severity: str | None) -> None:
    context = DiagnosisContext(severity=severity, condition_type="pregnancy", visit_type="emergency")
    assert suggest_next_appointment(context, REFERENCE).days_from_now == 1


@pytest.mark.parametrize(
    ("severity", "condition", "expected"),
    [
        ("severe", "pregnancy", 3),
        ("severe", "diabetes", 3),
        ("severe", "other", 3),
        ("moderate", "pregnancy", 7),
        ("mild", "pregnancy", 28),
        (None, "pregnancy", 21),
        ("moderate", "diabetes", 14),
        ("mild", "hypertension", 30),
        (None, "hypertension", 30),
        ("moderate", "tuberculosis", 30),
        ("mild", "tuberculosis", 30),
        ("moderate", "other", 14),
        ("moderate", "none", 14),
        ("mild", "other", 30),
        (None, "none", 30),
    ],
)
def test_decision_table(severity: str | None, condition: str, expected: int) -> None:
    context = DiagnosisContext(severity=severity, condition_type=condition, visit_type="outpatient")
    suggestion = suggest_next_appointment(context, REFERENCE)
    assert suggestion.days_from_now == expected
    assert suggestion.suggested_date == REFERENCE + timedelta(days=expected)


def test_severe_chronic_case_uses_global_severe_interval() -> None:
    calculator = AppointmentOffsetCalculator()
    assert calculator.offset_days("severe", "diabetes", "outpatient") == 3
    assert calculator.offset_days("moderate", "hypertension", "followup") == 14


def test_leap_year_february_rolls_into_march() -> None:
    context = DiagnosisContext(severity="mild", condition_type="pregnancy")
    suggestion = suggest_next_appointment(context, date(2028, 2, 29))
    assert suggestion.suggested_date == date(2028, 3, 28)

    context = DiagnosisContext(severity="critical")
    assert suggest_next_appointment(context, date(2028, 2, 29)).suggested_date == date(2028, 3, 1)


def test_year_boundary() -> None:
    context = DiagnosisContext(severity="moderate", condition_type="diabetes")
    assert suggest_next_appointment(context, date(2026, 12, 25)).suggested_date == date(2027, 1, 8)


def test_reference_datetime_is_normalized_to_utc_day() -> None:
    # 01:30 in Nairobi on the 1st is still the previous day in UTC
    nairobi = timezone(timedelta(hours=3))
    reference = datetime(2026, 3, 1, 1, 30, tzinfo=nairobi)
    context = DiagnosisContext(severity="severe")

    suggestion = suggest_next_appointment(context, reference)

    assert suggestion.suggested_date == date(2026, 3, 3)
    assert not isinstance(suggestion.suggested_date, datetime)


def test_rationale_names_context_and_risk_band() -> None:
    context = DiagnosisContext(
        severity="moderate",
        condition_type="pregnancy",
        visit_type="followup",
        diagnosis_name="anaemia",
    )
    rationale = suggest_next_appointment(context, REFERENCE).rationale

    assert rationale.startswith("Based on a moderate anaemia during a followup visit.")
    assert "ANC" in rationale
    assert rationale.endswith("Two-week review suitable for monitoring response to treatment.")


def test_rationale_bands_and_condition_clauses() -> None:
    short = suggest_next_appointment(DiagnosisContext(severity="critical"), REFERENCE).rationale
    assert "higher clinical risk" in short

    tb = suggest_next_appointment(DiagnosisContext(severity="mild", condition_type="tuberculosis"), REFERENCE)
    assert "monthly review milestones" in tb.rationale
    assert "stable / lower-risk" in tb.rationale

    chronic = suggest_next_appointment(DiagnosisContext(severity="mild", condition_type="hypertension"), REFERENCE)
    assert "chronic care review" in chronic.rationale

    other = suggest_next_appointment(DiagnosisContext(severity="mild", condition_type="other"), REFERENCE)
    assert other.rationale == (
        "Based on a mild condition during a outpatient visit. "
        "Longer interval appropriate for stable / lower-risk cases."
    )
