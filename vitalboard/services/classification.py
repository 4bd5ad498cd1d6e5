"""
Classification of raw vitals and alert severities into discrete categories.

Every function here is total: any input, including missing or non-numeric
values, maps to exactly one category. Only an unknown vital kind is rejected,
since that is a programming error rather than degraded data.
"""

from typing import Any

from vitalboard.domain.models import (
    ConnectionStatus,
    Patient,
    Severity,
    VitalCategory,
    VitalKind,
    coerce_number,
)

CRITICAL_SEVERITY_LABELS = frozenset({"high", "critical", "severe"})
WARNING_SEVERITY_LABELS = frozenset({"medium", "warn", "warning"})

SEVERITY_RANK: dict[Severity, int] = {
    Severity.CRITICAL: 3,
    Severity.WARNING: 2,
    Severity.INFO: 1,
}

# Heart rate thresholds (bpm)
HR_CRIT_LOW = 50.0
HR_CRIT_HIGH = 120.0
HR_WARN_LOW = 60.0
HR_WARN_HIGH = 100.0

# Oxygen saturation thresholds (percent)
SPO2_CRIT_BELOW = 90.0
SPO2_OK_FROM = 95.0


def vital_value(raw: Any) -> float | None:
    """Numeric reading or None when the value is absent or not a number."""
    return coerce_number(raw)


def classify_severity(raw: Any) -> Severity:
    """Map a free-form severity label to critical, warning or info."""
    # Surrounding whitespace is ignored along with case
    label = raw.strip().lower() if isinstance(raw, str) else ""
    if label in CRITICAL_SEVERITY_LABELS:
        return Severity.CRITICAL
    if label in WARNING_SEVERITY_LABELS:
        return Severity.WARNING
    return Severity.INFO


def severity_rank(severity: Severity | str | None) -> int:
    if isinstance(severity, Severity):
        return SEVERITY_RANK[severity]
    return SEVERITY_RANK.get(classify_severity(severity), 0)


def classify_heart_rate(value: Any) -> VitalCategory:
    hr = vital_value(value)
    if hr is None:
        return VitalCategory.OK
    # Critical bounds take priority over the overlapping warn bounds
    if hr < HR_CRIT_LOW or hr > HR_CRIT_HIGH:
        return VitalCategory.CRIT
    if hr < HR_WARN_LOW or hr > HR_WARN_HIGH:
        return VitalCategory.WARN
    return VitalCategory.OK


def classify_oxygen(value: Any) -> VitalCategory:
    spo2 = vital_value(value)
    if spo2 is None:
        return VitalCategory.OK
    if spo2 < SPO2_CRIT_BELOW:
        return VitalCategory.CRIT
    if spo2 < SPO2_OK_FROM:
        return VitalCategory.WARN
    return VitalCategory.OK


def classify_vital(kind: VitalKind | str, value: Any) -> VitalCategory:
    """
    Classify a single reading for badge rendering.

    Args:
        kind: A VitalKind or one of its aliases ("hr", "spo2", "oxygen").
        value: The raw reading. Absent or non-numeric readings classify as ok.

    Raises:
        ValueError: If kind does not name a known vital.
    """
    vital = VitalKind(kind)
    if vital is VitalKind.HEART_RATE:
        return classify_heart_rate(value)
    return classify_oxygen(value)


def is_critical_patient(patient: Patient) -> bool:
    """Any single critical vital makes the patient critical; no vitals means not critical."""
    hr = vital_value(patient.heart_rate)
    spo2 = vital_value(patient.oxygen_level)
    if hr is not None and (hr < HR_CRIT_LOW or hr > HR_CRIT_HIGH):
        return True
    return spo2 is not None and spo2 < SPO2_CRIT_BELOW


def connection_status(patient: Patient) -> ConnectionStatus:
    # " Online " and "online" are the same status
    status = (patient.connection_status or "").strip().lower()
    if status == ConnectionStatus.ONLINE.value:
        return ConnectionStatus.ONLINE
    if status == ConnectionStatus.OFFLINE.value:
        return ConnectionStatus.OFFLINE
    return ConnectionStatus.UNKNOWN
