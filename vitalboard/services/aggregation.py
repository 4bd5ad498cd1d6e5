"""
Summary statistics over patient and alert snapshots.

Degraded input never breaks an aggregate: missing or non-numeric vitals are left
out of averages and distributions, unparsable timestamps are left out of recency
counts and the hourly histogram, and empty collections produce zeros.
"""

import math
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime, tzinfo
from typing import Any, TypeVar

import structlog

from vitalboard.domain.models import (
    Alert,
    AlertStats,
    ConnectionStatus,
    Patient,
    PatientStats,
    Severity,
    TimeWindow,
    VitalCategory,
    VitalKind,
)
from vitalboard.services.classification import (
    classify_heart_rate,
    classify_oxygen,
    classify_severity,
    connection_status,
    is_critical_patient,
    vital_value,
)
from vitalboard.services.query_engine import ensure_records
from vitalboard.services.time_window import in_window, parse_timestamp

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")

Rules = Mapping[str, Callable[[float], bool]]

HOURS_PER_DAY = 24


def js_round(value: float) -> int:
    """Round half up, the way the dashboard's charts have always rounded."""
    return math.floor(value + 0.5)


def percent(part: float, whole: float) -> int:
    """Rounded percentage clamped to [0, 100]; zero when there is nothing to divide by."""
    if whole <= 0:
        return 0
    return max(0, min(100, js_round(part / whole * 100)))


def resolve_stat(server_value: ValueT | None, local_fallback: ValueT) -> ValueT:
    """Prefer the server-supplied stat when present, else the local derivation."""
    return local_fallback if server_value is None else server_value


def mean_of_present(values: Iterable[Any]) -> float:
    """Mean over present, positive readings; 0 when none qualify."""
    present = [v for v in (vital_value(raw) for raw in values) if v is not None and v > 0]
    if not present:
        return 0.0
    return sum(present) / len(present)


def aggregate_patient_stats(patients: Any) -> PatientStats:
    records = ensure_records(patients, Patient)
    statuses = [connection_status(p) for p in records]

    total = len(records)
    online = statuses.count(ConnectionStatus.ONLINE)

    return PatientStats(
        total=total,
        active_count=online,
        active_percent=percent(online, total),
        online_count=online,
        offline_count=statuses.count(ConnectionStatus.OFFLINE),
        critical_count=sum(1 for p in records if is_critical_patient(p)),
        avg_heart_rate=mean_of_present(p.heart_rate for p in records),
        avg_oxygen=mean_of_present(p.oxygen_level for p in records),
    )


def aggregate_alert_stats(alerts: Any, now: datetime | None = None) -> AlertStats:
    """
    Counts shown on the alerts view.

    The 24h count uses the strict window test: alerts with unparsable timestamps
    are never counted as recent.
    """
    now = now or datetime.now(UTC)
    records = ensure_records(alerts, Alert)

    return AlertStats(
        total=len(records),
        critical_count=sum(
            1 for a in records if classify_severity(a.severity_level) is Severity.CRITICAL
        ),
        unresolved_count=sum(1 for a in records if not a.resolved),
        last_24h_count=sum(1 for a in records if in_window(a.datetime, TimeWindow.LAST_24H, now)),
    )


def aggregate(collection: Any, kind: str, now: datetime | None = None) -> PatientStats | AlertStats:
    """Aggregate a collection by kind ("patients" or "alerts")."""
    if kind == "patients":
        return aggregate_patient_stats(collection)
    if kind == "alerts":
        return aggregate_alert_stats(collection, now)
    raise ValueError(f"Unknown collection kind: {kind}")


# Distributions


def distribution(values: Iterable[float], rules: Rules) -> dict[str, int]:
    """
    Percentage of values per bucket, first matching rule wins.

    Values matching no rule still count towards the denominator but land in no
    bucket. Every rule name is present in the result.
    """
    samples = list(values)
    counts = dict.fromkeys(rules, 0)
    for value in samples:
        bucket = next((name for name, rule in rules.items() if rule(value)), None)
        if bucket is not None:
            counts[bucket] += 1

    denominator = max(1, len(samples))
    return {name: js_round(count / denominator * 100) for name, count in counts.items()}


def _category_rules(classify: Callable[[Any], VitalCategory]) -> Rules:
    return {
        category.value: (lambda v, category=category: classify(v) is category)
        for category in VitalCategory
    }


HEART_RATE_RULES: Rules = _category_rules(classify_heart_rate)
OXYGEN_RULES: Rules = _category_rules(classify_oxygen)


def vital_values(patients: Any, kind: VitalKind | str) -> list[float]:
    """Present, positive readings of one vital, in collection order."""
    field = VitalKind(kind).value
    records = ensure_records(patients, Patient)
    values = (vital_value(getattr(p, field)) for p in records)
    return [v for v in values if v is not None and v > 0]


def vital_distribution(patients: Any, kind: VitalKind | str) -> dict[str, int]:
    vital = VitalKind(kind)
    rules = HEART_RATE_RULES if vital is VitalKind.HEART_RATE else OXYGEN_RULES
    return distribution(vital_values(patients, vital), rules)


# Hourly histogram


def alerts_by_hour(alerts: Any, tz: tzinfo | None = None) -> list[int]:
    """
    Count alerts per hour of day (0-23) in the given timezone, local time by default.

    Only the hour matters: alerts from different days at the same hour share a
    slot, giving a daily-rhythm view rather than a rolling 24h window.
    """
    records = ensure_records(alerts, Alert)
    counts = [0] * HOURS_PER_DAY
    skipped = 0
    for alert in records:
        moment = parse_timestamp(alert.datetime)
        if moment is None:
            skipped += 1
            continue
        counts[moment.astimezone(tz).hour] += 1

    if skipped:
        logger.debug("alerts_by_hour_skipped_unparsable", skipped=skipped)
    return counts


def hour_bar_heights(counts: Iterable[int], max_height: int = 54, floor: int = 3) -> list[int]:
    """Relative bar heights; every bar keeps at least the floor so empty hours stay visible."""
    counts = list(counts)
    peak = max([1, *counts])
    return [max(floor, js_round(count / peak * max_height)) for count in counts]
