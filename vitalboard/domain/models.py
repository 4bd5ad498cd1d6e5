"""
Domain models for the patient vitals dashboard.

These models represent the records the dashboard receives from its data provider
and the derived views it computes from them. They use Pydantic for validation,
but validation of the records themselves is deliberately lenient: the engine is
a pure transformation layer over already-validated data, so a wrong type in an
optional field degrades to "absent" instead of raising.
"""

import math
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


class Severity(str, Enum):
    """Normalized alert urgency."""

    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"


class VitalCategory(str, Enum):
    """Per-reading category derived from vital thresholds."""

    OK = "ok"
    WARN = "warn"
    CRIT = "crit"


class VitalKind(str, Enum):
    """Vitals streamed from patient devices."""

    HEART_RATE = "heart_rate"
    OXYGEN_LEVEL = "oxygen_level"

    @classmethod
    def _missing_(cls, value: object) -> "VitalKind | None":
        aliases = {
            "hr": cls.HEART_RATE,
            "heart": cls.HEART_RATE,
            "spo2": cls.OXYGEN_LEVEL,
            "oxygen": cls.OXYGEN_LEVEL,
            "o2": cls.OXYGEN_LEVEL,
        }
        if isinstance(value, str):
            return aliases.get(value.strip().lower())
        return None


class ConnectionStatus(str, Enum):
    """Device connection state reported for a patient."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class TimeWindow(str, Enum):
    """Relative recency filters applied against "now"."""

    ALL = "all"
    LAST_24H = "24h"
    LAST_7D = "7d"
    LAST_30D = "30d"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


# Lenient coercion helpers shared by the record models


def coerce_number(value: Any) -> float | None:
    """Numbers and numeric strings become floats; anything else is absent."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def _coerce_timestamp(value: Any) -> str | datetime | None:
    if value is None or isinstance(value, datetime | str):
        return value
    return str(value)


def _coerce_flag(value: Any) -> bool:
    return bool(value)


OptionalText = Annotated[str | None, BeforeValidator(_coerce_text)]
OptionalNumber = Annotated[float | None, BeforeValidator(coerce_number)]
Timestamp = Annotated[str | datetime | None, BeforeValidator(_coerce_timestamp)]
Flag = Annotated[bool, BeforeValidator(_coerce_flag)]


class Patient(BaseModel):
    """Monitored patient with the most recent vitals reading."""

    model_config = ConfigDict(frozen=True, extra="ignore")  # Snapshots are never mutated

    patient_id: Annotated[str, BeforeValidator(_coerce_text)]
    name: OptionalText = None
    gender: OptionalText = None
    age: OptionalNumber = None
    medical_conditions: OptionalText = None
    connection_status: OptionalText = None
    heart_rate: OptionalNumber = Field(None, description="Beats per minute")
    oxygen_level: OptionalNumber = Field(None, description="SpO2 percent")
    last_reading: Timestamp = None


class Alert(BaseModel):
    """Alert raised for a patient; holds a weak reference by patient ID."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    alert_id: Annotated[str, BeforeValidator(_coerce_text)]
    patient_id: OptionalText = None
    patient_name: OptionalText = None
    severity_level: OptionalText = None
    resolved: Flag = False
    issue_detected: OptionalText = None
    message: OptionalText = None
    datetime: Timestamp = None


# Query state. Frozen so a query can key memoized results.

PatientSortKey = Literal["last_reading", "patient_id", "name", "heart_rate", "oxygen_level"]
AlertSortKey = Literal["datetime", "severity", "patient", "status"]


class PatientQuery(BaseModel):
    """Search, filter and sort selections for the patient views."""

    model_config = ConfigDict(frozen=True)

    search: str = ""
    status: Literal["all", "online", "offline"] = "all"
    gender: str = Field(default="all", description="'all' or a gender, case-insensitive")
    online_only: bool = Field(default=False, description="Card view shows only online patients")
    sort_by: PatientSortKey = "last_reading"
    direction: SortDirection = SortDirection.DESC


class AlertQuery(BaseModel):
    """Search, filter and sort selections for the alerts view."""

    model_config = ConfigDict(frozen=True)

    search: str = ""
    severity: Literal["all", "critical", "warning", "info"] = "all"
    status: Literal["all", "unresolved", "resolved"] = "all"
    window: TimeWindow = TimeWindow.ALL
    sort_by: AlertSortKey = "datetime"
    direction: SortDirection = SortDirection.DESC


# Aggregates


class PatientStats(BaseModel):
    total: int = Field(ge=0)
    active_count: int = Field(ge=0)
    active_percent: int = Field(ge=0, le=100)
    online_count: int = Field(ge=0)
    offline_count: int = Field(ge=0)
    critical_count: int = Field(ge=0)
    avg_heart_rate: float = Field(ge=0.0)
    avg_oxygen: float = Field(ge=0.0)


class AlertStats(BaseModel):
    total: int = Field(ge=0)
    critical_count: int = Field(ge=0)
    unresolved_count: int = Field(ge=0)
    last_24h_count: int = Field(ge=0)


class RawStats(BaseModel):
    """Server-computed overview numbers. Any field may be missing."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    total_patients: int | None = None
    active_patients: int | None = None
    critical_alerts_today: int | None = None
    unresolved_alerts: int | None = None
    avg_heart_rate_today: float | None = None
    avg_oxygen_level_today: float | None = None
    total_alerts_today: int | None = None


class DashboardOverview(BaseModel):
    """Everything the dashboard view renders, server values merged over local ones."""

    total_patients: int
    active_patients: int
    critical_patients: int
    unresolved_alerts: int
    avg_heart_rate: float
    avg_oxygen: float
    total_alerts_today: int

    active_percent: int = Field(ge=0, le=100)
    heart_rate_gauge_percent: int = Field(ge=0, le=100)
    oxygen_gauge_percent: int = Field(ge=0, le=100)
    alert_density_percent: int = Field(ge=0, le=100)

    heart_rate_distribution: dict[str, int]
    oxygen_distribution: dict[str, int]
    alerts_by_hour: list[int] = Field(min_length=24, max_length=24)
    alert_bar_heights: list[int] = Field(min_length=24, max_length=24)
    heart_rate_sparkline: str

    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
