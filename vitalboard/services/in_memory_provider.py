"""
In-process data provider for local runs and tests.

Implements the DataProvider protocol over plain lists and accepts telemetry
readings the way the device gateway does: each reading replaces the patient's
latest vitals, and a critical reading raises an unresolved alert.
"""

import asyncio
import itertools
from collections.abc import Iterable
from datetime import UTC, datetime

import structlog
from pydantic import BaseModel, ConfigDict, Field

from vitalboard.domain.models import Alert, Patient, RawStats
from vitalboard.services.classification import (
    HR_CRIT_HIGH,
    HR_CRIT_LOW,
    SPO2_CRIT_BELOW,
    is_critical_patient,
)

logger = structlog.get_logger(__name__)


class TelemetryReading(BaseModel):
    """A single vitals reading submitted for a patient."""

    model_config = ConfigDict(frozen=True)

    patient_id: str = Field(min_length=1)
    heart_rate: int = Field(ge=30, le=200, description="Beats per minute")
    oxygen_level: int = Field(ge=70, le=100, description="SpO2 percent")
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


def describe_issue(reading: TelemetryReading) -> str | None:
    """Human-readable issue for a critical reading, None when the reading is fine."""
    issues = []
    if reading.heart_rate < HR_CRIT_LOW:
        issues.append(f"Low heart rate ({reading.heart_rate} bpm)")
    elif reading.heart_rate > HR_CRIT_HIGH:
        issues.append(f"High heart rate ({reading.heart_rate} bpm)")
    if reading.oxygen_level < SPO2_CRIT_BELOW:
        issues.append(f"Low oxygen saturation ({reading.oxygen_level}%)")
    return "; ".join(issues) or None


class InMemoryDataProvider:
    """
    DataProvider backed by in-memory lists.

    Collections are replaced, never edited in place, so snapshots handed out by
    earlier calls stay unchanged.
    """

    def __init__(
        self,
        patients: Iterable[Patient] = (),
        alerts: Iterable[Alert] = (),
        stats: RawStats | None = None,
        latency_seconds: float = 0.0,
    ) -> None:
        self._patients: tuple[Patient, ...] = tuple(patients)
        self._alerts: tuple[Alert, ...] = tuple(alerts)
        self._stats = stats
        self.latency_seconds = latency_seconds
        self._pending_error: Exception | None = None
        self._alert_ids = itertools.count(len(self._alerts) + 1)
        self.logger = logger.bind(component="in_memory_provider")

    def fail_next(self, error: Exception) -> None:
        """Make the next provider call raise, simulating an outage."""
        self._pending_error = error

    async def _respond(self) -> None:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        if self._pending_error is not None:
            error, self._pending_error = self._pending_error, None
            raise error

    async def get_patients(self) -> list[Patient]:
        await self._respond()
        return list(self._patients)

    async def get_alerts(self) -> list[Alert]:
        await self._respond()
        return list(self._alerts)

    async def get_stats(self) -> RawStats | None:
        await self._respond()
        return self._stats

    def set_stats(self, stats: RawStats | None) -> None:
        self._stats = stats

    def submit_telemetry(self, reading: TelemetryReading) -> bool:
        """
        Record a reading for a known patient.

        Returns:
            True when the reading triggered a new alert.

        Raises:
            KeyError: If the patient is unknown.
        """
        index = next(
            (i for i, p in enumerate(self._patients) if p.patient_id == reading.patient_id), None
        )
        if index is None:
            raise KeyError(reading.patient_id)

        updated = self._patients[index].model_copy(
            update={
                "heart_rate": float(reading.heart_rate),
                "oxygen_level": float(reading.oxygen_level),
                "last_reading": reading.recorded_at.isoformat(),
                "connection_status": "Online",
            }
        )
        self._patients = self._patients[:index] + (updated,) + self._patients[index + 1 :]

        issue = describe_issue(reading)
        triggered = issue is not None and is_critical_patient(updated)
        if triggered:
            alert = Alert(
                alert_id=f"A{next(self._alert_ids):04d}",
                patient_id=updated.patient_id,
                patient_name=updated.name,
                severity_level="critical",
                resolved=False,
                issue_detected=issue,
                message=f"{issue} reported for {updated.name or updated.patient_id}",
                datetime=reading.recorded_at.isoformat(),
            )
            self._alerts = self._alerts + (alert,)

        self.logger.info(
            "telemetry_recorded",
            patient_id=reading.patient_id,
            heart_rate=reading.heart_rate,
            oxygen_level=reading.oxygen_level,
            alert_triggered=triggered,
        )
        return triggered
