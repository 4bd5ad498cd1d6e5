"""Tests for the in-process provider in `vitalboard/services/in_memory_provider.py`."""

from datetime import UTC, datetime

import pytest
from pydantic import ValidationError

from vitalboard.domain.models import Alert, Patient, RawStats
from vitalboard.services.in_memory_provider import (
    InMemoryDataProvider,
    TelemetryReading,
    describe_issue,
)

RECORDED_AT = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


@pytest.fixture
def provider() -> InMemoryDataProvider:
    return InMemoryDataProvider(
        patients=[
            Patient(patient_id="P1", name="Alice Smith", connection_status="Offline"),
            Patient(patient_id="P2", name="Bob Jones", connection_status="Online"),
        ]
    )


def reading(heart_rate: int, oxygen_level: int, patient_id: str = "P1") -> TelemetryReading:
    return TelemetryReading(
        patient_id=patient_id,
        heart_rate=heart_rate,
        oxygen_level=oxygen_level,
        recorded_at=RECORDED_AT,
    )


class TestTelemetryReading:
    @pytest.mark.parametrize(
        "fields",
        [
            {"patient_id": "", "heart_rate": 80, "oxygen_level": 97},
            {"patient_id": "P1", "heart_rate": 29, "oxygen_level": 97},
            {"patient_id": "P1", "heart_rate": 201, "oxygen_level": 97},
            {"patient_id": "P1", "heart_rate": 80, "oxygen_level": 69},
            {"patient_id": "P1", "heart_rate": 80, "oxygen_level": 101},
        ],
    )
    def test_out_of_range_readings_are_rejected(self, fields: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            TelemetryReading(**fields)


class TestDescribeIssue:
    def test_normal_reading_has_no_issue(self) -> None:
        assert describe_issue(reading(80, 97)) is None

    def test_high_heart_rate(self) -> None:
        assert describe_issue(reading(130, 97)) == "High heart rate (130 bpm)"

    def test_combined_issues(self) -> None:
        assert (
            describe_issue(reading(45, 85))
            == "Low heart rate (45 bpm); Low oxygen saturation (85%)"
        )


class TestSubmitTelemetry:
    @pytest.mark.asyncio
    async def test_reading_updates_latest_vitals(self, provider: InMemoryDataProvider) -> None:
        provider.submit_telemetry(reading(80, 97))

        patient = (await provider.get_patients())[0]

        assert patient.heart_rate == 80.0
        assert patient.oxygen_level == 97.0
        assert patient.connection_status == "Online"
        assert patient.last_reading == RECORDED_AT.isoformat()

    @pytest.mark.asyncio
    async def test_normal_reading_raises_no_alert(self, provider: InMemoryDataProvider) -> None:
        assert provider.submit_telemetry(reading(80, 97)) is False
        assert await provider.get_alerts() == []

    @pytest.mark.asyncio
    async def test_critical_reading_raises_an_alert(self, provider: InMemoryDataProvider) -> None:
        assert provider.submit_telemetry(reading(130, 97)) is True

        alerts = await provider.get_alerts()

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.alert_id == "A0001"
        assert alert.patient_id == "P1"
        assert alert.patient_name == "Alice Smith"
        assert alert.severity_level == "critical"
        assert alert.resolved is False
        assert alert.issue_detected == "High heart rate (130 bpm)"

    @pytest.mark.asyncio
    async def test_alert_ids_continue_after_existing_alerts(self) -> None:
        provider = InMemoryDataProvider(
            patients=[Patient(patient_id="P1")],
            alerts=[Alert(alert_id="A0001"), Alert(alert_id="A0002")],
        )

        provider.submit_telemetry(reading(80, 85))

        assert (await provider.get_alerts())[-1].alert_id == "A0003"

    def test_unknown_patient_is_rejected(self, provider: InMemoryDataProvider) -> None:
        with pytest.raises(KeyError):
            provider.submit_telemetry(reading(80, 97, patient_id="P404"))

    @pytest.mark.asyncio
    async def test_earlier_snapshots_are_unchanged(self, provider: InMemoryDataProvider) -> None:
        before = await provider.get_patients()

        provider.submit_telemetry(reading(130, 85))

        assert before[0].heart_rate is None
        assert len(await provider.get_alerts()) == 1


class TestProviderCalls:
    @pytest.mark.asyncio
    async def test_fail_next_raises_once(self, provider: InMemoryDataProvider) -> None:
        provider.fail_next(ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await provider.get_patients()
        assert len(await provider.get_patients()) == 2

    @pytest.mark.asyncio
    async def test_stats_can_be_replaced(self, provider: InMemoryDataProvider) -> None:
        assert await provider.get_stats() is None

        provider.set_stats(RawStats(total_patients=7))

        assert (await provider.get_stats()) == RawStats(total_patients=7)
