"""
Console walkthrough of the dashboard engine against an in-memory provider.

This script shows:
1. Configuration loading
2. Snapshot refresh from a data provider
3. Dashboard overview with server stats merged over local derivations
4. Patient and alert views with search, filters and sorting
5. Telemetry submission followed by a refresh

Run with: uv run python run_dashboard.py
"""

import asyncio
from datetime import UTC, datetime, timedelta

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vitalboard.config import get_config
from vitalboard.domain.models import Alert, AlertQuery, Patient, PatientQuery, RawStats
from vitalboard.observability import configure_logging
from vitalboard.services.classification import classify_vital
from vitalboard.services.dashboard import DashboardService
from vitalboard.services.in_memory_provider import InMemoryDataProvider, TelemetryReading

console = Console()


def sample_provider(now: datetime) -> InMemoryDataProvider:
    """Small ward with a mix of healthy, borderline and critical patients."""
    patients = [
        Patient(
            patient_id="P1",
            name="Amelia Hart",
            gender="Female",
            age=64,
            medical_conditions="Hypertension",
            connection_status="Online",
            heart_rate=78,
            oxygen_level=97,
            last_reading=(now - timedelta(minutes=5)).isoformat(),
        ),
        Patient(
            patient_id="P2",
            name="Bruno Silva",
            gender="Male",
            age=71,
            medical_conditions="COPD",
            connection_status="Online",
            heart_rate=112,
            oxygen_level=88,
            last_reading=(now - timedelta(minutes=2)).isoformat(),
        ),
        Patient(
            patient_id="P10",
            name="Chen Wei",
            gender="Male",
            age=52,
            medical_conditions="Type 2 diabetes",
            connection_status="Offline",
            heart_rate=58,
            oxygen_level=93,
            last_reading=(now - timedelta(hours=6)).isoformat(),
        ),
        Patient(patient_id="P3", name="Dana Okafor", gender="Female", connection_status="Online"),
    ]
    alerts = [
        Alert(
            alert_id="A0001",
            patient_id="P2",
            patient_name="Bruno Silva",
            severity_level="High",
            issue_detected="Low oxygen saturation (88%)",
            message="SpO2 below 90% for 3 minutes",
            datetime=(now - timedelta(minutes=2)).isoformat(),
        ),
        Alert(
            alert_id="A0002",
            patient_id="P10",
            patient_name="Chen Wei",
            severity_level="medium",
            issue_detected="Bradycardia",
            message="Heart rate under 60 bpm",
            resolved=True,
            datetime=(now - timedelta(days=2)).isoformat(),
        ),
    ]
    return InMemoryDataProvider(patients, alerts, stats=RawStats(total_alerts_today=3))


def print_overview(service: DashboardService) -> None:
    overview = service.overview()

    table = Table(title="Dashboard Overview")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="white")

    table.add_row("Total Patients", str(overview.total_patients))
    table.add_row("Active Patients", f"{overview.active_patients} ({overview.active_percent}%)")
    table.add_row("Critical Patients", str(overview.critical_patients))
    table.add_row("Unresolved Alerts", str(overview.unresolved_alerts))
    table.add_row("Average Heart Rate", f"{overview.avg_heart_rate:g} bpm")
    table.add_row("Average SpO2", f"{overview.avg_oxygen:g}%")
    table.add_row("Heart Rate Distribution", str(overview.heart_rate_distribution))
    table.add_row("SpO2 Distribution", str(overview.oxygen_distribution))
    table.add_row("Alert Density", f"{overview.alert_density_percent}%")

    console.print(table)


def print_patients(service: DashboardService, query: PatientQuery) -> None:
    table = Table(title=f"Patients by {query.sort_by} ({query.direction.value})")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("HR")
    table.add_column("SpO2")

    styles = {"ok": "green", "warn": "yellow", "crit": "red"}
    for patient in service.patients_view(query):
        hr = classify_vital("hr", patient.heart_rate).value
        spo2 = classify_vital("spo2", patient.oxygen_level).value
        table.add_row(
            patient.patient_id,
            patient.name or "",
            patient.connection_status or "Unknown",
            f"[{styles[hr]}]{patient.heart_rate or '--'}[/]",
            f"[{styles[spo2]}]{patient.oxygen_level or '--'}[/]",
        )

    console.print(table)


def print_alerts(service: DashboardService, query: AlertQuery) -> None:
    table = Table(title="Alerts")
    table.add_column("ID", style="cyan")
    table.add_column("Patient")
    table.add_column("Severity")
    table.add_column("Issue")
    table.add_column("Resolved")

    for alert in service.alerts_view(query):
        table.add_row(
            alert.alert_id,
            alert.patient_name or alert.patient_id or "",
            alert.severity_level or "",
            alert.issue_detected or "",
            "yes" if alert.resolved else "no",
        )

    console.print(table)


async def main() -> None:
    config = get_config()
    configure_logging(config.logging)

    console.print(Panel("Vitals Dashboard - Engine Walkthrough", style="bold blue"))

    now = datetime.now(UTC)
    provider = sample_provider(now)
    service = DashboardService(provider, config.dashboard)

    result = await service.refresh()
    if result.is_err():
        console.print(f"Refresh failed: {result.unwrap_err()}", style="red")
        return

    print_overview(service)
    print_patients(service, PatientQuery(sort_by="patient_id", direction="asc"))
    print_alerts(service, AlertQuery(window="7d"))

    console.print("\nSubmitting a critical telemetry reading for P1...", style="yellow")
    triggered = provider.submit_telemetry(
        TelemetryReading(patient_id="P1", heart_rate=132, oxygen_level=95)
    )
    console.print(f"Alert triggered: {triggered}", style="red" if triggered else "green")

    await service.refresh()
    print_overview(service)
    print_alerts(service, AlertQuery(status="unresolved", sort_by="severity"))


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        console.print("\nStopped by user", style="yellow")
