"""
Core services for the dashboard.

This package contains the classification, time window, query and aggregation
engines, the chart point reducer, and the dashboard service that ties them to a
data provider.
"""

from .aggregation import aggregate_alert_stats, aggregate_patient_stats, resolve_stat
from .classification import classify_severity, classify_vital
from .dashboard import DashboardService, DashboardSnapshot, DataProvider, Result
from .in_memory_provider import InMemoryDataProvider, TelemetryReading
from .query_engine import query_alerts, query_patients

__all__ = [
    "DataProvider",
    "DashboardService",
    "DashboardSnapshot",
    "InMemoryDataProvider",
    "Result",
    "TelemetryReading",
    "aggregate_alert_stats",
    "aggregate_patient_stats",
    "classify_severity",
    "classify_vital",
    "query_alerts",
    "query_patients",
    "resolve_stat",
]
