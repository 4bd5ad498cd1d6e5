"""
Dashboard service: snapshot refresh from a data provider and memoized views.

Key patterns:
- Protocol-based data provider, so any backend (HTTP client, fixture) plugs in
- Result type for expected failures: a failed refresh keeps the last good snapshot
- Each refresh replaces the snapshot wholesale; derived views are recomputed from it
- Structured concurrency with asyncio.TaskGroup for the provider calls
"""

import asyncio
import time
from collections.abc import AsyncIterator, Hashable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from typing import Any, Generic, Protocol, TypeVar

import structlog

from vitalboard.config import DashboardConfig
from vitalboard.domain.models import (
    Alert,
    AlertQuery,
    DashboardOverview,
    Patient,
    PatientQuery,
    RawStats,
    TimeWindow,
    VitalKind,
)
from vitalboard.services.aggregation import (
    aggregate_alert_stats,
    aggregate_patient_stats,
    alerts_by_hour,
    hour_bar_heights,
    js_round,
    percent,
    resolve_stat,
    vital_distribution,
    vital_values,
)
from vitalboard.services.charts import gauge_percent, sparkline_path
from vitalboard.services.query_engine import ensure_records, query_alerts, query_patients

logger = structlog.get_logger(__name__)

ValueT = TypeVar("ValueT")
ErrorT = TypeVar("ErrorT", bound=BaseException)


class Result(Generic[ValueT, ErrorT]):
    """
    Explicit error handling without exceptions for expected failures.

    A provider outage is expected business logic for a dashboard that refreshes
    periodically, so refresh() reports it as a value instead of raising.
    """

    __slots__ = ("_snapshot", "_error")

    def __init__(self, snapshot: ValueT | None, error: ErrorT | None) -> None:
        if (snapshot is None) == (error is None):
            raise ValueError("Result holds exactly one of a value or an error")
        self._snapshot = snapshot
        self._error = error

    @classmethod
    def ok(cls, snapshot: ValueT) -> "Result[ValueT, ErrorT]":
        return cls(snapshot, None)

    @classmethod
    def err(cls, error: ErrorT) -> "Result[ValueT, ErrorT]":
        return cls(None, error)

    def is_ok(self) -> bool:
        return self._error is None

    def is_err(self) -> bool:
        return not self.is_ok()

    def unwrap(self) -> ValueT:
        """The value, or the stored error raised."""
        if self._error is not None:
            raise self._error
        return self._snapshot  # type: ignore[return-value]

    def unwrap_err(self) -> ErrorT:
        if self._error is None:
            raise ValueError("refresh succeeded; there is no error to unwrap")
        return self._error


class DataProvider(Protocol):
    """
    Source of the raw dashboard collections.

    Implementations may return records or raw mappings; the service validates
    them into records. get_stats() may return None or a partial mapping.
    """

    async def get_patients(self) -> list[Patient] | list[dict[str, Any]]: ...

    async def get_alerts(self) -> list[Alert] | list[dict[str, Any]]: ...

    async def get_stats(self) -> RawStats | dict[str, Any] | None: ...


@dataclass(frozen=True)
class DashboardSnapshot:
    """One refresh worth of data. Never merged with earlier snapshots."""

    patients: tuple[Patient, ...]
    alerts: tuple[Alert, ...]
    stats: RawStats
    version: int
    fetched_at: datetime = field(default_factory=lambda: datetime.now(UTC))


def _to_raw_stats(stats: RawStats | dict[str, Any] | None) -> RawStats:
    if isinstance(stats, RawStats):
        return stats
    return RawStats.model_validate(stats or {})


class DashboardService:
    """
    Owns the current snapshot and serves every view derived from it.

    Design principles:
    - Graceful degradation (a failed refresh keeps the previous snapshot)
    - Memoized views keyed by query state, dropped whenever the snapshot changes
    - Observable (structured logging for refreshes and cache behaviour)
    """

    def __init__(
        self,
        provider: DataProvider,
        config: DashboardConfig | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or DashboardConfig()
        self.tz = tz
        self.logger = logger.bind(component="dashboard_service")
        self._snapshot: DashboardSnapshot | None = None
        self._views: dict[Hashable, list[Any]] = {}
        self._version = 0

    @property
    def snapshot(self) -> DashboardSnapshot:
        if self._snapshot is None:
            raise RuntimeError("No data loaded yet - call refresh() first")
        return self._snapshot

    @property
    def has_snapshot(self) -> bool:
        return self._snapshot is not None

    async def _fetch(self, call: Any) -> Any:
        return await asyncio.wait_for(call, timeout=self.config.refresh_timeout_seconds)

    async def refresh(self) -> Result[DashboardSnapshot, Exception]:
        """
        Fetch all three collections concurrently and swap in a new snapshot.

        Returns:
            Result containing the new snapshot, or the error that prevented it.
            On error the previous snapshot and its memoized views stay in place.
        """
        start_time = time.perf_counter()

        try:
            async with asyncio.TaskGroup() as task_group:
                patients_task = task_group.create_task(self._fetch(self.provider.get_patients()))
                alerts_task = task_group.create_task(self._fetch(self.provider.get_alerts()))
                stats_task = task_group.create_task(self._fetch(self.provider.get_stats()))

            snapshot = DashboardSnapshot(
                patients=tuple(ensure_records(patients_task.result(), Patient)),
                alerts=tuple(ensure_records(alerts_task.result(), Alert)),
                stats=_to_raw_stats(stats_task.result()),
                version=self._version + 1,
            )
        except Exception as e:
            error = e.exceptions[0] if isinstance(e, ExceptionGroup) else e
            self.logger.warning(
                "dashboard_refresh_failed",
                error=str(error) or type(error).__name__,
                error_type=type(error).__name__,
                kept_version=self._version,
            )
            return Result.err(error)

        self._snapshot = snapshot
        self._version = snapshot.version
        self._views.clear()

        self.logger.info(
            "dashboard_refreshed",
            version=snapshot.version,
            patients=len(snapshot.patients),
            alerts=len(snapshot.alerts),
            duration_seconds=round(time.perf_counter() - start_time, 3),
        )
        return Result.ok(snapshot)

    async def refresh_continuously(self) -> AsyncIterator[Result[DashboardSnapshot, Exception]]:
        """Refresh on a fixed interval, yielding each outcome; backs off after failures."""
        interval = self.config.refresh_interval_seconds
        self.logger.info("dashboard_refresh_loop_started", interval_seconds=interval)

        while True:
            started = time.perf_counter()
            result = await self.refresh()
            yield result

            if result.is_err():
                await asyncio.sleep(min(60.0, interval * 2))
                continue

            elapsed = time.perf_counter() - started
            sleep_time = max(0.0, interval - elapsed)
            if sleep_time > 0:
                await asyncio.sleep(sleep_time)
            else:
                self.logger.warning(
                    "dashboard_refresh_slower_than_interval",
                    elapsed_seconds=round(elapsed, 3),
                    interval_seconds=interval,
                )

    def _memoized(self, key: Hashable, compute: Any) -> list[Any]:
        if key not in self._views:
            self._views[key] = compute()
        else:
            self.logger.debug("dashboard_view_cache_hit", view=key[0])
        return list(self._views[key])

    def patients_view(self, query: PatientQuery | None = None) -> list[Patient]:
        query = query or PatientQuery()
        snapshot = self.snapshot
        return self._memoized(
            ("patients", query), lambda: query_patients(list(snapshot.patients), query)
        )

    def alerts_view(
        self, query: AlertQuery | None = None, now: datetime | None = None
    ) -> list[Alert]:
        """
        Alerts for the alerts list.

        A time-windowed query without an explicit now depends on the wall clock,
        so it is recomputed on every call instead of memoized.
        """
        query = query or AlertQuery()
        snapshot = self.snapshot
        if now is None and query.window is not TimeWindow.ALL:
            return query_alerts(list(snapshot.alerts), query)
        return self._memoized(
            ("alerts", query, now), lambda: query_alerts(list(snapshot.alerts), query, now)
        )

    def overview(self, now: datetime | None = None) -> DashboardOverview:
        """Dashboard numbers with server-supplied stats taking precedence over local ones."""
        snapshot = self.snapshot
        cfg = self.config
        patients = list(snapshot.patients)
        alerts = list(snapshot.alerts)
        server = snapshot.stats

        patient_stats = aggregate_patient_stats(patients)
        alert_stats = aggregate_alert_stats(alerts, now)

        total_patients = resolve_stat(server.total_patients, patient_stats.total)
        active_patients = resolve_stat(server.active_patients, patient_stats.active_count)
        avg_heart_rate = resolve_stat(
            server.avg_heart_rate_today, float(js_round(patient_stats.avg_heart_rate))
        )
        avg_oxygen = resolve_stat(
            server.avg_oxygen_level_today, float(js_round(patient_stats.avg_oxygen))
        )
        total_alerts_today = resolve_stat(server.total_alerts_today, alert_stats.total)

        by_hour = alerts_by_hour(alerts, tz=self.tz)
        sample = sorted(vital_values(patients, VitalKind.HEART_RATE)[: cfg.sparkline_sample_size])

        return DashboardOverview(
            total_patients=total_patients,
            active_patients=active_patients,
            critical_patients=resolve_stat(
                server.critical_alerts_today, patient_stats.critical_count
            ),
            unresolved_alerts=resolve_stat(server.unresolved_alerts, alert_stats.unresolved_count),
            avg_heart_rate=avg_heart_rate,
            avg_oxygen=avg_oxygen,
            total_alerts_today=total_alerts_today,
            active_percent=percent(active_patients, total_patients),
            heart_rate_gauge_percent=gauge_percent(avg_heart_rate, *cfg.heart_rate_gauge_range),
            oxygen_gauge_percent=gauge_percent(avg_oxygen, *cfg.oxygen_gauge_range),
            alert_density_percent=max(0, min(100, total_alerts_today * 4)),
            heart_rate_distribution=vital_distribution(patients, VitalKind.HEART_RATE),
            oxygen_distribution=vital_distribution(patients, VitalKind.OXYGEN_LEVEL),
            alerts_by_hour=by_hour,
            alert_bar_heights=hour_bar_heights(
                by_hour, max_height=cfg.bar_max_height, floor=cfg.bar_min_height
            ),
            heart_rate_sparkline=sparkline_path(
                sample,
                width=cfg.sparkline_width,
                height=cfg.sparkline_height,
                padding_x=cfg.sparkline_padding_x,
                padding_y=cfg.sparkline_padding_y,
            ),
        )
