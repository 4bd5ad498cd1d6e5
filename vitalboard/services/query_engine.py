"""
Search, filter and sort engine shared by every dashboard view.

Each view (dashboard, patients, alerts, test center) asks the same engine for its
rows, so they cannot drift apart. Filtering is conjunctive across free-text
search, categorical filters and (for alerts) the time window. Sorting is stable in
both directions, so records with equal keys keep their original relative order.
"""

import re
import unicodedata
from collections.abc import Callable, Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, TypeVar, overload

import structlog
from pydantic import BaseModel

from vitalboard.domain.models import (
    Alert,
    AlertQuery,
    ConnectionStatus,
    Patient,
    PatientQuery,
    SortDirection,
)
from vitalboard.services.classification import (
    classify_severity,
    connection_status,
    severity_rank,
    vital_value,
)
from vitalboard.services.time_window import in_window, timestamp_key

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

PATIENT_SEARCH_FIELDS = ("name", "patient_id", "medical_conditions", "gender")
ALERT_SEARCH_FIELDS = ("patient_name", "patient_id", "issue_detected", "message", "severity_level")

_DIGIT_RUN = re.compile(r"(\d+)")


def ensure_records(collection: Any, model: type[RecordT]) -> list[RecordT]:
    """
    Validate the collection shape at the engine boundary.

    Raw mappings are validated into records; anything that is not a list or tuple
    of records or mappings is a contract violation.

    Raises:
        TypeError: If the collection or one of its items has the wrong shape.
    """
    if not isinstance(collection, list | tuple):
        raise TypeError(
            f"Expected a list of {model.__name__} records, got {type(collection).__name__}"
        )

    records: list[RecordT] = []
    for item in collection:
        if isinstance(item, model):
            records.append(item)
        elif isinstance(item, dict):
            records.append(model.model_validate(item))
        else:
            raise TypeError(f"Expected {model.__name__} or mapping, got {type(item).__name__}")
    return records


LocaleKey = tuple[tuple[tuple[int, int, str], ...], str]


def _base_letters(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def locale_key(text: str | None, numeric: bool = False) -> LocaleKey:
    """
    Sort key approximating a browser locale comparison.

    Case- and accent-insensitive primary order ("Émile" sorts with "Emile"), with
    the original text breaking ties so lowercase and unaccented letters come first.
    With numeric collation, digit runs compare by value so "P2" sorts before "P10".
    """
    text = text or ""
    chunks = _DIGIT_RUN.split(text) if numeric else [text]

    primary: list[tuple[int, int, str]] = []
    for chunk in chunks:
        if not chunk:
            continue
        if numeric and chunk.isdecimal():
            primary.append((0, int(chunk), ""))
        else:
            primary.append((1, 0, _base_letters(chunk).casefold()))
    return tuple(primary), text.swapcase()


def matches_search(record: BaseModel, search: str, fields: Iterable[str]) -> bool:
    """True when any of the fields contains the trimmed, lowercased search text."""
    needle = search.strip().lower()
    if not needle:
        return True
    for field in fields:
        value = getattr(record, field, None)
        haystack = "" if value is None else str(value)
        if needle in haystack.lower():
            return True
    return False


def _numeric_key(value: Any) -> float:
    number = vital_value(value)
    return float("-inf") if number is None else number


def _sort(
    records: Sequence[RecordT], key: Callable[[RecordT], Any], direction: SortDirection
) -> list[RecordT]:
    # sorted() stays stable with reverse=True, so ties keep input order either way
    return sorted(records, key=key, reverse=SortDirection(direction) is SortDirection.DESC)


# Patients

PATIENT_SORT_KEYS: dict[str, Callable[[Patient], Any]] = {
    "last_reading": lambda p: timestamp_key(p.last_reading),
    "patient_id": lambda p: locale_key(p.patient_id, numeric=True),
    "name": lambda p: locale_key(p.name),
    "heart_rate": lambda p: _numeric_key(p.heart_rate),
    "oxygen_level": lambda p: _numeric_key(p.oxygen_level),
}


def patient_matches(patient: Patient, query: PatientQuery) -> bool:
    status = connection_status(patient)
    if query.status != "all" and status is not ConnectionStatus(query.status):
        return False
    if query.online_only and status is not ConnectionStatus.ONLINE:
        return False

    gender = query.gender.strip().lower()
    if gender != "all" and (patient.gender or "").strip().lower() != gender:
        return False

    return matches_search(patient, query.search, PATIENT_SEARCH_FIELDS)


def query_patients(patients: Any, query: PatientQuery | None = None) -> list[Patient]:
    """Filter and sort patients into a new list; the input is left untouched."""
    query = query or PatientQuery()
    records = ensure_records(patients, Patient)

    matched = [p for p in records if patient_matches(p, query)]
    result = _sort(matched, PATIENT_SORT_KEYS[query.sort_by], query.direction)

    logger.debug(
        "patients_queried",
        total=len(records),
        matched=len(result),
        sort_by=query.sort_by,
        direction=query.direction.value,
    )
    return result


# Alerts


def _alert_patient_key(alert: Alert) -> LocaleKey:
    return locale_key((alert.patient_name or "") + (alert.patient_id or ""))


ALERT_SORT_KEYS: dict[str, Callable[[Alert], Any]] = {
    "datetime": lambda a: timestamp_key(a.datetime),
    "severity": lambda a: severity_rank(classify_severity(a.severity_level)),
    "patient": _alert_patient_key,
    "status": lambda a: int(a.resolved),
}


def alert_matches(alert: Alert, query: AlertQuery, now: datetime) -> bool:
    if query.severity != "all" and classify_severity(alert.severity_level).value != query.severity:
        return False
    if query.status == "unresolved" and alert.resolved:
        return False
    if query.status == "resolved" and not alert.resolved:
        return False
    if not in_window(alert.datetime, query.window, now):
        return False
    return matches_search(alert, query.search, ALERT_SEARCH_FIELDS)


def query_alerts(
    alerts: Any, query: AlertQuery | None = None, now: datetime | None = None
) -> list[Alert]:
    """
    Filter and sort alerts into a new list.

    Args:
        alerts: List of Alert records or raw mappings.
        query: Search, filter and sort selections. Defaults to newest first, no filters.
        now: Reference time for the recency window. Defaults to the current UTC time.
    """
    query = query or AlertQuery()
    now = now or datetime.now(UTC)
    records = ensure_records(alerts, Alert)

    matched = [a for a in records if alert_matches(a, query, now)]
    result = _sort(matched, ALERT_SORT_KEYS[query.sort_by], query.direction)

    logger.debug(
        "alerts_queried",
        total=len(records),
        matched=len(result),
        window=query.window.value,
        sort_by=query.sort_by,
        direction=query.direction.value,
    )
    return result


@overload
def query(collection: Any, state: PatientQuery, now: datetime | None = None) -> list[Patient]: ...


@overload
def query(collection: Any, state: AlertQuery, now: datetime | None = None) -> list[Alert]: ...


def query(
    collection: Any, state: PatientQuery | AlertQuery, now: datetime | None = None
) -> list[Patient] | list[Alert]:
    """Dispatch to the patient or alert query based on the query state type."""
    if isinstance(state, PatientQuery):
        return query_patients(collection, state)
    if isinstance(state, AlertQuery):
        return query_alerts(collection, state, now)
    raise TypeError(f"Unsupported query state: {type(state).__name__}")
