"""
Relative time windows evaluated against an explicit "now".

Timestamps arrive as ISO-8601 strings (or datetimes) from the data provider.
Naive values are read in local time and date-only values as UTC midnight,
matching how the dashboard's browser clients interpret them.
"""

from datetime import UTC, date, datetime, timedelta
from typing import Any

from vitalboard.domain.models import TimeWindow

WINDOW_LENGTHS: dict[TimeWindow, timedelta] = {
    TimeWindow.LAST_24H: timedelta(days=1),
    TimeWindow.LAST_7D: timedelta(days=7),
    TimeWindow.LAST_30D: timedelta(days=30),
}


def _as_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.astimezone()  # naive means local time
    return moment


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a timestamp into an aware datetime, or None when unparsable."""
    try:
        if isinstance(value, datetime):
            return _as_aware(value)
        if not isinstance(value, str):
            return None

        text = value.strip()
        if not text:
            return None
        if len(text) == 10:
            return datetime.combine(date.fromisoformat(text), datetime.min.time(), tzinfo=UTC)
        return _as_aware(datetime.fromisoformat(text))
    except (ValueError, OverflowError, OSError):
        return None


def timestamp_key(value: Any) -> float:
    """Epoch milliseconds for sorting; unparsable timestamps sort as the oldest."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return float("-inf")
    return parsed.timestamp() * 1000.0


def in_window(timestamp: Any, window: TimeWindow | str, now: datetime) -> bool:
    """
    Check whether a timestamp falls inside a relative window ending at now.

    Unparsable timestamps are outside every window except "all". Future
    timestamps are inside every window, since client and server clocks skew.
    """
    window = TimeWindow(window)
    if window is TimeWindow.ALL:
        return True

    parsed = parse_timestamp(timestamp)
    if parsed is None:
        return False
    return _as_aware(now) - parsed <= WINDOW_LENGTHS[window]
