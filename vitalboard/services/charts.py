"""Point reduction for the dashboard's lightweight SVG sketches."""

from collections.abc import Sequence

from vitalboard.services.aggregation import js_round

Point = tuple[float, float]


def sparkline_points(
    values: Sequence[float],
    width: float = 220,
    height: float = 54,
    padding_x: float = 6,
    padding_y: float = 6,
) -> list[Point]:
    """
    Normalize a series into screen coordinates.

    Points are evenly spaced across the inner width (categorical x-axis) and the
    y-axis is inverted, so higher values sit higher on screen. A flat series is
    drawn along the vertical centre.
    """
    if len(values) < 2:
        return []

    low, high = min(values), max(values)
    inner_width = width - padding_x * 2
    inner_height = height - padding_y * 2
    step = inner_width / (len(values) - 1)

    def y(value: float) -> float:
        if high == low:
            return padding_y + inner_height / 2
        t = (value - low) / (high - low)
        return padding_y + inner_height - t * inner_height

    return [(padding_x + i * step, y(v)) for i, v in enumerate(values)]


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else repr(float(number))


def sparkline_path(
    values: Sequence[float],
    width: float = 220,
    height: float = 54,
    padding_x: float = 6,
    padding_y: float = 6,
) -> str:
    """SVG path ("M x y L x y ...") for the series, or "" when there is nothing to draw."""
    points = sparkline_points(values, width, height, padding_x, padding_y)
    if not points:
        return ""
    (x0, y0), rest = points[0], points[1:]
    segments = [f"M {_fmt(x0)} {_fmt(y0)}"]
    segments.extend(f"L {_fmt(x)} {_fmt(y)}" for x, y in rest)
    return " ".join(segments)


def gauge_percent(value: float, low: float, high: float) -> int:
    """Position of value within [low, high] as a clamped, rounded percentage."""
    if high <= low:
        return 0
    return max(0, min(100, js_round((value - low) / (high - low) * 100)))
