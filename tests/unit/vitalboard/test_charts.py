"""Tests for sparkline and gauge geometry in `vitalboard/services/charts.py`."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from vitalboard.services.charts import gauge_percent, sparkline_path, sparkline_points


class TestSparkline:
    @pytest.mark.parametrize("values", [[], [5]])
    def test_too_few_points_draws_nothing(self, values: list[float]) -> None:
        assert sparkline_path(values) == ""
        assert sparkline_points(values) == []

    def test_flat_series_runs_along_the_centre(self) -> None:
        assert sparkline_path([5, 5, 5]) == "M 6 27 L 110 27 L 214 27"

    def test_y_axis_is_inverted(self) -> None:
        assert sparkline_points([0, 10]) == [(6.0, 48.0), (214.0, 6.0)]

    def test_fractional_coordinates_are_kept(self) -> None:
        assert sparkline_path([0, 1, 4]) == "M 6 48 L 110 37.5 L 214 6"

    @given(st.lists(st.floats(min_value=0, max_value=250), min_size=2, max_size=40))
    def test_points_are_evenly_spaced_inside_the_padding(self, values: list[float]) -> None:
        points = sparkline_points(values)
        xs = [x for x, _ in points]
        steps = {round(b - a, 6) for a, b in zip(xs, xs[1:])}

        assert len(points) == len(values)
        assert len(steps) == 1
        assert xs[0] == 6
        assert xs[-1] == pytest.approx(214)
        assert all(6 - 1e-9 <= y <= 48 + 1e-9 for _, y in points)


class TestGaugePercent:
    @pytest.mark.parametrize(
        "value, low, high, expected",
        [
            (80, 40, 120, 50),
            (92.5, 85, 100, 50),
            (30, 40, 120, 0),
            (200, 40, 120, 100),
            (86, 40, 120, 57),
            (88, 40, 120, 60),
        ],
    )
    def test_position_within_range(
        self, value: float, low: float, high: float, expected: int
    ) -> None:
        assert gauge_percent(value, low, high) == expected

    def test_empty_range_is_zero(self) -> None:
        assert gauge_percent(5, 10, 10) == 0
        assert gauge_percent(5, 10, 1) == 0
