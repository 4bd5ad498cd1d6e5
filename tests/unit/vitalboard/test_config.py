"""
Tests for configuration management in `vitalboard/config.py`.

Covers:
- Environment parsing and debug defaults
- Logging level coercion to the expected Literal
- Dashboard refresh settings from the environment
- Sparkline geometry validation
- get_config cache behavior
- AppConfig validation (debug only allowed in development)
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from pydantic import ValidationError

from vitalboard.config import (
    AppConfig,
    DashboardConfig,
    LoggingConfig,
    get_config,
    load_config_from_env,
)
from vitalboard.observability import configure_logging


@pytest.fixture(autouse=True)
def clear_config_cache() -> Iterator[None]:
    """Ensure get_config cache is cleared before and after each test."""
    get_config.cache_clear()
    yield
    get_config.cache_clear()


def test_load_config_dev_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "dev")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("REFRESH_INTERVAL_SECONDS", raising=False)

    config = load_config_from_env()

    assert config.environment == "development"
    assert config.debug is True
    assert config.logging.format == "console"
    assert config.logging.level == "INFO"
    assert config.dashboard.refresh_interval_seconds == 30.0


def test_production_logs_json(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "production")

    config = load_config_from_env()

    assert config.debug is False
    assert config.logging.format == "json"


def test_logging_level_literal_coercion(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "staging")

    # Unknown level should coerce to INFO
    monkeypatch.setenv("LOG_LEVEL", "unknown")
    assert load_config_from_env().logging.level == "INFO"

    # Known level should pass through
    monkeypatch.setenv("LOG_LEVEL", "error")
    assert load_config_from_env().logging.level == "ERROR"


def test_dashboard_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "5")
    monkeypatch.setenv("REFRESH_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("SPARKLINE_SAMPLE_SIZE", "20")

    dashboard = load_config_from_env().dashboard

    assert dashboard.refresh_interval_seconds == 5.0
    assert dashboard.refresh_timeout_seconds == 2.5
    assert dashboard.sparkline_sample_size == 20


def test_invalid_refresh_interval_fails_fast(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REFRESH_INTERVAL_SECONDS", "0")

    with pytest.raises(ValidationError):
        load_config_from_env()


def test_dashboard_defaults() -> None:
    config = DashboardConfig()

    assert config.sparkline_sample_size == 40
    assert config.heart_rate_gauge_range == (40.0, 120.0)
    assert config.oxygen_gauge_range == (85.0, 100.0)
    assert (config.bar_max_height, config.bar_min_height) == (54, 3)


def test_sparkline_padding_must_leave_room() -> None:
    with pytest.raises(ValueError, match="no drawable width"):
        DashboardConfig(sparkline_width=10, sparkline_padding_x=5)
    with pytest.raises(ValueError, match="no drawable height"):
        DashboardConfig(sparkline_height=10, sparkline_padding_y=6)


def test_get_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", "development")

    # First call populates cache
    c1 = get_config()
    c2 = get_config()
    assert c1 is c2  # same object due to lru_cache


def test_app_config_debug_only_in_dev_validation() -> None:
    with pytest.raises(ValueError, match="debug mode is only allowed"):
        AppConfig(environment="production", debug=True)


@pytest.mark.parametrize("log_format", ["json", "console"])
def test_configure_logging_accepts_both_formats(log_format: str) -> None:
    configure_logging(LoggingConfig(level="DEBUG", format=log_format))
