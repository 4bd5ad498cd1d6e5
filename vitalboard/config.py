"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class DashboardConfig(BaseModel):
    """Refresh cadence and chart geometry for the dashboard views."""

    refresh_interval_seconds: float = Field(
        default=30.0, gt=0.0, description="Interval between data provider refreshes"
    )
    refresh_timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for a single provider call"
    )

    # Heart rate sparkline
    sparkline_sample_size: int = Field(
        default=40, gt=1, description="Number of readings drawn in the sparkline"
    )
    sparkline_width: float = Field(default=220.0, gt=0.0)
    sparkline_height: float = Field(default=54.0, gt=0.0)
    sparkline_padding_x: float = Field(default=6.0, ge=0.0)
    sparkline_padding_y: float = Field(default=6.0, ge=0.0)

    # Alerts by hour bar chart
    bar_max_height: int = Field(default=54, gt=0, description="Height of the tallest bar")
    bar_min_height: int = Field(default=3, ge=0, description="Tick height for empty hours")

    # Gauge ranges
    heart_rate_gauge_range: tuple[float, float] = Field(default=(40.0, 120.0))
    oxygen_gauge_range: tuple[float, float] = Field(default=(85.0, 100.0))

    @model_validator(mode="after")
    def padding_fits_sparkline(self) -> "DashboardConfig":
        """Ensure the sparkline keeps a drawable inner area."""
        if self.sparkline_padding_x * 2 >= self.sparkline_width:
            raise ValueError("sparkline horizontal padding leaves no drawable width")
        if self.sparkline_padding_y * 2 >= self.sparkline_height:
            raise ValueError("sparkline vertical padding leaves no drawable height")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    dashboard: DashboardConfig = Field(default_factory=DashboardConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    dashboard_config = DashboardConfig(
        refresh_interval_seconds=float(os.getenv("REFRESH_INTERVAL_SECONDS", "30.0")),
        refresh_timeout_seconds=float(os.getenv("REFRESH_TIMEOUT_SECONDS", "10.0")),
        sparkline_sample_size=int(os.getenv("SPARKLINE_SAMPLE_SIZE", "40")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        dashboard=dashboard_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level} ({config.logging.format})")

    print("\nDASHBOARD CONFIGURATION")
    print(f"Refresh Interval: {config.dashboard.refresh_interval_seconds}s")
    print(f"Refresh Timeout: {config.dashboard.refresh_timeout_seconds}s")
    print(f"Sparkline Samples: {config.dashboard.sparkline_sample_size}")


if __name__ == "__main__":
    print_config_summary()
