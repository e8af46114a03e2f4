"""
Centralized configuration for StorePulse Analytics.

This module provides a single source of truth for all configuration values.
Configuration is loaded from environment variables with sensible defaults.

Usage:
    from storepulse.config import config

    db_path = config.database.path
    top_n = config.analytics.top_products_limit
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class DatabaseConfig:
    """DuckDB metrics store configuration."""

    path: Path = field(
        default_factory=lambda: Path(
            os.getenv("STOREPULSE_DB_PATH", str(BASE_DIR / "data" / "analytics.duckdb"))
        )
    )
    query_timeout_seconds: float = field(
        default_factory=lambda: float(os.getenv("STOREPULSE_QUERY_TIMEOUT", "30"))
    )


@dataclass(frozen=True)
class AnalyticsConfig:
    """Analytics engine tuning."""

    # Stores report in local calendar days
    timezone: str = field(
        default_factory=lambda: os.getenv("STORE_TIMEZONE", "America/Santiago")
    )

    # Dashboard window when no dates are passed
    default_range_days: int = 30
    max_range_days: int = 1095

    top_products_limit: int = 5

    # Bucket granularity by span: day up to 14 days, week up to 60, month beyond
    day_bucket_max_span: int = 14
    week_bucket_max_span: int = 60


@dataclass(frozen=True)
class WebConfig:
    """Web API configuration."""

    host: str = field(default_factory=lambda: os.getenv("WEB_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: int(os.getenv("WEB_PORT", "8080")))

    # Rate limiting
    rate_limit_per_minute: int = 60
    rate_limit_enabled: bool = field(
        default_factory=lambda: os.getenv("RATE_LIMIT_ENABLED", "true").lower() != "false"
    )

    request_timeout_seconds: float = 30.0
    # All-stores success classification runs one query pair per store
    slow_request_timeout_seconds: float = 120.0


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""

    version: str = "1.0.0"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    web: WebConfig = field(default_factory=WebConfig)


# Global config instance
config = AppConfig()


# ─── Convenience Exports ──────────────────────────────────────────────────────
VERSION = config.version
DB_PATH = config.database.path
STORE_TIMEZONE = config.analytics.timezone
TOP_PRODUCTS_LIMIT = config.analytics.top_products_limit


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def validate_config(app_config: AppConfig = config) -> None:
    """
    Validate that all required configuration is present.

    Call this on application startup to fail fast with clear error messages
    instead of cryptic runtime failures.

    Raises:
        ConfigurationError: If configuration is missing or inconsistent
    """
    errors = []

    try:
        ZoneInfo(app_config.analytics.timezone)
    except (ZoneInfoNotFoundError, ValueError):
        errors.append(f"STORE_TIMEZONE is not a known timezone: {app_config.analytics.timezone!r}")

    if app_config.database.query_timeout_seconds <= 0:
        errors.append("STOREPULSE_QUERY_TIMEOUT must be positive")

    analytics = app_config.analytics
    if analytics.day_bucket_max_span >= analytics.week_bucket_max_span:
        errors.append("day_bucket_max_span must be below week_bucket_max_span")

    if analytics.top_products_limit < 1:
        errors.append("top_products_limit must be at least 1")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
