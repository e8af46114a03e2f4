"""
StorePulse analytics engine.

This package contains the store analytics logic used by the web/ API:
- periods: Date ranges and comparison/benchmark resolution
- bucketing, aggregator, comparison, ranking: Combined analytics building blocks
- success: Reference period success classification
- duckdb_store: DuckDB metrics store
- exceptions: Custom exception hierarchy
- validators: Input validation functions
- config: Centralized configuration
"""

# Import in dependency order
from storepulse.exceptions import (
    StorePulseError,
    MetricsStoreError,
    QueryTimeoutError,
    StoreNotFoundError,
    ValidationError,
)

from storepulse.periods import (
    DateRange,
    ComparisonKind,
    BenchmarkPeriod,
)

from storepulse.validators import (
    validate_date_string,
    validate_date_range,
    validate_store_id,
    validate_store_name,
    validate_comparison_kind,
    validate_benchmark_period,
    validate_success_axis,
    validate_thresholds,
)

from storepulse.analytics_service import StoreAnalyticsService

from storepulse.config import config

__all__ = [
    # Exceptions
    "StorePulseError",
    "MetricsStoreError",
    "QueryTimeoutError",
    "StoreNotFoundError",
    "ValidationError",
    # Periods
    "DateRange",
    "ComparisonKind",
    "BenchmarkPeriod",
    # Validators
    "validate_date_string",
    "validate_date_range",
    "validate_store_id",
    "validate_store_name",
    "validate_comparison_kind",
    "validate_benchmark_period",
    "validate_success_axis",
    "validate_thresholds",
    # Service
    "StoreAnalyticsService",
    # Config
    "config",
]
