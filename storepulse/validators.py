"""
Input validation functions for API parameters.

All validators raise ValidationError on invalid input.
"""

import math
import re
from datetime import date, datetime
from typing import Optional, Tuple

from storepulse.config import config
from storepulse.exceptions import ValidationError
from storepulse.models import SuccessAxis
from storepulse.periods import BenchmarkPeriod, ComparisonKind, DateRange, parse_range

# Store ids are opaque: uuids, shop handles, numeric ids
STORE_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,127}$")


def validate_date_string(
    value: str,
    field: str = "date",
    format: str = "%Y-%m-%d"
) -> date:
    """
    Validate and parse a date string.

    Args:
        value: Date string to validate
        field: Field name for error messages
        format: Expected date format (default: YYYY-MM-DD)

    Returns:
        Parsed date object

    Raises:
        ValidationError: If date is invalid or in wrong format
    """
    if not value:
        raise ValidationError(field, "Date is required", value)

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    try:
        return datetime.strptime(value, format).date()
    except ValueError:
        raise ValidationError(
            field,
            f"Invalid date format. Expected {format}",
            value
        )


def validate_optional_date(value: Optional[str], field: str = "date") -> Optional[date]:
    """Like validate_date_string, but None/empty means unset."""
    if value is None or value == "":
        return None
    return validate_date_string(value, field)


def validate_date_range(
    start_date: Optional[str],
    end_date: Optional[str],
    today: date,
    max_days: int = config.analytics.max_range_days,
    default_days: int = config.analytics.default_range_days,
) -> DateRange:
    """
    Validate the primary analytics range.

    Missing dates fall back to the default window ending today.

    Args:
        start_date: Start date string (YYYY-MM-DD) or None
        end_date: End date string (YYYY-MM-DD) or None
        today: Current date in the store timezone
        max_days: Maximum allowed range in days

    Returns:
        The validated DateRange

    Raises:
        ValidationError: If dates are invalid or range is too large
    """
    start = validate_optional_date(start_date, "start_date")
    end = validate_optional_date(end_date, "end_date")

    if start and end and start > end:
        raise ValidationError(
            "date_range",
            "Start date must be before or equal to end date",
            f"{start_date} to {end_date}"
        )

    date_range = parse_range(
        start.isoformat() if start else None,
        end.isoformat() if end else None,
        today=today,
        default_days=default_days,
    )

    days_diff = (date_range.end - date_range.start).days
    if days_diff > max_days:
        raise ValidationError(
            "date_range",
            f"Date range cannot exceed {max_days} days",
            f"{days_diff} days"
        )

    return date_range


def validate_store_id(value: Optional[str], field: str = "store_id") -> str:
    """
    Validate a store identifier.

    Raises:
        ValidationError: If the id is missing or has unexpected characters
    """
    if value is None or value == "":
        raise ValidationError(field, "Store id is required")

    if not isinstance(value, str):
        raise ValidationError(field, "Must be a string", value)

    value = value.strip()
    if not STORE_ID_PATTERN.match(value):
        raise ValidationError(
            field,
            "Must be 1-128 letters, digits, '_', '.', ':' or '-'",
            value
        )

    return value


def validate_store_name(value: Optional[str], max_length: int = 200) -> str:
    """Non-blank display name, surrounding whitespace stripped."""
    name = value.strip() if isinstance(value, str) else ""
    if not name:
        raise ValidationError("name", "Store name is required", value)
    if len(name) > max_length:
        raise ValidationError("name", f"Must be at most {max_length} characters", f"{len(name)} characters")
    return name


def validate_comparison_kind(value: Optional[str]) -> Optional[ComparisonKind]:
    """
    Validate the comparison selector.

    None, empty and "none" all mean no comparison.
    """
    if value is None or value == "":
        return None

    try:
        kind = ComparisonKind(value)
    except ValueError:
        raise ValidationError(
            "comparison",
            f"Must be one of: {', '.join(k.value for k in ComparisonKind)}",
            value
        )

    return None if kind == ComparisonKind.NONE else kind


def validate_benchmark_period(value: Optional[str]) -> BenchmarkPeriod:
    """Validate the benchmark selector. Defaults to the reference period itself."""
    if value is None or value == "":
        return BenchmarkPeriod.REF

    try:
        return BenchmarkPeriod(value)
    except ValueError:
        raise ValidationError(
            "benchmark",
            f"Must be one of: {', '.join(p.value for p in BenchmarkPeriod)}",
            value
        )


def validate_success_axis(value: Optional[str]) -> SuccessAxis:
    if not value:
        raise ValidationError("axis", "Axis is required")

    try:
        return SuccessAxis(value)
    except ValueError:
        raise ValidationError(
            "axis",
            f"Must be one of: {', '.join(a.value for a in SuccessAxis)}",
            value
        )


def validate_thresholds(low: float, medium: float, high: float) -> Tuple[float, float, float]:
    """
    Validate a threshold triple.

    Raises:
        ValidationError: If a value is not a finite number or the
            triple is not ordered low <= medium <= high
    """
    values = {"low": low, "medium": medium, "high": high}
    for name, value in values.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(name, "Must be a number", value)
        if not math.isfinite(value):
            raise ValidationError(name, "Must be a finite number", value)

    if not (low <= medium <= high):
        raise ValidationError(
            "thresholds",
            "Must satisfy low <= medium <= high",
            f"{low} / {medium} / {high}"
        )

    return float(low), float(medium), float(high)


def validate_reference_period(
    reference_start: Optional[str],
    reference_end: Optional[str],
) -> Tuple[Optional[date], Optional[date]]:
    """
    Validate a reference period update.

    Both unset clears the period. An end requires a start.
    """
    start = validate_optional_date(reference_start, "reference_start")
    end = validate_optional_date(reference_end, "reference_end")

    if end is not None and start is None:
        raise ValidationError("reference_start", "Required when reference_end is set", reference_end)

    if start and end and start > end:
        raise ValidationError(
            "reference_period",
            "Start date must be before or equal to end date",
            f"{reference_start} to {reference_end}"
        )

    return start, end
