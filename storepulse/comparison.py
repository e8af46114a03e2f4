"""Percentage change between aggregate snapshots."""
from typing import Optional

from storepulse.models import (
    BenchmarkResult,
    ComparisonResult,
    MetricChanges,
    PeriodAggregate,
)
from storepulse.periods import DateRange


def percentage_change(current: float, previous: Optional[float]) -> float:
    """
    Percentage change from previous to current.

    A zero or missing previous value yields 100 when current is positive
    and 0 otherwise.

    Examples:
        >>> percentage_change(150, 100)
        50.0
        >>> percentage_change(50, 0)
        100
        >>> percentage_change(0, 0)
        0
    """
    if not previous:
        return 100 if current > 0 else 0
    return ((current - previous) / previous) * 100


def compare_aggregates(current: PeriodAggregate, previous: PeriodAggregate) -> MetricChanges:
    return MetricChanges(
        revenue=percentage_change(current.revenue, previous.revenue),
        orders=percentage_change(current.orders, previous.orders),
        average_order_value=percentage_change(
            current.average_order_value, previous.average_order_value
        ),
        sessions=percentage_change(current.sessions, previous.sessions),
        conversion_rate=percentage_change(
            current.conversion_rate_percent, previous.conversion_rate_percent
        ),
    )


def build_comparison(
    current: PeriodAggregate,
    previous: PeriodAggregate,
    comparison_range: DateRange,
) -> ComparisonResult:
    """Comparison section: changes plus raw comparison values and the range."""
    return ComparisonResult(
        changes=compare_aggregates(current, previous),
        values=previous,
        range=comparison_range,
    )


def build_benchmark(current: PeriodAggregate, benchmark: PeriodAggregate) -> BenchmarkResult:
    """Benchmark section: changes only."""
    return BenchmarkResult(changes=compare_aggregates(current, benchmark))
