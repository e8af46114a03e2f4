"""
Interval selection and calendar bucketing for sales time series.

The granularity is a pure function of the range span. Bucketing always
emits one point per calendar bucket between start and end, zero-filled,
in ascending order. Day-keyed rows are summed into their containing
bucket, so week and month buckets carry the full total of their days.
"""
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Tuple

from dateutil.relativedelta import relativedelta

from storepulse.config import config
from storepulse.models import BucketPoint, Granularity


def span_days(start: date, end: date) -> int:
    """Whole days between start and end, direction ignored."""
    return abs((end - start).days)


def select_granularity(
    start: date,
    end: date,
    day_max_span: int = config.analytics.day_bucket_max_span,
    week_max_span: int = config.analytics.week_bucket_max_span,
) -> Granularity:
    """
    Pick bucket granularity from the span of the range.

    Examples:
        >>> select_granularity(date(2026, 1, 1), date(2026, 1, 15))
        <Granularity.DAY: 'day'>
        >>> select_granularity(date(2026, 1, 1), date(2026, 1, 16))
        <Granularity.WEEK: 'week'>
    """
    span = span_days(start, end)
    if span <= day_max_span:
        return Granularity.DAY
    if span <= week_max_span:
        return Granularity.WEEK
    return Granularity.MONTH


def bucket_start(value: date, granularity: Granularity) -> date:
    """First day of the bucket containing value (weeks start on Monday)."""
    if granularity == Granularity.WEEK:
        return value - timedelta(days=value.weekday())
    if granularity == Granularity.MONTH:
        return value.replace(day=1)
    return value


def next_bucket(value: date, granularity: Granularity) -> date:
    if granularity == Granularity.WEEK:
        return value + timedelta(days=7)
    if granularity == Granularity.MONTH:
        return value + relativedelta(months=1)
    return value + timedelta(days=1)


def _month(value: date) -> str:
    return value.strftime("%b")


def bucket_label(start: date, granularity: Granularity) -> str:
    """
    Chart label for a bucket.

    Examples:
        >>> bucket_label(date(2026, 1, 5), Granularity.DAY)
        '5 Jan'
        >>> bucket_label(date(2026, 1, 26), Granularity.WEEK)
        '26 Jan - 1 Feb'
    """
    if granularity == Granularity.DAY:
        return f"{start.day} {_month(start)}"

    if granularity == Granularity.WEEK:
        end = start + timedelta(days=6)
        if start.month == end.month:
            return f"{start.day} - {end.day} {_month(start)}"
        return f"{start.day} {_month(start)} - {end.day} {_month(end)}"

    return _month(start)


def iter_buckets(start: date, end: date, granularity: Granularity) -> List[date]:
    """Start dates of every bucket overlapping [start, end], ascending."""
    buckets = []
    current = bucket_start(start, granularity)
    while current <= end:
        buckets.append(current)
        current = next_bucket(current, granularity)
    return buckets


def fill_buckets(
    start: date,
    end: date,
    rows: Iterable[Tuple[date, float]],
    granularity: Granularity,
) -> List[BucketPoint]:
    """
    Build the gap-filled series for [start, end].

    Args:
        start: First day of the range
        end: Last day of the range
        rows: (day, value) pairs keyed at day granularity
        granularity: Bucket size

    Returns:
        One BucketPoint per bucket; empty only when start > end
    """
    totals: Dict[date, float] = defaultdict(float)
    for day, value in rows:
        totals[bucket_start(day, granularity)] += float(value or 0)

    return [
        BucketPoint(
            label=bucket_label(bucket, granularity),
            value=totals.get(bucket, 0.0),
            bucket_start=bucket,
        )
        for bucket in iter_buckets(start, end, granularity)
    ]
