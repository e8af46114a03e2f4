"""
Range-scoped metric aggregation with zero-safe derived fields.
"""
from typing import List, Optional, Tuple

from storepulse.bucketing import fill_buckets, select_granularity
from storepulse.contracts import MetricsSource
from storepulse.models import (
    BucketPoint,
    Granularity,
    PeriodAggregate,
    PeriodTotals,
    SessionPoint,
)
from storepulse.observability import get_logger
from storepulse.periods import DateRange

logger = get_logger(__name__)


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, resolving a zero denominator to 0."""
    if not denominator:
        return 0.0
    return numerator / denominator


def build_aggregate(totals: PeriodTotals) -> PeriodAggregate:
    """Derive average order value and conversion rate (%) from raw totals."""
    revenue = float(totals.revenue or 0)
    orders = int(totals.orders or 0)
    sessions = int(totals.sessions or 0)
    # Stored rates are fractions (0.0077 = 0.77%)
    conversion_fraction = float(totals.avg_conversion_fraction or 0)

    return PeriodAggregate(
        revenue=revenue,
        orders=orders,
        sessions=sessions,
        average_order_value=safe_divide(revenue, orders),
        conversion_rate_percent=conversion_fraction * 100,
    )


class MetricAggregator:
    """
    Issues range-scoped queries against a metrics source.

    Collaborator errors propagate unchanged; there are no retries.
    """

    def __init__(self, source: MetricsSource):
        self.source = source

    async def aggregate(self, store_id: str, date_range: DateRange) -> PeriodAggregate:
        """Totals and derived metrics over the inclusive range."""
        totals = await self.source.fetch_period_totals(store_id, date_range.start, date_range.end)
        aggregate = build_aggregate(totals)
        logger.debug(
            f"Aggregated {store_id} {date_range.start_str}..{date_range.end_str}",
            extra={"revenue": aggregate.revenue, "orders": aggregate.orders},
        )
        return aggregate

    async def revenue(self, store_id: str, date_range: DateRange) -> float:
        """Summed revenue only."""
        totals = await self.source.fetch_period_totals(store_id, date_range.start, date_range.end)
        return float(totals.revenue or 0)

    async def sales_over_time(
        self,
        store_id: str,
        date_range: DateRange,
        granularity: Optional[Granularity] = None,
    ) -> Tuple[Granularity, List[BucketPoint]]:
        """Gap-filled revenue series with granularity picked from the range span."""
        granularity = granularity or select_granularity(date_range.start, date_range.end)
        rows = await self.source.fetch_bucketed_revenue(store_id, date_range.start, date_range.end)
        return granularity, fill_buckets(date_range.start, date_range.end, rows, granularity)

    async def session_series(
        self,
        store_id: str,
        date_range: Optional[DateRange] = None,
    ) -> List[SessionPoint]:
        """Daily sessions ordered by date; whole history when no range is given."""
        if date_range is None:
            points = await self.source.fetch_session_metrics(store_id)
        else:
            points = await self.source.fetch_session_metrics(store_id, date_range.start, date_range.end)
        return sorted(points, key=lambda p: p.date)
