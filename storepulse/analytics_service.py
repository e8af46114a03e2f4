"""
Store analytics service.

Resolves the requested ranges, fans out the aggregate, series and ranking
queries concurrently and merges them into one StoreAnalytics. Any query
failure propagates; there are no partial results.
"""
import asyncio
from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from storepulse.aggregator import MetricAggregator
from storepulse.comparison import build_benchmark, build_comparison
from storepulse.config import config
from storepulse.models import PeriodAggregate, SessionPoint, StoreAnalytics
from storepulse.observability import get_logger, log_context, timed
from storepulse.periods import (
    BenchmarkPeriod,
    ComparisonKind,
    DateRange,
    resolve_benchmark_range,
    resolve_comparison_range,
)
from storepulse.ranking import top_products
from storepulse.success import StatusResult, SuccessBatchReport, SuccessClassifier

logger = get_logger(__name__)


def today_in_store_timezone(tz_name: str = config.analytics.timezone) -> date:
    """Current calendar date where the stores report."""
    return datetime.now(ZoneInfo(tz_name)).date()


async def _none() -> None:
    return None


class StoreAnalyticsService:
    """
    Entry point for per-store analytics.

    The store argument must implement the MetricsSource, StoreDirectory and
    ThresholdSource contracts (DuckDBStore does).
    """

    def __init__(self, store, top_products_limit: int = config.analytics.top_products_limit):
        self.store = store
        self.aggregator = MetricAggregator(store)
        self.classifier = SuccessClassifier(self.aggregator, store, store)
        self.top_products_limit = top_products_limit

    @timed("store_analytics")
    async def get_store_analytics(
        self,
        store_id: str,
        primary: DateRange,
        comparison: Optional[ComparisonKind] = None,
        benchmark: BenchmarkPeriod = BenchmarkPeriod.REF,
    ) -> StoreAnalytics:
        """Combined analytics for the primary range."""
        with log_context(store_id=store_id):
            return await self._build_analytics(store_id, primary, comparison, benchmark)

    async def _build_analytics(
        self,
        store_id: str,
        primary: DateRange,
        comparison: Optional[ComparisonKind],
        benchmark: BenchmarkPeriod,
    ) -> StoreAnalytics:
        reference = await self.store.fetch_store_reference_period(store_id)

        comparison_range = resolve_comparison_range(primary, comparison)
        benchmark_range = None
        if reference is not None:
            benchmark_range = resolve_benchmark_range(
                reference.reference_start, reference.reference_end, benchmark
            )

        logger.debug(
            f"Analytics for {store_id}: {primary.start_str}..{primary.end_str}",
            extra={
                "comparison": comparison_range.to_dict() if comparison_range else None,
                "benchmark": benchmark_range.to_dict() if benchmark_range else None,
            },
        )

        current, comparison_agg, benchmark_agg, series, products = await asyncio.gather(
            self.aggregator.aggregate(store_id, primary),
            self.aggregator.aggregate(store_id, comparison_range) if comparison_range else _none(),
            self.aggregator.aggregate(store_id, benchmark_range) if benchmark_range else _none(),
            self.aggregator.sales_over_time(store_id, primary),
            top_products(self.store, store_id, primary, self.top_products_limit),
        )
        interval, sales_over_time = series

        return StoreAnalytics(
            range=primary,
            current=current,
            interval=interval,
            sales_over_time=sales_over_time,
            top_products=products,
            comparison=self._comparison(current, comparison_agg, comparison_range),
            benchmark=build_benchmark(current, benchmark_agg) if benchmark_agg else None,
        )

    @staticmethod
    def _comparison(
        current: PeriodAggregate,
        previous: Optional[PeriodAggregate],
        comparison_range: Optional[DateRange],
    ):
        if previous is None or comparison_range is None:
            return None
        return build_comparison(current, previous, comparison_range)

    async def get_session_metrics(
        self,
        store_id: str,
        date_range: Optional[DateRange] = None,
    ) -> List[SessionPoint]:
        return await self.aggregator.session_series(store_id, date_range)

    async def get_success_status(self, store_id: str, today: date) -> StatusResult:
        with log_context(store_id=store_id):
            return await self.classifier.store_status(store_id, today)

    @timed("all_success_statuses")
    async def get_all_success_statuses(self, today: date) -> SuccessBatchReport:
        return await self.classifier.all_store_statuses(today)
