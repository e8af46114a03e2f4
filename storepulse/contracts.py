"""
Query contract the engine needs from a metrics store.

DuckDBStore implements all of these; tests substitute in-memory fakes.
"""
from datetime import date
from typing import List, Optional, Protocol, Tuple

from storepulse.models import (
    PeriodTotals,
    ProductRanking,
    SessionPoint,
    StoreReference,
    ThresholdConfig,
)


class MetricsSource(Protocol):
    """Range-scoped queries over per-day store metrics."""

    async def fetch_period_totals(self, store_id: str, start: date, end: date) -> PeriodTotals:
        ...

    async def fetch_bucketed_revenue(self, store_id: str, start: date, end: date) -> List[Tuple[date, float]]:
        ...

    async def fetch_top_products(self, store_id: str, start: date, end: date, limit: int) -> List[ProductRanking]:
        ...

    async def fetch_session_metrics(
        self, store_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[SessionPoint]:
        ...


class StoreDirectory(Protocol):
    """Store reference period lookups."""

    async def fetch_store_reference_period(self, store_id: str) -> Optional[StoreReference]:
        ...

    async def fetch_stores_with_reference_period(self) -> List[StoreReference]:
        ...


class ThresholdSource(Protocol):
    """Active success threshold configurations."""

    async def fetch_active_threshold_configs(self) -> List[ThresholdConfig]:
        ...
