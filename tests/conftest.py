"""
Pytest configuration and shared fixtures.
"""
import pytest
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple

from storepulse.exceptions import MetricsStoreError
from storepulse.models import (
    PeriodTotals,
    ProductRanking,
    SessionPoint,
    StoreReference,
    SuccessAxis,
    ThresholdConfig,
)


class FakeMetricsStore:
    """
    In-memory implementation of the metrics store contracts.

    daily:    {store_id: {date: {"revenue", "orders", "sessions", "conversion_rate"}}}
    products: {store_id: [(date, title, total_sales)]}
    sessions: {store_id: [SessionPoint]}
    """

    def __init__(
        self,
        daily: Dict[str, Dict[date, dict]] = None,
        products: Dict[str, List[Tuple[date, str, float]]] = None,
        sessions: Dict[str, List[SessionPoint]] = None,
        references: Dict[str, StoreReference] = None,
        thresholds: List[ThresholdConfig] = None,
    ):
        self.daily = daily or {}
        self.products = products or {}
        self.sessions = sessions or {}
        self.references = references or {}
        self.thresholds = thresholds or []
        self.failing_stores = set()
        self.totals_calls: List[Tuple[str, date, date]] = []

    def _check(self, store_id: str) -> None:
        if store_id in self.failing_stores:
            raise MetricsStoreError("Metrics query failed", f"store {store_id} unavailable")

    def _days(self, store_id: str, start: date, end: date) -> List[Tuple[date, dict]]:
        rows = self.daily.get(store_id, {})
        return sorted((d, row) for d, row in rows.items() if start <= d <= end)

    async def fetch_period_totals(self, store_id: str, start: date, end: date) -> PeriodTotals:
        self._check(store_id)
        self.totals_calls.append((store_id, start, end))
        rows = [row for _, row in self._days(store_id, start, end)]
        rates = [r["conversion_rate"] for r in rows if r.get("conversion_rate") is not None]
        return PeriodTotals(
            revenue=sum(r.get("revenue", 0) for r in rows),
            orders=sum(r.get("orders", 0) for r in rows),
            sessions=sum(r.get("sessions", 0) for r in rows),
            avg_conversion_fraction=sum(rates) / len(rates) if rates else None,
        )

    async def fetch_bucketed_revenue(self, store_id: str, start: date, end: date) -> List[Tuple[date, float]]:
        self._check(store_id)
        return [(d, row.get("revenue", 0)) for d, row in self._days(store_id, start, end)]

    async def fetch_top_products(self, store_id: str, start: date, end: date, limit: int) -> List[ProductRanking]:
        self._check(store_id)
        return [
            ProductRanking(title=title, total_sales=sales)
            for day, title, sales in self.products.get(store_id, [])
            if start <= day <= end
        ]

    async def fetch_session_metrics(
        self, store_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[SessionPoint]:
        self._check(store_id)
        return [
            p for p in self.sessions.get(store_id, [])
            if (start is None or p.date >= start) and (end is None or p.date <= end)
        ]

    async def fetch_store_reference_period(self, store_id: str) -> Optional[StoreReference]:
        return self.references.get(store_id)

    async def fetch_stores_with_reference_period(self) -> List[StoreReference]:
        return [r for _, r in sorted(self.references.items()) if r.reference_start is not None]

    async def fetch_active_threshold_configs(self) -> List[ThresholdConfig]:
        return list(self.thresholds)


def daily_rows(
    start: date,
    end: date,
    revenue: float = 100.0,
    orders: int = 2,
    sessions: int = 50,
    conversion_rate: Optional[float] = 0.04,
) -> Dict[date, dict]:
    """Constant per-day metrics for every day in [start, end]."""
    rows = {}
    day = start
    while day <= end:
        rows[day] = {
            "revenue": revenue,
            "orders": orders,
            "sessions": sessions,
            "conversion_rate": conversion_rate,
        }
        day += timedelta(days=1)
    return rows


@pytest.fixture
def revenue_thresholds() -> List[ThresholdConfig]:
    """5M / 10M / 15M fixed amount and 10 / 25 / 50 percent thresholds."""
    return [
        ThresholdConfig(axis=SuccessAxis.FIXED_AMOUNT, low=5_000_000, medium=10_000_000, high=15_000_000),
        ThresholdConfig(axis=SuccessAxis.PERCENTAGE, low=10, medium=25, high=50),
    ]


@pytest.fixture
def fake_store(revenue_thresholds) -> FakeMetricsStore:
    """
    Two stores with January-March 2026 data.

    store-1: 100/day in Jan-Feb, 200/day in March, reference period March.
    store-2: no reference period.
    """
    store_1 = daily_rows(date(2026, 1, 1), date(2026, 2, 28))
    store_1.update(daily_rows(date(2026, 3, 1), date(2026, 3, 31), revenue=200.0, orders=4))

    return FakeMetricsStore(
        daily={
            "store-1": store_1,
            "store-2": daily_rows(date(2026, 1, 1), date(2026, 3, 31), revenue=50.0, orders=1),
        },
        products={
            "store-1": [
                (date(2026, 3, 2), "Serum", 300.0),
                (date(2026, 3, 3), "Toner", 500.0),
                (date(2026, 3, 4), "Serum", 400.0),
                (date(2026, 3, 5), "Sample", 0.0),
            ],
        },
        sessions={
            "store-1": [
                SessionPoint(date(2026, 3, 2), 120, 0.02),
                SessionPoint(date(2026, 3, 1), 100, 0.01),
                SessionPoint(date(2026, 3, 3), 90, None),
            ],
        },
        references={
            "store-1": StoreReference("store-1", date(2026, 3, 1), date(2026, 3, 31)),
            "store-2": StoreReference("store-2"),
        },
        thresholds=revenue_thresholds,
    )
