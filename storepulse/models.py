"""
Value types for the analytics engine.

Plain dataclasses produced by the engine and by the metrics store.
Serialization (to_dict) uses the camelCase field names the dashboard
already consumes.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, List, Dict, Any

from storepulse.periods import DateRange


# ═══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ═══════════════════════════════════════════════════════════════════════════════

class Granularity(str, Enum):
    """Time-series bucket size."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class SuccessAxis(str, Enum):
    """Classification axis for success thresholds."""
    FIXED_AMOUNT = "fixed_amt"
    PERCENTAGE = "pct_amt"


class SuccessTier(str, Enum):
    """Success tiers. The literal values are part of the public contract."""
    ALTO = "alto"
    MEDIO = "medio"
    LEVE = "leve"
    NINGUNO = "ninguno"
    NEGATIVO = "negativo"


# ═══════════════════════════════════════════════════════════════════════════════
# METRICS STORE RESULTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PeriodTotals:
    """Raw sums over per-day metric rows, as answered by the metrics store."""
    revenue: float = 0.0
    orders: int = 0
    sessions: int = 0
    avg_conversion_fraction: Optional[float] = None


@dataclass(frozen=True)
class ProductRanking:
    """Product in the top performers list. The title is its identity."""
    title: str
    total_sales: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.title,
            "title": self.title,
            "totalSales": round(self.total_sales, 2),
        }


@dataclass(frozen=True)
class SessionPoint:
    """Daily sessions and conversion rate fraction."""
    date: date
    sessions: int
    conversion_rate: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        # A zero rate means the day was not reported
        return {
            "date": self.date.isoformat(),
            "sessions": self.sessions,
            "conversionRate": self.conversion_rate or None,
        }


@dataclass(frozen=True)
class StoreReference:
    """A store's configured reference period (either end may be unset)."""
    store_id: str
    reference_start: Optional[date] = None
    reference_end: Optional[date] = None

    @property
    def is_configured(self) -> bool:
        return self.reference_start is not None


@dataclass(frozen=True)
class ThresholdConfig:
    """Active thresholds for one classification axis."""
    axis: SuccessAxis
    low: float
    medium: float
    high: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.axis.value,
            "lowThreshold": self.low,
            "mediumThreshold": self.medium,
            "highThreshold": self.high,
        }


# ═══════════════════════════════════════════════════════════════════════════════
# AGGREGATION RESULTS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PeriodAggregate:
    """Aggregated metrics for one date range, derived fields included."""
    revenue: float = 0.0
    orders: int = 0
    sessions: int = 0
    average_order_value: float = 0.0
    conversion_rate_percent: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRevenue": self.revenue,
            "totalOrders": self.orders,
            "averageOrderValue": self.average_order_value,
            "totalSessions": self.sessions,
            "conversionRate": self.conversion_rate_percent,
        }


@dataclass(frozen=True)
class BucketPoint:
    """One labeled point of the gap-filled time series."""
    label: str
    value: float
    bucket_start: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.label, "value": round(self.value, 2)}


@dataclass(frozen=True)
class MetricChanges:
    """Percentage change per metric between two aggregates."""
    revenue: float
    orders: float
    average_order_value: float
    sessions: float
    conversion_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRevenueChange": self.revenue,
            "totalOrdersChange": self.orders,
            "averageOrderValueChange": self.average_order_value,
            "totalSessionsChange": self.sessions,
            "conversionRateChange": self.conversion_rate,
        }


@dataclass(frozen=True)
class ComparisonResult:
    """Comparison against another period: changes, raw values and the range."""
    changes: MetricChanges
    values: PeriodAggregate
    range: DateRange

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.changes.to_dict(),
            "values": self.values.to_dict(),
            "range": self.range.to_dict(),
        }


@dataclass(frozen=True)
class BenchmarkResult:
    """Benchmark against the reference period: changes only."""
    changes: MetricChanges

    def to_dict(self) -> Dict[str, Any]:
        return self.changes.to_dict()


@dataclass
class StoreAnalytics:
    """Combined analytics for one store and range."""
    range: DateRange
    current: PeriodAggregate
    interval: Granularity
    sales_over_time: List[BucketPoint] = field(default_factory=list)
    top_products: List[ProductRanking] = field(default_factory=list)
    comparison: Optional[ComparisonResult] = None
    benchmark: Optional[BenchmarkResult] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalRevenue": self.current.revenue,
            "totalOrders": self.current.orders,
            "averageOrderValue": round(self.current.average_order_value, 2),
            "totalSessions": self.current.sessions,
            "conversionRate": round(self.current.conversion_rate_percent, 2),
            "comparison": self.comparison.to_dict() if self.comparison else None,
            "benchmark": self.benchmark.to_dict() if self.benchmark else None,
            "salesOverTime": [p.to_dict() for p in self.sales_over_time],
            "topProducts": [p.to_dict() for p in self.top_products],
            "interval": self.interval.value,
            "range": self.range.to_dict(),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# SUCCESS STATUS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SuccessStatus:
    """Reference period performance against the preceding period of equal length."""
    store_id: str
    reference_period: DateRange
    previous_period: DateRange
    current_revenue: float
    previous_revenue: float
    fixed_increase: float
    percentage_increase: float
    fixed_level: SuccessTier
    percentage_level: SuccessTier

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storeId": self.store_id,
            "status": "ok",
            "referencePeriod": self.reference_period.to_dict(),
            "previousPeriod": self.previous_period.to_dict(),
            "currentRevenue": round(self.current_revenue, 2),
            "previousRevenue": round(self.previous_revenue, 2),
            "fixedIncrease": round(self.fixed_increase, 2),
            "percentageIncrease": round(self.percentage_increase, 2),
            "fixedLevel": self.fixed_level.value,
            "percentageLevel": self.percentage_level.value,
        }


@dataclass(frozen=True)
class SuccessStatusError:
    """Structured "cannot classify" status returned instead of raising."""
    store_id: str
    reason: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storeId": self.store_id,
            "status": "error",
            "error": self.reason,
            "message": self.message,
        }
