"""
Pydantic models for API endpoints.

Provides type-safe response models with automatic validation and documentation.
Field names are camelCase to match what the dashboard consumes.
"""
from typing import Optional, List, Dict
from pydantic import BaseModel, Field


# ═══════════════════════════════════════════════════════════════════════════════
# COMMON MODELS
# ═══════════════════════════════════════════════════════════════════════════════

class DateRangeModel(BaseModel):
    """Inclusive date range."""
    start: str = Field(description="Range start (ISO format)")
    end: str = Field(description="Range end (ISO format)")


# ═══════════════════════════════════════════════════════════════════════════════
# HEALTH CHECK
# ═══════════════════════════════════════════════════════════════════════════════

class DuckDBStats(BaseModel):
    """DuckDB statistics."""
    status: str
    latency_ms: Optional[float] = None
    stores: Optional[int] = None
    daily_metrics: Optional[int] = None
    product_metrics: Optional[int] = None
    session_metrics: Optional[int] = None
    active_success_configs: Optional[int] = None
    db_size_mb: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(description="Service status: healthy or degraded")
    version: str = Field(description="Application version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    correlation_id: Optional[str] = Field(None, description="Request correlation ID")
    duckdb: DuckDBStats


class TimingStats(BaseModel):
    """Timing statistics for an operation."""
    count: int
    avg_ms: float
    min_ms: float
    max_ms: float
    p50_ms: Optional[float] = None


class MetricsResponse(BaseModel):
    """Application metrics response."""
    uptime_seconds: int
    correlation_id: Optional[str] = None
    requests: Dict[str, int] = Field(default_factory=dict)
    errors: Dict[str, int] = Field(default_factory=dict)
    timing: Dict[str, TimingStats] = Field(default_factory=dict)


# ═══════════════════════════════════════════════════════════════════════════════
# STORE ANALYTICS
# ═══════════════════════════════════════════════════════════════════════════════

class PeriodValues(BaseModel):
    """Raw aggregate values of a comparison period."""
    totalRevenue: float
    totalOrders: int
    averageOrderValue: float
    totalSessions: int
    conversionRate: float = Field(description="Conversion rate in percent")


class BenchmarkData(BaseModel):
    """Percentage change against the benchmark period."""
    totalRevenueChange: float
    totalOrdersChange: float
    averageOrderValueChange: float
    totalSessionsChange: float
    conversionRateChange: float


class ComparisonData(BenchmarkData):
    """Percentage change against the comparison period, with its raw values."""
    values: PeriodValues
    range: DateRangeModel


class SalesPoint(BaseModel):
    """One point of the sales time series."""
    name: str = Field(description="Bucket label, e.g. '5 Jan' or '26 Jan - 1 Feb'")
    value: float = Field(description="Revenue in the bucket")


class TopProduct(BaseModel):
    """Top product by sales. The title doubles as id."""
    id: str
    title: str
    totalSales: float


class StoreAnalyticsResponse(BaseModel):
    """Combined analytics for one store and date range."""
    totalRevenue: float = Field(description="Total revenue")
    totalOrders: int = Field(description="Total number of orders")
    averageOrderValue: float = Field(description="Revenue per order, 2 decimals")
    totalSessions: int = Field(description="Total sessions")
    conversionRate: float = Field(description="Mean daily conversion rate in percent, 2 decimals")
    comparison: Optional[ComparisonData] = Field(None, description="Null when no comparison requested")
    benchmark: Optional[BenchmarkData] = Field(
        None, description="Null when the store has no complete reference period"
    )
    salesOverTime: List[SalesPoint]
    topProducts: List[TopProduct]
    interval: str = Field(description="Bucket granularity: day, week or month")
    range: DateRangeModel


class SessionPointResponse(BaseModel):
    date: str
    sessions: int
    conversionRate: Optional[float] = Field(None, description="Conversion rate as a fraction")


class SessionsResponse(BaseModel):
    """Daily session series."""
    sessions: List[SessionPointResponse]


# ═══════════════════════════════════════════════════════════════════════════════
# SUCCESS STATUS
# ═══════════════════════════════════════════════════════════════════════════════

class SuccessStatusResponse(BaseModel):
    """Success classification, or a structured error when it cannot be computed."""
    storeId: str
    status: str = Field(description="ok or error")
    referencePeriod: Optional[DateRangeModel] = None
    previousPeriod: Optional[DateRangeModel] = None
    currentRevenue: Optional[float] = None
    previousRevenue: Optional[float] = None
    fixedIncrease: Optional[float] = None
    percentageIncrease: Optional[float] = None
    fixedLevel: Optional[str] = Field(None, description="alto, medio, leve, ninguno or negativo")
    percentageLevel: Optional[str] = Field(None, description="alto, medio, leve, ninguno or negativo")
    error: Optional[str] = Field(None, description="Error reason when status is error")
    message: Optional[str] = None


class SkippedStore(BaseModel):
    storeId: str
    error: Optional[str] = None


class SuccessBatchResponse(BaseModel):
    """Statuses for every store with a reference period."""
    statuses: List[SuccessStatusResponse]
    skipped: List[SkippedStore]


class ThresholdConfigResponse(BaseModel):
    type: str = Field(description="fixed_amt or pct_amt")
    lowThreshold: float
    mediumThreshold: float
    highThreshold: float


class ThresholdConfigsResponse(BaseModel):
    configs: List[ThresholdConfigResponse]


class ThresholdConfigUpdate(BaseModel):
    """Request body for updating the thresholds of one axis."""
    lowThreshold: float
    mediumThreshold: float
    highThreshold: float
    isActive: bool = True


# ═══════════════════════════════════════════════════════════════════════════════
# STORES
# ═══════════════════════════════════════════════════════════════════════════════

class StoreResponse(BaseModel):
    """Store record."""
    id: str
    name: str
    url: Optional[str] = None
    reference_start: Optional[str] = Field(None, description="Reference period start (ISO format)")
    reference_end: Optional[str] = Field(None, description="Reference period end (ISO format)")
    created_at: Optional[str] = None


class StoresResponse(BaseModel):
    stores: List[StoreResponse]


class ReferencePeriodUpdate(BaseModel):
    """Request body for setting or clearing a reference period. Both null clears it."""
    referenceStart: Optional[str] = Field(None, description="YYYY-MM-DD")
    referenceEnd: Optional[str] = Field(None, description="YYYY-MM-DD")


class StoreCreate(BaseModel):
    """Request body for registering a store. Without an id, a known url reuses its store."""
    id: Optional[str] = Field(None, description="Store id; generated when omitted")
    name: str
    url: Optional[str] = None
