"""
Success classification of a store's reference period.

The reference period is compared against the immediately preceding period
of the same length, and the revenue delta is mapped to a tier on two axes:
fixed amount and percentage.

Tier rules per axis, evaluated in this order:
    value >= high    -> alto
    value >= medium  -> medio
    value >= low     -> leve
    value < 0        -> negativo
    otherwise        -> ninguno

An axis without an active config always classifies as ninguno.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Union

from storepulse.aggregator import MetricAggregator
from storepulse.comparison import percentage_change
from storepulse.contracts import StoreDirectory, ThresholdSource
from storepulse.models import (
    StoreReference,
    SuccessAxis,
    SuccessStatus,
    SuccessStatusError,
    SuccessTier,
    ThresholdConfig,
)
from storepulse.observability import get_logger, log_context
from storepulse.periods import DateRange

logger = get_logger(__name__)

REFERENCE_NOT_CONFIGURED = "reference_period_not_configured"
REFERENCE_NOT_STARTED = "reference_period_not_started"

StatusResult = Union[SuccessStatus, SuccessStatusError]


def classify(value: float, thresholds: Optional[ThresholdConfig]) -> SuccessTier:
    """Map a delta to its tier. Highest satisfied threshold wins."""
    if thresholds is None:
        return SuccessTier.NINGUNO
    if value >= thresholds.high:
        return SuccessTier.ALTO
    if value >= thresholds.medium:
        return SuccessTier.MEDIO
    if value >= thresholds.low:
        return SuccessTier.LEVE
    if value < 0:
        return SuccessTier.NEGATIVO
    return SuccessTier.NINGUNO


class ThresholdBook:
    """Active threshold configs keyed by axis."""

    def __init__(self, configs: Iterable[ThresholdConfig] = ()):
        self._by_axis: Dict[SuccessAxis, ThresholdConfig] = {}
        for cfg in configs:
            if cfg.axis in self._by_axis:
                logger.warning(f"Multiple active threshold configs for {cfg.axis.value}, keeping the first")
                continue
            self._by_axis[cfg.axis] = cfg

    def get(self, axis: SuccessAxis) -> Optional[ThresholdConfig]:
        return self._by_axis.get(axis)

    def classify(self, axis: SuccessAxis, value: float) -> SuccessTier:
        return classify(value, self.get(axis))

    def __len__(self) -> int:
        return len(self._by_axis)


def effective_reference_end(reference_end: Optional[date], today: date) -> date:
    """Configured end when it is already past, otherwise today."""
    if reference_end is not None and reference_end < today:
        return reference_end
    return today


def previous_period(reference: DateRange) -> DateRange:
    """
    Window of the same length ending the day before the reference starts.

    Examples:
        >>> previous_period(DateRange(date(2026, 3, 1), date(2026, 3, 31)))
        DateRange(start=datetime.date(2026, 1, 29), end=datetime.date(2026, 2, 28))
    """
    duration = reference.end - reference.start
    return DateRange(
        reference.start - duration - timedelta(days=1),
        reference.start - timedelta(days=1),
    )


async def compute_status(
    aggregator: MetricAggregator,
    reference: StoreReference,
    thresholds: ThresholdBook,
    today: date,
) -> StatusResult:
    """Classify one store. Aggregator failures propagate."""
    if not reference.is_configured:
        return SuccessStatusError(
            store_id=reference.store_id,
            reason=REFERENCE_NOT_CONFIGURED,
            message="Store has no reference period configured",
        )

    reference_end = effective_reference_end(reference.reference_end, today)
    if reference.reference_start > reference_end:
        return SuccessStatusError(
            store_id=reference.store_id,
            reason=REFERENCE_NOT_STARTED,
            message=f"Reference period starts on {reference.reference_start.isoformat()}",
        )

    current_range = DateRange(reference.reference_start, reference_end)
    previous_range = previous_period(current_range)

    current_revenue = await aggregator.revenue(reference.store_id, current_range)
    previous_revenue = await aggregator.revenue(reference.store_id, previous_range)

    fixed_increase = current_revenue - previous_revenue
    percentage_increase = percentage_change(current_revenue, previous_revenue)

    return SuccessStatus(
        store_id=reference.store_id,
        reference_period=current_range,
        previous_period=previous_range,
        current_revenue=current_revenue,
        previous_revenue=previous_revenue,
        fixed_increase=fixed_increase,
        percentage_increase=percentage_increase,
        fixed_level=thresholds.classify(SuccessAxis.FIXED_AMOUNT, fixed_increase),
        percentage_level=thresholds.classify(SuccessAxis.PERCENTAGE, percentage_increase),
    )


@dataclass
class StoreOutcome:
    """Result of classifying one store inside a batch."""
    store_id: str
    status: Optional[SuccessStatus] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is not None


@dataclass
class SuccessBatchReport:
    """Per-store outcomes of an all-stores run."""
    outcomes: List[StoreOutcome] = field(default_factory=list)

    @property
    def statuses(self) -> List[SuccessStatus]:
        return [o.status for o in self.outcomes if o.ok]

    @property
    def failures(self) -> List[StoreOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def to_dict(self) -> Dict[str, list]:
        return {
            "statuses": [s.to_dict() for s in self.statuses],
            "skipped": [{"storeId": o.store_id, "error": o.error} for o in self.failures],
        }


class SuccessClassifier:
    """Single-store and all-stores success status."""

    def __init__(
        self,
        aggregator: MetricAggregator,
        stores: StoreDirectory,
        thresholds: ThresholdSource,
    ):
        self.aggregator = aggregator
        self.stores = stores
        self.thresholds = thresholds

    async def _threshold_book(self) -> ThresholdBook:
        return ThresholdBook(await self.thresholds.fetch_active_threshold_configs())

    async def store_status(self, store_id: str, today: date) -> StatusResult:
        """Status for one store, or a structured error when unconfigured."""
        reference = await self.stores.fetch_store_reference_period(store_id)
        if reference is None:
            reference = StoreReference(store_id=store_id)
        return await compute_status(self.aggregator, reference, await self._threshold_book(), today)

    async def _batch_outcome(
        self,
        reference: StoreReference,
        book: ThresholdBook,
        today: date,
    ) -> StoreOutcome:
        try:
            result = await compute_status(self.aggregator, reference, book, today)
        except Exception as e:
            logger.warning(f"Success status failed: {e}")
            return StoreOutcome(store_id=reference.store_id, error=str(e))

        if isinstance(result, SuccessStatusError):
            logger.info(f"Success status skipped: {result.reason}")
            return StoreOutcome(store_id=reference.store_id, error=result.reason)
        return StoreOutcome(store_id=reference.store_id, status=result)

    async def all_store_statuses(self, today: date) -> SuccessBatchReport:
        """
        Status for every store with a reference start.

        Each store is isolated: its failure is recorded in the report and
        the run continues.
        """
        book = await self._threshold_book()
        references = await self.stores.fetch_stores_with_reference_period()
        report = SuccessBatchReport()

        for reference in references:
            with log_context(store_id=reference.store_id):
                report.outcomes.append(await self._batch_outcome(reference, book, today))

        logger.info(
            f"Success statuses computed: {len(report.statuses)} ok, {len(report.failures)} skipped"
        )
        return report
