"""
Date ranges and comparison/benchmark period resolution.

Every resolver takes its inputs explicitly (including "today") and returns
an Optional[DateRange]; None means the range is not requested or cannot be
computed for this store.
"""
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, Dict, Optional

from dateutil.relativedelta import relativedelta

from storepulse.exceptions import ValidationError


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""
    start: date
    end: date

    def __post_init__(self):
        if self.start > self.end:
            raise ValidationError(
                "date_range",
                "Start date must be before or equal to end date",
                f"{self.start.isoformat()} to {self.end.isoformat()}",
            )

    @property
    def start_str(self) -> str:
        """Start date as YYYY-MM-DD string."""
        return self.start.isoformat()

    @property
    def end_str(self) -> str:
        """End date as YYYY-MM-DD string."""
        return self.end.isoformat()

    @property
    def days(self) -> int:
        """Number of calendar days covered, both ends included."""
        return (self.end - self.start).days + 1

    def shift_months(self, months: int) -> "DateRange":
        """Move both endpoints back by whole calendar months."""
        return DateRange(shift_months(self.start, months), shift_months(self.end, months))

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start_str, "end": self.end_str}


class ComparisonKind(str, Enum):
    """What the primary range is compared against."""
    PREVIOUS_PERIOD = "previous_period"
    LAST_MONTH = "last_month"
    LAST_YEAR = "last_year"
    NONE = "none"


class BenchmarkPeriod(str, Enum):
    """Which past instance of the store's reference period to benchmark against."""
    REF = "ref"
    REF_1 = "ref_1"
    REF_2 = "ref_2"
    REF_3 = "ref_3"

    @property
    def offset_months(self) -> int:
        offsets = {
            self.REF: 0,
            self.REF_1: 1,
            self.REF_2: 2,
            self.REF_3: 3,
        }
        return offsets[self]


def shift_months(value: date, months: int) -> date:
    """
    Shift a date back by whole calendar months.

    Day-of-month overflow clamps to the last day of the target month
    (Mar 31 minus one month is Feb 28/29). This differs from JavaScript
    Date.setMonth, which rolls the overflow into the next month (Mar 31
    minus one month becomes Mar 3).
    """
    return value - relativedelta(months=months)


def parse_range(
    start_date: Optional[str],
    end_date: Optional[str],
    today: date,
    default_days: int = 30,
) -> DateRange:
    """
    Build the primary range from optional ISO date strings.

    Examples:
        >>> parse_range("2026-01-01", "2026-01-31", today=date(2026, 2, 1))
        DateRange(start=datetime.date(2026, 1, 1), end=datetime.date(2026, 1, 31))

        >>> parse_range(None, None, today=date(2026, 2, 1))
        DateRange(start=datetime.date(2026, 1, 2), end=datetime.date(2026, 2, 1))
    """
    end = date.fromisoformat(end_date) if end_date else today
    start = date.fromisoformat(start_date) if start_date else today - timedelta(days=default_days)
    return DateRange(start, end)


# ─── Comparison Resolvers ─────────────────────────────────────────────────────

def _previous_period(primary: DateRange) -> DateRange:
    # Same duration, ending the day before the primary range starts
    comp_end = primary.start - timedelta(days=1)
    comp_start = comp_end - (primary.end - primary.start)
    return DateRange(comp_start, comp_end)


def _last_month(primary: DateRange) -> DateRange:
    return primary.shift_months(1)


def _last_year(primary: DateRange) -> DateRange:
    return DateRange(
        primary.start - relativedelta(years=1),
        primary.end - relativedelta(years=1),
    )


_COMPARISON_RESOLVERS: Dict[ComparisonKind, Callable[[DateRange], DateRange]] = {
    ComparisonKind.PREVIOUS_PERIOD: _previous_period,
    ComparisonKind.LAST_MONTH: _last_month,
    ComparisonKind.LAST_YEAR: _last_year,
}


def resolve_comparison_range(
    primary: DateRange,
    kind: Optional[ComparisonKind],
) -> Optional[DateRange]:
    """
    Resolve the comparison range for the primary range.

    Returns None when no comparison is requested.

    Examples:
        >>> resolve_comparison_range(
        ...     DateRange(date(2026, 1, 11), date(2026, 1, 20)),
        ...     ComparisonKind.PREVIOUS_PERIOD,
        ... )
        DateRange(start=datetime.date(2026, 1, 1), end=datetime.date(2026, 1, 10))
    """
    if kind is None or kind == ComparisonKind.NONE:
        return None
    return _COMPARISON_RESOLVERS[kind](primary)


def resolve_benchmark_range(
    reference_start: Optional[date],
    reference_end: Optional[date],
    period: BenchmarkPeriod = BenchmarkPeriod.REF,
) -> Optional[DateRange]:
    """
    Resolve the benchmark range from the store's reference period.

    Only computed when the store has both a reference start and end.
    """
    if reference_start is None or reference_end is None:
        return None

    reference = DateRange(reference_start, reference_end)
    if period.offset_months == 0:
        return reference
    return reference.shift_months(period.offset_months)
