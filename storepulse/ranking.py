"""Top-performing products by total sales."""
from collections import OrderedDict
from typing import Iterable, List

from storepulse.config import config
from storepulse.contracts import MetricsSource
from storepulse.models import ProductRanking
from storepulse.periods import DateRange


def rank_products(
    rows: Iterable[ProductRanking],
    limit: int = config.analytics.top_products_limit,
) -> List[ProductRanking]:
    """
    Group by title, drop non-positive sales, sort descending, keep the first N.

    Titles are the identity: distinct products sharing a title collapse into
    one row. Ties keep first-seen order.
    """
    totals: "OrderedDict[str, float]" = OrderedDict()
    for row in rows:
        if row.total_sales is None or row.total_sales <= 0:
            continue
        totals[row.title] = totals.get(row.title, 0.0) + float(row.total_sales)

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [ProductRanking(title=title, total_sales=sales) for title, sales in ranked[:limit]]


async def top_products(
    source: MetricsSource,
    store_id: str,
    date_range: DateRange,
    limit: int = config.analytics.top_products_limit,
) -> List[ProductRanking]:
    """Leaderboard for the store within the range."""
    rows = await source.fetch_top_products(store_id, date_range.start, date_range.end, limit)
    return rank_products(rows, limit)
