"""DuckDBStore metric queries and metric ingestion."""
from __future__ import annotations

from datetime import date
from typing import Optional, List, Dict, Any, Tuple

from storepulse.models import PeriodTotals, ProductRanking, SessionPoint
from storepulse.observability import get_logger

logger = get_logger(__name__)


def _as_date(value) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class MetricsMixin:

    # ─── Reads ───────────────────────────────────────────────────────────────

    async def fetch_period_totals(self, store_id: str, start: date, end: date) -> PeriodTotals:
        """Summed revenue, orders and sessions plus the mean daily conversion fraction."""
        row = await self._fetch_one("""
            SELECT
                COALESCE(SUM(revenue), 0) as revenue,
                COALESCE(SUM(orders), 0) as orders,
                COALESCE(SUM(sessions), 0) as sessions,
                AVG(conversion_rate) as avg_conversion
            FROM daily_metrics
            WHERE store_id = ?
                AND date BETWEEN ? AND ?
        """, [store_id, start, end])

        if row is None:
            return PeriodTotals()

        return PeriodTotals(
            revenue=float(row[0] or 0),
            orders=int(row[1] or 0),
            sessions=int(row[2] or 0),
            avg_conversion_fraction=float(row[3]) if row[3] is not None else None,
        )

    async def fetch_bucketed_revenue(self, store_id: str, start: date, end: date) -> List[Tuple[date, float]]:
        """Day-keyed revenue rows; days without a row are absent."""
        rows = await self._fetch_all("""
            SELECT date, SUM(revenue) as revenue
            FROM daily_metrics
            WHERE store_id = ?
                AND date BETWEEN ? AND ?
            GROUP BY date
            ORDER BY date
        """, [store_id, start, end])
        return [(_as_date(day), float(revenue or 0)) for day, revenue in rows]

    async def fetch_top_products(
        self,
        store_id: str,
        start: date,
        end: date,
        limit: int,
    ) -> List[ProductRanking]:
        """Products by summed sales, grouped by title."""
        rows = await self._fetch_all("""
            SELECT product_title, SUM(total_sales) as sales
            FROM product_metrics
            WHERE store_id = ?
                AND total_sales > 0
                AND date BETWEEN ? AND ?
            GROUP BY product_title
            ORDER BY sales DESC, product_title
            LIMIT ?
        """, [store_id, start, end, limit])
        return [ProductRanking(title=title, total_sales=float(sales)) for title, sales in rows]

    async def fetch_session_metrics(
        self,
        store_id: str,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[SessionPoint]:
        sql = "SELECT date, sessions, conversion_rate FROM session_metrics WHERE store_id = ?"
        params: List[Any] = [store_id]
        if start is not None:
            sql += " AND date >= ?"
            params.append(start)
        if end is not None:
            sql += " AND date <= ?"
            params.append(end)
        sql += " ORDER BY date"

        rows = await self._fetch_all(sql, params)
        return [
            SessionPoint(
                date=_as_date(day),
                sessions=int(sessions or 0),
                conversion_rate=float(rate) if rate is not None else None,
            )
            for day, sessions, rate in rows
        ]

    # ─── Ingestion ───────────────────────────────────────────────────────────

    async def upsert_daily_metrics(self, store_id: str, metrics: List[Dict[str, Any]]) -> int:
        """Insert or replace per-day totals.

        Args:
            store_id: Store the rows belong to
            metrics: Dicts with date, revenue, orders, sessions, conversion_rate

        Returns:
            Number of rows written
        """
        rows = [
            [
                store_id,
                _as_date(m["date"]),
                m.get("revenue", 0),
                m.get("orders", 0),
                m.get("sessions", 0),
                m.get("conversion_rate"),
            ]
            for m in metrics
        ]
        return await self._write_rows("upsert_daily_metrics", """
            INSERT OR REPLACE INTO daily_metrics
            (store_id, date, revenue, orders, sessions, conversion_rate, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, rows)

    async def upsert_product_metrics(self, store_id: str, products: List[Dict[str, Any]]) -> int:
        """Insert or replace per-day product sales.

        Rows without a product_id use the title as their key.
        """
        rows = [
            [
                store_id,
                _as_date(p["date"]),
                str(p.get("product_id") or p["product_title"]),
                p["product_title"],
                p.get("net_items_sold", 0),
                p.get("total_sales", 0),
            ]
            for p in products
        ]
        return await self._write_rows("upsert_product_metrics", """
            INSERT OR REPLACE INTO product_metrics
            (store_id, date, product_id, product_title, net_items_sold, total_sales, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, rows)

    async def upsert_session_metrics(self, store_id: str, sessions: List[Dict[str, Any]]) -> int:
        rows = [
            [store_id, _as_date(s["date"]), s.get("sessions", 0), s.get("conversion_rate")]
            for s in sessions
        ]
        return await self._write_rows("upsert_session_metrics", """
            INSERT OR REPLACE INTO session_metrics
            (store_id, date, sessions, conversion_rate, updated_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, rows)
