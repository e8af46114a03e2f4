"""
DuckDB metrics store for StorePulse.

Persistent per-store daily metrics, product sales, sessions and success
threshold configuration. Implements the engine's query contracts.

Domain-specific query methods are organized into repository mixins:
- MetricsMixin: Range-scoped revenue, product and session queries
- StoresMixin: Store records and reference periods
- SuccessConfigMixin: Success threshold configuration
"""
import asyncio
from concurrent.futures import ThreadPoolExecutor
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, List, Dict, Any

import duckdb

from storepulse.config import config
from storepulse.exceptions import MetricsStoreError, QueryTimeoutError
from storepulse.observability import get_logger
from storepulse.repositories import MetricsMixin, StoresMixin, SuccessConfigMixin

logger = get_logger(__name__)

DEFAULT_QUERY_TIMEOUT = config.database.query_timeout_seconds


class DuckDBStore(MetricsMixin, StoresMixin, SuccessConfigMixin):
    """
    Async-compatible DuckDB store for store metrics.

    Features:
    - Persistent storage (survives restarts)
    - Serialized access behind an asyncio lock
    - Thread offloading to avoid blocking asyncio event loop
    - Per-query timeouts
    """

    def __init__(self, db_path: Path = None, query_timeout: float = DEFAULT_QUERY_TIMEOUT):
        self.db_path = Path(db_path) if db_path else config.database.path
        self.query_timeout = query_timeout
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = asyncio.Lock()  # Serializes all database access

        # Thread pool for offloading blocking DB operations
        self._executor: Optional[ThreadPoolExecutor] = None

        # Stats for monitoring
        self._total_queries = 0

    async def connect(self) -> None:
        """Initialize database connection, schema, and thread pool."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        async with self._lock:
            if self._connection is None:
                try:
                    self._connection = duckdb.connect(str(self.db_path))
                except duckdb.Error as e:
                    raise MetricsStoreError("Cannot open metrics store", str(e), operation="connect")
                self._init_schema()

                self._executor = ThreadPoolExecutor(
                    max_workers=1,  # Single worker - DuckDB requires serialized access
                    thread_name_prefix="duckdb"
                )

                logger.info(f"DuckDB connected: {self.db_path}")

    async def close(self) -> None:
        """Close database connection and thread pool."""
        async with self._lock:
            # Waits for in-flight queries to finish
            if self._executor:
                self._executor.shutdown(wait=True)
                self._executor = None

            if self._connection:
                self._connection.close()
                self._connection = None
                logger.info("DuckDB connection closed")

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def get_connection_info(self) -> Dict[str, Any]:
        """Get connection info for monitoring."""
        return {
            "status": "active" if self._connection else "not_initialized",
            "total_queries": self._total_queries,
            "db_path": str(self.db_path),
        }

    @asynccontextmanager
    async def connection(self):
        """Get database connection, connecting on first use.

        Acquires lock to ensure single-threaded DuckDB access.
        DuckDB connections are NOT thread-safe - only one thread can use
        a connection at a time.
        """
        if self._connection is None:
            await self.connect()
        async with self._lock:
            yield self._connection

    # ─── Query Execution with Timeout ────────────────────────────────────────

    async def _run_query(self, query: str, params: list, fetch: str, timeout: float):
        async with self.connection() as conn:
            self._total_queries += 1
            loop = asyncio.get_event_loop()

            def _run():
                cursor = conn.execute(query, params or [])
                if fetch == "one":
                    return cursor.fetchone()
                return cursor.fetchall()

            try:
                return await asyncio.wait_for(
                    loop.run_in_executor(self._executor, _run),
                    timeout=timeout or self.query_timeout
                )
            except asyncio.TimeoutError:
                raise QueryTimeoutError(query, timeout or self.query_timeout, f"Fetch {fetch} failed")
            except duckdb.Error as e:
                raise MetricsStoreError("Metrics query failed", str(e), operation=f"fetch_{fetch}")

    async def _fetch_one(
        self,
        query: str,
        params: list = None,
        timeout: float = None,
    ) -> Optional[tuple]:
        """
        Execute query and fetch one result with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
            MetricsStoreError: If DuckDB rejects the query
        """
        return await self._run_query(query, params, "one", timeout)

    async def _fetch_all(
        self,
        query: str,
        params: list = None,
        timeout: float = None,
    ) -> List[tuple]:
        """
        Execute query and fetch all results with timeout.

        Raises:
            QueryTimeoutError: If query exceeds timeout
            MetricsStoreError: If DuckDB rejects the query
        """
        return await self._run_query(query, params, "all", timeout)

    async def _write_rows(self, operation: str, sql: str, rows: List[list]) -> int:
        """Run one statement per row inside a single transaction."""
        if not rows:
            return 0

        async with self.connection() as conn:
            conn.execute("BEGIN TRANSACTION")
            try:
                for row in rows:
                    conn.execute(sql, row)
                conn.execute("COMMIT")
            except duckdb.Error as e:
                conn.execute("ROLLBACK")
                raise MetricsStoreError("Metrics store write failed", str(e), operation=operation)
            except Exception:
                conn.execute("ROLLBACK")
                raise

        logger.info(f"{operation}: {len(rows)} rows")
        return len(rows)

    def _init_schema(self) -> None:
        """Create database schema if not exists."""
        schema_sql = """
        -- Stores and their reference (campaign) period
        CREATE TABLE IF NOT EXISTS stores (
            id VARCHAR PRIMARY KEY,
            name VARCHAR NOT NULL,
            url VARCHAR,
            reference_start DATE,
            reference_end DATE,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );

        -- Per-day store totals (conversion_rate is a fraction, 0.0077 = 0.77%)
        CREATE TABLE IF NOT EXISTS daily_metrics (
            store_id VARCHAR NOT NULL,
            date DATE NOT NULL,
            revenue DECIMAL(14, 2) DEFAULT 0,
            orders INTEGER DEFAULT 0,
            sessions INTEGER DEFAULT 0,
            conversion_rate DOUBLE,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (store_id, date)
        );

        CREATE INDEX IF NOT EXISTS idx_daily_metrics_date ON daily_metrics(date);

        -- Per-day product sales
        CREATE TABLE IF NOT EXISTS product_metrics (
            store_id VARCHAR NOT NULL,
            date DATE NOT NULL,
            product_id VARCHAR NOT NULL,
            product_title VARCHAR NOT NULL,
            net_items_sold INTEGER DEFAULT 0,
            total_sales DECIMAL(14, 2) DEFAULT 0,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (store_id, date, product_id)
        );

        CREATE INDEX IF NOT EXISTS idx_product_metrics_title ON product_metrics(product_title);

        -- Per-day traffic
        CREATE TABLE IF NOT EXISTS session_metrics (
            store_id VARCHAR NOT NULL,
            date DATE NOT NULL,
            sessions INTEGER DEFAULT 0,
            conversion_rate DOUBLE,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            PRIMARY KEY (store_id, date)
        );

        -- Success thresholds, one row per axis
        CREATE TABLE IF NOT EXISTS success_configs (
            type VARCHAR PRIMARY KEY,
            low_threshold DOUBLE NOT NULL,
            medium_threshold DOUBLE NOT NULL,
            high_threshold DOUBLE NOT NULL,
            is_active BOOLEAN DEFAULT TRUE,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        );
        """
        self._connection.execute(schema_sql)

    async def get_stats(self) -> Dict[str, Any]:
        """Get database statistics."""
        async with self.connection() as conn:
            try:
                stores_count = conn.execute("SELECT COUNT(*) FROM stores").fetchone()[0]
                daily_count = conn.execute("SELECT COUNT(*) FROM daily_metrics").fetchone()[0]
                product_count = conn.execute("SELECT COUNT(*) FROM product_metrics").fetchone()[0]
                session_count = conn.execute("SELECT COUNT(*) FROM session_metrics").fetchone()[0]
                configs_count = conn.execute(
                    "SELECT COUNT(*) FROM success_configs WHERE is_active"
                ).fetchone()[0]

                min_date, max_date = conn.execute(
                    "SELECT MIN(date), MAX(date) FROM daily_metrics"
                ).fetchone()
            except duckdb.Error as e:
                raise MetricsStoreError("Cannot read store statistics", str(e), operation="get_stats")

            return {
                "stores": stores_count,
                "daily_metrics": daily_count,
                "product_metrics": product_count,
                "session_metrics": session_count,
                "active_success_configs": configs_count,
                "date_range": {
                    "min": min_date.isoformat() if min_date else None,
                    "max": max_date.isoformat() if max_date else None
                },
                "db_size_mb": round(self.db_path.stat().st_size / 1024 / 1024, 2) if self.db_path.exists() else 0
            }


# ═══════════════════════════════════════════════════════════════════════════════
# SINGLETON INSTANCE
# ═══════════════════════════════════════════════════════════════════════════════

_store_instance: Optional[DuckDBStore] = None
_store_lock = asyncio.Lock()


async def get_store() -> DuckDBStore:
    """Get singleton DuckDB store instance (coroutine-safe)."""
    global _store_instance
    async with _store_lock:
        if _store_instance is None:
            _store_instance = DuckDBStore()
            await _store_instance.connect()
    return _store_instance


async def close_store() -> None:
    """Close singleton store instance."""
    global _store_instance
    if _store_instance:
        await _store_instance.close()
        _store_instance = None
