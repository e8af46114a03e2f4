"""DuckDBStore store records and reference periods."""
from __future__ import annotations

from datetime import date
from typing import Optional, List, Dict, Any

import duckdb

from storepulse.exceptions import MetricsStoreError, StoreNotFoundError
from storepulse.models import StoreReference
from storepulse.observability import get_logger

logger = get_logger(__name__)

_STORE_COLUMNS = "id, name, url, reference_start, reference_end, created_at"


def _store_row_to_dict(row: tuple) -> Dict[str, Any]:
    store_id, name, url, ref_start, ref_end, created_at = row
    return {
        "id": store_id,
        "name": name,
        "url": url,
        "reference_start": ref_start.isoformat() if ref_start else None,
        "reference_end": ref_end.isoformat() if ref_end else None,
        "created_at": created_at.isoformat() if created_at else None,
    }


class StoresMixin:

    async def upsert_store(self, store_id: str, name: str, url: str = None) -> Dict[str, Any]:
        """Create a store or update its name/url. The reference period is left untouched."""
        async with self.connection() as conn:
            try:
                conn.execute("""
                    INSERT INTO stores (id, name, url, updated_at)
                    VALUES (?, ?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT (id) DO UPDATE SET
                        name = excluded.name,
                        url = excluded.url,
                        updated_at = excluded.updated_at
                """, [store_id, name, url])
                row = conn.execute(
                    f"SELECT {_STORE_COLUMNS} FROM stores WHERE id = ?", [store_id]
                ).fetchone()
            except duckdb.Error as e:
                raise MetricsStoreError("Metrics store write failed", str(e), operation="upsert_store")
        logger.info(f"Upserted store {store_id}")
        return _store_row_to_dict(row)

    async def update_reference_period(
        self,
        store_id: str,
        reference_start: Optional[date],
        reference_end: Optional[date],
    ) -> Dict[str, Any]:
        """Set or clear a store's reference period.

        Raises:
            StoreNotFoundError: If the store does not exist
        """
        async with self.connection() as conn:
            try:
                exists = conn.execute("SELECT 1 FROM stores WHERE id = ?", [store_id]).fetchone()
                if not exists:
                    raise StoreNotFoundError(store_id)

                conn.execute("""
                    UPDATE stores
                    SET reference_start = ?, reference_end = ?, updated_at = CURRENT_TIMESTAMP
                    WHERE id = ?
                """, [reference_start, reference_end, store_id])

                row = conn.execute(
                    f"SELECT {_STORE_COLUMNS} FROM stores WHERE id = ?", [store_id]
                ).fetchone()
            except duckdb.Error as e:
                raise MetricsStoreError(
                    "Metrics store write failed", str(e), operation="update_reference_period"
                )

        logger.info(
            f"Reference period for {store_id} set to {reference_start} .. {reference_end}"
        )
        return _store_row_to_dict(row)

    async def get_store_record(self, store_id: str) -> Dict[str, Any]:
        """
        Raises:
            StoreNotFoundError: If the store does not exist
        """
        row = await self._fetch_one(
            f"SELECT {_STORE_COLUMNS} FROM stores WHERE id = ?", [store_id]
        )
        if row is None:
            raise StoreNotFoundError(store_id)
        return _store_row_to_dict(row)

    async def list_stores(self) -> List[Dict[str, Any]]:
        rows = await self._fetch_all(f"SELECT {_STORE_COLUMNS} FROM stores ORDER BY name, id")
        return [_store_row_to_dict(row) for row in rows]

    async def find_store_by_url(self, url: str) -> Optional[Dict[str, Any]]:
        row = await self._fetch_one(
            f"SELECT {_STORE_COLUMNS} FROM stores WHERE url = ? ORDER BY created_at LIMIT 1", [url]
        )
        return _store_row_to_dict(row) if row else None

    async def delete_store(self, store_id: str) -> Dict[str, Any]:
        """Remove a store together with its daily, product and session metrics.

        Returns:
            The deleted store record

        Raises:
            StoreNotFoundError: If the store does not exist
        """
        async with self.connection() as conn:
            try:
                row = conn.execute(
                    f"SELECT {_STORE_COLUMNS} FROM stores WHERE id = ?", [store_id]
                ).fetchone()
            except duckdb.Error as e:
                raise MetricsStoreError("Metrics query failed", str(e), operation="delete_store")
            if row is None:
                raise StoreNotFoundError(store_id)

            conn.execute("BEGIN TRANSACTION")
            try:
                for table in ("daily_metrics", "product_metrics", "session_metrics"):
                    conn.execute(f"DELETE FROM {table} WHERE store_id = ?", [store_id])
                conn.execute("DELETE FROM stores WHERE id = ?", [store_id])
                conn.execute("COMMIT")
            except duckdb.Error as e:
                conn.execute("ROLLBACK")
                raise MetricsStoreError("Metrics store write failed", str(e), operation="delete_store")

        logger.info(f"Deleted store {store_id} and its metrics")
        return _store_row_to_dict(row)

    # ─── Engine contract ─────────────────────────────────────────────────────

    async def fetch_store_reference_period(self, store_id: str) -> Optional[StoreReference]:
        """Reference period for the store, or None when the store is unknown."""
        row = await self._fetch_one(
            "SELECT id, reference_start, reference_end FROM stores WHERE id = ?", [store_id]
        )
        if row is None:
            return None
        return StoreReference(store_id=row[0], reference_start=row[1], reference_end=row[2])

    async def fetch_stores_with_reference_period(self) -> List[StoreReference]:
        rows = await self._fetch_all("""
            SELECT id, reference_start, reference_end
            FROM stores
            WHERE reference_start IS NOT NULL
            ORDER BY id
        """)
        return [
            StoreReference(store_id=store_id, reference_start=ref_start, reference_end=ref_end)
            for store_id, ref_start, ref_end in rows
        ]
