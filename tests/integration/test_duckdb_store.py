"""
Integration tests for storepulse/duckdb_store.py

Runs the repository mixins against a real DuckDB file under tmp_path.
"""
import asyncio
import pytest
import pytest_asyncio
from datetime import date

from storepulse.analytics_service import StoreAnalyticsService
from storepulse.duckdb_store import DuckDBStore
from storepulse.exceptions import MetricsStoreError, QueryTimeoutError, StoreNotFoundError
from storepulse.models import StoreReference, SuccessAxis, ThresholdConfig
from storepulse.periods import ComparisonKind, DateRange

from conftest import daily_rows


def _daily_payload(start, end, **kwargs):
    return [{"date": d.isoformat(), **row} for d, row in daily_rows(start, end, **kwargs).items()]


@pytest_asyncio.fixture
async def store(tmp_path):
    """Connected store seeded with one store and January-March 2026 metrics."""
    db = DuckDBStore(tmp_path / "analytics.duckdb")
    await db.connect()

    await db.upsert_store("store-1", "Seoul Beauty", "seoul-beauty.myshopify.com")
    await db.upsert_daily_metrics("store-1", _daily_payload(date(2026, 1, 1), date(2026, 2, 28)))
    await db.upsert_daily_metrics(
        "store-1", _daily_payload(date(2026, 3, 1), date(2026, 3, 31), revenue=200.0, orders=4)
    )
    await db.upsert_product_metrics("store-1", [
        {"date": "2026-03-02", "product_id": "p1", "product_title": "Serum", "total_sales": 300},
        {"date": "2026-03-04", "product_id": "p1", "product_title": "Serum", "total_sales": 400},
        {"date": "2026-03-03", "product_id": "p2", "product_title": "Toner", "total_sales": 500},
        {"date": "2026-03-05", "product_id": "p3", "product_title": "Sample", "total_sales": 0},
    ])
    await db.upsert_session_metrics("store-1", [
        {"date": "2026-03-02", "sessions": 120, "conversion_rate": 0.02},
        {"date": "2026-03-01", "sessions": 100, "conversion_rate": 0.01},
    ])

    yield db
    await db.close()


class TestConnection:
    """Tests for connection lifecycle."""

    @pytest.mark.asyncio
    async def test_creates_parent_directory(self, tmp_path):
        db = DuckDBStore(tmp_path / "nested" / "dir" / "analytics.duckdb")
        await db.connect()
        try:
            assert db.is_connected
            assert (tmp_path / "nested" / "dir").exists()
        finally:
            await db.close()
        assert not db.is_connected

    @pytest.mark.asyncio
    async def test_lazy_connect(self, tmp_path):
        """First query opens the connection."""
        db = DuckDBStore(tmp_path / "analytics.duckdb")
        try:
            assert await db.list_stores() == []
            assert db.get_connection_info()["status"] == "active"
        finally:
            await db.close()

    @pytest.mark.asyncio
    async def test_data_survives_reopen(self, tmp_path):
        path = tmp_path / "analytics.duckdb"
        db = DuckDBStore(path)
        await db.upsert_store("store-1", "Seoul Beauty")
        await db.close()

        reopened = DuckDBStore(path)
        try:
            assert (await reopened.get_store_record("store-1"))["name"] == "Seoul Beauty"
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_bad_query_wrapped(self, store):
        with pytest.raises(MetricsStoreError) as exc_info:
            await store._fetch_all("SELECT * FROM no_such_table")
        assert exc_info.value.operation == "fetch_all"

    @pytest.mark.asyncio
    async def test_query_timeout(self, store, monkeypatch):
        async def slow(awaitable, timeout):
            awaitable.cancel()
            raise asyncio.TimeoutError()

        monkeypatch.setattr("storepulse.duckdb_store.asyncio.wait_for", slow)
        with pytest.raises(QueryTimeoutError):
            await store._fetch_one("SELECT 1", timeout=0.01)


class TestMetricQueries:
    """Tests for the engine's metrics contract."""

    @pytest.mark.asyncio
    async def test_period_totals(self, store):
        totals = await store.fetch_period_totals("store-1", date(2026, 3, 1), date(2026, 3, 31))

        assert totals.revenue == 6200.0
        assert totals.orders == 124
        assert totals.sessions == 1550
        assert totals.avg_conversion_fraction == pytest.approx(0.04)

    @pytest.mark.asyncio
    async def test_period_totals_empty(self, store):
        totals = await store.fetch_period_totals("store-1", date(2025, 1, 1), date(2025, 1, 31))

        assert totals.revenue == 0
        assert totals.orders == 0
        assert totals.avg_conversion_fraction is None

    @pytest.mark.asyncio
    async def test_period_totals_scoped_to_store(self, store):
        await store.upsert_daily_metrics("store-2", _daily_payload(date(2026, 3, 1), date(2026, 3, 1), revenue=999.0))
        totals = await store.fetch_period_totals("store-1", date(2026, 3, 1), date(2026, 3, 1))
        assert totals.revenue == 200.0

    @pytest.mark.asyncio
    async def test_upsert_replaces_day(self, store):
        await store.upsert_daily_metrics("store-1", [{"date": "2026-03-01", "revenue": 1.0, "orders": 1}])
        totals = await store.fetch_period_totals("store-1", date(2026, 3, 1), date(2026, 3, 1))
        assert totals.revenue == 1.0

    @pytest.mark.asyncio
    async def test_bucketed_revenue(self, store):
        rows = await store.fetch_bucketed_revenue("store-1", date(2026, 2, 27), date(2026, 3, 2))
        assert rows == [
            (date(2026, 2, 27), 100.0),
            (date(2026, 2, 28), 100.0),
            (date(2026, 3, 1), 200.0),
            (date(2026, 3, 2), 200.0),
        ]

    @pytest.mark.asyncio
    async def test_top_products(self, store):
        rows = await store.fetch_top_products("store-1", date(2026, 3, 1), date(2026, 3, 31), 5)
        assert [(p.title, p.total_sales) for p in rows] == [("Serum", 700.0), ("Toner", 500.0)]

    @pytest.mark.asyncio
    async def test_top_products_limit(self, store):
        rows = await store.fetch_top_products("store-1", date(2026, 3, 1), date(2026, 3, 31), 1)
        assert [p.title for p in rows] == ["Serum"]

    @pytest.mark.asyncio
    async def test_session_metrics(self, store):
        points = await store.fetch_session_metrics("store-1")
        assert [(p.date, p.sessions) for p in points] == [(date(2026, 3, 1), 100), (date(2026, 3, 2), 120)]

    @pytest.mark.asyncio
    async def test_session_metrics_range(self, store):
        points = await store.fetch_session_metrics("store-1", start=date(2026, 3, 2))
        assert len(points) == 1
        assert points[0].conversion_rate == pytest.approx(0.02)

    @pytest.mark.asyncio
    async def test_empty_upsert(self, store):
        assert await store.upsert_daily_metrics("store-1", []) == 0


class TestStores:
    """Tests for store records and reference periods."""

    @pytest.mark.asyncio
    async def test_get_store_record(self, store):
        record = await store.get_store_record("store-1")
        assert record["name"] == "Seoul Beauty"
        assert record["reference_start"] is None

    @pytest.mark.asyncio
    async def test_missing_store(self, store):
        with pytest.raises(StoreNotFoundError):
            await store.get_store_record("nope")

    @pytest.mark.asyncio
    async def test_upsert_keeps_reference(self, store):
        await store.update_reference_period("store-1", date(2026, 3, 1), date(2026, 3, 31))
        await store.upsert_store("store-1", "Renamed")

        record = await store.get_store_record("store-1")
        assert record["name"] == "Renamed"
        assert record["reference_start"] == "2026-03-01"

    @pytest.mark.asyncio
    async def test_update_reference_period(self, store):
        record = await store.update_reference_period("store-1", date(2026, 3, 1), None)
        assert record["reference_start"] == "2026-03-01"
        assert record["reference_end"] is None

        reference = await store.fetch_store_reference_period("store-1")
        assert reference == StoreReference("store-1", date(2026, 3, 1), None)

    @pytest.mark.asyncio
    async def test_update_reference_unknown_store(self, store):
        with pytest.raises(StoreNotFoundError):
            await store.update_reference_period("nope", date(2026, 3, 1), None)

    @pytest.mark.asyncio
    async def test_reference_unknown_store_is_none(self, store):
        assert await store.fetch_store_reference_period("nope") is None

    @pytest.mark.asyncio
    async def test_stores_with_reference_period(self, store):
        await store.upsert_store("store-2", "No Campaign")
        await store.update_reference_period("store-1", date(2026, 3, 1), date(2026, 3, 31))

        references = await store.fetch_stores_with_reference_period()
        assert [r.store_id for r in references] == ["store-1"]

    @pytest.mark.asyncio
    async def test_list_stores(self, store):
        await store.upsert_store("store-0", "Aloe Shop")
        assert [s["id"] for s in await store.list_stores()] == ["store-0", "store-1"]

    @pytest.mark.asyncio
    async def test_upsert_existing_store(self, store):
        """Second upsert of the same id updates in place and returns the record."""
        before = await store.get_store_record("store-1")

        record = await store.upsert_store("store-1", "Seoul Beauty KR", "seoul-beauty.kr")

        assert record["id"] == "store-1"
        assert record["name"] == "Seoul Beauty KR"
        assert record["url"] == "seoul-beauty.kr"
        assert record["created_at"] == before["created_at"]
        assert len(await store.list_stores()) == 1

        updated_at = await store._fetch_one("SELECT updated_at FROM stores WHERE id = ?", ["store-1"])
        assert updated_at[0] is not None

    @pytest.mark.asyncio
    async def test_find_store_by_url(self, store):
        found = await store.find_store_by_url("seoul-beauty.myshopify.com")
        assert found["id"] == "store-1"
        assert await store.find_store_by_url("unknown.myshopify.com") is None

    @pytest.mark.asyncio
    async def test_delete_store(self, store):
        await store.upsert_store("store-2", "Aloe Shop")
        await store.upsert_daily_metrics("store-2", _daily_payload(date(2026, 3, 1), date(2026, 3, 1)))

        deleted = await store.delete_store("store-1")

        assert deleted["name"] == "Seoul Beauty"
        with pytest.raises(StoreNotFoundError):
            await store.get_store_record("store-1")
        totals = await store.fetch_period_totals("store-1", date(2026, 1, 1), date(2026, 3, 31))
        assert totals.revenue == 0
        assert await store.fetch_top_products("store-1", date(2026, 3, 1), date(2026, 3, 31), 5) == []
        assert await store.fetch_session_metrics("store-1") == []

        other = await store.fetch_period_totals("store-2", date(2026, 3, 1), date(2026, 3, 1))
        assert other.revenue == 100.0

    @pytest.mark.asyncio
    async def test_delete_unknown_store(self, store):
        with pytest.raises(StoreNotFoundError):
            await store.delete_store("nope")


class TestSuccessConfigs:

    @pytest.mark.asyncio
    async def test_upsert_and_fetch(self, store):
        await store.upsert_threshold_config(
            ThresholdConfig(axis=SuccessAxis.PERCENTAGE, low=10, medium=25, high=50)
        )
        configs = await store.fetch_active_threshold_configs()
        assert configs == [ThresholdConfig(axis=SuccessAxis.PERCENTAGE, low=10.0, medium=25.0, high=50.0)]

    @pytest.mark.asyncio
    async def test_one_row_per_axis(self, store):
        await store.upsert_threshold_config(ThresholdConfig(SuccessAxis.FIXED_AMOUNT, 1, 2, 3))
        await store.upsert_threshold_config(ThresholdConfig(SuccessAxis.FIXED_AMOUNT, 4, 5, 6))

        configs = await store.fetch_active_threshold_configs()
        assert len(configs) == 1
        assert configs[0].low == 4.0

    @pytest.mark.asyncio
    async def test_inactive_hidden(self, store):
        await store.upsert_threshold_config(ThresholdConfig(SuccessAxis.FIXED_AMOUNT, 1, 2, 3), is_active=False)
        assert await store.fetch_active_threshold_configs() == []


class TestEndToEnd:
    """The analytics service running on DuckDB."""

    @pytest.mark.asyncio
    async def test_store_analytics(self, store):
        await store.update_reference_period("store-1", date(2026, 3, 1), date(2026, 3, 31))
        service = StoreAnalyticsService(store)

        result = await service.get_store_analytics(
            "store-1",
            DateRange(date(2026, 3, 1), date(2026, 3, 31)),
            comparison=ComparisonKind.LAST_MONTH,
        )
        data = result.to_dict()

        assert data["totalRevenue"] == 6200.0
        assert data["comparison"]["range"] == {"start": "2026-02-01", "end": "2026-02-28"}
        assert data["comparison"]["values"]["totalRevenue"] == 2800.0
        assert data["benchmark"]["totalRevenueChange"] == 0.0
        assert [p["title"] for p in data["topProducts"]] == ["Serum", "Toner"]

    @pytest.mark.asyncio
    async def test_success_status(self, store):
        await store.update_reference_period("store-1", date(2026, 3, 1), date(2026, 3, 31))
        await store.upsert_threshold_config(ThresholdConfig(SuccessAxis.FIXED_AMOUNT, 1000, 2000, 3000))

        status = await StoreAnalyticsService(store).get_success_status("store-1", date(2026, 4, 15))
        data = status.to_dict()

        assert data["fixedIncrease"] == 3100.0
        assert data["fixedLevel"] == "alto"
        assert data["percentageLevel"] == "ninguno"

    @pytest.mark.asyncio
    async def test_get_stats(self, store):
        stats = await store.get_stats()
        assert stats["stores"] == 1
        assert stats["daily_metrics"] == 90
        assert stats["date_range"] == {"min": "2026-01-01", "max": "2026-03-31"}
