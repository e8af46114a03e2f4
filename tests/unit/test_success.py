"""
Tests for storepulse.success module.
"""
import logging

import pytest
from datetime import date

from storepulse.aggregator import MetricAggregator
from storepulse.models import (
    StoreReference,
    SuccessAxis,
    SuccessStatus,
    SuccessStatusError,
    SuccessTier,
    ThresholdConfig,
)
from storepulse.observability import bound_fields
from storepulse.periods import DateRange
from storepulse.success import (
    REFERENCE_NOT_CONFIGURED,
    REFERENCE_NOT_STARTED,
    SuccessClassifier,
    ThresholdBook,
    classify,
    effective_reference_end,
    previous_period,
)

FIXED = ThresholdConfig(axis=SuccessAxis.FIXED_AMOUNT, low=5_000_000, medium=10_000_000, high=15_000_000)


class TestClassify:
    """Tests for tier mapping."""

    @pytest.mark.parametrize("value,expected", [
        (15_000_000, SuccessTier.ALTO),
        (20_000_000, SuccessTier.ALTO),
        (12_000_000, SuccessTier.MEDIO),
        (10_000_000, SuccessTier.MEDIO),
        (5_000_000, SuccessTier.LEVE),
        (4_999_999, SuccessTier.NINGUNO),
        (0, SuccessTier.NINGUNO),
        (-1, SuccessTier.NEGATIVO),
    ])
    def test_tiers(self, value, expected):
        assert classify(value, FIXED) == expected

    def test_missing_config_is_ninguno(self):
        """An axis without config never classifies above ninguno, even when negative."""
        assert classify(-100, None) == SuccessTier.NINGUNO
        assert classify(100, None) == SuccessTier.NINGUNO

    def test_negative_thresholds(self):
        """Threshold checks run before the negative check."""
        cfg = ThresholdConfig(axis=SuccessAxis.PERCENTAGE, low=-10, medium=0, high=10)
        assert classify(-5, cfg) == SuccessTier.LEVE

    def test_tier_literals(self):
        assert [t.value for t in SuccessTier] == ["alto", "medio", "leve", "ninguno", "negativo"]


class TestThresholdBook:

    def test_keyed_by_axis(self, revenue_thresholds):
        book = ThresholdBook(revenue_thresholds)
        assert len(book) == 2
        assert book.get(SuccessAxis.PERCENTAGE).high == 50

    def test_duplicate_axis_keeps_first(self, caplog):
        second = ThresholdConfig(axis=SuccessAxis.FIXED_AMOUNT, low=1, medium=2, high=3)
        with caplog.at_level(logging.WARNING):
            book = ThresholdBook([FIXED, second])
        assert book.get(SuccessAxis.FIXED_AMOUNT) is FIXED
        assert "Multiple active threshold configs" in caplog.text

    def test_missing_axis(self):
        book = ThresholdBook([FIXED])
        assert book.classify(SuccessAxis.PERCENTAGE, 1000) == SuccessTier.NINGUNO


class TestPeriods:

    def test_effective_end_past(self):
        assert effective_reference_end(date(2026, 3, 31), today=date(2026, 4, 10)) == date(2026, 3, 31)

    def test_effective_end_future_is_today(self):
        assert effective_reference_end(date(2026, 3, 31), today=date(2026, 3, 15)) == date(2026, 3, 15)

    def test_effective_end_unset_is_today(self):
        assert effective_reference_end(None, today=date(2026, 3, 15)) == date(2026, 3, 15)

    def test_previous_period_same_length(self):
        ref = DateRange(date(2026, 1, 11), date(2026, 1, 20))
        assert previous_period(ref) == DateRange(date(2026, 1, 1), date(2026, 1, 10))


class TestSuccessClassifier:
    """Tests for single-store and batch classification."""

    @pytest.mark.asyncio
    async def test_store_status(self, fake_store):
        """March at 200/day against Jan 29 - Feb 28 at 100/day."""
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("store-1", today=date(2026, 4, 15))

        assert isinstance(status, SuccessStatus)
        assert status.reference_period == DateRange(date(2026, 3, 1), date(2026, 3, 31))
        assert status.previous_period == DateRange(date(2026, 1, 29), date(2026, 2, 28))
        assert status.current_revenue == 6200.0
        assert status.previous_revenue == 3100.0
        assert status.fixed_increase == 3100.0
        assert status.percentage_increase == 100.0
        assert status.fixed_level == SuccessTier.NINGUNO
        assert status.percentage_level == SuccessTier.ALTO

    @pytest.mark.asyncio
    async def test_reference_still_running(self, fake_store):
        """An ongoing reference period is measured up to today."""
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("store-1", today=date(2026, 3, 10))

        assert status.reference_period == DateRange(date(2026, 3, 1), date(2026, 3, 10))
        assert status.previous_period == DateRange(date(2026, 2, 19), date(2026, 2, 28))

    @pytest.mark.asyncio
    async def test_not_configured(self, fake_store):
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("store-2", today=date(2026, 4, 15))

        assert isinstance(status, SuccessStatusError)
        assert status.reason == REFERENCE_NOT_CONFIGURED
        assert status.to_dict()["status"] == "error"

    @pytest.mark.asyncio
    async def test_unknown_store_not_configured(self, fake_store):
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("nope", today=date(2026, 4, 15))
        assert status.reason == REFERENCE_NOT_CONFIGURED

    @pytest.mark.asyncio
    async def test_not_started(self, fake_store):
        fake_store.references["store-3"] = StoreReference("store-3", date(2026, 6, 1), date(2026, 6, 30))
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("store-3", today=date(2026, 4, 15))

        assert status.reason == REFERENCE_NOT_STARTED
        assert fake_store.totals_calls == []

    @pytest.mark.asyncio
    async def test_no_thresholds(self, fake_store):
        fake_store.thresholds = []
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        status = await classifier.store_status("store-1", today=date(2026, 4, 15))

        assert status.fixed_level == SuccessTier.NINGUNO
        assert status.percentage_level == SuccessTier.NINGUNO

    @pytest.mark.asyncio
    async def test_batch_isolates_failures(self, fake_store):
        """One failing store is recorded and the rest are still classified."""
        fake_store.references["store-4"] = StoreReference("store-4", date(2026, 3, 1), date(2026, 3, 31))
        fake_store.failing_stores.add("store-4")
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)

        report = await classifier.all_store_statuses(today=date(2026, 4, 15))

        assert [s.store_id for s in report.statuses] == ["store-1"]
        assert [f.store_id for f in report.failures] == ["store-4"]
        assert "unavailable" in report.failures[0].error

    @pytest.mark.asyncio
    async def test_batch_records_not_started(self, fake_store):
        fake_store.references["store-3"] = StoreReference("store-3", date(2026, 6, 1), None)
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)

        report = await classifier.all_store_statuses(today=date(2026, 4, 15))
        data = report.to_dict()

        assert [s["storeId"] for s in data["statuses"]] == ["store-1"]
        assert data["skipped"] == [{"storeId": "store-3", "error": REFERENCE_NOT_STARTED}]

    @pytest.mark.asyncio
    async def test_batch_skips_unconfigured(self, fake_store):
        """Stores without a reference start are not part of the batch."""
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)
        report = await classifier.all_store_statuses(today=date(2026, 4, 15))
        assert all(o.store_id != "store-2" for o in report.outcomes)

    @pytest.mark.asyncio
    async def test_batch_binds_store_to_logs(self, fake_store, monkeypatch):
        """Queries issued for a store run with its id bound to the log context."""
        fake_store.references["store-4"] = StoreReference("store-4", date(2026, 3, 1), date(2026, 3, 31))
        seen = []
        fetch = fake_store.fetch_period_totals

        async def recording_fetch(store_id, start, end):
            seen.append((store_id, bound_fields().get("store_id")))
            return await fetch(store_id, start, end)

        monkeypatch.setattr(fake_store, "fetch_period_totals", recording_fetch)
        classifier = SuccessClassifier(MetricAggregator(fake_store), fake_store, fake_store)

        await classifier.all_store_statuses(today=date(2026, 4, 15))

        assert seen
        assert all(store_id == bound for store_id, bound in seen)
        assert bound_fields() == {}
