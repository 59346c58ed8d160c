"""Tests for TimeWindowAggregator statistics and request deduplication."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest
from conftest import make_activity, make_meal, make_sleep

from fitsync.core.storage.models import InvalidUserError, NutritionInfo
from fitsync.core.storage.record_store import RecordStore
from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator


def _run(coro):
    """Run an async coroutine synchronously (no pytest-asyncio required)."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class _CountingRecordStore(RecordStore):
    def __init__(self, kv):
        super().__init__(kv)
        self.daily_calls = 0

    async def get_daily_aggregated_data(self, user_id, day=None):
        self.daily_calls += 1
        await asyncio.sleep(0.01)
        return await super().get_daily_aggregated_data(user_id, day)


class _FlakyDailyRecordStore(RecordStore):
    """Fails daily reads until ``healthy`` is set."""

    def __init__(self, kv):
        super().__init__(kv)
        self.daily_calls = 0
        self.healthy = False

    async def get_daily_aggregated_data(self, user_id, day=None):
        self.daily_calls += 1
        await asyncio.sleep(0.01)
        if not self.healthy:
            raise RuntimeError("storage offline")
        return await super().get_daily_aggregated_data(user_id, day)


class _BrokenRecordStore(RecordStore):
    async def get_weekly_aggregated_data(self, user_id, day=None):
        raise RuntimeError("storage offline")


def _seed(record_store):
    for record in (
        make_activity("2026-03-02T07:00:00", steps=8000, duration=40, calories=300, xp=90),
        make_meal("2026-03-02T08:00:00", calories=500, category="breakfast", xp=10,
                  nutrition=NutritionInfo(protein=25, carbs=60, fat=15)),
        make_meal("2026-03-02T19:00:00", calories=800, category="dinner", xp=10),
        make_sleep("2026-03-02T23:00:00", hours=7.5, quality=0.8, xp=30),
        make_activity("2026-03-05T18:00:00", steps=3000, duration=20, calories=120),
    ):
        _run(record_store.add_record("alice", record))


class TestDailyStats:
    def test_day_without_records_is_zero(self, aggregator):
        stats = _run(aggregator.get_daily_stats("alice", date(2026, 3, 2)))
        assert stats["date"] == "2026-03-02"
        assert stats["steps"] == 0
        assert stats["net_calories"] == 0
        assert stats["scores"] == {"nutrition": 0, "sleep": 0, "recovery": 0, "meal_quality": 0}
        assert stats["meals"] == stats["activities"] == stats["sleep"] == []

    def test_day_totals(self, aggregator, record_store):
        _seed(record_store)
        stats = _run(aggregator.get_daily_stats("alice", date(2026, 3, 2)))
        assert stats["steps"] == 8000
        assert stats["calories_in"] == 1300
        assert stats["calories_out"] == 300
        assert stats["net_calories"] == 1000
        assert stats["sleep_hours"] == 7.5
        assert stats["xp"] == 140
        assert len(stats["meals"]) == 2
        assert stats["sleep"][0]["hours"] == 7.5
        assert all(0 < v <= 100 for v in stats["scores"].values())

    def test_blank_user_rejected(self, aggregator):
        with pytest.raises(InvalidUserError):
            _run(aggregator.get_daily_stats(""))


class TestWeeklyStats:
    def test_series_shape(self, aggregator, record_store):
        _seed(record_store)
        week = _run(aggregator.get_weekly_stats("alice", date(2026, 3, 4)))
        assert week["dates"][0] == "2026-03-01"
        assert week["dates"][-1] == "2026-03-07"
        assert week["day_names"][0] == "Sun"
        for name in ("steps", "calories_in", "sleep_hours", "nutrition_scores", "meals_logged"):
            assert len(week[name]) == 7

    def test_series_sum_to_totals(self, aggregator, record_store):
        _seed(record_store)
        week = _run(aggregator.get_weekly_stats("alice", date(2026, 3, 4)))
        assert sum(week["steps"]) == week["totals"]["steps"] == 11000
        assert sum(week["calories_out"]) == week["totals"]["calories_burned"]
        assert sum(week["xp"]) == week["totals"]["xp"]
        assert week["meals_logged"][1] == 2


class TestMonthlyStats:
    def test_month_summary(self, aggregator, record_store):
        _seed(record_store)
        month = _run(aggregator.get_monthly_stats("alice", date(2026, 3, 20)))
        assert month["month"] == "2026-03"
        assert month["record_count"] == 5
        assert month["totals"]["activity_minutes"] == 60


class TestDeduplication:
    def test_concurrent_identical_requests_share_work(self, kv_store):
        store = _CountingRecordStore(kv_store)
        aggregator = TimeWindowAggregator(store)

        async def _both():
            return await asyncio.gather(
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
            )

        first, second = _run(_both())
        assert first == second
        assert first is not second
        assert store.daily_calls == 1
        assert aggregator.pending_count == 0

    def test_different_dates_not_shared(self, kv_store):
        store = _CountingRecordStore(kv_store)
        aggregator = TimeWindowAggregator(store)

        async def _both():
            return await asyncio.gather(
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
                aggregator.get_daily_stats("alice", date(2026, 3, 3)),
            )

        _run(_both())
        assert store.daily_calls == 2

    def test_callers_cannot_mutate_each_others_result(self, kv_store):
        store = _CountingRecordStore(kv_store)
        _run(store.add_record("alice", make_activity("2026-03-02T07:00:00", steps=4000)))
        aggregator = TimeWindowAggregator(store)

        async def _both():
            return await asyncio.gather(
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
            )

        first, second = _run(_both())
        first["steps"] = 999
        first["activities"].clear()
        assert second["steps"] == 4000
        assert len(second["activities"]) == 1

    def test_failure_reaches_every_caller_and_is_released(self, kv_store):
        store = _FlakyDailyRecordStore(kv_store)
        aggregator = TimeWindowAggregator(store)

        async def _both():
            return await asyncio.gather(
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
                aggregator.get_daily_stats("alice", date(2026, 3, 2)),
                return_exceptions=True,
            )

        results = _run(_both())
        assert all(isinstance(r, RuntimeError) for r in results)
        assert store.daily_calls == 1
        assert aggregator.pending_count == 0

        store.healthy = True
        stats = _run(aggregator.get_daily_stats("alice", date(2026, 3, 2)))
        assert stats["steps"] == 0
        assert store.daily_calls == 2

    def test_sequential_requests_recompute(self, kv_store):
        store = _CountingRecordStore(kv_store)
        aggregator = TimeWindowAggregator(store)
        _run(aggregator.get_daily_stats("alice", date(2026, 3, 2)))
        _run(aggregator.get_daily_stats("alice", date(2026, 3, 2)))
        assert store.daily_calls == 2


class TestHelpers:
    def test_daily_aggregates_oldest_first(self, aggregator, record_store):
        _seed(record_store)
        days = _run(aggregator.get_daily_aggregates("alice", date(2026, 3, 7), days=7))
        assert len(days) == 7
        assert days[0].start_date.date() == date(2026, 3, 1)
        assert days[1].totals.steps == 8000
        assert days[4].totals.steps == 3000

    def test_recent_records_grouped_newest_first(self, aggregator, record_store):
        _seed(record_store)
        recent = _run(aggregator.get_recent_records("alice", date(2026, 3, 10), limit=1))
        assert len(recent["activities"]) == 1
        assert recent["activities"][0]["time"] == "2026-03-05T18:00:00"
        assert recent["meals"][0]["category"] == "dinner"

    def test_summary_stats(self, aggregator, record_store):
        _seed(record_store)
        summary = _run(aggregator.get_summary_stats("alice", date(2026, 3, 2)))
        assert summary["today"]["steps"] == 8000
        assert summary["week"]["steps"] == 11000
        assert summary["total_xp"] == 140
        assert summary["goals"] is None

    def test_summary_stats_failure_returns_zeros(self, kv_store):
        aggregator = TimeWindowAggregator(_BrokenRecordStore(kv_store))
        summary = _run(aggregator.get_summary_stats("alice", date(2026, 3, 2)))
        assert summary["today"]["steps"] == 0
        assert summary["total_xp"] == 0
