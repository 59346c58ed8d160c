"""Tests for time windows and build_time_aggregate."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest
from conftest import make_activity, make_meal, make_sleep

from fitsync.core.storage.aggregation import (
    build_time_aggregate,
    day_window,
    days_in_window,
    month_window,
    ols_slope,
    resolve_reference,
    week_window,
)
from fitsync.core.storage.models import NutritionInfo


def _week_records():
    return [
        make_activity("2026-03-01T08:00:00", steps=5000, duration=30, calories=200, xp=60),
        make_meal("2026-03-01T12:00:00", calories=700, xp=10,
                  nutrition=NutritionInfo(protein=30, carbs=80, fat=20)),
        make_sleep("2026-03-01T23:00:00", hours=7.5, quality=0.8, xp=30),
        make_activity("2026-03-03T18:00:00", steps=9000, duration=45, calories=350, intensity=8),
        make_meal("2026-03-03T19:30:00", calories=900),
        make_sleep("2026-03-04T00:30:00", hours=6, quality=0.4),
        make_meal("2026-03-07T23:59:59", calories=300),
    ]


class TestWindows:
    def test_day_window_is_inclusive(self):
        start, end = day_window(datetime(2026, 3, 4, 15, 30))
        assert start == datetime(2026, 3, 4)
        assert end == datetime(2026, 3, 4, 23, 59, 59, 999999)

    @pytest.mark.parametrize("ref", [
        datetime(2026, 3, 1), datetime(2026, 3, 4, 12), datetime(2026, 3, 7, 23, 59),
    ])
    def test_week_runs_sunday_to_saturday(self, ref):
        start, end = week_window(ref)
        assert start == datetime(2026, 3, 1)
        assert start.weekday() == 6
        assert end.date() == date(2026, 3, 7)

    def test_month_window_december(self):
        start, end = month_window(datetime(2026, 12, 15))
        assert start == datetime(2026, 12, 1)
        assert end.date() == date(2026, 12, 31)

    def test_month_window_february(self):
        _, end = month_window(datetime(2028, 2, 10))
        assert end.date() == date(2028, 2, 29)

    def test_days_in_week(self):
        start, end = week_window(datetime(2026, 3, 4))
        assert len(days_in_window(start, end)) == 7

    def test_resolve_reference_date_is_midnight(self):
        assert resolve_reference(date(2026, 3, 4)) == datetime(2026, 3, 4)
        assert resolve_reference("2026-03-04") == datetime(2026, 3, 4)


class TestOlsSlope:
    def test_flat_series(self):
        assert ols_slope([3, 3, 3]) == 0.0

    def test_linear_series(self):
        assert ols_slope([0, 2, 4, 6]) == pytest.approx(2.0)

    def test_short_series(self):
        assert ols_slope([5]) == 0.0
        assert ols_slope([]) == 0.0


class TestBuildTimeAggregate:
    def test_totals_by_type(self):
        start, end = week_window(datetime(2026, 3, 4))
        agg = build_time_aggregate("weekly", start, end, _week_records())
        assert agg.totals.steps == 14000
        assert agg.totals.activity_minutes == 75
        assert agg.totals.calories_burned == 550
        assert agg.totals.calories_consumed == 1900
        assert agg.totals.sleep_hours == pytest.approx(13.5)
        assert agg.totals.xp == 100
        assert len(agg.records) == 7

    def test_averages(self):
        start, end = week_window(datetime(2026, 3, 4))
        agg = build_time_aggregate("weekly", start, end, _week_records())
        assert agg.averages.sleep_quality == pytest.approx(0.6)
        assert agg.averages.activity_intensity == pytest.approx(6.5)
        assert agg.averages.nutrition_balance == pytest.approx(1 / 3)

    def test_consistency_counts_days_with_records(self):
        start, end = week_window(datetime(2026, 3, 4))
        agg = build_time_aggregate("weekly", start, end, _week_records())
        # Records on Mar 1, 3, 4 and 7
        assert agg.trends.consistency_score == pytest.approx(4 / 7 * 100)

    def test_records_outside_window_ignored(self):
        start, end = day_window(datetime(2026, 3, 1))
        agg = build_time_aggregate("daily", start, end, _week_records())
        assert agg.totals.steps == 5000
        assert len(agg.records) == 3

    def test_daily_totals_sum_to_weekly(self):
        records = _week_records()
        start, end = week_window(datetime(2026, 3, 4))
        weekly = build_time_aggregate("weekly", start, end, records)
        daily = [
            build_time_aggregate("daily", *day_window(day), records)
            for day in days_in_window(start, end)
        ]
        for name in ("xp", "calories_burned", "calories_consumed",
                     "activity_minutes", "sleep_hours", "steps"):
            total = sum(getattr(d.totals, name) for d in daily)
            assert total == pytest.approx(getattr(weekly.totals, name)), name

    def test_empty_window_is_all_zero(self):
        start, end = day_window(datetime(2026, 3, 2))
        agg = build_time_aggregate("daily", start, end, [])
        assert agg.totals.steps == 0
        assert agg.averages.sleep_quality == 0
        assert agg.trends.consistency_score == 0
        assert agg.to_dict()["record_count"] == 0

    def test_xp_trend_rises_with_later_xp(self):
        records = [
            make_meal("2026-03-02T12:00:00", xp=10),
            make_meal("2026-03-06T12:00:00", xp=100),
        ]
        start, end = week_window(datetime(2026, 3, 4))
        agg = build_time_aggregate("weekly", start, end, records)
        assert agg.trends.xp_trend > 0

    def test_unknown_type_raises(self):
        bogus = replace(make_meal("2026-03-02T12:00:00"), type="nap")
        start, end = day_window(datetime(2026, 3, 2))
        with pytest.raises(ValueError, match="Unknown record type"):
            build_time_aggregate("daily", start, end, [bogus])
