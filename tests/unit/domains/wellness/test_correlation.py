"""Tests for Pearson correlation, p-values and the meal/sleep calculator."""

from __future__ import annotations

import pytest
from conftest import make_meal, make_sleep

from fitsync.core.storage.models import NutritionInfo
from fitsync.domains.wellness.domain_logic.correlation import (
    CorrelationCalculator,
    calculate_p_value,
    calculate_pearson_correlation,
    correlation_p_value,
    significance_for,
)


class TestPearson:
    def test_self_correlation_is_one(self):
        x = [1.0, 4.0, 2.5, 8.0, 3.0]
        assert calculate_pearson_correlation(x, x) == pytest.approx(1.0)

    def test_symmetric(self):
        x = [1.0, 2.0, 3.0, 4.0, 6.0]
        y = [2.0, 1.0, 4.0, 3.0, 7.0]
        assert calculate_pearson_correlation(x, y) == pytest.approx(
            calculate_pearson_correlation(y, x)
        )

    def test_perfect_negative(self):
        assert calculate_pearson_correlation([1, 2, 3], [3, 2, 1]) == pytest.approx(-1.0)

    def test_constant_series_is_zero(self):
        assert calculate_pearson_correlation([5, 5, 5, 5], [1, 2, 3, 4]) == 0.0

    def test_mismatched_or_empty_is_zero(self):
        assert calculate_pearson_correlation([], []) == 0.0
        assert calculate_pearson_correlation([1, 2], [1, 2, 3]) == 0.0

    def test_bounded(self):
        r = calculate_pearson_correlation([0.1, 0.2, 0.30000000000000004], [1, 2, 3])
        assert -1.0 <= r <= 1.0


class TestSignificance:
    def test_p_value_bounds(self):
        assert 0.0 <= calculate_p_value(0.0, 5) <= 1.0
        assert calculate_p_value(0.0, 5) == pytest.approx(1.0)
        assert calculate_p_value(3.0, 0) == 1.0

    def test_p_value_shrinks_with_larger_t(self):
        assert calculate_p_value(4.0, 10) < calculate_p_value(1.0, 10)

    def test_perfect_correlation_is_highly_significant(self):
        assert correlation_p_value(1.0, 7) == 0.0
        assert significance_for(correlation_p_value(-1.0, 7)) == "high"

    def test_too_few_points(self):
        assert correlation_p_value(0.9, 2) == 1.0

    @pytest.mark.parametrize("p,level", [(0.001, "high"), (0.03, "medium"), (0.2, "low")])
    def test_bands(self, p, level):
        assert significance_for(p) == level


def _late_and_early_week():
    meals, sleep = [], []
    for day in range(1, 8):
        if day % 2:
            meals.append(make_meal(f"2026-03-0{day}T23:30:00"))
            sleep.append(make_sleep(f"2026-03-0{day}T23:50:00", hours=6, quality=0.2))
        else:
            meals.append(make_meal(f"2026-03-0{day}T18:00:00"))
            sleep.append(make_sleep(f"2026-03-0{day}T22:30:00", hours=8, quality=0.9))
    return meals, sleep


class TestMealSleepTiming:
    def test_late_meals_correlate_negatively(self):
        meals, sleep = _late_and_early_week()
        result = CorrelationCalculator().calculate_meal_sleep_timing_correlation(meals, sleep)
        assert result.correlation == pytest.approx(-1.0)
        assert result.significance == "high"
        assert result.sample_size == 7
        assert result.description.startswith("Late meal timing is associated with poorer sleep")

    def test_fewer_than_three_pairs(self):
        meals = [make_meal("2026-03-01T19:00:00"), make_meal("2026-03-02T19:00:00")]
        sleep = [make_sleep("2026-03-01T23:00:00"), make_sleep("2026-03-02T23:00:00")]
        result = CorrelationCalculator().calculate_meal_sleep_timing_correlation(meals, sleep)
        assert result.correlation == 0.0
        assert result.p_value == 1.0
        assert result.significance == "low"
        assert "Insufficient" in result.description

    def test_no_data(self):
        result = CorrelationCalculator().calculate_meal_sleep_timing_correlation([], [])
        assert result.description == "Insufficient data to calculate correlation"

    def test_after_midnight_sleep_uses_previous_day_meal(self):
        meals = [make_meal(f"2026-03-0{d}T{h}:00:00") for d, h in ((1, 18), (3, 21), (5, 23))]
        sleep = [
            make_sleep("2026-03-02T00:30:00", quality=0.9),
            make_sleep("2026-03-04T00:30:00", quality=0.6),
            make_sleep("2026-03-06T00:30:00", quality=0.3),
        ]
        result = CorrelationCalculator().calculate_meal_sleep_timing_correlation(meals, sleep)
        assert result.sample_size == 3
        assert result.correlation < -0.9


class TestNutritionSleepQuality:
    def test_better_nutrition_days_sleep_better(self):
        macros = NutritionInfo(protein=30, carbs=50, fat=20)
        meals, sleep = [], []
        for day, (with_macros, quality) in enumerate(
            [(3, 0.9), (0, 0.3), (2, 0.7), (0, 0.2), (3, 0.95)], start=1
        ):
            for slot in range(3):
                meals.append(make_meal(
                    f"2026-03-0{day}T{8 + slot * 5:02d}:00:00",
                    calories=600,
                    nutrition=macros if slot < with_macros else None,
                ))
            sleep.append(make_sleep(f"2026-03-0{day}T22:30:00", quality=quality))
        result = CorrelationCalculator().calculate_nutrition_sleep_quality_correlation(meals, sleep)
        assert result.correlation > 0.9
        assert result.sample_size == 5
        assert result.description.startswith("Better nutrition quality")

    def test_no_matching_days(self):
        meals = [make_meal("2026-03-01T12:00:00")]
        sleep = [make_sleep("2026-03-05T23:00:00")]
        result = CorrelationCalculator().calculate_nutrition_sleep_quality_correlation(meals, sleep)
        assert result.correlation == 0.0
        assert result.sample_size == 0


class TestOptimalMealTiming:
    def test_defaults_without_dinners(self):
        rec = CorrelationCalculator().find_optimal_meal_timing(
            [make_meal("2026-03-01T12:00:00")], []
        )
        assert rec.optimal_dinner_time == "19:00"
        assert rec.meal_spacing == 3.0
        assert rec.confidence == 0.5

    def test_prefers_dinners_before_good_nights(self):
        meals, sleep = _late_and_early_week()
        rec = CorrelationCalculator().find_optimal_meal_timing(meals, sleep)
        assert rec.optimal_dinner_time == "18:00"
        assert 2.0 <= rec.meal_spacing <= 6.0
        assert 0.0 < rec.confidence <= 1.0
