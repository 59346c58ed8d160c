"""Tests for the per-day nutrition, sleep, recovery and meal quality scores."""

from __future__ import annotations

import pytest
from conftest import make_activity, make_meal, make_sleep

from fitsync.core.storage.models import NutritionInfo
from fitsync.domains.wellness.domain_logic.scoring import (
    calculate_meal_quality_trend,
    calculate_nutrition_score,
    calculate_recovery_score,
    calculate_sleep_score,
    sleep_duration_credit,
)

_MACROS = NutritionInfo(protein=30, carbs=60, fat=20)


class TestEmptyInput:
    def test_all_scores_zero_without_records(self):
        assert calculate_nutrition_score([]) == 0
        assert calculate_sleep_score([]) == 0
        assert calculate_recovery_score([], []) == 0
        assert calculate_meal_quality_trend([]) == 0


class TestSleepDurationCredit:
    @pytest.mark.parametrize("hours,expected", [
        (8, 1.0), (7, 1.0), (9, 1.0), (6, 0.5), (5, 0.0), (4, 0.0), (10, 0.5), (12, 0.0),
    ])
    def test_credit_curve(self, hours, expected):
        assert sleep_duration_credit(hours) == pytest.approx(expected)


class TestNutritionScore:
    def test_three_balanced_meals_score_full(self):
        meals = [
            make_meal("2026-03-02T08:00:00", calories=500, category="breakfast", nutrition=_MACROS),
            make_meal("2026-03-02T12:30:00", calories=700, category="lunch", nutrition=_MACROS),
            make_meal("2026-03-02T19:00:00", calories=800, category="dinner", nutrition=_MACROS),
        ]
        assert calculate_nutrition_score(meals) == pytest.approx(100)

    def test_single_meal_without_macros(self):
        # frequency 1/3 * 30 = 10, adequacy 600/1200 * 30 = 15, presence 0
        meals = [make_meal("2026-03-02T12:00:00", calories=600)]
        assert calculate_nutrition_score(meals) == pytest.approx(25)

    def test_excess_calories_penalized(self):
        heavy = [make_meal(f"2026-03-02T{h:02d}:00:00", calories=2000) for h in (8, 13, 19)]
        normal = [make_meal(f"2026-03-02T{h:02d}:00:00", calories=700) for h in (8, 13, 19)]
        assert calculate_nutrition_score(heavy) < calculate_nutrition_score(normal)


class TestSleepScore:
    def test_ideal_night(self):
        assert calculate_sleep_score([make_sleep("2026-03-02T23:00:00", 8, 1.0)]) == pytest.approx(100)

    def test_short_poor_night(self):
        # credit 0.5 * 70 + 0.2 * 30
        score = calculate_sleep_score([make_sleep("2026-03-02T23:00:00", 6, 0.2)])
        assert score == pytest.approx(41)

    def test_missing_quality_counts_as_zero(self):
        score = calculate_sleep_score([make_sleep("2026-03-02T23:00:00", 8, None)])
        assert score == pytest.approx(70)


class TestRecoveryScore:
    def test_rest_day_with_good_sleep(self):
        score = calculate_recovery_score([make_sleep("2026-03-02T23:00:00", 8)], [])
        assert score == pytest.approx(70)

    def test_active_day_with_matching_sleep(self):
        sleep = [make_sleep("2026-03-02T23:00:00", 8)]
        activities = [make_activity("2026-03-02T07:00:00", duration=60)]
        assert calculate_recovery_score(sleep, activities) == pytest.approx(100)

    def test_oversleeping_is_penalized(self):
        activities = [make_activity("2026-03-02T07:00:00", duration=120)]
        ideal = calculate_recovery_score([make_sleep("2026-03-02T22:00:00", 9)], activities)
        over = calculate_recovery_score([make_sleep("2026-03-02T22:00:00", 10.5)], activities)
        assert over < ideal

    def test_activity_without_sleep(self):
        activities = [make_activity("2026-03-02T07:00:00", duration=60)]
        assert calculate_recovery_score([], activities) == 0


class TestMealQualityTrend:
    def test_single_meal_halved(self):
        # variety 1/5 * 40 = 8, presence 20 -> 28, halved
        meals = [make_meal("2026-03-02T12:00:00", nutrition=_MACROS)]
        assert calculate_meal_quality_trend(meals) == pytest.approx(14)

    def test_even_varied_meals_score_higher(self):
        even = [
            make_meal("2026-03-02T08:00:00", 600, "breakfast", _MACROS),
            make_meal("2026-03-02T13:00:00", 600, "lunch", _MACROS),
            make_meal("2026-03-02T19:00:00", 600, "dinner", _MACROS),
        ]
        uneven = [
            make_meal("2026-03-02T08:00:00", 100, "snack"),
            make_meal("2026-03-02T13:00:00", 100, "snack"),
            make_meal("2026-03-02T19:00:00", 1600, "snack"),
        ]
        assert calculate_meal_quality_trend(even) > calculate_meal_quality_trend(uneven)

    @pytest.mark.parametrize("calories", [[0, 0], [5000, 10], [300, 300, 300, 300, 300, 300]])
    def test_bounded(self, calories):
        meals = [
            make_meal(f"2026-03-02T{8 + i:02d}:00:00", c, f"slot{i}", _MACROS)
            for i, c in enumerate(calories)
        ]
        assert 0 <= calculate_meal_quality_trend(meals) <= 100
