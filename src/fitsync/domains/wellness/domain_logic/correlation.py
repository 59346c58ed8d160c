"""Statistical correlation between meal habits and sleep quality.

Significance uses an approximate Student-t CDF: the t statistic is mapped
to a standard normal deviate with

    z = t * (1 - 1/(4*df)) / sqrt(1 + t**2 / (2*df))

and the normal CDF is taken with ``math.erf``. This is an approximation,
not an exact t-test, but it increases monotonically with both ``|t|`` and
``df``, which is all the significance bands need.
"""

from __future__ import annotations

import logging
import math
import statistics
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import date, datetime, timedelta
from typing import Any, Literal

from fitsync.core.storage.models import WellnessRecord

logger = logging.getLogger(__name__)

Significance = Literal["high", "medium", "low"]

MIN_PAIRS = 3
DINNER_START_HOUR = 17.0
GOOD_SLEEP_QUALITY = 0.7


@dataclass(frozen=True)
class CorrelationResult:
    correlation: float
    p_value: float
    significance: Significance
    description: str
    sample_size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MealTimingRecommendation:
    optimal_dinner_time: str  # "HH:MM"
    meal_spacing: float       # hours between last meal and sleep
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def insufficient_data(description: str, sample_size: int = 0) -> CorrelationResult:
    return CorrelationResult(
        correlation=0.0,
        p_value=1.0,
        significance="low",
        description=description,
        sample_size=sample_size,
    )


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def calculate_pearson_correlation(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson coefficient; 0 for empty, mismatched or zero-variance input."""
    if len(x) != len(y) or not x:
        return 0.0
    mean_x = statistics.fmean(x)
    mean_y = statistics.fmean(y)
    numerator = 0.0
    sum_sq_x = 0.0
    sum_sq_y = 0.0
    for xi, yi in zip(x, y):
        dx = xi - mean_x
        dy = yi - mean_y
        numerator += dx * dy
        sum_sq_x += dx * dx
        sum_sq_y += dy * dy
    denominator = math.sqrt(sum_sq_x * sum_sq_y)
    if denominator == 0:
        return 0.0
    return max(-1.0, min(1.0, numerator / denominator))


def student_t_cdf(t: float, df: float) -> float:
    """Approximate CDF of Student's t distribution with ``df`` degrees of freedom."""
    z = t * (1 - 1 / (4 * df)) / math.sqrt(1 + t * t / (2 * df))
    return 0.5 * (1 + math.erf(z / math.sqrt(2)))


def calculate_p_value(t_statistic: float, degrees_of_freedom: float) -> float:
    """Approximate two-tailed p-value, clamped to [0, 1]."""
    if degrees_of_freedom <= 0:
        return 1.0
    p = 2 * (1 - student_t_cdf(abs(t_statistic), degrees_of_freedom))
    return min(1.0, max(0.0, p))


def significance_for(p_value: float) -> Significance:
    if p_value < 0.01:
        return "high"
    if p_value < 0.05:
        return "medium"
    return "low"


def correlation_p_value(r: float, n: int) -> float:
    df = n - 2
    if df <= 0:
        return 1.0
    residual = 1 - r * r
    if residual <= 0:
        return 0.0
    return calculate_p_value(r * math.sqrt(df / residual), df)


def decimal_hour(moment: datetime) -> float:
    return moment.hour + moment.minute / 60 + moment.second / 3600


def _format_hour(hours: float) -> str:
    total_minutes = int(round(hours * 60)) % (24 * 60)
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def _meals_by_day(meals: Sequence[WellnessRecord]) -> dict[date, list[WellnessRecord]]:
    grouped: dict[date, list[WellnessRecord]] = defaultdict(list)
    for meal in meals:
        grouped[meal.timestamp.date()].append(meal)
    return grouped


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class CorrelationCalculator:
    """Correlates meal timing and meal quality with sleep quality.

    Usage::

        calc = CorrelationCalculator()
        result = calc.calculate_meal_sleep_timing_correlation(meals, sleep)
        if result.significance != "low":
            ...
    """

    def calculate_meal_sleep_timing_correlation(
        self,
        meals: Sequence[WellnessRecord],
        sleep_records: Sequence[WellnessRecord],
    ) -> CorrelationResult:
        """Latest meal time of day vs that night's sleep quality.

        Each sleep session is paired with the latest meal logged on the same
        calendar day, or on the previous day when the sleep day has none.
        """
        if not meals or not sleep_records:
            return insufficient_data("Insufficient data to calculate correlation")

        by_day = _meals_by_day(meals)
        meal_hours: list[float] = []
        qualities: list[float] = []
        for sleep in sleep_records:
            if sleep.metrics.quality is None:
                continue
            day = sleep.timestamp.date()
            candidates = by_day.get(day) or by_day.get(day - timedelta(days=1))
            if not candidates:
                continue
            latest = max(candidates, key=lambda m: m.timestamp)
            meal_hours.append(decimal_hour(latest.timestamp))
            qualities.append(float(sleep.metrics.quality))

        if len(meal_hours) < MIN_PAIRS:
            return insufficient_data(
                "Insufficient related data points to calculate correlation", len(meal_hours)
            )

        r = calculate_pearson_correlation(meal_hours, qualities)
        p_value = correlation_p_value(r, len(meal_hours))
        if r < -0.3:
            description = f"Late meal timing is associated with poorer sleep quality (r={r:.2f})"
        elif r > 0.3:
            description = f"Meal timing is positively associated with sleep quality (r={r:.2f})"
        else:
            description = f"Meal timing has a neutral association with sleep quality (r={r:.2f})"
        return CorrelationResult(r, p_value, significance_for(p_value), description, len(meal_hours))

    def calculate_nutrition_sleep_quality_correlation(
        self,
        meals: Sequence[WellnessRecord],
        sleep_records: Sequence[WellnessRecord],
    ) -> CorrelationResult:
        """Daily nutrition-quality index vs that day's average sleep quality."""
        if not meals or not sleep_records:
            return insufficient_data("Insufficient data to calculate correlation")

        sleep_by_day: dict[date, list[float]] = defaultdict(list)
        for sleep in sleep_records:
            if sleep.metrics.quality is not None:
                sleep_by_day[sleep.timestamp.date()].append(float(sleep.metrics.quality))

        indices: list[float] = []
        qualities: list[float] = []
        for day, day_meals in sorted(_meals_by_day(meals).items()):
            if day not in sleep_by_day:
                continue
            indices.append(nutrition_quality_index(day_meals))
            qualities.append(statistics.fmean(sleep_by_day[day]))

        if len(indices) < MIN_PAIRS:
            return insufficient_data(
                "Insufficient matching days to calculate correlation", len(indices)
            )

        r = calculate_pearson_correlation(indices, qualities)
        p_value = correlation_p_value(r, len(indices))
        if r < -0.3:
            description = f"Poorer nutrition quality is associated with poorer sleep quality (r={r:.2f})"
        elif r > 0.3:
            description = f"Better nutrition quality is associated with better sleep quality (r={r:.2f})"
        else:
            description = f"Nutrition quality has a neutral association with sleep quality (r={r:.2f})"
        return CorrelationResult(r, p_value, significance_for(p_value), description, len(indices))

    def find_optimal_meal_timing(
        self,
        meals: Sequence[WellnessRecord],
        sleep_records: Sequence[WellnessRecord],
    ) -> MealTimingRecommendation:
        """Suggest a dinner time and meal-to-sleep spacing from history.

        Dinner time averages the dinners (meals from 17:00) that preceded a
        good night (quality >= 0.7), falling back to all dinners. Spacing is
        the average gap between the last meal and going to bed, kept within
        2-6 hours.
        """
        dinners = [m for m in meals if decimal_hour(m.timestamp) >= DINNER_START_HOUR]
        if not dinners:
            return MealTimingRecommendation("19:00", 3.0, 0.5)

        by_day = _meals_by_day(dinners)
        good_dinner_hours: list[float] = []
        intervals: list[float] = []
        for sleep in sleep_records:
            before = [m for m in meals if m.timestamp <= sleep.timestamp
                      and sleep.timestamp - m.timestamp <= timedelta(hours=12)]
            if before:
                last = max(before, key=lambda m: m.timestamp)
                intervals.append((sleep.timestamp - last.timestamp).total_seconds() / 3600)
            quality = sleep.metrics.quality
            day_dinners = by_day.get(sleep.timestamp.date())
            if quality is not None and quality >= GOOD_SLEEP_QUALITY and day_dinners:
                good_dinner_hours.append(decimal_hour(max(day_dinners, key=lambda m: m.timestamp).timestamp))

        dinner_hours = good_dinner_hours or [decimal_hour(m.timestamp) for m in dinners]
        spacing = statistics.fmean(intervals) if intervals else 3.0
        return MealTimingRecommendation(
            optimal_dinner_time=_format_hour(statistics.fmean(dinner_hours)),
            meal_spacing=round(min(6.0, max(2.0, spacing)), 2),
            confidence=round(min(1.0, max(0.1, len(intervals) / 10)), 2),
        )


def nutrition_quality_index(day_meals: Sequence[WellnessRecord]) -> float:
    """0-100 index: 20 for >=3 meals, 20 for 1200-3000 kcal, 10 per meal with macros."""
    index = 0.0
    if len(day_meals) >= 3:
        index += 20
    total = sum(m.metrics.calories for m in day_meals)
    if 1200 <= total <= 3000:
        index += 20
    index += 10 * sum(1 for m in day_meals if m.metrics.has_nutrition)
    return min(100.0, index)
