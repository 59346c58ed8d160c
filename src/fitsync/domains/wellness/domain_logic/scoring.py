"""Per-day derived wellness scores.

Each score is a weighted blend on a 0-100 scale, clamped to [0, 100], and
is 0 for an empty record set. Inputs are the records of a single day,
already split by type.
"""

from __future__ import annotations

import statistics
from collections.abc import Sequence

from fitsync.core.storage.models import WellnessRecord

# Calorie range (kcal/day) that earns full adequacy credit
CALORIE_RANGE = (1200.0, 3000.0)

# Sleep duration (hours) earning full credit, and where credit reaches zero
OPTIMAL_SLEEP = (7.0, 9.0)
SLEEP_ZERO_CREDIT = (5.0, 11.0)

ACTIVITY_CAP_MINUTES = 120.0


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def sleep_duration_credit(hours: float) -> float:
    """0-1 credit for a night's sleep: 1 inside 7-9 h, linear to 0 at 5 h and 11 h."""
    low, high = OPTIMAL_SLEEP
    floor, ceiling = SLEEP_ZERO_CREDIT
    if low <= hours <= high:
        return 1.0
    if hours < low:
        return max(0.0, (hours - floor) / (low - floor))
    return max(0.0, (ceiling - hours) / (ceiling - high))


def _nutrition_presence(meals: Sequence[WellnessRecord]) -> float:
    if not meals:
        return 0.0
    return sum(1 for m in meals if m.metrics.has_nutrition) / len(meals)


def calculate_nutrition_score(meals: Sequence[WellnessRecord]) -> float:
    """30% meal frequency, 30% calorie adequacy, 40% structured-nutrition presence."""
    if not meals:
        return 0.0
    frequency = min(100.0, len(meals) / 3 * 100) * 0.3

    total = sum(m.metrics.calories for m in meals)
    low, high = CALORIE_RANGE
    if low <= total <= high:
        adequacy = 30.0
    elif total > 0:
        adequacy = min(30.0, min(total / low, high / total) * 30)
    else:
        adequacy = 0.0

    presence = _nutrition_presence(meals) * 100 * 0.4
    return clamp_score(frequency + adequacy + presence)


def calculate_sleep_score(sleep_records: Sequence[WellnessRecord]) -> float:
    """70% duration adequacy of the average session, 30% average quality."""
    if not sleep_records:
        return 0.0
    avg_hours = sum(s.metrics.duration for s in sleep_records) / 60 / len(sleep_records)
    qualities = [s.metrics.quality for s in sleep_records if s.metrics.quality is not None]
    avg_quality = statistics.fmean(qualities) if qualities else 0.0
    return clamp_score(sleep_duration_credit(avg_hours) * 70 + avg_quality * 100 * 0.3)


def calculate_recovery_score(
    sleep_records: Sequence[WellnessRecord],
    activities: Sequence[WellnessRecord],
) -> float:
    """60% sleep duration adequacy, 40% activity-to-sleep balance.

    The balance target is ``7 + 0.5 * level`` to ``9 + 0.5 * level`` hours
    of sleep, where ``level`` is the day's activity minutes over a 120-minute
    cap. A day with no activity gets a flat 10 balance points for any rest.
    """
    sleep_hours = sum(s.metrics.duration for s in sleep_records) / 60
    activity_minutes = sum(a.metrics.duration for a in activities)

    duration_part = sleep_duration_credit(sleep_hours) * 60 if sleep_records else 0.0

    if activity_minutes > 0:
        level = min(1.0, activity_minutes / ACTIVITY_CAP_MINUTES)
        low, high = OPTIMAL_SLEEP[0] + 0.5 * level, OPTIMAL_SLEEP[1] + 0.5 * level
        if low <= sleep_hours <= high:
            balance = 40.0
        else:
            distance = low - sleep_hours if sleep_hours < low else sleep_hours - high
            balance = 40 * max(0.0, 1 - distance / low)
    elif sleep_hours > 0:
        balance = 10.0
    else:
        balance = 0.0

    return clamp_score(duration_part + balance)


def calculate_meal_quality_trend(meals: Sequence[WellnessRecord]) -> float:
    """Variety, nutrition presence and evenness of a day's meals.

    40% category variety (unique categories / 5), 20% nutrition presence,
    and for multi-meal days up to 40 more for an even calorie spread
    (``1 - coefficient of variation``). Single-meal days are halved.
    """
    if not meals:
        return 0.0
    variety = min(len({m.category for m in meals}) / 5, 1.0) * 40
    score = variety + _nutrition_presence(meals) * 20

    if len(meals) > 1:
        calories = [m.metrics.calories for m in meals]
        mean = statistics.fmean(calories)
        cv = statistics.pstdev(calories) / mean if mean > 0 else 1.0
        score += max(0.0, 1 - cv) * 40
    else:
        score *= 0.5
    return clamp_score(score)
