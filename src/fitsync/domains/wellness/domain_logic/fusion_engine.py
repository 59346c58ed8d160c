"""Cross-domain meal/sleep insights built from correlation results.

Insights are only emitted for correlations stronger than 0.3 in either
direction; weaker associations produce no advice at all.
"""

from __future__ import annotations

import logging
import statistics
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal

from fitsync.core.storage.aggregation import day_window, resolve_reference, week_window
from fitsync.core.storage.models import require_user_id
from fitsync.core.storage.record_store import RecordStore
from fitsync.domains.wellness.domain_logic.aggregator import split_by_type
from fitsync.domains.wellness.domain_logic.correlation import (
    CorrelationCalculator,
    CorrelationResult,
    MealTimingRecommendation,
)
from fitsync.domains.wellness.domain_logic.scoring import clamp_score

logger = logging.getLogger(__name__)

InsightCategory = Literal["meal-sleep", "nutrition-recovery", "activity-sleep"]

INSIGHT_THRESHOLD = 0.3
METRICS_WINDOW_DAYS = 30
MEAL_TREND_BLOCK = 7


@dataclass(frozen=True)
class FusionInsight:
    id: str
    date: str
    category: InsightCategory
    insight: str
    recommendation: str
    score: float  # 0-100, |r| * 100
    correlation_data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CorrelationMetrics:
    meal_sleep_correlation: float = 0.0
    timing_impact: float = 0.0
    nutrition_quality_impact: float = 0.0
    recovery_score: float = 50.0
    meal_quality_trend: float = 0.0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _correlation_data(result: CorrelationResult) -> dict[str, Any]:
    return {
        "correlation": round(result.correlation, 4),
        "p_value": round(result.p_value, 4),
        "significance": result.significance,
        "sample_size": result.sample_size,
    }


class InsightFusionEngine:
    """Turns meal/sleep correlations into insight and recommendation pairs.

    Usage::

        engine = InsightFusionEngine(record_store, CorrelationCalculator())
        insights = await engine.generate_meal_sleep_insights("alice", date(2026, 3, 4))
    """

    def __init__(self, record_store: RecordStore, calculator: CorrelationCalculator) -> None:
        self._store = record_store
        self._calc = calculator

    async def generate_meal_sleep_insights(
        self, user_id: str, day: date | datetime | None = None
    ) -> list[FusionInsight]:
        """Insights for the Sunday-Saturday week containing ``day``.

        A failure while loading or correlating records is logged and yields
        an empty list.
        """
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        try:
            start, end = week_window(ref)
            records = await self._store.get_records_for_period(uid, start, end)
            _, meals, sleep = split_by_type(records)
            insights = self._build_insights(ref.date().isoformat(), meals, sleep)
        except Exception:
            logger.exception("Failed to generate meal-sleep insights for %s", uid)
            return []
        logger.info("Generated %d meal-sleep insights for %s", len(insights), uid)
        return insights

    def _build_insights(self, day_iso: str, meals: list, sleep: list) -> list[FusionInsight]:
        insights: list[FusionInsight] = []
        if not meals or not sleep:
            return insights

        timing = self._calc.calculate_meal_sleep_timing_correlation(meals, sleep)
        if timing.correlation < -INSIGHT_THRESHOLD:
            insights.append(FusionInsight(
                id=f"meal-sleep-timing-{day_iso}",
                date=day_iso,
                category="meal-sleep",
                insight="Your meal timing appears to be affecting your sleep quality. "
                        "Late dinners correlate with poorer sleep quality.",
                recommendation="Try to finish your dinner at least 3 hours before bedtime "
                               "to improve your sleep quality.",
                score=round(abs(timing.correlation) * 100, 1),
                correlation_data=_correlation_data(timing),
            ))
        elif timing.correlation > INSIGHT_THRESHOLD:
            insights.append(FusionInsight(
                id=f"meal-sleep-timing-positive-{day_iso}",
                date=day_iso,
                category="meal-sleep",
                insight="Great job! Your meal timing seems to be positively impacting "
                        "your sleep quality.",
                recommendation="Keep up your good meal timing habits to maintain good "
                               "sleep quality.",
                score=round(abs(timing.correlation) * 100, 1),
                correlation_data=_correlation_data(timing),
            ))

        nutrition = self._calc.calculate_nutrition_sleep_quality_correlation(meals, sleep)
        if nutrition.correlation < -INSIGHT_THRESHOLD:
            insights.append(FusionInsight(
                id=f"nutrition-sleep-{day_iso}",
                date=day_iso,
                category="nutrition-recovery",
                insight="Your meal composition may be affecting your sleep quality. "
                        "Consider adjusting your intake of certain nutrients.",
                recommendation="Reduce caffeine and sugar intake after 4 PM and include "
                               "more magnesium-rich foods to improve sleep quality.",
                score=round(abs(nutrition.correlation) * 100, 1),
                correlation_data=_correlation_data(nutrition),
            ))
        return insights

    async def calculate_correlation_metrics(
        self, user_id: str, day: date | datetime | None = None
    ) -> CorrelationMetrics:
        """Correlations, recovery score and meal trend over the last 30 days."""
        uid = require_user_id(user_id)
        _, end = day_window(resolve_reference(day))
        start = end - timedelta(days=METRICS_WINDOW_DAYS)
        records = await self._store.get_records_for_period(uid, start, end)
        activities, meals, sleep = split_by_type(records)

        metrics = CorrelationMetrics()
        if meals and sleep:
            timing = self._calc.calculate_meal_sleep_timing_correlation(meals, sleep)
            nutrition = self._calc.calculate_nutrition_sleep_quality_correlation(meals, sleep)
            metrics.meal_sleep_correlation = timing.correlation
            metrics.timing_impact = timing.correlation
            metrics.nutrition_quality_impact = nutrition.correlation
            metrics.details = {
                "timing": timing.to_dict(),
                "nutrition": nutrition.to_dict(),
            }
        metrics.recovery_score = round(recovery_score(sleep, activities), 1)
        metrics.meal_quality_trend = round(meal_calorie_trend(meals), 1)
        return metrics

    async def find_optimal_meal_timing(
        self, user_id: str, day: date | datetime | None = None, days: int = METRICS_WINDOW_DAYS
    ) -> MealTimingRecommendation:
        uid = require_user_id(user_id)
        _, end = day_window(resolve_reference(day))
        records = await self._store.get_records_for_period(uid, end - timedelta(days=days), end)
        _, meals, sleep = split_by_type(records)
        return self._calc.find_optimal_meal_timing(meals, sleep)


def recovery_score(sleep_records: list, activities: list) -> float:
    """40% sleep quality, 30% duration, 30% activity/rest balance; 50 without sleep."""
    if not sleep_records:
        return 50.0
    avg_quality = statistics.fmean(s.metrics.quality or 0.0 for s in sleep_records)
    avg_hours = statistics.fmean(s.metrics.duration for s in sleep_records) / 60
    avg_activity = (
        statistics.fmean(a.metrics.duration for a in activities) if activities else 0.0
    )

    score = avg_quality * 40
    if 7 <= avg_hours <= 9:
        score += 30
    elif 5 < avg_hours < 7:
        score += (avg_hours - 5) * 7.5
    elif 9 < avg_hours < 11:
        score += (11 - avg_hours) * 7.5
    if avg_activity > 0 and avg_hours > 0:
        score += min(avg_hours / (avg_activity / 60), 1.0) * 30
    return clamp_score(score)


def meal_calorie_trend(meals: list) -> float:
    """Last 7 meals' average calories vs the 7 before, centered at 50."""
    if not meals:
        return 0.0
    ordered = sorted(meals, key=lambda m: m.timestamp)
    recent = ordered[-MEAL_TREND_BLOCK:]
    earlier = ordered[-2 * MEAL_TREND_BLOCK:-MEAL_TREND_BLOCK]
    if not earlier:
        return 50.0
    recent_avg = statistics.fmean(m.metrics.calories for m in recent)
    earlier_avg = statistics.fmean(m.metrics.calories for m in earlier)
    change = (recent_avg - earlier_avg) / (earlier_avg or 1) * 100
    return clamp_score(50 + change)
