"""Adaptive daily goals from the last seven days of behavior.

Per user and date the engine moves through Collecting (pull the 7-day
history ending on the date), Analyzing (derive BehaviorPatterns),
Adjusting (apply bounded multiplicative deltas to the previous targets)
and Persisted (store the result under that date, replacing any earlier
computation for the same date).

Targets always stay inside fixed bounds:

    steps            3000 - 20000
    calories burned   150 - 800
    sleep hours         6 - 9
"""

from __future__ import annotations

import logging
import math
import statistics
from collections.abc import Sequence
from datetime import date, datetime

from fitsync.core.storage.aggregation import resolve_reference
from fitsync.core.storage.goals_store import GoalsStore
from fitsync.core.storage.models import TimeAggregate, require_user_id
from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator
from fitsync.domains.wellness.domain_logic.goal_models import (
    AdaptationReason,
    AdjustmentReason,
    BaseGoals,
    BehaviorPatterns,
    DailyGoals,
    Difficulty,
    GoalDelta,
    GoalMetric,
    GoalsMetadata,
    MetricTrend,
)

logger = logging.getLogger(__name__)

HISTORY_DAYS = 7

STEPS_BOUNDS = (3000, 20000)
CALORIES_BOUNDS = (150, 800)
SLEEP_BOUNDS = (6.0, 9.0)

UNDER_STREAK_THRESHOLD = 4
OVER_STREAK_THRESHOLD = 5


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


def _scaled(value: float, factor: float) -> int:
    # round() first so 8000 * 1.15 floors to 9200, not 9199
    return math.floor(round(value * factor, 6))


def _delta(previous: float, new: float, reason: AdjustmentReason) -> GoalDelta:
    change = new - previous
    return GoalDelta(
        previous_target=previous,
        new_target=new,
        change_amount=round(change, 4),
        change_percentage=round(change / previous * 100, 4) if previous else 0.0,
        direction="increase" if new > previous else "decrease" if new < previous else "maintain",
        reason=reason,
    )


# ---------------------------------------------------------------------------
# Analyzing
# ---------------------------------------------------------------------------


def analyze_behavior_patterns(
    history: Sequence[TimeAggregate], steps_target: float
) -> BehaviorPatterns:
    """Derive behavior patterns from daily aggregates ordered oldest first.

    Streaks are the longest runs of days below (under) or at/above (over)
    ``steps_target``. Consistency is the share of days with any steps. The
    trend compares the latest three days' average steps to the three days
    before them.
    """
    steps = [day.totals.steps for day in history]

    longest_under = longest_over = under = over = 0
    for value in steps:
        if value < steps_target:
            under += 1
            over = 0
        else:
            over += 1
            under = 0
        longest_under = max(longest_under, under)
        longest_over = max(longest_over, over)

    consistency = round(sum(1 for v in steps if v > 0) / len(steps) * 100) if steps else 0

    trend = "stable"
    recent, prior = steps[-3:], steps[-6:-3]
    if recent and prior:
        recent_avg = statistics.fmean(recent)
        prior_avg = statistics.fmean(prior)
        if prior_avg == 0:
            trend = "improving" if recent_avg > 0 else "stable"
        elif recent_avg > prior_avg * 1.1:
            trend = "improving"
        elif recent_avg < prior_avg * 0.9:
            trend = "declining"

    if consistency > 80:
        motivation = "high"
    elif consistency < 50:
        motivation = "low"
    else:
        motivation = "medium"

    return BehaviorPatterns(
        under_goal_streak=longest_under,
        over_goal_streak=longest_over,
        consistency_score=consistency,
        performance_trend=trend,
        adaptation_needed=longest_under >= 3 or longest_over >= 5,
        fatigue_signs=trend == "declining" and consistency > 70,
        motivation_level=motivation,
    )


# ---------------------------------------------------------------------------
# Adjusting
# ---------------------------------------------------------------------------


def adjust_steps_goal(current: float, patterns: BehaviorPatterns) -> GoalDelta:
    if patterns.under_goal_streak >= UNDER_STREAK_THRESHOLD:
        new, reason = max(STEPS_BOUNDS[0], _scaled(current, 0.85)), "reducing_due_consistent_under_achievement"
    elif patterns.over_goal_streak >= OVER_STREAK_THRESHOLD:
        new, reason = min(STEPS_BOUNDS[1], _scaled(current, 1.15)), "increasing_due_consistent_over_achievement"
    elif patterns.fatigue_signs:
        new, reason = _scaled(current, 0.9), "reducing_due_fatigue_signs"
    else:
        new, reason = math.floor(current), "maintenance"
    return _delta(current, int(_clamp(new, STEPS_BOUNDS)), reason)


def adjust_calories_burned_goal(current: float, historical_avg: float) -> GoalDelta:
    if historical_avg < current * 0.7:
        new, reason = max(CALORIES_BOUNDS[0], _scaled(current, 0.85)), "reducing_due_consistent_under_achievement"
    elif historical_avg > current * 1.3:
        new, reason = min(CALORIES_BOUNDS[1], _scaled(current, 1.15)), "increasing_due_consistent_over_achievement"
    else:
        new, reason = math.floor(current), "maintenance"
    return _delta(current, int(_clamp(new, CALORIES_BOUNDS)), reason)


def adjust_sleep_hours_goal(
    current: float, historical_avg: float, patterns: BehaviorPatterns
) -> GoalDelta:
    """Sleep moves in half-hour steps, or quarter-hour nudges toward 7-7.5 h."""
    new: float = current
    reason: AdjustmentReason = "maintenance"
    if historical_avg < 6.0:
        new, reason = min(SLEEP_BOUNDS[1], current + 0.5), "increasing_due_consistent_under_achievement"
    elif historical_avg > 9.0:
        new, reason = max(SLEEP_BOUNDS[0], current - 0.5), "decreasing_due_consistent_over_achievement"
    elif patterns.consistency_score < 50:
        if current < 7.0:
            new, reason = min(7.5, current + 0.25), "improving_consistency_towards_optimal"
        elif current > 7.5:
            new, reason = max(7.5, current - 0.25), "improving_consistency_towards_optimal"
    return _delta(current, round(_clamp(new, SLEEP_BOUNDS), 2), reason)


def estimate_difficulty(target: float, historical_avg: float) -> Difficulty:
    if historical_avg <= 0:
        return "challenging" if target > 0 else "moderate"
    if target < historical_avg * 0.8:
        return "easy"
    if target > historical_avg * 1.2:
        return "challenging"
    return "moderate"


def _metric_trend(patterns: BehaviorPatterns) -> MetricTrend:
    return {"improving": "increasing", "declining": "decreasing"}.get(
        patterns.performance_trend, "stable"
    )


def _trailing_streak(values: Sequence[float], target: float) -> int:
    streak = 0
    for value in reversed(values):
        if value < target:
            break
        streak += 1
    return streak


def adaptation_reason_for(steps_delta: GoalDelta, patterns: BehaviorPatterns) -> AdaptationReason:
    if steps_delta.reason == "reducing_due_fatigue_signs":
        return "fatigue_detection"
    if steps_delta.reason == "increasing_due_consistent_over_achievement":
        return "consistency_improvement"
    if steps_delta.reason == "reducing_due_consistent_under_achievement":
        return "streak_compensation"
    if patterns.performance_trend == "declining":
        return "performance_decline"
    return "maintenance_mode"


def build_daily_goals(
    user_id: str,
    day: date,
    previous: BaseGoals,
    patterns: BehaviorPatterns,
    history: Sequence[TimeAggregate],
) -> DailyGoals:
    """Apply all three adjustments and assemble the DailyGoals record."""
    steps = [d.totals.steps for d in history]
    calories = [d.totals.calories_burned for d in history]
    sleep = [d.totals.sleep_hours for d in history]
    avg_steps = statistics.fmean(steps) if steps else 0.0
    avg_calories = statistics.fmean(calories) if calories else 0.0
    avg_sleep = statistics.fmean(sleep) if sleep else 0.0

    steps_delta = adjust_steps_goal(previous.steps, patterns)
    calories_delta = adjust_calories_burned_goal(previous.calories_burned, avg_calories)
    sleep_delta = adjust_sleep_hours_goal(previous.sleep_hours, avg_sleep, patterns)
    trend = _metric_trend(patterns)

    goals = {
        "steps": GoalMetric(
            target=steps_delta.new_target,
            current=steps[-1] if steps else 0.0,
            unit="steps",
            streak=patterns.over_goal_streak,
            difficulty=estimate_difficulty(steps_delta.new_target, avg_steps),
            historical_average=round(avg_steps, 2),
            trend=trend,
        ),
        "calories_burned": GoalMetric(
            target=calories_delta.new_target,
            current=calories[-1] if calories else 0.0,
            unit="kcal",
            streak=_trailing_streak(calories, previous.calories_burned),
            difficulty=estimate_difficulty(calories_delta.new_target, avg_calories),
            historical_average=round(avg_calories, 2),
            trend=trend,
        ),
        "sleep_hours": GoalMetric(
            target=sleep_delta.new_target,
            current=round(sleep[-1], 2) if sleep else 0.0,
            unit="hours",
            streak=_trailing_streak(sleep, previous.sleep_hours),
            difficulty=estimate_difficulty(sleep_delta.new_target, avg_sleep),
            historical_average=round(avg_sleep, 2),
            trend=trend,
        ),
    }
    days_with_data = sum(1 for d in history if d.records)
    metadata = GoalsMetadata(
        is_adapted=patterns.adaptation_needed,
        adaptation_reason=adaptation_reason_for(steps_delta, patterns),
        confidence=round(min(1.0, 0.5 + days_with_data / 14), 2),
        previous_goal_delta=steps_delta,
        behavior_patterns=patterns,
        deltas={
            "steps": steps_delta,
            "calories_burned": calories_delta,
            "sleep_hours": sleep_delta,
        },
    )
    return DailyGoals(user_id=user_id, date=day.isoformat(), goals=goals, metadata=metadata)


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class AdaptiveGoalsEngine:
    """Recomputes and persists a user's daily goals.

    Usage::

        engine = AdaptiveGoalsEngine(aggregator, goals_store, BaseGoals())
        goals = await engine.calculate_adaptive_goals("alice", date(2026, 3, 8))
        goals.target("steps")
    """

    def __init__(
        self,
        aggregator: TimeWindowAggregator,
        goals_store: GoalsStore,
        base_goals: BaseGoals | None = None,
    ) -> None:
        self._aggregator = aggregator
        self._goals = goals_store
        self._base = base_goals or BaseGoals()

    @property
    def base_goals(self) -> BaseGoals:
        return self._base

    async def calculate_adaptive_goals(
        self, user_id: str, day: date | datetime | None = None
    ) -> DailyGoals:
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        target_day = ref.date()

        logger.debug("Collecting %d-day history for %s on %s", HISTORY_DAYS, uid, target_day)
        history = await self._aggregator.get_daily_aggregates(uid, ref, HISTORY_DAYS)
        previous = await self._previous_targets(uid, target_day)

        patterns = analyze_behavior_patterns(history, previous.steps)
        logger.debug("Patterns for %s: %s", uid, patterns)

        goals = build_daily_goals(uid, target_day, previous, patterns, history)
        await self._goals.store_daily_goals(uid, target_day, goals.to_dict(), patterns.to_dict())
        logger.info(
            "Goals for %s on %s: steps=%s calories=%s sleep=%s (%s)",
            uid, target_day,
            goals.target("steps"), goals.target("calories_burned"), goals.target("sleep_hours"),
            goals.metadata.adaptation_reason,
        )
        return goals

    async def _previous_targets(self, user_id: str, day: date) -> BaseGoals:
        latest = await self._goals.get_latest_goals_before(user_id, day)
        if latest is None:
            return self._base
        stored_date, goals = latest
        try:
            metrics = goals["goals"]
            return BaseGoals(
                steps=metrics["steps"]["target"],
                calories_burned=metrics["calories_burned"]["target"],
                sleep_hours=metrics["sleep_hours"]["target"],
            )
        except (KeyError, TypeError):
            logger.warning("Stored goals for %s on %s are malformed; using defaults", user_id, stored_date)
            return self._base

    async def get_goals(self, user_id: str, day: date | datetime | None = None) -> DailyGoals | None:
        """Stored goals for a date, or None if none were computed."""
        uid = require_user_id(user_id)
        data = await self._goals.get_goals_for_date(uid, resolve_reference(day).date())
        return self._parse(uid, data) if data else None

    async def get_goal_history(self, user_id: str, days: int = 7) -> list[DailyGoals]:
        uid = require_user_id(user_id)
        entries = await self._goals.get_recent_goal_history(uid, days)
        return [goals for goals in (self._parse(uid, e) for e in entries) if goals is not None]

    @staticmethod
    def _parse(user_id: str, data: dict) -> DailyGoals | None:
        try:
            return DailyGoals.from_dict(data)
        except (KeyError, TypeError) as exc:
            logger.warning("Skipping malformed stored goals for %s: %s", user_id, exc)
            return None
