"""Weekly report scoring: category scores, highlights, rules and trends.

Everything here is a pure function of ``WeeklyReportData``. The
recommendation table is data: ``RECOMMENDATION_RULES`` is evaluated in
order and every matching rule becomes one Recommendation.
"""

from __future__ import annotations

import statistics
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from fitsync.core.storage.aggregation import ols_slope
from fitsync.domains.wellness.domain_logic.report_models import (
    CATEGORIES,
    Priority,
    Recommendation,
    ReportCategory,
    ReportHighlight,
    ReportScore,
    ScoreBreakdown,
    TrendAnalysis,
    TrendDirection,
    WeekComparison,
    WeeklyReport,
    WeeklyReportData,
    WeeklyTotals,
)

STEP_GOAL = 10000
SLEEP_GOAL_HOURS = 8
XP_PER_DAY_GOAL = 150
CALORIE_BALANCE_SCALE = 500
SLOPE_THRESHOLD = 0.1
CATEGORY_TREND_POINTS = 5


# ---------------------------------------------------------------------------
# Recommendation rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecommendationRule:
    category: ReportCategory
    predicate: Callable[[WeeklyTotals], bool]
    description: str
    target: str
    priority: Priority = "medium"

    def to_recommendation(self) -> Recommendation:
        return Recommendation(self.category, self.priority, self.description, self.target)


RECOMMENDATION_RULES: list[RecommendationRule] = [
    RecommendationRule(
        "activity",
        lambda t: t.days_with_activity / 7 < 0.7,
        "Try to be active for at least 5 days per week",
        "Increase activity frequency",
    ),
    RecommendationRule(
        "activity",
        lambda t: t.avg_steps < 8000,
        "Aim for 10,000 steps daily to reach recommended activity levels",
        "Increase daily steps",
    ),
    RecommendationRule(
        "nutrition",
        lambda t: t.calorie_imbalance > 500,
        "Reduce large calorie imbalances by adjusting meal portions",
        "Balance calorie intake",
    ),
    RecommendationRule(
        "nutrition",
        lambda t: t.days_with_meals / 7 < 0.8,
        "Try logging more meals to improve nutrition awareness",
        "Increase meal logging",
    ),
    RecommendationRule(
        "sleep",
        lambda t: t.avg_sleep_hours < 7,
        "Aim for 7-9 hours of sleep nightly for optimal recovery",
        "Increase sleep duration",
        "high",
    ),
    RecommendationRule(
        "sleep",
        lambda t: t.avg_sleep_hours > 9,
        "Ensure you're not oversleeping which might affect energy levels",
        "Optimize sleep duration",
    ),
    RecommendationRule(
        "recovery",
        lambda t: t.avg_xp < 100,
        "Consider adding more recovery-focused activities like stretching or meditation",
        "Improve recovery practices",
    ),
]


def generate_recommendations(
    totals: WeeklyTotals, rules: list[RecommendationRule] = RECOMMENDATION_RULES
) -> list[Recommendation]:
    return [rule.to_recommendation() for rule in rules if rule.predicate(totals)]


# ---------------------------------------------------------------------------
# Category scores
# ---------------------------------------------------------------------------


def _score(category: ReportCategory, breakdown: list[ScoreBreakdown]) -> ReportScore:
    value = sum(b.score * b.weight for b in breakdown)
    return ReportScore(value=round(max(0.0, min(100.0, value)), 1), category=category, breakdown=breakdown)


def _activity(data: WeeklyReportData) -> ReportScore:
    totals = data.weekly_totals
    step_ratio = min(100.0, totals.avg_steps / STEP_GOAL * 100)
    active_ratio = min(100.0, totals.days_with_activity / 7 * 100)
    return _score("activity", [
        ScoreBreakdown("steps", round(step_ratio, 1), 0.7, "Average steps per day vs goal"),
        ScoreBreakdown("consistency", round(active_ratio, 1), 0.3, "Days with activity tracked"),
    ])


def _nutrition(data: WeeklyReportData) -> ReportScore:
    totals = data.weekly_totals
    logging_ratio = min(100.0, totals.days_with_meals / 7 * 100)
    balance = max(0.0, 100 - totals.calorie_imbalance / CALORIE_BALANCE_SCALE * 100)
    return _score("nutrition", [
        ScoreBreakdown("consistency", round(logging_ratio, 1), 0.4, "Days with meals logged"),
        ScoreBreakdown("balance", round(balance, 1), 0.6, "Calorie intake vs expenditure balance"),
    ])


def sleep_consistency(data: WeeklyReportData) -> float:
    """100 minus ten times the variance of nightly sleep hours."""
    hours = [d.sleep_hours for d in data.daily_stats]
    if not hours:
        return 50.0
    return max(0.0, min(100.0, 100 - statistics.pvariance(hours) * 10))


def _sleep(data: WeeklyReportData) -> ReportScore:
    duration = min(100.0, data.weekly_totals.avg_sleep_hours / SLEEP_GOAL_HOURS * 100)
    return _score("sleep", [
        ScoreBreakdown("duration", round(duration, 1), 0.6, "Average sleep duration vs goal"),
        ScoreBreakdown("consistency", round(sleep_consistency(data), 1), 0.4,
                       "Sleep consistency throughout the week"),
    ])


def activity_rest_balance(totals: WeeklyTotals) -> float:
    steps, sleep = totals.avg_steps, totals.avg_sleep_hours
    if steps > 8000 and sleep > 7:
        return 100.0
    if steps > 5000 and sleep > 6:
        return 80.0
    if steps > 3000 and sleep > 5:
        return 60.0
    return 40.0


def _recovery(data: WeeklyReportData) -> ReportScore:
    totals = data.weekly_totals
    xp_ratio = min(100.0, totals.avg_xp / XP_PER_DAY_GOAL * 100)
    return _score("recovery", [
        ScoreBreakdown("xp", round(xp_ratio, 1), 0.3, "Average XP earned"),
        ScoreBreakdown("balance", activity_rest_balance(totals), 0.7, "Activity vs rest balance"),
    ])


_CATEGORY_SCORERS: dict[str, Callable[[WeeklyReportData], ReportScore]] = {
    "activity": _activity,
    "nutrition": _nutrition,
    "sleep": _sleep,
    "recovery": _recovery,
}


def calculate_category_score(data: WeeklyReportData, category: str) -> ReportScore:
    try:
        scorer = _CATEGORY_SCORERS[category]
    except KeyError:
        raise ValueError(f"Unknown report category: {category!r}") from None
    return scorer(data)


def calculate_overall_score(scores: dict[str, ReportScore]) -> ReportScore:
    """Unweighted mean of the four category scores."""
    return _score("overall", [
        ScoreBreakdown(name, scores[name].value, 0.25, f"{name.capitalize()} score contribution")
        for name in CATEGORIES
    ])


# ---------------------------------------------------------------------------
# Highlights, trends, comparison
# ---------------------------------------------------------------------------


def generate_highlights(data: WeeklyReportData) -> list[ReportHighlight]:
    totals = data.weekly_totals
    highlights: list[ReportHighlight] = []
    if totals.days_with_activity >= 5:
        highlights.append(ReportHighlight(
            "activity", "achievement", "Great activity consistency",
            f"{totals.days_with_activity}/7 days active",
        ))
    if totals.avg_sleep_hours >= 7.5:
        highlights.append(ReportHighlight(
            "sleep", "win", "Maintained healthy sleep schedule",
            f"{totals.avg_sleep_hours:.1f}h avg",
        ))
    if totals.days_with_meals >= 5:
        highlights.append(ReportHighlight(
            "nutrition", "win", "Consistent meal tracking",
            f"{totals.days_with_meals}/7 days logged",
        ))
    if totals.days_with_meals > 0 and totals.calorie_imbalance <= 200:
        highlights.append(ReportHighlight(
            "nutrition", "achievement", "Well-balanced nutrition",
            f"±{round(totals.calorie_imbalance)} cal avg difference",
        ))
    if len(data.daily_stats) >= 2:
        first, last = data.daily_stats[0].steps, data.daily_stats[-1].steps
        if first > 0 and last > first * 1.5:
            highlights.append(ReportHighlight(
                "activity", "improvement", "Significant step improvement",
                f"{round((last - first) / first * 100)}% increase",
            ))
    return highlights


def trend_direction(slope: float) -> TrendDirection:
    if slope > SLOPE_THRESHOLD:
        return "improving"
    if slope < -SLOPE_THRESHOLD:
        return "declining"
    return "stable"


def percentage_change(values: list[float]) -> float:
    """``(last - first) / first * 100``; 0 when the first value is 0."""
    if not values or not values[0]:
        return 0.0
    return (values[-1] - values[0]) / values[0] * 100


_TREND_TEXT = {
    "steps": ("Steps are increasing throughout the week",
              "Steps are decreasing throughout the week",
              "Steps are relatively stable"),
    "calories_in": ("Calorie intake is increasing",
                    "Calorie intake is decreasing",
                    "Calorie intake is stable"),
    "calories_out": ("Calorie burn is increasing",
                     "Calorie burn is decreasing",
                     "Calorie burn is stable"),
    "sleep": ("Sleep duration is improving",
              "Sleep duration is declining",
              "Sleep duration is consistent"),
    "xp": ("XP gains are accelerating",
           "XP gains are slowing down",
           "XP gains are steady"),
}


def generate_trend_analysis(data: WeeklyReportData) -> list[TrendAnalysis]:
    series = {
        "steps": [d.steps for d in data.daily_stats],
        "calories_in": [d.calories_in for d in data.daily_stats],
        "calories_out": [d.calories_out for d in data.daily_stats],
        "sleep": [d.sleep_hours for d in data.daily_stats],
        "xp": [d.xp for d in data.daily_stats],
    }
    trends = []
    for metric, values in series.items():
        slope = ols_slope(values)
        direction = trend_direction(slope)
        up, down, flat = _TREND_TEXT[metric]
        trends.append(TrendAnalysis(
            metric=metric,
            data=[{"date": d.date, "value": v} for d, v in zip(data.daily_stats, values)],
            direction=direction,
            change=round(percentage_change(values), 1),
            description=up if direction == "improving" else down if direction == "declining" else flat,
            slope=round(slope, 4),
        ))
    return trends


def _pct_difference(current: float, previous: float) -> float:
    if not current or not previous:
        return 0.0
    return round((current - previous) / abs(previous) * 100, 1)


def generate_week_comparison(
    current: WeeklyReportData, previous: WeeklyReportData | None
) -> WeekComparison:
    cur = current.weekly_totals
    prev = previous.weekly_totals if previous is not None else WeeklyTotals()
    return WeekComparison(
        prev_week=prev,
        current_week=cur,
        differences={
            "steps": _pct_difference(cur.total_steps, prev.total_steps),
            "calories_in": _pct_difference(cur.total_calories_in, prev.total_calories_in),
            "calories_out": _pct_difference(cur.total_calories_out, prev.total_calories_out),
            "sleep": _pct_difference(cur.total_sleep_hours, prev.total_sleep_hours),
            "xp": _pct_difference(cur.total_xp, prev.total_xp),
        },
    )


def category_trend(current: float, previous: float | None) -> TrendDirection:
    if previous is None:
        return "stable"
    if current - previous > CATEGORY_TREND_POINTS:
        return "improving"
    if current - previous < -CATEGORY_TREND_POINTS:
        return "declining"
    return "stable"


def _majority(trends: list[TrendDirection]) -> TrendDirection:
    ranked = Counter(trends).most_common()
    if not ranked or (len(ranked) > 1 and ranked[0][1] == ranked[1][1]):
        return "stable"
    return ranked[0][0]


def build_weekly_report(
    current: WeeklyReportData,
    previous: WeeklyReportData | None = None,
    generated_at: datetime | None = None,
) -> WeeklyReport:
    """Assemble a full WeeklyReport from this week's and last week's data."""
    scores: dict[str, ReportScore] = {}
    for name in CATEGORIES:
        score = calculate_category_score(current, name)
        prev_value = calculate_category_score(previous, name).value if previous else None
        scores[name] = ReportScore(
            value=score.value,
            category=score.category,
            breakdown=score.breakdown,
            trend=category_trend(score.value, prev_value),
        )
    overall = calculate_overall_score(scores)
    scores["overall"] = ReportScore(
        value=overall.value,
        category="overall",
        breakdown=overall.breakdown,
        trend=_majority([scores[name].trend for name in CATEGORIES]),
    )
    return WeeklyReport(
        week_start=current.week_start,
        week_end=current.week_end,
        scores=scores,
        highlights=generate_highlights(current),
        recommendations=generate_recommendations(current.weekly_totals),
        trends=generate_trend_analysis(current),
        comparison=generate_week_comparison(current, previous),
        generated_at=(generated_at or datetime.now()).isoformat(),
    )


def empty_report(week_start: str = "", week_end: str = "") -> WeeklyReport:
    """All-zero report returned when the week's data cannot be gathered."""
    scores = {
        name: ReportScore(value=0.0, category=name)
        for name in (*CATEGORIES, "overall")
    }
    return WeeklyReport(
        week_start=week_start,
        week_end=week_end,
        scores=scores,
        highlights=[],
        recommendations=[],
        trends=[],
        comparison=WeekComparison(
            prev_week=WeeklyTotals(),
            current_week=WeeklyTotals(),
            differences={"steps": 0.0, "calories_in": 0.0, "calories_out": 0.0, "sleep": 0.0, "xp": 0.0},
        ),
        generated_at=datetime.now().isoformat(),
    )
