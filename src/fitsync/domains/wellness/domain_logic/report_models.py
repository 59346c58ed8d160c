"""Data models for weekly wellness reports."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

ReportCategory = Literal["activity", "nutrition", "sleep", "recovery", "overall"]
TrendDirection = Literal["improving", "declining", "stable"]
Priority = Literal["high", "medium", "low"]
HighlightType = Literal["win", "achievement", "improvement", "struggle"]
TrendMetric = Literal["steps", "calories_in", "calories_out", "sleep", "xp"]

CATEGORIES: tuple[str, ...] = ("activity", "nutrition", "sleep", "recovery")


@dataclass(frozen=True)
class ScoreBreakdown:
    factor: str
    score: float   # 0-100
    weight: float  # 0-1
    details: str


@dataclass(frozen=True)
class ReportScore:
    """A 0-100 category score; ``value`` is the weighted sum of its breakdown."""

    value: float
    category: ReportCategory
    breakdown: list[ScoreBreakdown] = field(default_factory=list)
    trend: TrendDirection = "stable"


@dataclass(frozen=True)
class DailyStat:
    date: str
    steps: float = 0.0
    calories_in: float = 0.0
    calories_out: float = 0.0
    net_calories: float = 0.0
    sleep_hours: float = 0.0
    xp: float = 0.0
    meals_logged: int = 0


@dataclass(frozen=True)
class WeeklyTotals:
    total_steps: float = 0.0
    total_calories_in: float = 0.0
    total_calories_out: float = 0.0
    total_sleep_hours: float = 0.0
    total_xp: float = 0.0
    avg_steps: float = 0.0
    avg_calories_in: float = 0.0
    avg_calories_out: float = 0.0
    avg_sleep_hours: float = 0.0
    avg_xp: float = 0.0
    days_with_activity: int = 0  # days with more than 1000 steps
    days_with_meals: int = 0

    @property
    def calorie_imbalance(self) -> float:
        return abs(self.avg_calories_in - self.avg_calories_out)

    @classmethod
    def from_daily_stats(cls, days: list[DailyStat]) -> WeeklyTotals:
        if not days:
            return cls()
        n = len(days)
        total_steps = sum(d.steps for d in days)
        total_in = sum(d.calories_in for d in days)
        total_out = sum(d.calories_out for d in days)
        total_sleep = sum(d.sleep_hours for d in days)
        total_xp = sum(d.xp for d in days)
        return cls(
            total_steps=total_steps,
            total_calories_in=total_in,
            total_calories_out=total_out,
            total_sleep_hours=total_sleep,
            total_xp=total_xp,
            avg_steps=total_steps / n,
            avg_calories_in=total_in / n,
            avg_calories_out=total_out / n,
            avg_sleep_hours=total_sleep / n,
            avg_xp=total_xp / n,
            days_with_activity=sum(1 for d in days if d.steps > 1000),
            days_with_meals=sum(1 for d in days if d.meals_logged > 0),
        )


@dataclass(frozen=True)
class WeeklyReportData:
    week_start: str
    week_end: str
    daily_stats: list[DailyStat]
    weekly_totals: WeeklyTotals

    @classmethod
    def from_weekly_stats(cls, stats: dict[str, Any]) -> WeeklyReportData:
        """Build report input from ``TimeWindowAggregator.get_weekly_stats`` output."""
        days = [
            DailyStat(
                date=day,
                steps=stats["steps"][i],
                calories_in=stats["calories_in"][i],
                calories_out=stats["calories_out"][i],
                net_calories=stats["net_calories"][i],
                sleep_hours=stats["sleep_hours"][i],
                xp=stats["xp"][i],
                meals_logged=stats["meals_logged"][i],
            )
            for i, day in enumerate(stats["dates"])
        ]
        return cls(
            week_start=stats["dates"][0] if days else "",
            week_end=stats["dates"][-1] if days else "",
            daily_stats=days,
            weekly_totals=WeeklyTotals.from_daily_stats(days),
        )


@dataclass(frozen=True)
class ReportHighlight:
    category: ReportCategory
    type: HighlightType
    description: str
    value: str | None = None


@dataclass(frozen=True)
class Recommendation:
    category: ReportCategory
    priority: Priority
    description: str
    target: str


@dataclass(frozen=True)
class TrendAnalysis:
    metric: TrendMetric
    data: list[dict[str, Any]]
    direction: TrendDirection
    change: float  # percent, first to last day
    description: str
    slope: float = 0.0


@dataclass(frozen=True)
class WeekComparison:
    prev_week: WeeklyTotals
    current_week: WeeklyTotals
    differences: dict[str, float]


@dataclass(frozen=True)
class WeeklyReport:
    week_start: str
    week_end: str
    scores: dict[str, ReportScore]
    highlights: list[ReportHighlight]
    recommendations: list[Recommendation]
    trends: list[TrendAnalysis]
    comparison: WeekComparison
    generated_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
