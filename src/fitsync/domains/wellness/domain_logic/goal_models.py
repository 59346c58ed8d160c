"""Data models for adaptive daily goals."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

PerformanceTrend = Literal["improving", "declining", "stable"]
MotivationLevel = Literal["high", "medium", "low"]
Difficulty = Literal["easy", "moderate", "challenging"]
MetricTrend = Literal["increasing", "decreasing", "stable"]
Direction = Literal["increase", "decrease", "maintain"]

AdjustmentReason = Literal[
    "maintenance",
    "reducing_due_consistent_under_achievement",
    "increasing_due_consistent_over_achievement",
    "reducing_due_fatigue_signs",
    "decreasing_due_consistent_over_achievement",
    "improving_consistency_towards_optimal",
]

AdaptationReason = Literal[
    "consistency_improvement",
    "performance_decline",
    "fatigue_detection",
    "maintenance_mode",
    "streak_compensation",
]

GOAL_NAMES = ("steps", "calories_burned", "sleep_hours")


@dataclass(frozen=True)
class BehaviorPatterns:
    """A user's goal-relevant behavior over the last seven days."""

    under_goal_streak: int
    over_goal_streak: int
    consistency_score: float  # 0-100
    performance_trend: PerformanceTrend
    adaptation_needed: bool
    fatigue_signs: bool
    motivation_level: MotivationLevel

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BehaviorPatterns:
        return cls(**data)


@dataclass(frozen=True)
class GoalDelta:
    previous_target: float
    new_target: float
    change_amount: float
    change_percentage: float
    direction: Direction
    reason: AdjustmentReason

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoalDelta:
        return cls(**data)


@dataclass(frozen=True)
class GoalMetric:
    target: float
    current: float
    unit: str
    streak: int
    difficulty: Difficulty
    historical_average: float
    trend: MetricTrend

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoalMetric:
        return cls(**data)


@dataclass(frozen=True)
class GoalsMetadata:
    is_adapted: bool
    adaptation_reason: AdaptationReason
    confidence: float  # 0-1
    previous_goal_delta: GoalDelta
    behavior_patterns: BehaviorPatterns
    deltas: dict[str, GoalDelta] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_adapted": self.is_adapted,
            "adaptation_reason": self.adaptation_reason,
            "confidence": self.confidence,
            "previous_goal_delta": self.previous_goal_delta.to_dict(),
            "behavior_patterns": self.behavior_patterns.to_dict(),
            "deltas": {name: delta.to_dict() for name, delta in self.deltas.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GoalsMetadata:
        return cls(
            is_adapted=data["is_adapted"],
            adaptation_reason=data["adaptation_reason"],
            confidence=data["confidence"],
            previous_goal_delta=GoalDelta.from_dict(data["previous_goal_delta"]),
            behavior_patterns=BehaviorPatterns.from_dict(data["behavior_patterns"]),
            deltas={k: GoalDelta.from_dict(v) for k, v in (data.get("deltas") or {}).items()},
        )


@dataclass(frozen=True)
class DailyGoals:
    """Adapted targets for one user on one calendar date.

    Carries no wall-clock timestamp: recomputing the same date from the
    same history produces an equal object.
    """

    user_id: str
    date: str  # ISO date
    goals: dict[str, GoalMetric]
    metadata: GoalsMetadata

    def target(self, name: str) -> float:
        return self.goals[name].target

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "date": self.date,
            "goals": {name: metric.to_dict() for name, metric in self.goals.items()},
            "metadata": self.metadata.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyGoals:
        return cls(
            user_id=data["user_id"],
            date=data["date"],
            goals={k: GoalMetric.from_dict(v) for k, v in data["goals"].items()},
            metadata=GoalsMetadata.from_dict(data["metadata"]),
        )


@dataclass(frozen=True)
class BaseGoals:
    steps: int = 8000
    calories_burned: int = 300
    sleep_hours: float = 7.5
