"""Data models for the wellness persistence layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal


class InvalidUserError(ValueError):
    """Raised when an operation is called without a usable user id."""


def require_user_id(user_id: str | None) -> str:
    """Return the stripped user id or raise InvalidUserError."""
    if not user_id or not str(user_id).strip():
        raise InvalidUserError("user_id is required")
    return str(user_id).strip()


def to_local_naive(moment: datetime) -> datetime:
    """Convert an aware datetime to naive local wall time.

    All day/week/month boundaries are local midnight, so records are kept
    as naive local datetimes. Naive input is assumed to already be local.
    """
    if moment.tzinfo is not None:
        return moment.astimezone().replace(tzinfo=None)
    return moment


class RecordType(str, Enum):
    """Closed set of record tags.

    Consumers branch on every member and raise on anything else, so a new
    tag has to be handled everywhere before it can be stored.
    """

    ACTIVITY = "activity"
    MEAL = "meal"
    SLEEP = "sleep"


@dataclass(frozen=True)
class NutritionInfo:
    """Macronutrients in grams."""

    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0


@dataclass(frozen=True)
class RecordMetrics:
    duration: float = 0.0           # minutes
    calories: float = 0.0           # kcal burned (activity) or consumed (meal)
    quantity: float = 0.0           # e.g. step count
    quality: float | None = None    # 0-1, sleep or meal quality
    intensity: float | None = None  # 1-10
    xp_earned: int = 0
    nutrition: NutritionInfo | None = None

    @property
    def has_nutrition(self) -> bool:
        return self.nutrition is not None


@dataclass(frozen=True)
class RecordMetadata:
    confidence: float = 1.0  # 1.0 for manual entry, lower when AI-derived
    ai_insights: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class WellnessRecord:
    """An immutable logged wellness event.

    Records are append-only: corrections are new records, never edits.
    ``timestamp`` is the event time (naive local time), not insertion time.
    """

    id: str
    user_id: str
    timestamp: datetime
    type: RecordType
    category: str = "general"
    metrics: RecordMetrics = field(default_factory=RecordMetrics)
    metadata: RecordMetadata = field(default_factory=RecordMetadata)

    def to_dict(self) -> dict[str, Any]:
        metrics = asdict(self.metrics)
        return {
            "id": self.id,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "category": self.category,
            "metrics": metrics,
            "metadata": {
                "confidence": self.metadata.confidence,
                "ai_insights": list(self.metadata.ai_insights),
                "tags": list(self.metadata.tags),
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WellnessRecord:
        """Build a record from its stored JSON form.

        Raises:
            ValueError: On an unknown type tag or unparseable timestamp.
            KeyError: If a required field is missing.
        """
        metrics = data.get("metrics") or {}
        nutrition = metrics.get("nutrition")
        metadata = data.get("metadata") or {}
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            timestamp=to_local_naive(datetime.fromisoformat(data["timestamp"])),
            type=RecordType(data["type"]),
            category=data.get("category") or "general",
            metrics=RecordMetrics(
                duration=float(metrics.get("duration") or 0),
                calories=float(metrics.get("calories") or 0),
                quantity=float(metrics.get("quantity") or 0),
                quality=metrics.get("quality"),
                intensity=metrics.get("intensity"),
                xp_earned=int(metrics.get("xp_earned") or 0),
                nutrition=NutritionInfo(**nutrition) if nutrition else None,
            ),
            metadata=RecordMetadata(
                confidence=float(metadata.get("confidence", 1.0)),
                ai_insights=tuple(metadata.get("ai_insights") or ()),
                tags=tuple(metadata.get("tags") or ()),
            ),
        )


# ---------------------------------------------------------------------------
# Time aggregates (derived, never persisted)
# ---------------------------------------------------------------------------

Period = Literal["daily", "weekly", "monthly"]


@dataclass
class AggregateTotals:
    xp: float = 0.0
    calories_burned: float = 0.0
    calories_consumed: float = 0.0
    activity_minutes: float = 0.0
    sleep_hours: float = 0.0
    steps: float = 0.0


@dataclass
class AggregateAverages:
    sleep_quality: float = 0.0
    activity_intensity: float = 0.0
    nutrition_balance: float = 0.0  # share of meals carrying macronutrients


@dataclass
class AggregateTrends:
    xp_trend: float = 0.0               # OLS slope of daily XP
    calorie_balance_trend: float = 0.0  # OLS slope of daily net calories
    consistency_score: float = 0.0      # % of days with any record


@dataclass
class TimeAggregate:
    """Summary of all records inside an inclusive time window."""

    period: Period
    start_date: datetime
    end_date: datetime
    totals: AggregateTotals = field(default_factory=AggregateTotals)
    averages: AggregateAverages = field(default_factory=AggregateAverages)
    trends: AggregateTrends = field(default_factory=AggregateTrends)
    records: list[WellnessRecord] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "period": self.period,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "totals": asdict(self.totals),
            "averages": asdict(self.averages),
            "trends": asdict(self.trends),
            "record_count": len(self.records),
        }
