"""Daily, weekly and monthly wellness statistics.

The aggregator turns stored records into display-ready series: per-day
totals (steps, calories in/out, net calories, sleep hours, XP) plus the
four derived per-day scores. Identical concurrent requests for the same
user, aggregate type and date share one in-flight computation.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict
from datetime import date, datetime, timedelta
from typing import Any, TypeVar

from fitsync.core.storage.aggregation import (
    build_time_aggregate,
    day_window,
    days_in_window,
    resolve_reference,
    start_of_day,
)
from fitsync.core.storage.goals_store import GoalsStore
from fitsync.core.storage.models import (
    RecordType,
    TimeAggregate,
    WellnessRecord,
    require_user_id,
)
from fitsync.core.storage.record_store import RecordStore
from fitsync.domains.wellness.domain_logic.scoring import (
    calculate_meal_quality_trend,
    calculate_nutrition_score,
    calculate_recovery_score,
    calculate_sleep_score,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

RECENT_RECORDS_DAYS = 30


def split_by_type(
    records: list[WellnessRecord],
) -> tuple[list[WellnessRecord], list[WellnessRecord], list[WellnessRecord]]:
    """Return ``(activities, meals, sleep)``."""
    activities: list[WellnessRecord] = []
    meals: list[WellnessRecord] = []
    sleep: list[WellnessRecord] = []
    for record in records:
        if record.type is RecordType.ACTIVITY:
            activities.append(record)
        elif record.type is RecordType.MEAL:
            meals.append(record)
        elif record.type is RecordType.SLEEP:
            sleep.append(record)
        else:
            raise ValueError(f"Unknown record type: {record.type!r}")
    return activities, meals, sleep


def summarize_record(record: WellnessRecord) -> dict[str, Any]:
    """Display summary of a single record."""
    metrics = record.metrics
    summary: dict[str, Any] = {
        "id": record.id,
        "time": record.timestamp.isoformat(),
        "category": record.category,
        "xp": metrics.xp_earned,
    }
    if record.type is RecordType.ACTIVITY:
        summary.update(
            duration_minutes=metrics.duration,
            calories=metrics.calories,
            steps=metrics.quantity,
            intensity=metrics.intensity,
        )
    elif record.type is RecordType.MEAL:
        summary.update(
            calories=metrics.calories,
            nutrition=asdict(metrics.nutrition) if metrics.nutrition else None,
        )
    elif record.type is RecordType.SLEEP:
        summary.update(
            hours=round(metrics.duration / 60, 2),
            quality=metrics.quality,
        )
    else:
        raise ValueError(f"Unknown record type: {record.type!r}")
    return summary


def _day_numbers(aggregate: TimeAggregate) -> dict[str, float]:
    totals = aggregate.totals
    return {
        "steps": totals.steps,
        "calories_in": totals.calories_consumed,
        "calories_out": totals.calories_burned,
        "net_calories": totals.calories_consumed - totals.calories_burned,
        "sleep_hours": round(totals.sleep_hours, 2),
        "xp": totals.xp,
    }


def _day_scores(records: list[WellnessRecord]) -> dict[str, float]:
    activities, meals, sleep = split_by_type(records)
    return {
        "nutrition": round(calculate_nutrition_score(meals), 1),
        "sleep": round(calculate_sleep_score(sleep), 1),
        "recovery": round(calculate_recovery_score(sleep, activities), 1),
        "meal_quality": round(calculate_meal_quality_trend(meals), 1),
    }


class TimeWindowAggregator:
    """Builds wellness statistics on top of a RecordStore.

    Usage::

        aggregator = TimeWindowAggregator(record_store, goals_store)
        today = await aggregator.get_daily_stats("alice")
        week = await aggregator.get_weekly_stats("alice", date(2026, 3, 4))
    """

    def __init__(self, record_store: RecordStore, goals_store: GoalsStore | None = None) -> None:
        self._store = record_store
        self._goals = goals_store
        self._pending: dict[str, asyncio.Task] = {}

    @property
    def record_store(self) -> RecordStore:
        return self._store

    @property
    def pending_count(self) -> int:
        """Number of computations currently in flight."""
        return len(self._pending)

    # ------------------------------------------------------------------
    # Request deduplication
    # ------------------------------------------------------------------

    async def _deduplicated(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(factory())
            self._pending[key] = task
            task.add_done_callback(lambda done, k=key: self._release(k, done))
        else:
            logger.debug("Joining in-flight request %s", key)
        return copy.deepcopy(await asyncio.shield(task))

    def _release(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    # ------------------------------------------------------------------
    # Public statistics
    # ------------------------------------------------------------------

    async def get_daily_stats(
        self, user_id: str, day: date | datetime | None = None
    ) -> dict[str, Any]:
        """Totals, scores and record summaries for one local day.

        A day without records yields zeros everywhere.
        """
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        key = f"{uid}:daily:{ref.date().isoformat()}"
        return await self._deduplicated(key, lambda: self._compute_daily(uid, ref))

    async def _compute_daily(self, user_id: str, ref: datetime) -> dict[str, Any]:
        aggregate = await self._store.get_daily_aggregated_data(user_id, ref)
        activities, meals, sleep = split_by_type(aggregate.records)
        stats: dict[str, Any] = {"date": aggregate.start_date.date().isoformat()}
        stats.update(_day_numbers(aggregate))
        stats["scores"] = _day_scores(aggregate.records)
        stats["meals"] = [summarize_record(r) for r in meals]
        stats["activities"] = [summarize_record(r) for r in activities]
        stats["sleep"] = [summarize_record(r) for r in sleep]
        return stats

    async def get_weekly_stats(
        self, user_id: str, day: date | datetime | None = None
    ) -> dict[str, Any]:
        """Seven-point daily series for the Sunday-Saturday week containing ``day``."""
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        key = f"{uid}:weekly:{ref.date().isoformat()}"
        return await self._deduplicated(key, lambda: self._compute_weekly(uid, ref))

    async def _compute_weekly(self, user_id: str, ref: datetime) -> dict[str, Any]:
        week = await self._store.get_weekly_aggregated_data(user_id, ref)
        series: dict[str, list[Any]] = {
            name: []
            for name in (
                "dates", "day_names", "steps", "calories_in", "calories_out",
                "net_calories", "sleep_hours", "xp", "meals_logged",
                "nutrition_scores", "sleep_scores", "recovery_scores",
                "meal_quality_trends",
            )
        }
        for day in days_in_window(week.start_date, week.end_date):
            start, end = day_window(day)
            daily = build_time_aggregate("daily", start, end, week.records)
            series["dates"].append(day.date().isoformat())
            series["day_names"].append(_DAY_NAMES[day.weekday()])
            for name, value in _day_numbers(daily).items():
                series[name].append(value)
            series["meals_logged"].append(
                sum(1 for r in daily.records if r.type is RecordType.MEAL)
            )
            scores = _day_scores(daily.records)
            series["nutrition_scores"].append(scores["nutrition"])
            series["sleep_scores"].append(scores["sleep"])
            series["recovery_scores"].append(scores["recovery"])
            series["meal_quality_trends"].append(scores["meal_quality"])

        summary = week.to_dict()
        return {
            "start_date": summary["start_date"],
            "end_date": summary["end_date"],
            **series,
            "totals": summary["totals"],
            "averages": summary["averages"],
            "trends": summary["trends"],
        }

    async def get_monthly_stats(
        self, user_id: str, day: date | datetime | None = None
    ) -> dict[str, Any]:
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        key = f"{uid}:monthly:{ref.date().isoformat()}"
        return await self._deduplicated(key, lambda: self._compute_monthly(uid, ref))

    async def _compute_monthly(self, user_id: str, ref: datetime) -> dict[str, Any]:
        month = await self._store.get_monthly_aggregated_data(user_id, ref)
        return {"month": month.start_date.strftime("%Y-%m"), **month.to_dict()}

    async def get_daily_aggregates(
        self, user_id: str, end_day: date | datetime | None = None, days: int = 7
    ) -> list[TimeAggregate]:
        """Daily aggregates of the ``days`` days ending on ``end_day``, oldest first."""
        uid = require_user_id(user_id)
        last_start, last_end = day_window(resolve_reference(end_day))
        first_start = last_start - timedelta(days=max(days, 1) - 1)
        records = await self._store.get_records_for_period(uid, first_start, last_end)
        result = []
        for day in days_in_window(first_start, last_end):
            start, end = day_window(day)
            result.append(build_time_aggregate("daily", start, end, records))
        return result

    async def get_recent_records(
        self, user_id: str, day: date | datetime | None = None, limit: int = 5
    ) -> dict[str, list[dict[str, Any]]]:
        """Latest records of the past 30 days grouped by type, newest first."""
        uid = require_user_id(user_id)
        _, end = day_window(resolve_reference(day))
        start = start_of_day(end) - timedelta(days=RECENT_RECORDS_DAYS - 1)
        records = await self._store.get_records_for_period(uid, start, end)
        records.sort(key=lambda r: r.timestamp, reverse=True)
        activities, meals, sleep = split_by_type(records)
        return {
            "activities": [summarize_record(r) for r in activities[:limit]],
            "meals": [summarize_record(r) for r in meals[:limit]],
            "sleep": [summarize_record(r) for r in sleep[:limit]],
        }

    async def get_summary_stats(
        self, user_id: str, day: date | datetime | None = None
    ) -> dict[str, Any]:
        """Week totals, today's numbers, today's goals and total XP.

        Any failure while gathering the pieces is logged and answered with
        a zeroed summary.
        """
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        try:
            week = await self._store.get_weekly_aggregated_data(uid, ref)
            today = await self.get_daily_stats(uid, ref)
            goals = None
            if self._goals is not None:
                goals = await self._goals.get_goals_for_date(uid, ref.date())
            total_xp = await self._store.get_xp(uid)
        except Exception:
            logger.exception("Failed to build summary stats for %s", uid)
            return _empty_summary(ref)
        return {
            "date": ref.date().isoformat(),
            "week": week.to_dict()["totals"],
            "today": {k: today[k] for k in _ZERO_DAY},
            "goals": goals,
            "total_xp": total_xp,
        }


_ZERO_DAY = {
    "steps": 0, "calories_in": 0, "calories_out": 0,
    "net_calories": 0, "sleep_hours": 0, "xp": 0,
}


def _empty_summary(ref: datetime) -> dict[str, Any]:
    return {
        "date": ref.date().isoformat(),
        "week": {
            "xp": 0, "calories_burned": 0, "calories_consumed": 0,
            "activity_minutes": 0, "sleep_hours": 0, "steps": 0,
        },
        "today": dict(_ZERO_DAY),
        "goals": None,
        "total_xp": 0,
    }
