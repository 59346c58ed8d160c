"""Time windows and the pure record-to-aggregate reduction.

Day boundaries are local midnight, weeks run Sunday 00:00 through Saturday
23:59:59.999999 and months are calendar months. Every window is inclusive
at both ends.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime, timedelta

from fitsync.core.storage.models import (
    AggregateAverages,
    AggregateTotals,
    AggregateTrends,
    Period,
    RecordType,
    TimeAggregate,
    WellnessRecord,
    to_local_naive,
)

logger = logging.getLogger(__name__)

_LAST_MICROSECOND = timedelta(microseconds=1)


def resolve_reference(value: date | datetime | str | None = None) -> datetime:
    """Normalize a caller-supplied reference date to naive local time.

    ``None`` means now; a bare ``date`` (or ``YYYY-MM-DD`` string) means
    midnight at the start of that day.
    """
    if value is None:
        return datetime.now()
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if isinstance(value, datetime):
        return to_local_naive(value)
    return datetime(value.year, value.month, value.day)


def start_of_day(moment: datetime) -> datetime:
    return datetime(moment.year, moment.month, moment.day)


def day_window(moment: datetime) -> tuple[datetime, datetime]:
    start = start_of_day(moment)
    return start, start + timedelta(days=1) - _LAST_MICROSECOND


def week_window(moment: datetime) -> tuple[datetime, datetime]:
    # date.weekday() is Monday=0 .. Sunday=6; shift so Sunday starts the week
    start = start_of_day(moment) - timedelta(days=(moment.weekday() + 1) % 7)
    return start, start + timedelta(days=7) - _LAST_MICROSECOND


def month_window(moment: datetime) -> tuple[datetime, datetime]:
    start = datetime(moment.year, moment.month, 1)
    if moment.month == 12:
        next_month = datetime(moment.year + 1, 1, 1)
    else:
        next_month = datetime(moment.year, moment.month + 1, 1)
    return start, next_month - _LAST_MICROSECOND


def days_in_window(start: datetime, end: datetime) -> list[datetime]:
    """Midnight of every calendar day touched by ``[start, end]``."""
    first = start_of_day(start)
    count = (start_of_day(end) - first).days + 1
    return [first + timedelta(days=i) for i in range(max(count, 0))]


def ols_slope(values: Sequence[float]) -> float:
    """Ordinary least-squares slope of ``values`` against their index."""
    n = len(values)
    if n < 2:
        return 0.0
    mean_x = (n - 1) / 2
    mean_y = sum(values) / n
    numerator = sum((i - mean_x) * (y - mean_y) for i, y in enumerate(values))
    denominator = sum((i - mean_x) ** 2 for i in range(n))
    if denominator == 0:
        return 0.0
    return numerator / denominator


def in_window(records: Iterable[WellnessRecord], start: datetime, end: datetime) -> list[WellnessRecord]:
    return [r for r in records if start <= r.timestamp <= end]


def build_time_aggregate(
    period: Period,
    start: datetime,
    end: datetime,
    records: Iterable[WellnessRecord],
) -> TimeAggregate:
    """Reduce the records inside ``[start, end]`` to a TimeAggregate.

    Pure: the result depends only on the arguments. Records outside the
    window are ignored, so summing the daily aggregates of a week gives
    exactly the weekly totals.

    Raises:
        ValueError: If a record carries a type this reduction does not know.
    """
    window_records = in_window(records, start, end)
    totals = AggregateTotals()
    sleep_qualities: list[float] = []
    intensities: list[float] = []
    meal_count = 0
    meals_with_nutrition = 0

    days = days_in_window(start, end)
    day_index = {day.date(): i for i, day in enumerate(days)}
    daily_xp = [0.0] * len(days)
    daily_net = [0.0] * len(days)
    active_days: set[int] = set()

    for record in window_records:
        metrics = record.metrics
        idx = day_index[record.timestamp.date()]
        active_days.add(idx)
        totals.xp += metrics.xp_earned
        daily_xp[idx] += metrics.xp_earned

        if record.type is RecordType.ACTIVITY:
            totals.calories_burned += metrics.calories
            totals.activity_minutes += metrics.duration
            totals.steps += metrics.quantity
            daily_net[idx] -= metrics.calories
            if metrics.intensity is not None:
                intensities.append(float(metrics.intensity))
        elif record.type is RecordType.MEAL:
            totals.calories_consumed += metrics.calories
            daily_net[idx] += metrics.calories
            meal_count += 1
            if metrics.has_nutrition:
                meals_with_nutrition += 1
        elif record.type is RecordType.SLEEP:
            totals.sleep_hours += metrics.duration / 60
            if metrics.quality is not None:
                sleep_qualities.append(float(metrics.quality))
        else:
            raise ValueError(f"Unknown record type: {record.type!r}")

    averages = AggregateAverages(
        sleep_quality=sum(sleep_qualities) / len(sleep_qualities) if sleep_qualities else 0.0,
        activity_intensity=sum(intensities) / len(intensities) if intensities else 0.0,
        nutrition_balance=meals_with_nutrition / meal_count if meal_count else 0.0,
    )
    trends = AggregateTrends(
        xp_trend=ols_slope(daily_xp),
        calorie_balance_trend=ols_slope(daily_net),
        consistency_score=len(active_days) / len(days) * 100 if days else 0.0,
    )

    logger.debug(
        "Aggregated %d records for %s window %s..%s",
        len(window_records), period, start.isoformat(), end.isoformat(),
    )
    return TimeAggregate(
        period=period,
        start_date=start,
        end_date=end,
        totals=totals,
        averages=averages,
        trends=trends,
        records=window_records,
    )
