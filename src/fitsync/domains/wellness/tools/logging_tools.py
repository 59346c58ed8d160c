"""MCP tools for logging activities, meals and sleep.

Each tool appends one immutable WellnessRecord. When the caller does not
supply an XP amount it is derived from the event with the XP rules.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from fitsync.core.storage.models import (
    InvalidUserError,
    NutritionInfo,
    RecordMetadata,
    RecordMetrics,
    RecordType,
    WellnessRecord,
)
from fitsync.domains.wellness.domain_logic.xp import calculate_xp_for_activity
from fitsync.domains.wellness.tools.common import error_response, parse_day, to_json

if TYPE_CHECKING:
    from fitsync.core.storage.record_store import RecordStore

logger = logging.getLogger(__name__)


def _saved(record: WellnessRecord, total_xp: int) -> str:
    return to_json({
        "status": "saved",
        "record": record.to_dict(),
        "xp_earned": record.metrics.xp_earned,
        "total_xp": total_xp,
    })


def register_logging_tools(mcp: FastMCP, record_store: RecordStore) -> None:
    """Register record logging tools on the MCP server."""

    async def _store(user_id: str, record: WellnessRecord) -> str:
        saved = await record_store.add_record(user_id, record)
        return _saved(saved, await record_store.get_xp(saved.user_id))

    @mcp.tool
    async def log_activity(
        ctx: Context,
        user_id: str,
        category: str = "workout",
        duration_minutes: float = 0,
        calories: float = 0,
        steps: float = 0,
        intensity: float | None = None,
        xp_earned: int | None = None,
        timestamp: str = "",
        tags: list[str] | None = None,
    ) -> str:
        """Log an exercise session or a step count.

        Args:
            user_id: Owner of the record.
            category: Activity kind (e.g. 'running', 'walking', 'workout').
            duration_minutes: Active minutes.
            calories: Calories burned.
            steps: Step count.
            intensity: Perceived intensity from 1 to 10.
            xp_earned: XP to credit. Derived from the activity when omitted.
            timestamp: When it happened (ISO 8601). Defaults to now.
            tags: Optional free-form tags.
        """
        try:
            when = parse_day(timestamp) or datetime.now()
        except ValueError:
            return error_response(f"Invalid timestamp: {timestamp!r}")

        if xp_earned is None:
            xp_earned = 0
            if duration_minutes > 0:
                xp_earned += calculate_xp_for_activity("workout", duration_minutes, intensity)
            if steps > 0:
                xp_earned += calculate_xp_for_activity("steps", steps=steps)

        record = WellnessRecord(
            id="",
            user_id=user_id,
            timestamp=when,
            type=RecordType.ACTIVITY,
            category=category or "general",
            metrics=RecordMetrics(
                duration=duration_minutes,
                calories=calories,
                quantity=steps,
                intensity=intensity,
                xp_earned=xp_earned,
            ),
            metadata=RecordMetadata(tags=tuple(tags or ())),
        )
        try:
            return await _store(user_id, record)
        except InvalidUserError as exc:
            return error_response(str(exc))

    @mcp.tool
    async def log_meal(
        ctx: Context,
        user_id: str,
        calories: float,
        category: str = "general",
        protein: float | None = None,
        carbs: float | None = None,
        fat: float | None = None,
        quality: float | None = None,
        confidence: float = 1.0,
        ai_insights: list[str] | None = None,
        xp_earned: int | None = None,
        timestamp: str = "",
    ) -> str:
        """Log a meal.

        Macronutrients are stored only when at least one of protein, carbs
        or fat is given. Meals recognized by an AI service should pass the
        service's confidence (below 1.0) and its annotations.

        Args:
            user_id: Owner of the record.
            calories: Calories consumed.
            category: Meal slot (e.g. 'breakfast', 'lunch', 'dinner', 'snack').
            protein: Protein in grams.
            carbs: Carbohydrates in grams.
            fat: Fat in grams.
            quality: Optional 0-1 meal quality rating.
            confidence: 0-1 trust in the values; 1.0 for manual entry.
            ai_insights: Free-text annotations from meal analysis.
            xp_earned: XP to credit. Defaults to the meal logging reward.
            timestamp: When the meal was eaten (ISO 8601). Defaults to now.
        """
        try:
            when = parse_day(timestamp) or datetime.now()
        except ValueError:
            return error_response(f"Invalid timestamp: {timestamp!r}")
        if quality is not None and not 0 <= quality <= 1:
            return error_response("quality must be between 0 and 1")

        nutrition = None
        if protein is not None or carbs is not None or fat is not None:
            nutrition = NutritionInfo(protein=protein or 0.0, carbs=carbs or 0.0, fat=fat or 0.0)

        record = WellnessRecord(
            id="",
            user_id=user_id,
            timestamp=when,
            type=RecordType.MEAL,
            category=category or "general",
            metrics=RecordMetrics(
                calories=calories,
                quantity=1,
                quality=quality,
                xp_earned=calculate_xp_for_activity("meal") if xp_earned is None else xp_earned,
                nutrition=nutrition,
            ),
            metadata=RecordMetadata(
                confidence=max(0.0, min(1.0, confidence)),
                ai_insights=tuple(ai_insights or ()),
            ),
        )
        try:
            return await _store(user_id, record)
        except InvalidUserError as exc:
            return error_response(str(exc))

    @mcp.tool
    async def log_sleep(
        ctx: Context,
        user_id: str,
        hours: float,
        quality: float | None = None,
        xp_earned: int | None = None,
        timestamp: str = "",
    ) -> str:
        """Log a night's sleep.

        Args:
            user_id: Owner of the record.
            hours: Hours slept.
            quality: Subjective sleep quality from 0 to 1.
            xp_earned: XP to credit. Derived from the duration when omitted.
            timestamp: Bedtime (ISO 8601). Defaults to now.
        """
        try:
            when = parse_day(timestamp) or datetime.now()
        except ValueError:
            return error_response(f"Invalid timestamp: {timestamp!r}")
        if quality is not None and not 0 <= quality <= 1:
            return error_response("quality must be between 0 and 1")

        record = WellnessRecord(
            id="",
            user_id=user_id,
            timestamp=when,
            type=RecordType.SLEEP,
            category="sleep",
            metrics=RecordMetrics(
                duration=hours * 60,
                quality=quality,
                xp_earned=(
                    calculate_xp_for_activity("sleep", sleep_hours=hours)
                    if xp_earned is None else xp_earned
                ),
            ),
        )
        try:
            return await _store(user_id, record)
        except InvalidUserError as exc:
            return error_response(str(exc))
