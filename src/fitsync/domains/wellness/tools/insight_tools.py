"""MCP tools for meal/sleep correlation insights."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from fitsync.core.storage.models import InvalidUserError
from fitsync.domains.wellness.tools.common import error_response, parse_day, to_json

if TYPE_CHECKING:
    from fitsync.domains.wellness.domain_logic.fusion_engine import InsightFusionEngine

logger = logging.getLogger(__name__)


def register_insight_tools(mcp: FastMCP, fusion: InsightFusionEngine) -> None:
    """Register cross-domain insight tools on the MCP server."""

    @mcp.tool
    async def meal_sleep_insights(ctx: Context, user_id: str, date: str = "") -> str:
        """Insights on how meal timing and composition relate to sleep quality.

        Only clear associations (|r| > 0.3) produce an insight.

        Args:
            user_id: User to analyze.
            date: Any day in the week to analyze (ISO 8601). Defaults to today.
        """
        try:
            insights = await fusion.generate_meal_sleep_insights(user_id, parse_day(date))
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))
        return to_json({"user_id": user_id, "insights": [i.to_dict() for i in insights]})

    @mcp.tool
    async def correlation_metrics(ctx: Context, user_id: str, date: str = "") -> str:
        """30-day correlation metrics, recovery score and meal calorie trend.

        Args:
            user_id: User to analyze.
            date: Last day of the window (ISO 8601). Defaults to today.
        """
        try:
            metrics = await fusion.calculate_correlation_metrics(user_id, parse_day(date))
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))
        return to_json(metrics.to_dict())

    @mcp.tool
    async def optimal_meal_timing(
        ctx: Context, user_id: str, days: int = 30, date: str = ""
    ) -> str:
        """Suggested dinner time and meal-to-bed spacing from recent history.

        Args:
            user_id: User to analyze.
            days: Days of history to use.
            date: Last day of the window (ISO 8601). Defaults to today.
        """
        try:
            timing = await fusion.find_optimal_meal_timing(user_id, parse_day(date), days)
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))
        return to_json(timing.to_dict())
