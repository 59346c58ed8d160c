"""MCP tools for daily, weekly and monthly statistics and XP status."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from fitsync.core.storage.models import InvalidUserError
from fitsync.domains.wellness.domain_logic.xp import (
    calculate_level,
    level_progress,
    xp_to_next_level,
)
from fitsync.domains.wellness.tools.common import error_response, parse_day, to_json

if TYPE_CHECKING:
    from fitsync.core.storage.record_store import RecordStore
    from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator

logger = logging.getLogger(__name__)


def register_stats_tools(
    mcp: FastMCP,
    aggregator: TimeWindowAggregator,
    record_store: RecordStore,
) -> None:
    """Register statistics tools on the MCP server."""

    @mcp.tool
    async def daily_stats(ctx: Context, user_id: str, date: str = "") -> str:
        """Totals, per-day scores and logged records for one day.

        Args:
            user_id: User to report on.
            date: Day to report (ISO 8601). Defaults to today.
        """
        try:
            return to_json(await aggregator.get_daily_stats(user_id, parse_day(date)))
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))

    @mcp.tool
    async def weekly_stats(ctx: Context, user_id: str, date: str = "") -> str:
        """Seven-day series (Sunday to Saturday) with daily scores.

        Args:
            user_id: User to report on.
            date: Any day inside the week (ISO 8601). Defaults to today.
        """
        try:
            return to_json(await aggregator.get_weekly_stats(user_id, parse_day(date)))
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))

    @mcp.tool
    async def monthly_stats(ctx: Context, user_id: str, date: str = "") -> str:
        """Calendar-month totals, averages and trends.

        Args:
            user_id: User to report on.
            date: Any day inside the month (ISO 8601). Defaults to today.
        """
        try:
            return to_json(await aggregator.get_monthly_stats(user_id, parse_day(date)))
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))

    @mcp.tool
    async def xp_status(ctx: Context, user_id: str) -> str:
        """Total XP, level and progress toward the next level.

        Args:
            user_id: User to report on.
        """
        try:
            total = await record_store.get_xp(user_id)
        except InvalidUserError as exc:
            return error_response(str(exc))
        return to_json({
            "user_id": user_id,
            "total_xp": total,
            "level": calculate_level(total),
            "xp_to_next_level": xp_to_next_level(total),
            "level_progress": round(level_progress(total), 1),
        })
