"""MCP tools for adaptive daily goals."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from fitsync.core.storage.models import InvalidUserError
from fitsync.domains.wellness.tools.common import error_response, parse_day, to_json

if TYPE_CHECKING:
    from fitsync.domains.wellness.domain_logic.adaptive_goals import AdaptiveGoalsEngine

logger = logging.getLogger(__name__)


def register_goal_tools(mcp: FastMCP, engine: AdaptiveGoalsEngine) -> None:
    """Register adaptive goal tools on the MCP server."""

    @mcp.tool
    async def adaptive_goals(
        ctx: Context, user_id: str, date: str = "", recalculate: bool = False
    ) -> str:
        """Daily step, calorie-burn and sleep targets adapted to recent behavior.

        Returns the goals already computed for the day unless ``recalculate``
        is set or none exist yet.

        Args:
            user_id: User whose goals to return.
            date: Day the goals apply to (ISO 8601). Defaults to today.
            recalculate: Force recomputation from the last 7 days.
        """
        try:
            day = parse_day(date)
            goals = None if recalculate else await engine.get_goals(user_id, day)
            if goals is None:
                goals = await engine.calculate_adaptive_goals(user_id, day)
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))
        return to_json(goals.to_dict())

    @mcp.tool
    async def goal_history(ctx: Context, user_id: str, days: int = 7) -> str:
        """Goals of the most recent computed days, oldest first.

        Args:
            user_id: User whose history to return.
            days: Number of stored days to include.
        """
        try:
            history = await engine.get_goal_history(user_id, days)
        except InvalidUserError as exc:
            return error_response(str(exc))
        return to_json({"user_id": user_id, "history": [g.to_dict() for g in history]})
