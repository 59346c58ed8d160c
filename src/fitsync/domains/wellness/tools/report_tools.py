"""MCP tools for weekly reports."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastmcp import Context, FastMCP

from fitsync.core.storage.models import InvalidUserError
from fitsync.domains.wellness.tools.common import error_response, parse_day, to_json

if TYPE_CHECKING:
    from fitsync.domains.wellness.domain_logic.report_generator import ReportGenerator

logger = logging.getLogger(__name__)


def register_report_tools(mcp: FastMCP, generator: ReportGenerator) -> None:
    """Register weekly report tools on the MCP server."""

    @mcp.tool
    async def weekly_report(
        ctx: Context, user_id: str, date: str = "", save: bool = True
    ) -> str:
        """Weekly scores, highlights, recommendations, trends and week-over-week comparison.

        Args:
            user_id: User to report on.
            date: Any day inside the week (ISO 8601). Defaults to today.
            save: Keep the report in the report history.
        """
        try:
            report = await generator.generate_weekly_report(user_id, parse_day(date), save=save)
        except (InvalidUserError, ValueError) as exc:
            return error_response(str(exc))
        return to_json(report.to_dict())

    @mcp.tool
    async def recent_reports(ctx: Context, user_id: str, limit: int = 4) -> str:
        """Previously saved weekly reports, newest week first.

        Args:
            user_id: User whose reports to return.
            limit: Maximum number of reports.
        """
        try:
            reports = await generator.get_recent_reports(user_id, limit)
        except InvalidUserError as exc:
            return error_response(str(exc))
        return to_json({"user_id": user_id, "reports": reports})
