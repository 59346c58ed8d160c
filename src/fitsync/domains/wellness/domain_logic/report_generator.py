"""Weekly report generation on top of the aggregator."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta

from fitsync.core.storage.aggregation import resolve_reference, week_window
from fitsync.core.storage.models import require_user_id
from fitsync.core.storage.report_store import ReportStore
from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator
from fitsync.domains.wellness.domain_logic.report_models import WeeklyReport, WeeklyReportData
from fitsync.domains.wellness.domain_logic.report_scoring import build_weekly_report, empty_report

logger = logging.getLogger(__name__)


class ReportGenerator:
    """Builds weekly reports and optionally keeps them in a ReportStore.

    Usage::

        generator = ReportGenerator(aggregator, report_store)
        report = await generator.generate_weekly_report("alice", date(2026, 3, 4), save=True)
        report.scores["overall"].value
    """

    def __init__(
        self, aggregator: TimeWindowAggregator, report_store: ReportStore | None = None
    ) -> None:
        self._aggregator = aggregator
        self._reports = report_store

    async def generate_weekly_report(
        self,
        user_id: str,
        day: date | datetime | None = None,
        save: bool = False,
    ) -> WeeklyReport:
        """Report for the Sunday-Saturday week containing ``day``.

        The previous week (``day`` minus seven days) feeds the comparison
        and the per-category trends. If either week cannot be gathered the
        failure is logged and an all-zero report is returned.
        """
        uid = require_user_id(user_id)
        ref = resolve_reference(day)
        try:
            current = WeeklyReportData.from_weekly_stats(
                await self._aggregator.get_weekly_stats(uid, ref)
            )
            previous = WeeklyReportData.from_weekly_stats(
                await self._aggregator.get_weekly_stats(uid, ref - timedelta(days=7))
            )
            report = build_weekly_report(current, previous)
        except Exception:
            logger.exception("Weekly report generation failed for %s", uid)
            start, end = week_window(ref)
            return empty_report(start.date().isoformat(), end.date().isoformat())

        logger.info(
            "Weekly report for %s (%s): overall %.1f",
            uid, report.week_start, report.scores["overall"].value,
        )
        if save and self._reports is not None:
            await self._reports.save_report(uid, report.to_dict())
        return report

    async def get_recent_reports(self, user_id: str, limit: int = 4) -> list[dict]:
        """Stored reports, newest week first."""
        uid = require_user_id(user_id)
        if self._reports is None:
            return []
        return (await self._reports.get_reports(uid))[:limit]
