"""Per-user weekly report history."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from fitsync.core.storage.kv_store import KeyValueStore, dump_json, load_json
from fitsync.core.storage.models import require_user_id

logger = logging.getLogger(__name__)

REPORTS_PREFIX = "fitsync_reports_"


def reports_key(user_id: str) -> str:
    return f"{REPORTS_PREFIX}{user_id}"


class ReportStore:
    """Keeps serialized weekly reports under ``fitsync_reports_{user}``.

    Reports are plain dicts (``WeeklyReport.to_dict()``) identified by their
    ``week_start``; saving a report for a week that already has one
    replaces it.
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def _load(self, user_id: str) -> dict[str, Any]:
        data = await load_json(self._kv, reports_key(user_id), {})
        if not isinstance(data, dict) or not isinstance(data.get("reports", []), list):
            logger.warning("Report history for %s is malformed; treating as empty", user_id)
            return {"reports": [], "last_generated": None}
        data.setdefault("reports", [])
        data.setdefault("last_generated", None)
        return data

    async def save_report(self, user_id: str, report: dict[str, Any]) -> None:
        uid = require_user_id(user_id)
        data = await self._load(uid)
        week = report.get("week_start")
        reports = [r for r in data["reports"] if not (isinstance(r, dict) and r.get("week_start") == week)]
        reports.append(report)
        data["reports"] = reports
        data["last_generated"] = datetime.now().isoformat()
        await self._kv.set(reports_key(uid), dump_json(data))
        logger.info("Saved weekly report for %s (week %s)", uid, week)

    async def get_reports(self, user_id: str) -> list[dict[str, Any]]:
        """All stored reports, newest week first."""
        uid = require_user_id(user_id)
        reports = [r for r in (await self._load(uid))["reports"] if isinstance(r, dict)]
        return sorted(reports, key=lambda r: str(r.get("week_start", "")), reverse=True)

    async def get_most_recent_report(self, user_id: str) -> dict[str, Any] | None:
        reports = await self.get_reports(user_id)
        return reports[0] if reports else None

    async def get_reports_in_range(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[dict[str, Any]]:
        """Reports whose week starts inside ``[start, end]``."""
        result = []
        for report in await self.get_reports(user_id):
            try:
                week_start = datetime.fromisoformat(str(report.get("week_start")))
            except ValueError:
                continue
            if start <= week_start <= end:
                result.append(report)
        return result
