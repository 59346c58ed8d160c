"""Per-user adaptive goal history.

All goals of a user are kept as one JSON map under ``fitsync_goals_{user}``,
keyed by ISO date (``YYYY-MM-DD``). Each entry is an envelope::

    {"goals": {...}, "patterns": {...}, "version": "1.0"}

Writing a date replaces that date's envelope and leaves every other date
untouched.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from fitsync.core.storage.kv_store import KeyValueStore, dump_json, load_json
from fitsync.core.storage.models import require_user_id

logger = logging.getLogger(__name__)

GOALS_PREFIX = "fitsync_goals_"
GOALS_FORMAT_VERSION = "1.0"


def goals_key(user_id: str) -> str:
    return f"{GOALS_PREFIX}{user_id}"


class GoalsStore:
    """Stores one goal envelope per user per calendar date."""

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv

    async def _load(self, user_id: str) -> dict[str, Any]:
        data = await load_json(self._kv, goals_key(user_id), {})
        if not isinstance(data, dict):
            logger.warning("Goal history for %s is not a map; treating as empty", user_id)
            return {}
        return data

    async def store_daily_goals(
        self,
        user_id: str,
        day: date,
        goals: dict[str, Any],
        patterns: dict[str, Any],
    ) -> None:
        uid = require_user_id(user_id)
        history = await self._load(uid)
        history[day.isoformat()] = {
            "goals": goals,
            "patterns": patterns,
            "version": GOALS_FORMAT_VERSION,
        }
        await self._kv.set(goals_key(uid), dump_json(history))
        logger.info("Stored goals for %s on %s", uid, day.isoformat())

    async def get_goals_for_date(self, user_id: str, day: date) -> dict[str, Any] | None:
        uid = require_user_id(user_id)
        entry = (await self._load(uid)).get(day.isoformat())
        if isinstance(entry, dict) and isinstance(entry.get("goals"), dict):
            return entry["goals"]
        return None

    async def get_latest_goals_before(
        self, user_id: str, day: date
    ) -> tuple[str, dict[str, Any]] | None:
        """Most recent goals stored for a date strictly before ``day``."""
        uid = require_user_id(user_id)
        history = await self._load(uid)
        cutoff = day.isoformat()
        for key in sorted(history, reverse=True):
            entry = history[key]
            if key < cutoff and isinstance(entry, dict) and isinstance(entry.get("goals"), dict):
                return key, entry["goals"]
        return None

    async def get_recent_goal_history(
        self, user_id: str, days: int = 7
    ) -> list[dict[str, Any]]:
        """Goals of the last ``days`` stored dates, oldest first."""
        uid = require_user_id(user_id)
        history = await self._load(uid)
        result = []
        for key in sorted(history)[-days:] if days > 0 else []:
            entry = history[key]
            if isinstance(entry, dict) and isinstance(entry.get("goals"), dict):
                result.append(entry["goals"])
        return result
