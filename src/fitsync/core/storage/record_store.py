"""Append-only per-user wellness record store with an XP ledger.

Records for a user live as one JSON list under ``fitsync_records_{user}``
and the running XP total under ``fitsync_xp_{user}``. Appending a record
that earns XP writes both keys in a single ``set_many`` call, which the
SQLite backend commits as one transaction: a record never lands without
its XP, and XP never lands without its record.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Any

from fitsync.core.storage.aggregation import (
    build_time_aggregate,
    day_window,
    in_window,
    month_window,
    resolve_reference,
    week_window,
)
from fitsync.core.storage.kv_store import KeyValueStore, dump_json, load_json
from fitsync.core.storage.models import (
    NutritionInfo,
    RecordMetadata,
    RecordMetrics,
    RecordType,
    TimeAggregate,
    WellnessRecord,
    require_user_id,
    to_local_naive,
)

logger = logging.getLogger(__name__)

RECORDS_PREFIX = "fitsync_records_"
XP_PREFIX = "fitsync_xp_"

LEGACY_ACTIVITIES_PREFIX = "activities_"
LEGACY_MEALS_PREFIX = "meals_"
LEGACY_SLEEP_PREFIX = "sleep_"
LEGACY_XP_KEY = "fitsync-xp"

# Fixed namespace so migrated ids are stable across runs
_LEGACY_NAMESPACE = uuid.UUID("6f0c1a52-93d4-4c1e-9f2b-5a8e7d3c4b21")


class RecordStoreError(Exception):
    """Raised when a record cannot be persisted."""


def records_key(user_id: str) -> str:
    return f"{RECORDS_PREFIX}{user_id}"


def xp_key(user_id: str) -> str:
    return f"{XP_PREFIX}{user_id}"


class RecordStore:
    """Per-user record persistence and time-window aggregation.

    Usage::

        store = RecordStore(SQLiteKeyValueStore(db))
        saved = await store.add_record("alice", WellnessRecord(
            id="", user_id="alice", timestamp=datetime.now(),
            type=RecordType.MEAL, metrics=RecordMetrics(calories=550, xp_earned=10),
        ))
        today = await store.get_daily_aggregated_data("alice")
    """

    def __init__(self, kv: KeyValueStore) -> None:
        self._kv = kv
        self._migration_checked: set[str] = set()

    @property
    def kv(self) -> KeyValueStore:
        return self._kv

    @staticmethod
    def _new_id() -> str:
        return str(uuid.uuid4())

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def add_record(self, user_id: str, record: WellnessRecord) -> WellnessRecord:
        """Append a record for ``user_id`` and credit its XP.

        The record receives a fresh id (any id on the input is replaced) and
        the owning user id; aware timestamps are converted to local time.
        A user's legacy records are migrated before the first append.

        Raises:
            InvalidUserError: If ``user_id`` is blank.
            RecordStoreError: If the combined write fails. Nothing is stored.
        """
        uid = require_user_id(user_id)
        if not isinstance(record.type, RecordType):
            raise RecordStoreError(f"Unknown record type: {record.type!r}")

        stored = replace(
            record,
            id=self._new_id(),
            user_id=uid,
            timestamp=to_local_naive(record.timestamp),
        )
        raw = await self._load_migrated(uid)
        raw.append(stored.to_dict())
        items = {records_key(uid): dump_json(raw)}

        xp_earned = stored.metrics.xp_earned
        if xp_earned > 0:
            items[xp_key(uid)] = dump_json(await self.get_xp(uid) + xp_earned)

        try:
            await self._kv.set_many(items)
        except Exception as exc:
            raise RecordStoreError(f"Failed to store record for {uid}: {exc}") from exc

        logger.info(
            "Stored %s record %s for %s (xp +%d)", stored.type.value, stored.id, uid, xp_earned
        )
        return stored

    async def get_all_records(self, user_id: str) -> list[WellnessRecord]:
        """Return every readable record of the user.

        The first read for a user with no unified records backfills from the
        legacy per-domain keys.
        """
        uid = require_user_id(user_id)
        return self._parse_records(uid, await self._load_migrated(uid))

    async def get_records_for_period(
        self, user_id: str, start: datetime, end: datetime
    ) -> list[WellnessRecord]:
        """Records with ``start <= timestamp <= end``."""
        records = await self.get_all_records(user_id)
        return in_window(records, to_local_naive(start), to_local_naive(end))

    async def get_daily_aggregated_data(
        self, user_id: str, day: date | datetime | None = None
    ) -> TimeAggregate:
        start, end = day_window(resolve_reference(day))
        records = await self.get_records_for_period(user_id, start, end)
        return build_time_aggregate("daily", start, end, records)

    async def get_weekly_aggregated_data(
        self, user_id: str, day: date | datetime | None = None
    ) -> TimeAggregate:
        start, end = week_window(resolve_reference(day))
        records = await self.get_records_for_period(user_id, start, end)
        return build_time_aggregate("weekly", start, end, records)

    async def get_monthly_aggregated_data(
        self, user_id: str, day: date | datetime | None = None
    ) -> TimeAggregate:
        start, end = month_window(resolve_reference(day))
        records = await self.get_records_for_period(user_id, start, end)
        return build_time_aggregate("monthly", start, end, records)

    async def list_user_ids(self) -> list[str]:
        """User ids that have a unified record set."""
        keys = await self._kv.keys(RECORDS_PREFIX)
        return [key[len(RECORDS_PREFIX):] for key in keys if len(key) > len(RECORDS_PREFIX)]

    async def _load_raw(self, user_id: str) -> list[dict[str, Any]]:
        raw = await load_json(self._kv, records_key(user_id), [])
        if not isinstance(raw, list):
            logger.warning("Record set for %s is not a list; treating as empty", user_id)
            return []
        return raw

    async def _load_migrated(self, user_id: str) -> list[dict[str, Any]]:
        """Raw record set, backfilled from legacy keys on the first access."""
        raw = await self._load_raw(user_id)
        if not raw and user_id not in self._migration_checked:
            self._migration_checked.add(user_id)
            if await self.migrate_from_legacy(user_id):
                raw = await self._load_raw(user_id)
        return raw

    @staticmethod
    def _parse_records(user_id: str, raw: list[Any]) -> list[WellnessRecord]:
        records: list[WellnessRecord] = []
        for entry in raw:
            try:
                records.append(WellnessRecord.from_dict(entry))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping malformed record for %s: %s", user_id, exc)
        return records

    # ------------------------------------------------------------------
    # XP ledger
    # ------------------------------------------------------------------

    async def get_xp(self, user_id: str) -> int:
        uid = require_user_id(user_id)
        value = await load_json(self._kv, xp_key(uid), 0)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("XP ledger for %s is not a number; treating as 0", uid)
            return 0

    async def add_xp(self, user_id: str, amount: int) -> int:
        """Add ``amount`` to the ledger and return the new total."""
        uid = require_user_id(user_id)
        total = await self.get_xp(uid) + int(amount)
        await self._kv.set(xp_key(uid), dump_json(total))
        logger.info("Added %d XP for %s, total now %d", amount, uid, total)
        return total

    # ------------------------------------------------------------------
    # Legacy migration
    # ------------------------------------------------------------------

    async def migrate_from_legacy(self, user_id: str) -> int:
        """Backfill the unified record set from legacy per-domain keys.

        Runs only while the unified set is empty. Migrated ids derive from
        the legacy key and list position, so a second run produces the same
        records. The shared legacy XP value is copied only when the user has
        no ledger yet.

        Returns:
            Number of records migrated.
        """
        uid = require_user_id(user_id)
        if await self._load_raw(uid):
            return 0

        migrated: list[WellnessRecord] = []
        migrated += await self._migrate_key(
            uid, f"{LEGACY_ACTIVITIES_PREFIX}{uid}", RecordType.ACTIVITY
        )
        migrated += await self._migrate_key(uid, f"{LEGACY_MEALS_PREFIX}{uid}", RecordType.MEAL)
        for key in await self._kv.keys(f"{LEGACY_SLEEP_PREFIX}{uid}_"):
            migrated += await self._migrate_key(uid, key, RecordType.SLEEP)

        items: dict[str, str] = {}
        if migrated:
            items[records_key(uid)] = dump_json([r.to_dict() for r in migrated])
        legacy_xp = await self._kv.get(LEGACY_XP_KEY)
        if legacy_xp is not None and await self._kv.get(xp_key(uid)) is None:
            try:
                items[xp_key(uid)] = dump_json(int(float(legacy_xp)))
            except ValueError:
                logger.warning("Ignoring unreadable legacy XP value")

        if items:
            await self._kv.set_many(items)
        if migrated:
            logger.info("Migrated %d legacy records for %s", len(migrated), uid)
        return len(migrated)

    async def _migrate_key(
        self, user_id: str, key: str, record_type: RecordType
    ) -> list[WellnessRecord]:
        payload = await load_json(self._kv, key, None)
        if payload is None:
            return []
        entries = payload if isinstance(payload, list) else [payload]
        records: list[WellnessRecord] = []
        for index, entry in enumerate(entries):
            try:
                records.append(_legacy_to_record(user_id, key, index, record_type, entry))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                logger.warning("Skipping legacy entry %s[%d]: %s", key, index, exc)
        return records


def _legacy_to_record(
    user_id: str, key: str, index: int, record_type: RecordType, entry: dict[str, Any]
) -> WellnessRecord:
    """Map one legacy payload to a WellnessRecord.

    Raises:
        ValueError: If the entry has no usable timestamp.
    """
    stamp = entry.get("timestamp")
    if not stamp:
        raise ValueError("missing timestamp")
    timestamp = to_local_naive(datetime.fromisoformat(str(stamp).replace("Z", "+00:00")))
    record_id = str(uuid.uuid5(_LEGACY_NAMESPACE, f"{key}:{index}"))
    tags = tuple(entry.get("tags") or ())
    xp = int(entry.get("xpEarned") or 0)

    if record_type is RecordType.ACTIVITY:
        category = entry.get("type") or "general"
        metrics = RecordMetrics(
            duration=float(entry.get("duration") or 0),
            calories=float(entry.get("calories") or 0),
            quantity=float(entry.get("steps") or 0),
            intensity=float(entry.get("intensity") or 5),
            xp_earned=xp,
        )
        metadata = RecordMetadata(confidence=1.0, tags=tags)
    elif record_type is RecordType.MEAL:
        nutrition = entry.get("nutrition")
        category = entry.get("mealType") or "general"
        metrics = RecordMetrics(
            calories=float(entry.get("calories") or 0),
            quantity=float(entry.get("quantity") or 1),
            xp_earned=xp,
            nutrition=NutritionInfo(
                protein=float(nutrition.get("protein") or 0),
                carbs=float(nutrition.get("carbs") or 0),
                fat=float(nutrition.get("fat") or 0),
            ) if isinstance(nutrition, dict) else None,
        )
        metadata = RecordMetadata(
            confidence=float(entry.get("confidence") or 0.8),
            ai_insights=tuple(entry.get("insights") or ()),
            tags=tags,
        )
    elif record_type is RecordType.SLEEP:
        category = "sleep"
        metrics = RecordMetrics(
            duration=float(entry.get("duration") or 0),
            quality=float(entry.get("quality") or 0.5),
            xp_earned=xp,
        )
        metadata = RecordMetadata(confidence=1.0, tags=tags)
    else:
        raise ValueError(f"Unknown record type: {record_type!r}")

    return WellnessRecord(
        id=record_id,
        user_id=user_id,
        timestamp=timestamp,
        type=record_type,
        category=category,
        metrics=metrics,
        metadata=metadata,
    )
