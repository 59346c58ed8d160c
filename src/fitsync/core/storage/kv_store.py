"""Per-user key-value persistence.

Every wellness entity (record lists, XP ledgers, goal maps, report
history) is serialized as JSON text under a deterministic key scoped by
entity kind and user id. The engines only see the ``KeyValueStore``
protocol; ``SQLiteKeyValueStore`` is the concrete backend.

Writes fire change notifications to subscribed listeners after they
commit. Notifications are fire-and-observe: nothing is acknowledged and a
failing listener never fails the write.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable

from fitsync.core.storage.database import WellnessDatabase
from fitsync.core.storage.encryption import EncryptionError, ValueCipher

logger = logging.getLogger(__name__)

ChangeListener = Callable[[str], None]


@runtime_checkable
class KeyValueStore(Protocol):
    """Abstract string key-value store used by all wellness stores."""

    async def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or None."""
        ...

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    async def set_many(self, items: Mapping[str, str]) -> None:
        """Store several keys at once; either all writes land or none do."""
        ...

    async def keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with ``prefix``."""
        ...

    def subscribe(self, listener: ChangeListener) -> None:
        """Register a callback invoked with each written key."""
        ...


class SQLiteKeyValueStore:
    """``KeyValueStore`` backed by the ``kv_store`` table.

    Usage::

        db = WellnessDatabase(":memory:")
        db.initialize()
        store = SQLiteKeyValueStore(db)
        await store.set("fitsync_xp_alice", "120")
    """

    def __init__(self, database: WellnessDatabase, cipher: ValueCipher | None = None) -> None:
        self._db = database
        self._cipher = cipher
        self._listeners: list[ChangeListener] = []

    @property
    def encrypted(self) -> bool:
        return self._cipher is not None

    async def get(self, key: str) -> str | None:
        """Return the stored value.

        Raises:
            EncryptionError: If an encrypted value cannot be decrypted.
        """
        row = self._db.connection.execute(
            "SELECT value FROM kv_store WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        value = row[0]
        if self._cipher is not None:
            return self._cipher.decrypt(value)
        return value

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, items: Mapping[str, str]) -> None:
        if not items:
            return
        conn = self._db.connection
        rows = [(key, self._seal(value)) for key, value in items.items()]
        # sqlite3's connection context manager commits on success and rolls
        # back on error, so the batch is a single transaction.
        with conn:
            conn.executemany(
                """INSERT INTO kv_store (key, value, updated_at)
                   VALUES (?, ?, datetime('now'))
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value,
                       updated_at = excluded.updated_at""",
                rows,
            )
        for key in items:
            self._notify(key)

    async def keys(self, prefix: str = "") -> list[str]:
        rows = self._db.connection.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        ).fetchall()
        return [row[0] for row in rows]

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _seal(self, value: str) -> str:
        if self._cipher is not None:
            return self._cipher.encrypt(value)
        return value

    def _notify(self, key: str) -> None:
        for listener in self._listeners:
            try:
                listener(key)
            except Exception:
                logger.exception("Change listener failed for key %s", key)


async def load_json(store: KeyValueStore, key: str, default: Any) -> Any:
    """Read and parse a JSON value, falling back to ``default``.

    A missing key returns ``default`` silently. A value that cannot be
    decrypted or parsed is logged and also treated as ``default``; stored
    garbage never reaches the caller as an exception.
    """
    try:
        raw = await store.get(key)
    except EncryptionError as exc:
        logger.warning("Unreadable value under %s (%s); treating as empty", key, exc)
        return default
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Malformed JSON under %s; treating as empty", key)
        return default


def dump_json(data: Any) -> str:
    """Serialize a value the way every store writes it."""
    return json.dumps(data, separators=(",", ":"))
