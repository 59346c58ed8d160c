"""Once-per-day background recalculation of adaptive goals."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime

from fitsync.core.storage.record_store import RecordStore
from fitsync.domains.wellness.domain_logic.adaptive_goals import AdaptiveGoalsEngine
from fitsync.domains.wellness.domain_logic.goal_models import DailyGoals

logger = logging.getLogger(__name__)


class DailyGoalScheduler:
    """Periodically checks whether today's goals still need computing.

    Each check is cheap; a full pass over every known user runs at most
    once per calendar day and never overlaps a pass already in progress.

    Usage::

        scheduler = DailyGoalScheduler(engine, record_store, interval_seconds=60)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        engine: AdaptiveGoalsEngine,
        record_store: RecordStore,
        interval_seconds: float = 60,
    ) -> None:
        self._engine = engine
        self._store = record_store
        self._interval = interval_seconds
        self._last_run: date | None = None
        self._running_pass = False
        self._task: asyncio.Task | None = None

    @property
    def last_run(self) -> date | None:
        return self._last_run

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def check_and_recalculate(self, now: datetime | None = None) -> int:
        """Run a recalculation pass if none has run today.

        Returns:
            Number of users whose goals were recalculated (0 when skipped).
        """
        now = now or datetime.now()
        today = now.date()
        if self._running_pass or self._last_run == today:
            return 0

        self._running_pass = True
        try:
            user_ids = await self._store.list_user_ids()
            done = 0
            for user_id in user_ids:
                try:
                    await self._engine.calculate_adaptive_goals(user_id, now)
                    done += 1
                except Exception:
                    logger.exception("Goal recalculation failed for %s", user_id)
            self._last_run = today
            logger.info("Daily goal pass for %s: %d/%d users", today, done, len(user_ids))
            return done
        finally:
            self._running_pass = False

    async def recalculate_user(self, user_id: str, now: datetime | None = None) -> DailyGoals:
        """Recalculate one user's goals immediately."""
        return await self._engine.calculate_adaptive_goals(user_id, now or datetime.now())

    def start(self) -> None:
        """Start the periodic check loop on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.ensure_future(self._loop())
        logger.info("Goal scheduler started (every %ss)", self._interval)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Goal scheduler stopped")

    async def _loop(self) -> None:
        while True:
            try:
                await self.check_and_recalculate()
            except Exception:
                logger.exception("Goal scheduler check failed")
            await asyncio.sleep(self._interval)
