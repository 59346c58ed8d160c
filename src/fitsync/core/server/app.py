"""FitSync wellness MCP server application factory.

This module provides:
- create_app() for testability (integration tests create fresh server instances)
- Module-level `mcp` variable for FastMCP discovery (`fastmcp run .../app.py:mcp`)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastmcp import FastMCP

from fitsync import __version__
from fitsync.core.config.settings import get_settings
from fitsync.core.storage.database import WellnessDatabase
from fitsync.core.storage.encryption import EncryptionError, ValueCipher
from fitsync.core.storage.goals_store import GoalsStore
from fitsync.core.storage.kv_store import KeyValueStore, SQLiteKeyValueStore
from fitsync.core.storage.record_store import RecordStore
from fitsync.core.storage.report_store import ReportStore
from fitsync.domains.wellness.domain_logic.adaptive_goals import AdaptiveGoalsEngine
from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator
from fitsync.domains.wellness.domain_logic.correlation import CorrelationCalculator
from fitsync.domains.wellness.domain_logic.fusion_engine import InsightFusionEngine
from fitsync.domains.wellness.domain_logic.goal_models import BaseGoals
from fitsync.domains.wellness.domain_logic.report_generator import ReportGenerator
from fitsync.domains.wellness.domain_logic.scheduler import DailyGoalScheduler
from fitsync.domains.wellness.tools.goal_tools import register_goal_tools
from fitsync.domains.wellness.tools.insight_tools import register_insight_tools
from fitsync.domains.wellness.tools.logging_tools import register_logging_tools
from fitsync.domains.wellness.tools.report_tools import register_report_tools
from fitsync.domains.wellness.tools.stats_tools import register_stats_tools

logger = logging.getLogger(__name__)


def _open_store(db_path: str, encryption_key: str) -> SQLiteKeyValueStore:
    cipher: ValueCipher | None = None
    if encryption_key:
        try:
            cipher = ValueCipher(encryption_key)
        except EncryptionError as exc:
            logger.error("Invalid ENCRYPTION_KEY: %s", exc)
            logger.warning("Continuing without encryption, values are stored as plain JSON")
    else:
        logger.info(
            "No ENCRYPTION_KEY configured, values are stored as plain JSON. "
            "Set ENCRYPTION_KEY to encrypt the wellness store at rest."
        )

    db = WellnessDatabase(db_path)
    db.initialize()
    logger.info(
        "Wellness store initialized: %s (schema v%d, encrypted=%s)",
        db_path,
        db.get_schema_version(),
        cipher is not None,
    )
    return SQLiteKeyValueStore(db, cipher)


def create_app(
    *,
    store_override: KeyValueStore | None = None,
    scheduler_enabled: bool | None = None,
) -> FastMCP:
    """Create and configure the FitSync wellness MCP server.

    This is the main application factory. It:
    1. Opens the key-value store (optionally encrypted)
    2. Builds the record, goal and report stores on top of it
    3. Wires the aggregator, insight, goal and report engines
    4. Registers all tools
    5. Attaches the daily goal scheduler to the server lifespan
    """
    settings = get_settings()
    if scheduler_enabled is None:
        scheduler_enabled = settings.goal_scheduler_enabled

    # --- Storage ---
    if store_override is not None:
        kv = store_override
    else:
        kv = _open_store(settings.db_path, settings.encryption_key)

    record_store = RecordStore(kv)
    goals_store = GoalsStore(kv)
    report_store = ReportStore(kv)

    # --- Engines ---
    aggregator = TimeWindowAggregator(record_store, goals_store)
    fusion = InsightFusionEngine(record_store, CorrelationCalculator())
    goals_engine = AdaptiveGoalsEngine(
        aggregator,
        goals_store,
        BaseGoals(
            steps=settings.default_steps_goal,
            calories_burned=settings.default_calories_burned_goal,
            sleep_hours=settings.default_sleep_hours_goal,
        ),
    )
    reports = ReportGenerator(aggregator, report_store)
    scheduler = DailyGoalScheduler(
        goals_engine, record_store, interval_seconds=settings.goal_scheduler_interval_seconds
    )

    @asynccontextmanager
    async def lifespan(_server: FastMCP):
        if scheduler_enabled:
            scheduler.start()
            logger.info(
                "Daily goal scheduler started (every %ds)",
                settings.goal_scheduler_interval_seconds,
            )
        try:
            yield
        finally:
            await scheduler.stop()

    # --- Server instance ---
    server = FastMCP(
        "FitSync Wellness",
        instructions=(
            "FitSync wellness server. Logs activities, meals and sleep, and "
            "provides daily/weekly/monthly statistics, meal-sleep insights, "
            "adaptive daily goals and weekly reports through MCP tools."
        ),
        lifespan=lifespan,
    )

    # --- Register tools ---
    @server.tool
    def health_check() -> dict:
        """Check server health and return basic status information."""
        return {
            "status": "ok",
            "server": "FitSync Wellness",
            "version": __version__,
            "encrypted": getattr(kv, "encrypted", False),
            "scheduler_running": scheduler.is_running,
            "last_goal_pass": scheduler.last_run.isoformat() if scheduler.last_run else None,
        }

    register_logging_tools(server, record_store)
    register_stats_tools(server, aggregator, record_store)
    register_insight_tools(server, fusion)
    register_goal_tools(server, goals_engine)
    register_report_tools(server, reports)
    logger.info("Wellness tools registered")

    return server


# Module-level instance for FastMCP discovery (`fastmcp run src/fitsync/core/server/app.py:mcp`).
# Lazy: only created when this module is loaded directly (not when tests import create_app).
def __getattr__(name: str):
    if name == "mcp":
        global mcp  # noqa: PLW0603
        mcp = create_app()
        return mcp
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
