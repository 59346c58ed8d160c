"""Shared test fixtures for FitSync wellness tests."""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from fitsync.core.storage.models import (  # noqa: E402
    NutritionInfo,
    RecordMetadata,
    RecordMetrics,
    RecordType,
    WellnessRecord,
)

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("GOAL_SCHEDULER_ENABLED", "false")


# ---------------------------------------------------------------------------
# Record builders
# ---------------------------------------------------------------------------

def make_activity(
    when: str | datetime,
    steps: float = 0,
    duration: float = 0,
    calories: float = 0,
    intensity: float | None = 5,
    xp: int = 0,
    category: str = "walking",
) -> WellnessRecord:
    return WellnessRecord(
        id="",
        user_id="",
        timestamp=datetime.fromisoformat(when) if isinstance(when, str) else when,
        type=RecordType.ACTIVITY,
        category=category,
        metrics=RecordMetrics(
            duration=duration,
            calories=calories,
            quantity=steps,
            intensity=intensity,
            xp_earned=xp,
        ),
    )


def make_meal(
    when: str | datetime,
    calories: float = 600,
    category: str = "dinner",
    nutrition: NutritionInfo | None = None,
    xp: int = 0,
    confidence: float = 1.0,
) -> WellnessRecord:
    return WellnessRecord(
        id="",
        user_id="",
        timestamp=datetime.fromisoformat(when) if isinstance(when, str) else when,
        type=RecordType.MEAL,
        category=category,
        metrics=RecordMetrics(calories=calories, quantity=1, xp_earned=xp, nutrition=nutrition),
        metadata=RecordMetadata(confidence=confidence),
    )


def make_sleep(
    when: str | datetime,
    hours: float = 8,
    quality: float | None = 0.8,
    xp: int = 0,
) -> WellnessRecord:
    return WellnessRecord(
        id="",
        user_id="",
        timestamp=datetime.fromisoformat(when) if isinstance(when, str) else when,
        type=RecordType.SLEEP,
        category="sleep",
        metrics=RecordMetrics(duration=hours * 60, quality=quality, xp_earned=xp),
    )


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def wellness_db():
    """Create an in-memory WellnessDatabase for testing."""
    from fitsync.core.storage.database import WellnessDatabase

    db = WellnessDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def value_cipher():
    """Create a ValueCipher with a fresh test key."""
    from fitsync.core.storage.encryption import ValueCipher

    return ValueCipher(ValueCipher.generate_key())


@pytest.fixture
def kv_store(wellness_db):
    """Plain (unencrypted) key-value store backed by in-memory SQLite."""
    from fitsync.core.storage.kv_store import SQLiteKeyValueStore

    return SQLiteKeyValueStore(wellness_db)


@pytest.fixture
def encrypted_kv_store(wellness_db, value_cipher):
    from fitsync.core.storage.kv_store import SQLiteKeyValueStore

    return SQLiteKeyValueStore(wellness_db, value_cipher)


@pytest.fixture
def record_store(kv_store):
    from fitsync.core.storage.record_store import RecordStore

    return RecordStore(kv_store)


@pytest.fixture
def goals_store(kv_store):
    from fitsync.core.storage.goals_store import GoalsStore

    return GoalsStore(kv_store)


@pytest.fixture
def report_store(kv_store):
    from fitsync.core.storage.report_store import ReportStore

    return ReportStore(kv_store)


@pytest.fixture
def aggregator(record_store, goals_store):
    from fitsync.domains.wellness.domain_logic.aggregator import TimeWindowAggregator

    return TimeWindowAggregator(record_store, goals_store)


@pytest.fixture
def goals_engine(aggregator, goals_store):
    from fitsync.domains.wellness.domain_logic.adaptive_goals import AdaptiveGoalsEngine
    from fitsync.domains.wellness.domain_logic.goal_models import BaseGoals

    return AdaptiveGoalsEngine(aggregator, goals_store, BaseGoals())
