"""Tests for WellnessDatabase: schema creation, versioning, lifecycle."""

from __future__ import annotations

import pytest

from fitsync.core.storage.database import SCHEMA_VERSION, DatabaseError, WellnessDatabase


class TestInitialization:
    def test_in_memory_initialize(self):
        db = WellnessDatabase(":memory:")
        db.initialize()
        assert db.connection is not None
        db.close()

    def test_double_initialize_is_idempotent(self):
        db = WellnessDatabase(":memory:")
        db.initialize()
        conn1 = db.connection
        db.initialize()
        assert db.connection is conn1
        db.close()

    def test_connection_before_init_raises(self):
        db = WellnessDatabase(":memory:")
        with pytest.raises(DatabaseError, match="not initialized"):
            _ = db.connection

    def test_context_manager(self):
        with WellnessDatabase(":memory:") as db:
            assert db.connection is not None
        with pytest.raises(DatabaseError):
            _ = db.connection

    def test_file_database_creates_parent_dirs(self, tmp_path):
        path = tmp_path / "nested" / "wellness.db"
        with WellnessDatabase(str(path)) as db:
            assert db.get_schema_version() == SCHEMA_VERSION
        assert path.exists()


class TestSchema:
    def test_schema_version_recorded(self):
        with WellnessDatabase(":memory:") as db:
            assert db.get_schema_version() == SCHEMA_VERSION

    def test_tables_created(self):
        with WellnessDatabase(":memory:") as db:
            cursor = db.connection.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%'"
            )
            tables = {row[0] for row in cursor.fetchall()}
        assert {"kv_store", "schema_version"} <= tables

    def test_reopening_file_does_not_duplicate_version(self, tmp_path):
        path = str(tmp_path / "wellness.db")
        with WellnessDatabase(path):
            pass
        with WellnessDatabase(path) as db:
            count = db.connection.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
        assert count == 1
