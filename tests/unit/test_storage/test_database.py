"""Tests for DatabaseManager."""

import pytest

from src.storage.database import DatabaseManager


class TestDatabaseManager:
    async def test_initialize_creates_file_and_tables(self, tmp_path):
        db_path = tmp_path / "nested" / "engine.db"
        manager = DatabaseManager(f"sqlite:///{db_path}")

        await manager.initialize()

        assert db_path.exists()
        async with manager.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
            )
            tables = [row["name"] for row in await cursor.fetchall()]
        assert "kv_counters" in tables
        assert "kv_documents" in tables

    async def test_initialize_is_idempotent(self, tmp_path):
        manager = DatabaseManager(f"sqlite:///{tmp_path / 'engine.db'}")
        await manager.initialize()
        await manager.initialize()

    async def test_connection_requires_initialize(self, tmp_path):
        manager = DatabaseManager(f"sqlite:///{tmp_path / 'engine.db'}")
        with pytest.raises(RuntimeError):
            async with manager.get_connection():
                pass

    def test_plain_path_accepted(self, tmp_path):
        manager = DatabaseManager(str(tmp_path / "plain.db"))
        assert manager.db_path == tmp_path / "plain.db"
