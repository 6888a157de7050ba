"""SQLite connection management via aiosqlite."""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite
import structlog

logger = structlog.get_logger()

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS kv_documents (
        namespace TEXT NOT NULL,
        key TEXT NOT NULL,
        value TEXT NOT NULL,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (namespace, key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS kv_counters (
        namespace TEXT NOT NULL,
        key TEXT NOT NULL,
        count INTEGER NOT NULL DEFAULT 0,
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (namespace, key)
    )
    """,
]


class DatabaseManager:
    """Opens connections to a single SQLite database file."""

    def __init__(self, database_url: str) -> None:
        prefix = "sqlite:///"
        path = database_url[len(prefix):] if database_url.startswith(prefix) else database_url
        self.db_path = Path(path)
        self._initialized = False

    async def initialize(self) -> None:
        """Create the database file and schema. Safe to call repeatedly."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            for statement in SCHEMA_STATEMENTS:
                await conn.execute(statement)
            await conn.commit()
        self._initialized = True
        logger.info("Database initialized", path=str(self.db_path))

    @asynccontextmanager
    async def get_connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection with row access by column name."""
        if not self._initialized:
            raise RuntimeError("DatabaseManager.initialize() must be called first")
        async with aiosqlite.connect(self.db_path) as conn:
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA busy_timeout=5000")
            yield conn

    async def close(self) -> None:
        """Connections are per-call; nothing is held open between calls."""
        self._initialized = False
