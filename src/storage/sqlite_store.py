"""SQLite-backed implementation of the key-value store."""

import json
from typing import List, Optional, Tuple

import structlog

from .database import DatabaseManager
from .kv import Document

logger = structlog.get_logger()


class SQLiteKeyValueStore:
    """Documents as JSON text rows; counters as integer rows."""

    def __init__(self, db_manager: DatabaseManager) -> None:
        self.db = db_manager

    async def get(self, namespace: str, key: str) -> Optional[Document]:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT value FROM kv_documents WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
            row = await cursor.fetchone()
            return json.loads(row["value"]) if row else None

    async def put(self, namespace: str, key: str, value: Document) -> None:
        async with self.db.get_connection() as conn:
            await conn.execute(
                """
                INSERT INTO kv_documents (namespace, key, value)
                VALUES (?, ?, ?)
                ON CONFLICT(namespace, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (namespace, key, json.dumps(value)),
            )
            await conn.commit()

    async def merge(self, namespace: str, key: str, value: Document) -> Document:
        async with self.db.get_connection() as conn:
            # IMMEDIATE takes the write lock up front so the read below
            # cannot interleave with another writer.
            await conn.execute("BEGIN IMMEDIATE")
            try:
                cursor = await conn.execute(
                    "SELECT value FROM kv_documents WHERE namespace = ? AND key = ?",
                    (namespace, key),
                )
                row = await cursor.fetchone()
                merged = json.loads(row["value"]) if row else {}
                merged.update(value)
                await conn.execute(
                    """
                    INSERT INTO kv_documents (namespace, key, value)
                    VALUES (?, ?, ?)
                    ON CONFLICT(namespace, key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (namespace, key, json.dumps(merged)),
                )
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
            return merged

    async def delete(self, namespace: str, key: str) -> None:
        async with self.db.get_connection() as conn:
            await conn.execute(
                "DELETE FROM kv_documents WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
            await conn.commit()

    async def scan(self, namespace: str, prefix: str = "") -> List[Tuple[str, Document]]:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                """
                SELECT key, value FROM kv_documents
                WHERE namespace = ? AND substr(key, 1, ?) = ?
                ORDER BY key
                """,
                (namespace, len(prefix), prefix),
            )
            rows = await cursor.fetchall()
            return [(row["key"], json.loads(row["value"])) for row in rows]

    async def atomic_increment(
        self, namespace: str, key: str, limit: Optional[int] = None
    ) -> Optional[int]:
        if limit is not None and limit <= 0:
            return None

        async with self.db.get_connection() as conn:
            if limit is None:
                cursor = await conn.execute(
                    """
                    INSERT INTO kv_counters (namespace, key, count) VALUES (?, ?, 1)
                    ON CONFLICT(namespace, key) DO UPDATE SET
                        count = kv_counters.count + 1,
                        updated_at = CURRENT_TIMESTAMP
                    RETURNING count
                    """,
                    (namespace, key),
                )
            else:
                # The WHERE on the conflict branch makes check-and-increment a
                # single statement: at the limit, no row is updated or returned.
                cursor = await conn.execute(
                    """
                    INSERT INTO kv_counters (namespace, key, count) VALUES (?, ?, 1)
                    ON CONFLICT(namespace, key) DO UPDATE SET
                        count = kv_counters.count + 1,
                        updated_at = CURRENT_TIMESTAMP
                    WHERE kv_counters.count < ?
                    RETURNING count
                    """,
                    (namespace, key, limit),
                )
            row = await cursor.fetchone()
            await conn.commit()
            return row["count"] if row else None

    async def get_counter(self, namespace: str, key: str) -> int:
        async with self.db.get_connection() as conn:
            cursor = await conn.execute(
                "SELECT count FROM kv_counters WHERE namespace = ? AND key = ?",
                (namespace, key),
            )
            row = await cursor.fetchone()
            return row["count"] if row else 0
