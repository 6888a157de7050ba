"""Storage backends behind a minimal key-value interface."""

from .database import DatabaseManager
from .kv import Document, InMemoryKeyValueStore, KeyValueStore
from .sqlite_store import SQLiteKeyValueStore

__all__ = [
    "DatabaseManager",
    "Document",
    "InMemoryKeyValueStore",
    "KeyValueStore",
    "SQLiteKeyValueStore",
]
