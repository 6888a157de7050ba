"""Key-value store interface and the in-memory implementation.

Documents are JSON-compatible dicts grouped by namespace. Counters live in a
separate keyspace so that quota increments never race with document writes.
"""

import asyncio
import copy
from typing import Any, Dict, List, Optional, Protocol, Tuple

Document = Dict[str, Any]


class KeyValueStore(Protocol):
    """Minimal storage surface used by the cache, limiter and repositories."""

    async def get(self, namespace: str, key: str) -> Optional[Document]:
        """Return the document or None."""
        ...

    async def put(self, namespace: str, key: str, value: Document) -> None:
        """Write a document, replacing any existing one."""
        ...

    async def merge(self, namespace: str, key: str, value: Document) -> Document:
        """Shallow-merge fields into a document, creating it if absent."""
        ...

    async def delete(self, namespace: str, key: str) -> None:
        """Remove a document. Missing keys are ignored."""
        ...

    async def scan(self, namespace: str, prefix: str = "") -> List[Tuple[str, Document]]:
        """List (key, document) pairs whose key starts with prefix."""
        ...

    async def atomic_increment(
        self, namespace: str, key: str, limit: Optional[int] = None
    ) -> Optional[int]:
        """Increment a counter by one unless it already reached ``limit``.

        Returns the new value, or None when the increment was refused.
        The check and the increment happen as one atomic step.
        """
        ...

    async def get_counter(self, namespace: str, key: str) -> int:
        """Current counter value (0 when absent)."""
        ...


class InMemoryKeyValueStore:
    """Process-local store. Every operation runs under one asyncio lock."""

    def __init__(self) -> None:
        self._documents: Dict[str, Dict[str, Document]] = {}
        self._counters: Dict[str, Dict[str, int]] = {}
        self._lock = asyncio.Lock()

    async def get(self, namespace: str, key: str) -> Optional[Document]:
        async with self._lock:
            doc = self._documents.get(namespace, {}).get(key)
            return copy.deepcopy(doc) if doc is not None else None

    async def put(self, namespace: str, key: str, value: Document) -> None:
        async with self._lock:
            self._documents.setdefault(namespace, {})[key] = copy.deepcopy(value)

    async def merge(self, namespace: str, key: str, value: Document) -> Document:
        async with self._lock:
            bucket = self._documents.setdefault(namespace, {})
            merged = dict(bucket.get(key, {}))
            merged.update(copy.deepcopy(value))
            bucket[key] = merged
            return copy.deepcopy(merged)

    async def delete(self, namespace: str, key: str) -> None:
        async with self._lock:
            self._documents.get(namespace, {}).pop(key, None)

    async def scan(self, namespace: str, prefix: str = "") -> List[Tuple[str, Document]]:
        async with self._lock:
            return [
                (key, copy.deepcopy(doc))
                for key, doc in sorted(self._documents.get(namespace, {}).items())
                if key.startswith(prefix)
            ]

    async def atomic_increment(
        self, namespace: str, key: str, limit: Optional[int] = None
    ) -> Optional[int]:
        async with self._lock:
            bucket = self._counters.setdefault(namespace, {})
            current = bucket.get(key, 0)
            if limit is not None and current >= limit:
                return None
            bucket[key] = current + 1
            return current + 1

    async def get_counter(self, namespace: str, key: str) -> int:
        async with self._lock:
            return self._counters.get(namespace, {}).get(key, 0)
