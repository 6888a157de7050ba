"""Staleness-aware result cache over the key-value store."""

import hashlib
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..storage.kv import KeyValueStore
from .models import CacheEntry, CacheLookup, CachePolicy, StalenessCheck

logger = structlog.get_logger()

CACHE_NAMESPACE = "ai_cache"

# Per-feature policies: short-lived interactive results, conversational aids,
# document-derived results.
FEATURE_POLICIES: Dict[str, CachePolicy] = {
    "notification": CachePolicy(
        "notification", timedelta(hours=1), 1, timedelta(hours=1)
    ),
    "summary": CachePolicy("summary", timedelta(hours=24), 10, timedelta(hours=24)),
    "action_items": CachePolicy(
        "action_items", timedelta(hours=24), 10, timedelta(hours=24)
    ),
    "smart_replies": CachePolicy(
        "smart_replies", timedelta(minutes=5), 1, timedelta(minutes=5)
    ),
    "search": CachePolicy("search", timedelta(minutes=5), 10, timedelta(minutes=5)),
    "user_context": CachePolicy(
        "user_context", timedelta(minutes=10), 10, timedelta(minutes=10)
    ),
    "pdf_summary": CachePolicy(
        "pdf_summary", timedelta(days=30), 1_000_000, timedelta(days=30)
    ),
}

DEFAULT_POLICY = FEATURE_POLICIES["summary"]


def get_policy(feature_type: str) -> CachePolicy:
    """Policy for a feature, falling back to the 24h/10-item default."""
    return FEATURE_POLICIES.get(feature_type, DEFAULT_POLICY)


def generate_cache_key(feature_type: str, context_id: str, identifier: str) -> str:
    """Readable cache key: ``{feature}_{context}_{identifier}``."""
    return f"{feature_type}_{context_id}_{identifier}"


def fingerprint(*parts: Any) -> str:
    """Short stable hash of the given parts."""
    joined = "|".join("" if p is None else str(p) for p in parts)
    return hashlib.sha256(joined.encode()).hexdigest()[:16]


def check_staleness(
    entry: CacheEntry,
    current_item_count: int,
    policy: CachePolicy,
    now: datetime,
) -> StalenessCheck:
    """An entry is stale once enough new items or enough time have accrued."""
    items_since_cache = current_item_count - entry.item_count_at_cache
    age = now - entry.created_at
    is_stale = (
        items_since_cache >= policy.stale_item_threshold
        or age >= policy.stale_time_threshold
    )
    return StalenessCheck(is_stale=is_stale, items_since_cache=items_since_cache, age=age)


class CacheStore:
    """Keyed get/put with TTL expiry and a separate staleness check."""

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get(
        self,
        key: str,
        current_item_count: int,
        policy: Optional[CachePolicy] = None,
    ) -> CacheLookup:
        """Look up a usable entry.

        Expired, stale and corrupt entries all come back unusable; the
        caller recomputes and calls :meth:`put`.
        """
        doc = await self._store.get(CACHE_NAMESPACE, key)
        if doc is None:
            logger.debug("Cache miss", key=key)
            return CacheLookup(status="miss")

        try:
            entry = CacheEntry.from_document(doc)
        except PydanticValidationError as exc:
            logger.warning("Corrupt cache entry", key=key, error=str(exc))
            await self._store.delete(CACHE_NAMESPACE, key)
            return CacheLookup(status="corrupt")

        now = self._clock()
        if now >= entry.expires_at:
            logger.debug("Cache expired", key=key)
            await self._store.delete(CACHE_NAMESPACE, key)
            return CacheLookup(status="expired")

        policy = policy or get_policy(entry.feature_type)
        staleness = check_staleness(entry, current_item_count, policy, now)
        if staleness.is_stale:
            logger.debug(
                "Cache stale",
                key=key,
                items_since_cache=staleness.items_since_cache,
                age_seconds=int(staleness.age.total_seconds()),
            )
            return CacheLookup(
                status="stale",
                items_since_cache=staleness.items_since_cache,
                age=staleness.age,
            )

        try:
            value = json.loads(entry.serialized_result)
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt cached payload", key=key, error=str(exc))
            await self._store.delete(CACHE_NAMESPACE, key)
            return CacheLookup(status="corrupt")

        logger.debug("Cache hit", key=key)
        return CacheLookup(
            status="hit",
            value=value,
            items_since_cache=staleness.items_since_cache,
            age=staleness.age,
        )

    async def put(
        self,
        key: str,
        result: Any,
        feature_type: str,
        context_id: str,
        item_count: int,
        ttl: Optional[timedelta] = None,
    ) -> CacheEntry:
        """Store a JSON-serializable result, replacing any previous entry."""
        now = self._clock()
        entry = CacheEntry(
            key=key,
            serialized_result=json.dumps(result),
            feature_type=feature_type,
            context_id=context_id,
            item_count_at_cache=item_count,
            created_at=now,
            expires_at=now + (ttl or get_policy(feature_type).ttl),
        )
        await self._store.put(CACHE_NAMESPACE, key, entry.to_document())
        logger.debug(
            "Stored in cache",
            key=key,
            feature_type=feature_type,
            expires_at=entry.expires_at.isoformat(),
        )
        return entry

    async def invalidate(self, key: str) -> None:
        await self._store.delete(CACHE_NAMESPACE, key)
