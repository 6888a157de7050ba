"""Cache entry, policy and lookup types."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """A cached expensive result. Never mutated, only replaced."""

    model_config = ConfigDict(frozen=True)

    key: str
    serialized_result: str
    feature_type: str
    context_id: str
    item_count_at_cache: int
    created_at: datetime
    expires_at: datetime
    schema_version: int = 1

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "CacheEntry":
        """Create from a stored document."""
        return cls.model_validate(doc)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass(frozen=True)
class CachePolicy:
    """Expiry and staleness thresholds for one feature type."""

    feature_type: str
    ttl: timedelta
    stale_item_threshold: int
    stale_time_threshold: timedelta


@dataclass
class StalenessCheck:
    """Outcome of comparing an entry against current data."""

    is_stale: bool
    items_since_cache: int
    age: timedelta


@dataclass
class CacheLookup:
    """Result of a cache read.

    ``status`` is one of "hit", "miss", "expired", "stale", "corrupt".
    Only "hit" carries a value.
    """

    status: str
    value: Optional[Any] = None
    items_since_cache: int = 0
    age: Optional[timedelta] = None

    @property
    def usable(self) -> bool:
        return self.status == "hit"

    @property
    def cached(self) -> bool:
        return self.usable
