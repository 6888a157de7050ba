"""Result cache with expiry and staleness checks."""

from .models import CacheEntry, CacheLookup, CachePolicy, StalenessCheck
from .store import (
    FEATURE_POLICIES,
    CacheStore,
    check_staleness,
    fingerprint,
    generate_cache_key,
    get_policy,
)

__all__ = [
    "CacheEntry",
    "CacheLookup",
    "CachePolicy",
    "CacheStore",
    "FEATURE_POLICIES",
    "StalenessCheck",
    "check_staleness",
    "fingerprint",
    "generate_cache_key",
    "get_policy",
]
