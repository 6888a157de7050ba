"""Per-user, per-feature daily quota."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

import structlog

from ..exceptions import QuotaExceededError
from ..storage.kv import KeyValueStore

logger = structlog.get_logger()

RATE_LIMIT_NAMESPACE = "rate_limits"
DEFAULT_DAILY_LIMIT = 100


@dataclass
class RateLimitResult:
    """Outcome of one quota check."""

    allowed: bool
    count: int
    limit: int
    window_date: str

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.count)


class RateLimiter:
    """Daily counters keyed by (user, feature, UTC date).

    A new UTC day simply addresses a new counter, so no reset job is
    needed. Refused attempts do not count against the quota.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def window_date(self) -> str:
        """Current window as YYYY-MM-DD in UTC."""
        return self._clock().astimezone(timezone.utc).date().isoformat()

    @staticmethod
    def counter_key(user_id: str, feature_type: str, window_date: str) -> str:
        return f"{user_id}_{feature_type}_{window_date}"

    async def check_and_increment(
        self,
        user_id: str,
        feature_type: str,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
    ) -> RateLimitResult:
        """Atomically consume one unit of quota if any is left."""
        window = self.window_date()
        key = self.counter_key(user_id, feature_type, window)
        new_count = await self._store.atomic_increment(
            RATE_LIMIT_NAMESPACE, key, limit=daily_limit
        )

        if new_count is None:
            logger.warning(
                "Rate limit exceeded",
                user_id=user_id,
                feature_type=feature_type,
                limit=daily_limit,
            )
            return RateLimitResult(
                allowed=False, count=daily_limit, limit=daily_limit, window_date=window
            )

        logger.debug(
            "Rate limit consumed",
            user_id=user_id,
            feature_type=feature_type,
            count=new_count,
            limit=daily_limit,
        )
        return RateLimitResult(
            allowed=True, count=new_count, limit=daily_limit, window_date=window
        )

    async def enforce(
        self,
        user_id: str,
        feature_type: str,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
    ) -> RateLimitResult:
        """Like :meth:`check_and_increment` but raises when exceeded."""
        result = await self.check_and_increment(user_id, feature_type, daily_limit)
        if not result.allowed:
            raise QuotaExceededError(user_id, feature_type, daily_limit)
        return result

    async def remaining(
        self,
        user_id: str,
        feature_type: str,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
    ) -> int:
        """Requests left today, without consuming any."""
        key = self.counter_key(user_id, feature_type, self.window_date())
        used = await self._store.get_counter(RATE_LIMIT_NAMESPACE, key)
        return max(0, daily_limit - used)
