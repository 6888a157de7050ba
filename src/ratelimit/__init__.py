"""Daily per-user quotas."""

from .limiter import DEFAULT_DAILY_LIMIT, RateLimiter, RateLimitResult

__all__ = ["DEFAULT_DAILY_LIMIT", "RateLimiter", "RateLimitResult"]
