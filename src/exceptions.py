"""Error taxonomy for the notification engine.

Each exception carries a ``code`` that request handlers expose to callers,
so the kind of failure survives the trip across the API boundary.
"""

from typing import Optional


class NotificationEngineError(Exception):
    """Base exception for all engine failures."""

    code = "internal"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ValidationError(NotificationEngineError):
    """Malformed or missing input. Raised before any side effect."""

    code = "invalid-argument"


class FeedbackValidationError(ValidationError):
    """A feedback submission failed field validation."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class AuthorizationError(NotificationEngineError):
    """Caller is not a participant or not the owner of the resource."""

    code = "permission-denied"


class NotFoundError(NotificationEngineError):
    """Referenced conversation or resource does not exist."""

    code = "not-found"


class QuotaExceededError(NotificationEngineError):
    """Daily quota for a user/feature pair is used up."""

    code = "resource-exhausted"

    def __init__(self, user_id: str, feature_type: str, limit: int) -> None:
        self.user_id = user_id
        self.feature_type = feature_type
        self.limit = limit
        super().__init__(
            f"Daily limit exceeded for {feature_type} "
            f"({limit} requests per day). The limit resets at 00:00 UTC."
        )


class UpstreamError(NotificationEngineError):
    """External inference service failure."""

    code = "unavailable"

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UpstreamTransientError(UpstreamError):
    """Timeout, rate limit or connection failure. Safe to degrade."""


class UpstreamFatalError(UpstreamError):
    """Auth or configuration failure. Needs an operator, must not degrade."""

    code = "failed-precondition"


class DataCorruptionError(NotificationEngineError):
    """A stored or upstream payload could not be parsed."""

    code = "data-loss"
