"""Per-user notification profiles learned from feedback."""

from .keywords import extract_keywords, split_keywords
from .models import ProfileUpdateSummary, UserNotificationProfile
from .repository import ProfileRepository

__all__ = [
    "ProfileRepository",
    "ProfileUpdateSummary",
    "UserNotificationProfile",
    "extract_keywords",
    "split_keywords",
]
