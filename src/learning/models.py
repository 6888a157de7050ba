"""Learned per-user notification profile."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

NotificationRate = Literal["high", "medium", "low"]


class UserNotificationProfile(BaseModel):
    """Materialized view of a user's feedback history.

    Rebuildable from feedback at any time; written only by the profile
    learner and read as context by the classifier and the escalation prompt.
    """

    preferred_notification_rate: NotificationRate = "medium"
    learned_keywords: List[str] = Field(default_factory=list, max_length=15)
    suppressed_topics: List[str] = Field(default_factory=list, max_length=15)
    accuracy: float = 0.0
    notify_accuracy: float = 0.0
    false_positive_rate: float = 0.0
    false_negative_rate: float = 0.0
    total_feedback: int = 0
    helpful_count: int = 0
    not_helpful_count: int = 0
    helpful_notified: int = 0
    helpful_suppressed: int = 0
    not_helpful_notified: int = 0
    not_helpful_suppressed: int = 0
    last_updated: Optional[datetime] = None

    @property
    def version(self) -> str:
        """Changes whenever the profile is recomputed."""
        return self.last_updated.isoformat() if self.last_updated else "none"

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "UserNotificationProfile":
        return cls.model_validate(doc)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


@dataclass
class ProfileUpdateSummary:
    """Outcome of one learner run."""

    users_updated: int = 0
    total_users: int = 0
    failed_users: List[str] = field(default_factory=list)
    skipped_users: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_users
