"""Feedback and analytics models."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field

from ..notifications.models import NotificationDecision

FeedbackValue = Literal["helpful", "not_helpful"]
FEEDBACK_VALUES = ("helpful", "not_helpful")

KEY_SEPARATOR = "_"


def feedback_key(user_id: str, conversation_id: str, message_id: str) -> str:
    """Deterministic identity: repeat submissions address the same record."""
    return KEY_SEPARATOR.join((user_id, conversation_id, message_id))


class FeedbackRecord(BaseModel):
    """A user's verdict on one past decision."""

    user_id: str
    conversation_id: str
    message_id: str
    decision: NotificationDecision
    feedback: FeedbackValue
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def feedback_id(self) -> str:
        return feedback_key(self.user_id, self.conversation_id, self.message_id)

    @property
    def helpful(self) -> bool:
        return self.feedback == "helpful"

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "FeedbackRecord":
        return cls.model_validate(doc)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")


class ReasonCount(BaseModel):
    """A decision reason and how often it appeared."""

    reason: str
    count: int


class AnalyticsReport(BaseModel):
    """A user's feedback summary over the lookback window."""

    total_notifications: int = 0
    helpful_count: int = 0
    not_helpful_count: int = 0
    accuracy: float = 0.0  # percent, 2 decimals
    common_false_positives: List[ReasonCount] = Field(default_factory=list)
    common_false_negatives: List[ReasonCount] = Field(default_factory=list)
