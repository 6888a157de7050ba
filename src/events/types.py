"""Concrete event types for the event bus."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from .bus import Event


@dataclass
class NewMessageEvent(Event):
    """A message was persisted in a conversation."""

    conversation_id: str = ""
    message_id: str = ""
    sender_id: str = ""
    text: str = ""
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = "messages"


@dataclass
class NotificationDecisionEvent(Event):
    """A decision was made for one recipient. Consumed by the push dispatcher."""

    user_id: str = ""
    conversation_id: str = ""
    message_id: str = ""
    should_notify: bool = False
    reason: str = ""
    notification_text: str = ""
    priority: str = "low"
    resolution_path: str = ""
    source: str = "orchestrator"


@dataclass
class EscalationFailedEvent(Event):
    """Escalation failed fatally (auth/configuration). Operator-actionable."""

    user_id: str = ""
    conversation_id: str = ""
    message_id: str = ""
    error_message: str = ""
    status_code: Optional[int] = None
    source: str = "orchestrator"


@dataclass
class ProfileUpdatedEvent(Event):
    """A user's notification profile was recomputed."""

    user_id: str = ""
    preferred_notification_rate: str = "medium"
    total_feedback: int = 0
    trigger: str = "scheduled"  # "scheduled" | "manual"
    source: str = "profile_learner"
