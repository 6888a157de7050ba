"""Event bus and event types."""

from .bus import Event, EventBus
from .types import (
    EscalationFailedEvent,
    NewMessageEvent,
    NotificationDecisionEvent,
    ProfileUpdatedEvent,
)

__all__ = [
    "Event",
    "EventBus",
    "EscalationFailedEvent",
    "NewMessageEvent",
    "NotificationDecisionEvent",
    "ProfileUpdatedEvent",
]
