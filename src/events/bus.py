"""In-process async event bus."""

import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, List, Type

import structlog

logger = structlog.get_logger()

EventHandler = Callable[["Event"], Awaitable[None]]


@dataclass
class Event:
    """Base event. Subclasses add their own payload fields."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source: str = "unknown"

    @property
    def event_type(self) -> str:
        return type(self).__name__


class EventBus:
    """Typed publish/subscribe.

    Handlers subscribed to a base class also receive its subclasses.
    A failing handler is logged and does not stop delivery to the others.
    """

    def __init__(self) -> None:
        self._handlers: Dict[Type[Event], List[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        """Register a handler for an event type."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: Type[Event], handler: EventHandler) -> None:
        """Remove a previously registered handler."""
        handlers = self._handlers.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    async def publish(self, event: Event) -> None:
        """Deliver an event to every matching handler, in registration order."""
        for event_type, handlers in list(self._handlers.items()):
            if not isinstance(event, event_type):
                continue
            for handler in list(handlers):
                try:
                    await handler(event)
                except Exception as exc:
                    logger.error(
                        "Event handler failed",
                        event_type=event.event_type,
                        event_id=event.id,
                        handler=getattr(handler, "__qualname__", repr(handler)),
                        error=str(exc),
                    )
