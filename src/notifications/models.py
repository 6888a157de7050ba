"""Notification decision models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictStr,
    field_validator,
    model_validator,
)

Priority = Literal["high", "medium", "low"]

MAX_NOTIFICATION_TEXT = 100


def truncate_text(text: str, max_length: int = MAX_NOTIFICATION_TEXT) -> str:
    """Cut text to max_length, ending with '...' when shortened."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class NotificationDecision(BaseModel):
    """Whether and how to alert one recipient.

    Accepts both snake_case and the camelCase keys used on the wire
    (``shouldNotify``, ``notificationText``). Frozen: re-evaluation
    produces a new instance.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    should_notify: StrictBool = Field(alias="shouldNotify")
    reason: StrictStr
    notification_text: StrictStr = Field(default="", alias="notificationText")
    priority: Priority

    @model_validator(mode="before")
    @classmethod
    def _normalize_text(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        notify_key = "shouldNotify" if "shouldNotify" in data else "should_notify"
        text_key = "notificationText" if "notificationText" in data else "notification_text"
        should_notify = data.get(notify_key)
        text = data.get(text_key)
        if should_notify is False:
            data[text_key] = ""
        elif isinstance(text, str):
            data[text_key] = truncate_text(text)
        return data

    @classmethod
    def skip(cls, reason: str, priority: Priority = "low") -> "NotificationDecision":
        return cls(should_notify=False, reason=reason, notification_text="", priority=priority)

    def to_wire(self) -> dict:
        """camelCase dict for external consumers."""
        return self.model_dump(mode="json", by_alias=True)


class HeuristicVerdict(str, Enum):
    """Tier-1 classifier outcome."""

    DEFINITELY_NOTIFY = "DEFINITELY_NOTIFY"
    DEFINITELY_SKIP = "DEFINITELY_SKIP"
    NEED_ESCALATION = "NEED_ESCALATION"


@dataclass
class HeuristicResult:
    """Rule engine output."""

    verdict: HeuristicVerdict
    reason: str
    priority: Optional[str] = None
    rule: Optional[str] = None


@dataclass
class ConversationMessage:
    """A message as seen by the escalation prompt."""

    message_id: str
    sender_id: str
    sender_name: str
    text: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class Recipient:
    """A user who may be notified."""

    user_id: str
    display_name: str


class NotificationPreferences(BaseModel):
    """User-controlled notification settings.

    Quiet hours are ``HH:MM`` wall-clock times in ``timezone``. A window
    whose start is later than its end wraps past midnight.
    """

    enabled: bool = True
    quiet_hours_start: str = Field(default="22:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    quiet_hours_end: str = Field(default="08:00", pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    timezone: str = "America/Los_Angeles"
    priority_keywords: List[str] = Field(
        default_factory=lambda: ["urgent", "ASAP", "production down", "blocker", "emergency"]
    )
    fallback_strategy: Literal["simple_rules", "notify_all", "suppress_all"] = "simple_rules"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    def in_quiet_hours(self, now: datetime) -> bool:
        """True when ``now`` falls inside the quiet window in the user's timezone."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local = now.astimezone(ZoneInfo(self.timezone))
        current = local.hour * 60 + local.minute
        start = _minutes(self.quiet_hours_start)
        end = _minutes(self.quiet_hours_end)
        if start > end:
            return current >= start or current < end
        return start <= current < end


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)



@dataclass
class EvaluationResult:
    """A decision plus how it was reached."""

    user_id: str
    decision: NotificationDecision
    resolution_path: str  # "heuristic" | "inference" | "cache" | "fallback" | "disabled"
    cached: bool = False
    items_since_cache: int = 0


class DecisionLogEntry(BaseModel):
    """Analytics record written for every decision."""

    user_id: str
    conversation_id: str
    message_id: str
    should_notify: bool
    priority: Priority
    reason: str
    notification_text: str = ""
    resolution_path: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
