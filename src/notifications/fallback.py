"""Safe-default decisions used when escalation is unavailable."""

import re
from datetime import datetime, timezone
from typing import Optional

import structlog

from .heuristics import mention_pattern
from .models import ConversationMessage, NotificationDecision, NotificationPreferences, truncate_text

logger = structlog.get_logger()

FALLBACK_SUFFIX = "(fallback heuristic)"

QUESTION_PATTERNS = [
    re.compile(r"can you\b", re.I),
    re.compile(r"could you\b", re.I),
    re.compile(r"would you\b", re.I),
    re.compile(r"will you\b", re.I),
    re.compile(r"\?$"),
]


def _notify(message: ConversationMessage, reason: str, priority: str) -> NotificationDecision:
    return NotificationDecision(
        should_notify=True,
        reason=f"{reason} {FALLBACK_SUFFIX}",
        notification_text=truncate_text(f"{message.sender_name}: {message.text}"),
        priority=priority,
    )


def fallback_decision(
    message: ConversationMessage,
    recipient_id: str,
    recipient_name: str,
    preferences: NotificationPreferences,
    now: Optional[datetime] = None,
) -> NotificationDecision:
    """Decide from the newest message alone, per the user's fallback strategy.

    During quiet hours only mentions and priority keywords get through.
    """
    strategy = preferences.fallback_strategy
    logger.info("Applying fallback decision", user_id=recipient_id, strategy=strategy)

    if strategy == "suppress_all":
        return NotificationDecision.skip(f"Notifications suppressed {FALLBACK_SUFFIX}")
    if strategy == "notify_all":
        return _notify(message, "Notify-all fallback", "medium")

    text = message.text.strip()
    lowered = text.lower()

    handles = [h for h in (recipient_id, recipient_name) if h]
    if any(mention_pattern(handle).search(text) for handle in handles):
        return _notify(message, "User directly mentioned", "high")

    for keyword in preferences.priority_keywords:
        if keyword and keyword.lower() in lowered:
            return _notify(message, f'Priority keyword detected: "{keyword.lower()}"', "medium")

    if any(pattern.search(text) for pattern in QUESTION_PATTERNS):
        if preferences.in_quiet_hours(now or datetime.now(timezone.utc)):
            logger.debug("Question held for quiet hours", user_id=recipient_id)
            return NotificationDecision.skip(f"Quiet hours active {FALLBACK_SUFFIX}")
        return _notify(message, "Direct question detected", "medium")

    return NotificationDecision.skip(f"No notification triggers found {FALLBACK_SUFFIX}")
