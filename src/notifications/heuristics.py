"""Rule-based first tier: resolve obvious cases without inference.

NOTIFY rules are evaluated before SKIP rules, so explicit addressing wins
even over messages that would otherwise be dismissed as too short.
"""

import re
import unicodedata
from typing import Iterable, Optional

from .models import HeuristicResult, HeuristicVerdict

URGENT_PATTERN = re.compile(
    r"\b(urgent|asap|emergency|critical|blocker|production|p0|priority\s*0)\b",
    re.I,
)

DIRECT_REQUEST_PATTERN = re.compile(
    r"\b(can you|could you|would you|will you|please)\b",
    re.I,
)

TASK_ASSIGNMENT_PATTERN = re.compile(
    r"\b(assigned to|your task|you should|you need to|action item for you)\b",
    re.I,
)

ACKNOWLEDGMENT_PATTERN = re.compile(
    r"^(ok|okay|k|kk|thanks|thank you|ty|thx|lol|haha|ha|👍|😄|😊|🙏|❤️|❤"
    r"|nice|cool|sure|yep|yup|nope|got it|sounds good|np|no problem)[!.]*$",
    re.I,
)

AUTO_REPLY_PATTERN = re.compile(
    r"\b(out of office|away from|on vacation|afk|brb|be right back)\b",
    re.I,
)

AUTOMATED_SENDER_MARKERS = ("bot", "notification")

MIN_MESSAGE_LENGTH = 5

# Joiners and modifiers that appear inside emoji sequences
_EMOJI_COMPONENTS = {"\u200d", "\ufe0f", "\ufe0e", "\u20e3"}


def _word_pattern(term: str) -> re.Pattern[str]:
    """Case-insensitive whole-word match for an arbitrary literal term."""
    return re.compile(rf"(?<!\w){re.escape(term)}(?!\w)", re.I)


def mention_pattern(handle: str) -> re.Pattern[str]:
    """Case-insensitive @handle match that does not fire on a longer handle."""
    return re.compile(rf"@{re.escape(handle)}(?!\w)", re.I)


def is_emoji_only(text: str) -> bool:
    """True when text holds at least one pictograph and nothing but
    pictographs, emoji components and whitespace."""
    has_symbol = False
    for char in text:
        if char.isspace() or char in _EMOJI_COMPONENTS:
            continue
        category = unicodedata.category(char)
        if category in ("So", "Sk"):
            has_symbol = True
            continue
        if category == "Mn":
            continue
        return False
    return has_symbol


class HeuristicClassifier:
    """Zero-latency rule engine producing NOTIFY / SKIP / NEED_ESCALATION."""

    def classify(
        self,
        text: str,
        sender_name: str,
        recipient_name: str,
        learned_keywords: Optional[Iterable[str]] = None,
    ) -> HeuristicResult:
        """Apply the rules in precedence order; the first match wins."""
        message = (text or "").strip()

        notify = self._match_notify(message, recipient_name, learned_keywords)
        if notify:
            return notify

        skip = self._match_skip(message, sender_name or "")
        if skip:
            return skip

        return HeuristicResult(
            verdict=HeuristicVerdict.NEED_ESCALATION,
            reason="Message requires contextual analysis",
        )

    def _match_notify(
        self,
        message: str,
        recipient_name: str,
        learned_keywords: Optional[Iterable[str]],
    ) -> Optional[HeuristicResult]:
        name = (recipient_name or "").strip()

        if name and mention_pattern(name).search(message):
            return self._notify("Direct @mention", "high", "mention")

        if name and _word_pattern(name).search(message):
            return self._notify("User mentioned by name", "high", "name")

        if URGENT_PATTERN.search(message):
            return self._notify("Urgent keyword detected", "high", "urgent")

        if DIRECT_REQUEST_PATTERN.search(message) and "?" in message:
            return self._notify("Direct question detected", "medium", "question")

        if TASK_ASSIGNMENT_PATTERN.search(message):
            return self._notify("Task assignment detected", "high", "task")

        keywords = [k.strip() for k in (learned_keywords or []) if k and k.strip()]
        if keywords:
            alternation = "|".join(re.escape(k) for k in keywords)
            if re.search(rf"(?<!\w)({alternation})(?!\w)", message, re.I):
                return self._notify("User's priority keyword found", "medium", "keyword")

        return None

    def _match_skip(self, message: str, sender_name: str) -> Optional[HeuristicResult]:
        if len(message) < MIN_MESSAGE_LENGTH:
            return self._skip("Message too short", "too_short")

        if ACKNOWLEDGMENT_PATTERN.match(message):
            return self._skip("Common acknowledgment/reaction", "acknowledgment")

        if is_emoji_only(message):
            return self._skip("Emoji-only message", "emoji_only")

        sender = sender_name.lower()
        if any(marker in sender for marker in AUTOMATED_SENDER_MARKERS):
            return self._skip("Automated message", "automated")

        if AUTO_REPLY_PATTERN.search(message):
            return self._skip("Auto-reply message", "auto_reply")

        return None

    @staticmethod
    def _notify(reason: str, priority: str, rule: str) -> HeuristicResult:
        return HeuristicResult(
            verdict=HeuristicVerdict.DEFINITELY_NOTIFY,
            reason=reason,
            priority=priority,
            rule=rule,
        )

    @staticmethod
    def _skip(reason: str, rule: str) -> HeuristicResult:
        return HeuristicResult(
            verdict=HeuristicVerdict.DEFINITELY_SKIP,
            reason=reason,
            priority="low",
            rule=rule,
        )
