"""Prompt construction for escalated notification decisions."""

from datetime import datetime, timezone
from typing import Optional, Sequence

from ..learning.models import UserNotificationProfile
from .models import ConversationMessage, NotificationPreferences, Recipient

NOTIFICATION_SYSTEM = """\
You decide whether a member of a remote team should get a push notification
for new messages in a conversation. Adapt to the preferences learned from the
user's feedback history when they are provided.

ALWAYS NOTIFY when:
- The user is mentioned directly (@name or by name)
- The user is asked a direct question ("Can you...", "Could you...", "Would you...", "Will you...")
- A decision affects the user's work or responsibilities
- There is an urgent or time-sensitive request about the user's projects
- A production issue or blocker affects the user
- A task is assigned to the user
- A meeting or deadline involving the user is mentioned

SHOULD NOTIFY when:
- The message contains one of the user's priority keywords
- The message contains a topic the user has found important before
- The discussion continues a topic the user recently took part in
- Someone asks for feedback or review that could involve the user

NEVER NOTIFY when:
- General team chat does not involve the user
- FYI updates the user is not responsible for
- Social chatter (jokes, "thanks", "lol", emoji reactions)
- Automated messages or bot output
- The message is about a topic the user has marked as not helpful
- The user is in quiet hours, unless the message is high priority

Notification text: clear and actionable, at most 100 characters, formatted as
"{Sender}: {key message summary}". Example: "Sarah: Can you review the API design by EOD?"

Priority: high for direct mentions, urgent issues, direct questions and
production problems; medium for priority keywords and important updates;
low for everything else.

Respond ONLY with a JSON object:
{"shouldNotify": true|false, "reason": "1-2 sentences", "notificationText": "max 100 chars", "priority": "high"|"medium"|"low"}"""

RATE_INSTRUCTIONS = {
    "high": "User appreciates frequent notifications. Lean towards notifying.",
    "medium": "User prefers moderate notification frequency. Balance importance against frequency.",
    "low": "User dislikes frequent notifications. Only notify for critical messages.",
}


def format_messages_for_prompt(messages: Sequence[ConversationMessage]) -> str:
    """One ``[timestamp] Sender: text`` line per message."""
    return "\n".join(
        f"[{msg.sent_at.isoformat()}] {msg.sender_name}: {msg.text}" for msg in messages
    )


def format_learned_preferences(profile: UserNotificationProfile) -> str:
    keywords = ", ".join(profile.learned_keywords) or "None learned yet"
    suppressed = ", ".join(profile.suppressed_topics) or "None"
    accuracy = f"{profile.accuracy * 100:.0f}%" if profile.accuracy else "N/A"
    return (
        "Learned User Preferences (from feedback history):\n"
        f"- Notification frequency preference: {profile.preferred_notification_rate}\n"
        f"- {RATE_INSTRUCTIONS[profile.preferred_notification_rate]}\n"
        f"- User finds these topics important: {keywords}\n"
        f"- User doesn't want notifications about: {suppressed}\n"
        f"- Historical accuracy: {accuracy}\n"
    )


def build_user_prompt(
    recipient: Recipient,
    messages: Sequence[ConversationMessage],
    preferences: NotificationPreferences,
    profile: Optional[UserNotificationProfile] = None,
    now: Optional[datetime] = None,
) -> str:
    """Assemble the per-recipient prompt: identity, preferences, transcript."""
    now = now or datetime.now(timezone.utc)
    quiet = " (active now)" if preferences.in_quiet_hours(now) else ""
    learned = f"\n{format_learned_preferences(profile)}" if profile else ""
    return (
        "User Context:\n"
        f"- User ID: {recipient.user_id}\n"
        f"- Display name: {recipient.display_name}\n"
        "\n"
        "User Preferences:\n"
        f"- Quiet hours: {preferences.quiet_hours_start} - {preferences.quiet_hours_end}"
        f" ({preferences.timezone}){quiet}\n"
        f"- Priority keywords: {', '.join(preferences.priority_keywords)}\n"
        f"{learned}"
        f"\nCurrent Time: {now.isoformat()}\n"
        "\n"
        "Conversation Messages (most recent last):\n"
        f"{format_messages_for_prompt(messages)}\n"
        "\n"
        "Decide whether the user should be notified about the newest message."
    )
