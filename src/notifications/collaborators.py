"""Interfaces to the messaging system, plus in-memory versions.

The engine reads conversations, presence and preferences through these
protocols; the in-memory classes back tests and local wiring.
"""

from collections import defaultdict
from typing import Dict, List, Optional, Protocol, Set

from .models import ConversationMessage, NotificationPreferences


class ConversationDirectory(Protocol):
    async def exists(self, conversation_id: str) -> bool: ...

    async def participants(self, conversation_id: str) -> List[str]: ...

    async def display_name(self, user_id: str) -> str: ...

    async def message_count(self, conversation_id: str) -> int: ...

    async def recent_messages(
        self, conversation_id: str, limit: int
    ) -> List[ConversationMessage]:
        """Most recent messages, oldest first."""
        ...


class PresenceTracker(Protocol):
    async def active_viewers(self, conversation_id: str) -> Set[str]: ...


class PreferencesProvider(Protocol):
    async def get_preferences(self, user_id: str) -> NotificationPreferences: ...


class InMemoryConversationDirectory:
    """Conversations, users and messages held in dicts."""

    def __init__(self) -> None:
        self._participants: Dict[str, List[str]] = {}
        self._messages: Dict[str, List[ConversationMessage]] = defaultdict(list)
        self._names: Dict[str, str] = {}

    def add_user(self, user_id: str, display_name: str) -> None:
        self._names[user_id] = display_name

    def add_conversation(self, conversation_id: str, participant_ids: List[str]) -> None:
        self._participants[conversation_id] = list(participant_ids)

    def add_message(self, conversation_id: str, message: ConversationMessage) -> None:
        self._messages[conversation_id].append(message)

    async def exists(self, conversation_id: str) -> bool:
        return conversation_id in self._participants

    async def participants(self, conversation_id: str) -> List[str]:
        return list(self._participants.get(conversation_id, []))

    async def display_name(self, user_id: str) -> str:
        return self._names.get(user_id, user_id)

    async def message_count(self, conversation_id: str) -> int:
        return len(self._messages.get(conversation_id, []))

    async def recent_messages(
        self, conversation_id: str, limit: int
    ) -> List[ConversationMessage]:
        messages = sorted(self._messages.get(conversation_id, []), key=lambda m: m.sent_at)
        return messages[-limit:]


class InMemoryPresenceTracker:
    def __init__(self) -> None:
        self._viewers: Dict[str, Set[str]] = defaultdict(set)

    def set_viewing(self, conversation_id: str, user_id: str, viewing: bool = True) -> None:
        if viewing:
            self._viewers[conversation_id].add(user_id)
        else:
            self._viewers[conversation_id].discard(user_id)

    async def active_viewers(self, conversation_id: str) -> Set[str]:
        return set(self._viewers.get(conversation_id, set()))


class InMemoryPreferencesProvider:
    """Returns defaults for users without stored preferences."""

    def __init__(self, preferences: Optional[Dict[str, NotificationPreferences]] = None) -> None:
        self._preferences = dict(preferences or {})

    def set_preferences(self, user_id: str, preferences: NotificationPreferences) -> None:
        self._preferences[user_id] = preferences

    async def get_preferences(self, user_id: str) -> NotificationPreferences:
        return self._preferences.get(user_id) or NotificationPreferences()
