"""Learned profile persistence."""

from typing import Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..storage.kv import KeyValueStore
from .models import UserNotificationProfile

logger = structlog.get_logger()

PROFILE_NAMESPACE = "notification_profiles"


class ProfileRepository:
    """Per-user learned profiles."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def get(self, user_id: str) -> Optional[UserNotificationProfile]:
        doc = await self._store.get(PROFILE_NAMESPACE, user_id)
        if doc is None:
            return None
        try:
            return UserNotificationProfile.from_document(doc)
        except PydanticValidationError as exc:
            logger.warning("Ignoring corrupt profile", user_id=user_id, error=str(exc))
            return None

    async def save(self, user_id: str, profile: UserNotificationProfile) -> UserNotificationProfile:
        """Merge-upsert so fields written by other tools survive."""
        merged = await self._store.merge(PROFILE_NAMESPACE, user_id, profile.to_document())
        return UserNotificationProfile.from_document(merged)
