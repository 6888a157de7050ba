"""Feedback persistence over the key-value store."""

from datetime import datetime
from typing import List, Optional, Set

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import DataCorruptionError
from ..storage.kv import KeyValueStore
from .models import FeedbackRecord

logger = structlog.get_logger()

FEEDBACK_NAMESPACE = "notification_feedback"


class FeedbackRepository:
    """Feedback record data access."""

    def __init__(self, store: KeyValueStore):
        self._store = store

    async def upsert(self, record: FeedbackRecord) -> str:
        """Write a record under its deterministic id, replacing any earlier one."""
        await self._store.put(FEEDBACK_NAMESPACE, record.feedback_id, record.to_document())
        logger.info(
            "Stored notification feedback",
            feedback_id=record.feedback_id,
            feedback=record.feedback,
        )
        return record.feedback_id

    async def get(self, feedback_id: str) -> Optional[FeedbackRecord]:
        doc = await self._store.get(FEEDBACK_NAMESPACE, feedback_id)
        if doc is None:
            return None
        try:
            return FeedbackRecord.from_document(doc)
        except PydanticValidationError as exc:
            raise DataCorruptionError(f"Unreadable feedback record {feedback_id}") from exc

    async def list_for_user(
        self, user_id: str, since: Optional[datetime] = None
    ) -> List[FeedbackRecord]:
        """A user's records, newest first. Unreadable records are skipped."""
        records = []
        for key, doc in await self._store.scan(FEEDBACK_NAMESPACE, prefix=f"{user_id}_"):
            if doc.get("user_id") != user_id:
                continue
            try:
                record = FeedbackRecord.from_document(doc)
            except PydanticValidationError as exc:
                logger.warning("Skipping corrupt feedback record", key=key, error=str(exc))
                continue
            if since is None or record.timestamp >= since:
                records.append(record)
        records.sort(key=lambda r: r.timestamp, reverse=True)
        return records

    async def user_ids_since(self, since: datetime) -> Set[str]:
        """Users with at least one feedback record at or after ``since``."""
        user_ids = set()
        for key, doc in await self._store.scan(FEEDBACK_NAMESPACE):
            try:
                record = FeedbackRecord.from_document(doc)
            except PydanticValidationError as exc:
                logger.warning("Skipping corrupt feedback record", key=key, error=str(exc))
                continue
            if record.timestamp >= since:
                user_ids.add(record.user_id)
        return user_ids
