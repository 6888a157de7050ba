"""Validates and stores user feedback on notification decisions."""

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..exceptions import AuthorizationError, FeedbackValidationError, NotFoundError
from ..notifications.collaborators import ConversationDirectory
from ..notifications.models import NotificationDecision
from .models import FEEDBACK_VALUES, KEY_SEPARATOR, FeedbackRecord
from .repository import FeedbackRepository

logger = structlog.get_logger()


def _require_id(field: str, value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise FeedbackValidationError(field, "must be a non-empty string")
    if KEY_SEPARATOR in value:
        # Ids are joined with the separator to form the record key
        raise FeedbackValidationError(field, f"must not contain '{KEY_SEPARATOR}'")
    return value


def _coerce_decision(
    decision: Union[NotificationDecision, Mapping[str, Any], None],
) -> NotificationDecision:
    if isinstance(decision, NotificationDecision):
        return decision
    if not isinstance(decision, Mapping):
        raise FeedbackValidationError("decision", "must be an object")
    try:
        return NotificationDecision.model_validate(dict(decision))
    except PydanticValidationError as exc:
        errors = ", ".join(
            ".".join(str(loc) for loc in err["loc"]) or "decision" for err in exc.errors()
        )
        raise FeedbackValidationError("decision", f"invalid fields: {errors}") from exc


class FeedbackIngestor:
    """Entry point for "was this notification helpful?" answers.

    Validation happens before any lookup, and authorization before any
    write. Resubmitting for the same message replaces the earlier answer.
    """

    def __init__(
        self,
        repository: FeedbackRepository,
        directory: ConversationDirectory,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._directory = directory
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def submit(
        self,
        user_id: str,
        conversation_id: str,
        message_id: str,
        decision: Union[NotificationDecision, Mapping[str, Any], None],
        feedback: str,
    ) -> str:
        """Store feedback and return its id."""
        _require_id("user_id", user_id)
        _require_id("conversation_id", conversation_id)
        _require_id("message_id", message_id)
        if feedback not in FEEDBACK_VALUES:
            raise FeedbackValidationError(
                "feedback", f"must be one of {', '.join(FEEDBACK_VALUES)}"
            )
        parsed = _coerce_decision(decision)

        if not await self._directory.exists(conversation_id):
            raise NotFoundError(f"Conversation {conversation_id} not found")

        participants = await self._directory.participants(conversation_id)
        if user_id not in participants:
            logger.warning(
                "Feedback from non-participant",
                user_id=user_id,
                conversation_id=conversation_id,
            )
            raise AuthorizationError("You must be a participant in this conversation")

        record = FeedbackRecord(
            user_id=user_id,
            conversation_id=conversation_id,
            message_id=message_id,
            decision=parsed,
            feedback=feedback,
            timestamp=self._clock(),
        )
        return await self._repository.upsert(record)
