"""Request handlers for feedback, analytics and profile recompute.

Each handler returns a plain dict. Engine errors become
``{"success": False, "error": {"code", "message"}}``; anything else is
logged and reported as an internal error.
"""

from typing import Any, Dict, Mapping, Optional, Union

import structlog

from ..exceptions import NotificationEngineError
from ..feedback.analytics import AnalyticsReporter
from ..feedback.ingestor import FeedbackIngestor
from ..learning.profile import ProfileLearner
from ..notifications.models import NotificationDecision

logger = structlog.get_logger()


def error_response(exc: Exception) -> Dict[str, Any]:
    """Map an exception to the ``{code, message}`` error shape."""
    if isinstance(exc, NotificationEngineError):
        return {"success": False, "error": {"code": exc.code, "message": exc.message}}
    return {"success": False, "error": {"code": "internal", "message": "Internal error"}}


class NotificationAPI:
    """Caller-facing surface of the engine."""

    def __init__(
        self,
        ingestor: FeedbackIngestor,
        analytics: AnalyticsReporter,
        learner: ProfileLearner,
    ) -> None:
        self._ingestor = ingestor
        self._analytics = analytics
        self._learner = learner

    async def submit_feedback(
        self,
        caller_id: str,
        conversation_id: str,
        message_id: str,
        decision: Union[NotificationDecision, Mapping[str, Any], None],
        feedback: str,
    ) -> Dict[str, Any]:
        try:
            feedback_id = await self._ingestor.submit(
                caller_id, conversation_id, message_id, decision, feedback
            )
        except NotificationEngineError as exc:
            logger.info("Feedback rejected", user_id=caller_id, code=exc.code, error=exc.message)
            return error_response(exc)
        except Exception as exc:
            logger.exception("Feedback submission failed", user_id=caller_id)
            return error_response(exc)
        return {"success": True, "feedback_id": feedback_id}

    async def get_analytics(self, caller_id: str, user_id: str) -> Dict[str, Any]:
        try:
            report = await self._analytics.get_analytics(caller_id, user_id)
        except NotificationEngineError as exc:
            logger.info("Analytics rejected", user_id=caller_id, code=exc.code)
            return error_response(exc)
        except Exception as exc:
            logger.exception("Analytics failed", user_id=user_id)
            return error_response(exc)
        return {"success": True, **report.model_dump(mode="json")}

    async def update_profile(
        self, caller_id: str, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Manual recompute of the caller's own profile."""
        try:
            summary = await self._learner.run_for_user(caller_id, user_id or caller_id)
        except NotificationEngineError as exc:
            logger.info("Profile update rejected", user_id=caller_id, code=exc.code)
            return error_response(exc)
        except Exception as exc:
            logger.exception("Profile update failed", user_id=caller_id)
            return error_response(exc)
        return {
            "success": True,
            "users_updated": summary.users_updated,
            "total_users": summary.total_users,
        }
