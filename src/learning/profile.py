"""Profile learning: aggregate feedback into a per-user profile."""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Sequence

import structlog

from ..events.bus import EventBus
from ..events.types import ProfileUpdatedEvent
from ..exceptions import AuthorizationError
from ..feedback.models import FeedbackRecord
from ..feedback.repository import FeedbackRepository
from .keywords import split_keywords
from .models import NotificationRate, ProfileUpdateSummary, UserNotificationProfile
from .repository import ProfileRepository

logger = structlog.get_logger()

HELPFUL_WEIGHT = 2.0
NOT_HELPFUL_WEIGHT = 1.0


def _ratio(numerator: int, denominator: int) -> float:
    return numerator / denominator if denominator else 0.0


def preferred_rate(
    accuracy: float, false_positive_rate: float, false_negative_rate: float
) -> NotificationRate:
    """First matching rule wins."""
    if accuracy >= 0.8 and false_positive_rate < 0.2:
        return "high"
    if false_positive_rate > 0.4:
        return "low"
    if false_negative_rate > 0.3:
        return "high"
    return "medium"


def _strip_sender(text: str) -> str:
    """Drop the ``Sender: `` prefix of a notification text."""
    return text.split(": ", 1)[-1]


def _corpus(records: Sequence[FeedbackRecord]) -> List[str]:
    texts = [
        _strip_sender(r.decision.notification_text)
        for r in records
        if r.decision.notification_text
    ]
    reasons = [r.decision.reason for r in records if r.decision.reason]
    return texts + reasons


def compute_profile(
    records: Sequence[FeedbackRecord], now: datetime
) -> Optional[UserNotificationProfile]:
    """Build a profile from feedback. Returns None for an empty history."""
    if not records:
        return None

    helpful = [r for r in records if r.helpful]
    not_helpful = [r for r in records if not r.helpful]

    helpful_notified = sum(1 for r in helpful if r.decision.should_notify)
    helpful_suppressed = len(helpful) - helpful_notified
    not_helpful_notified = sum(1 for r in not_helpful if r.decision.should_notify)
    not_helpful_suppressed = len(not_helpful) - not_helpful_notified

    total = len(records)
    accuracy = _ratio(len(helpful), total)
    false_positive_rate = _ratio(not_helpful_notified, not_helpful_notified + helpful_notified)
    false_negative_rate = _ratio(helpful_suppressed, helpful_suppressed + not_helpful_suppressed)
    notify_accuracy = _ratio(helpful_notified + not_helpful_suppressed, total)
    learned_keywords, suppressed_topics = split_keywords(
        _corpus(helpful),
        _corpus(not_helpful),
        helpful_weight=HELPFUL_WEIGHT,
        not_helpful_weight=NOT_HELPFUL_WEIGHT,
    )

    return UserNotificationProfile(
        preferred_notification_rate=preferred_rate(
            accuracy, false_positive_rate, false_negative_rate
        ),
        learned_keywords=learned_keywords,
        suppressed_topics=suppressed_topics,
        accuracy=round(accuracy, 2),
        notify_accuracy=round(notify_accuracy, 2),
        false_positive_rate=round(false_positive_rate, 2),
        false_negative_rate=round(false_negative_rate, 2),
        total_feedback=total,
        helpful_count=len(helpful),
        not_helpful_count=len(not_helpful),
        helpful_notified=helpful_notified,
        helpful_suppressed=helpful_suppressed,
        not_helpful_notified=not_helpful_notified,
        not_helpful_suppressed=not_helpful_suppressed,
        last_updated=now,
    )


class ProfileLearner:
    """Recomputes profiles for one user on demand or for everyone in batch."""

    def __init__(
        self,
        feedback: FeedbackRepository,
        profiles: ProfileRepository,
        event_bus: Optional[EventBus] = None,
        lookback_days: int = 30,
        batch_concurrency: int = 4,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._feedback = feedback
        self._profiles = profiles
        self._event_bus = event_bus
        self._lookback = timedelta(days=lookback_days)
        self._batch_concurrency = batch_concurrency
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def update_user(
        self, user_id: str, trigger: str = "scheduled"
    ) -> Optional[UserNotificationProfile]:
        """Aggregate one user's recent feedback. None when there is none."""
        now = self._clock()
        records = await self._feedback.list_for_user(user_id, since=now - self._lookback)
        profile = compute_profile(records, now)
        if profile is None:
            logger.info("No recent feedback, profile unchanged", user_id=user_id)
            return None

        saved = await self._profiles.save(user_id, profile)
        logger.info(
            "Updated notification profile",
            user_id=user_id,
            rate=saved.preferred_notification_rate,
            accuracy=saved.accuracy,
            total_feedback=saved.total_feedback,
            trigger=trigger,
        )
        if self._event_bus:
            await self._event_bus.publish(
                ProfileUpdatedEvent(
                    user_id=user_id,
                    preferred_notification_rate=saved.preferred_notification_rate,
                    total_feedback=saved.total_feedback,
                    trigger=trigger,
                )
            )
        return saved

    async def run_for_user(self, caller_id: str, user_id: str) -> ProfileUpdateSummary:
        """Manual trigger; users may only recompute their own profile."""
        if caller_id != user_id:
            raise AuthorizationError("You can only update your own profile")

        profile = await self.update_user(user_id, trigger="manual")
        return ProfileUpdateSummary(
            users_updated=1 if profile else 0,
            total_users=1,
            skipped_users=[] if profile else [user_id],
        )

    async def run_scheduled(self) -> ProfileUpdateSummary:
        """Recompute every user with feedback in the lookback window.

        A failing user is logged and skipped; the batch carries on.
        """
        since = self._clock() - self._lookback
        user_ids = sorted(await self._feedback.user_ids_since(since))
        summary = ProfileUpdateSummary(total_users=len(user_ids))
        if not user_ids:
            logger.info("No users with recent feedback")
            return summary

        semaphore = asyncio.Semaphore(self._batch_concurrency)

        async def update_one(user_id: str) -> Optional[UserNotificationProfile]:
            async with semaphore:
                return await self.update_user(user_id)

        outcomes = await asyncio.gather(
            *(update_one(uid) for uid in user_ids), return_exceptions=True
        )
        for user_id, outcome in zip(user_ids, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "Profile update failed",
                    user_id=user_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                summary.failed_users.append(user_id)
            elif outcome is None:
                summary.skipped_users.append(user_id)
            else:
                summary.users_updated += 1

        logger.info(
            "Profile batch complete",
            users_updated=summary.users_updated,
            total_users=summary.total_users,
            failed=len(summary.failed_users),
        )
        return summary
