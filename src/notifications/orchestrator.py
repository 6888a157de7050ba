"""Per-recipient notification decisions.

Each evaluation walks the tiers in order: preferences, daily quota, cache,
rule engine, then inference. Only messages the rules cannot resolve reach
the inference tier. Inference failures degrade to the user's fallback
strategy, except auth and configuration failures, which surface.
"""

import asyncio
from collections import deque
from typing import Any, Deque, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from ..cache.store import CacheStore, fingerprint, generate_cache_key
from ..events.bus import Event, EventBus
from ..events.types import (
    EscalationFailedEvent,
    NewMessageEvent,
    NotificationDecisionEvent,
)
from ..exceptions import QuotaExceededError, UpstreamFatalError
from ..learning.models import UserNotificationProfile
from ..learning.repository import ProfileRepository
from ..ratelimit.limiter import DEFAULT_DAILY_LIMIT, RateLimiter
from ..storage.kv import KeyValueStore
from .collaborators import ConversationDirectory, PreferencesProvider, PresenceTracker
from .escalation import EscalationClient, EscalationOk, EscalationUpstreamError
from .fallback import fallback_decision
from .heuristics import HeuristicClassifier
from .models import (
    ConversationMessage,
    DecisionLogEntry,
    EvaluationResult,
    HeuristicVerdict,
    NotificationDecision,
    NotificationPreferences,
    Recipient,
    truncate_text,
)

logger = structlog.get_logger()

DECISION_NAMESPACE = "notification_decisions"
FEATURE_TYPE = "notification"

# Paths whose decisions are not written back to the cache
_UNCACHED_PATHS = {"cache", "fallback", "disabled"}


class DecisionOrchestrator:
    """Decides, for each recipient of a new message, whether to notify."""

    def __init__(
        self,
        *,
        store: KeyValueStore,
        cache: CacheStore,
        rate_limiter: RateLimiter,
        escalation: EscalationClient,
        profiles: ProfileRepository,
        directory: ConversationDirectory,
        presence: PresenceTracker,
        preferences: PreferencesProvider,
        classifier: Optional[HeuristicClassifier] = None,
        event_bus: Optional[EventBus] = None,
        daily_limit: int = DEFAULT_DAILY_LIMIT,
        max_concurrency: int = 10,
        context_messages: int = 30,
        max_log_entries: int = 1000,
    ) -> None:
        self._store = store
        self._cache = cache
        self._rate_limiter = rate_limiter
        self._escalation = escalation
        self._profiles = profiles
        self._directory = directory
        self._presence = presence
        self._preferences = preferences
        self._classifier = classifier or HeuristicClassifier()
        self._event_bus = event_bus
        self._daily_limit = daily_limit
        self._max_concurrency = max_concurrency
        self._context_messages = context_messages
        self._decision_log: Deque[DecisionLogEntry] = deque(maxlen=max_log_entries)

    @classmethod
    def from_settings(cls, settings: Any, **components: Any) -> "DecisionOrchestrator":
        return cls(
            daily_limit=settings.notification_daily_limit,
            max_concurrency=settings.max_concurrent_evaluations,
            context_messages=settings.escalation_context_messages,
            **components,
        )

    def register(self, event_bus: EventBus) -> None:
        """Subscribe to new messages and publish decisions on the same bus."""
        self._event_bus = event_bus
        event_bus.subscribe(NewMessageEvent, self._on_new_message)

    @property
    def recent_decisions(self) -> List[DecisionLogEntry]:
        return list(self._decision_log)

    async def _on_new_message(self, event: Event) -> None:
        if isinstance(event, NewMessageEvent):
            await self.handle_new_message(event)

    async def handle_new_message(self, event: NewMessageEvent) -> List[EvaluationResult]:
        """Evaluate every eligible recipient concurrently.

        One recipient's failure is logged and does not affect the others.
        """
        conversation_id = event.conversation_id
        if not await self._directory.exists(conversation_id):
            logger.warning(
                "New message for unknown conversation",
                conversation_id=conversation_id,
                message_id=event.message_id,
            )
            return []

        participants = await self._directory.participants(conversation_id)
        viewers = await self._presence.active_viewers(conversation_id)
        recipient_ids = [
            uid for uid in participants if uid != event.sender_id and uid not in viewers
        ]
        if not recipient_ids:
            logger.debug("No eligible recipients", conversation_id=conversation_id)
            return []

        message = ConversationMessage(
            message_id=event.message_id,
            sender_id=event.sender_id,
            sender_name=await self._directory.display_name(event.sender_id),
            text=event.text,
            sent_at=event.sent_at,
        )
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def evaluate_one(user_id: str) -> EvaluationResult:
            async with semaphore:
                recipient = Recipient(user_id, await self._directory.display_name(user_id))
                return await self.evaluate(conversation_id, message, recipient)

        outcomes = await asyncio.gather(
            *(evaluate_one(uid) for uid in recipient_ids), return_exceptions=True
        )

        results = []
        for user_id, outcome in zip(recipient_ids, outcomes):
            if isinstance(outcome, QuotaExceededError):
                logger.warning(
                    "Skipping recipient over quota",
                    user_id=user_id,
                    conversation_id=conversation_id,
                )
                continue
            if isinstance(outcome, BaseException):
                logger.error(
                    "Recipient evaluation failed",
                    user_id=user_id,
                    conversation_id=conversation_id,
                    message_id=event.message_id,
                    error=str(outcome),
                    error_type=type(outcome).__name__,
                )
                continue
            results.append(outcome)
            await self._publish_decision(conversation_id, event.message_id, outcome)

        return results

    async def evaluate(
        self,
        conversation_id: str,
        message: ConversationMessage,
        recipient: Recipient,
    ) -> EvaluationResult:
        """Decide for one recipient.

        Raises:
            QuotaExceededError: the recipient's daily quota is used up.
            UpstreamFatalError: inference is misconfigured or unauthorized.
        """
        user_id = recipient.user_id
        preferences = await self._preferences.get_preferences(user_id)

        if not preferences.enabled:
            result = EvaluationResult(
                user_id=user_id,
                decision=NotificationDecision.skip("Notifications disabled"),
                resolution_path="disabled",
            )
            await self._record(conversation_id, message.message_id, result)
            return result

        await self._rate_limiter.enforce(user_id, FEATURE_TYPE, self._daily_limit)

        profile = await self._profiles.get(user_id)
        cache_key = generate_cache_key(
            FEATURE_TYPE,
            conversation_id,
            fingerprint(
                FEATURE_TYPE,
                user_id,
                conversation_id,
                message.message_id,
                profile.version if profile else "none",
            ),
        )
        item_count = await self._directory.message_count(conversation_id)

        result = await self._from_cache(cache_key, item_count, user_id)
        if result is None:
            result = await self._decide(conversation_id, message, recipient, preferences, profile)
            if result.resolution_path not in _UNCACHED_PATHS:
                await self._cache.put(
                    cache_key,
                    result.decision.model_dump(mode="json"),
                    FEATURE_TYPE,
                    conversation_id,
                    item_count,
                )

        await self._record(conversation_id, message.message_id, result)
        return result

    async def _from_cache(
        self, cache_key: str, item_count: int, user_id: str
    ) -> Optional[EvaluationResult]:
        lookup = await self._cache.get(cache_key, item_count)
        if not lookup.usable:
            return None
        try:
            decision = NotificationDecision.model_validate(lookup.value)
        except PydanticValidationError as exc:
            logger.warning("Cached decision invalid", key=cache_key, error=str(exc))
            await self._cache.invalidate(cache_key)
            return None
        return EvaluationResult(
            user_id=user_id,
            decision=decision,
            resolution_path="cache",
            cached=True,
            items_since_cache=lookup.items_since_cache,
        )

    async def _decide(
        self,
        conversation_id: str,
        message: ConversationMessage,
        recipient: Recipient,
        preferences: NotificationPreferences,
        profile: Optional[UserNotificationProfile],
    ) -> EvaluationResult:
        keywords = list(preferences.priority_keywords)
        if profile:
            keywords.extend(k for k in profile.learned_keywords if k not in keywords)

        verdict = self._classifier.classify(
            message.text,
            message.sender_name,
            recipient.display_name,
            learned_keywords=keywords,
        )

        if verdict.verdict == HeuristicVerdict.DEFINITELY_NOTIFY:
            decision = NotificationDecision(
                should_notify=True,
                reason=verdict.reason,
                notification_text=truncate_text(f"{message.sender_name}: {message.text}"),
                priority=verdict.priority or "medium",
            )
            return EvaluationResult(recipient.user_id, decision, "heuristic")

        if verdict.verdict == HeuristicVerdict.DEFINITELY_SKIP:
            decision = NotificationDecision.skip(verdict.reason)
            return EvaluationResult(recipient.user_id, decision, "heuristic")

        messages = await self._directory.recent_messages(
            conversation_id, self._context_messages
        )
        if not any(m.message_id == message.message_id for m in messages):
            messages = [*messages, message][-self._context_messages:]

        outcome = await self._escalation.escalate(recipient, messages, preferences, profile)

        if isinstance(outcome, EscalationOk):
            return EvaluationResult(recipient.user_id, outcome.decision, "inference")

        if isinstance(outcome, EscalationUpstreamError) and outcome.kind == "fatal":
            logger.error(
                "Escalation failed fatally",
                user_id=recipient.user_id,
                conversation_id=conversation_id,
                message_id=message.message_id,
                status_code=outcome.status_code,
                error=outcome.detail,
            )
            if self._event_bus:
                await self._event_bus.publish(
                    EscalationFailedEvent(
                        user_id=recipient.user_id,
                        conversation_id=conversation_id,
                        message_id=message.message_id,
                        error_message=outcome.detail,
                        status_code=outcome.status_code,
                    )
                )
            raise UpstreamFatalError(outcome.detail, status_code=outcome.status_code)

        decision = fallback_decision(
            message,
            recipient.user_id,
            recipient.display_name,
            preferences,
            now=message.sent_at,
        )
        return EvaluationResult(recipient.user_id, decision, "fallback")

    async def _record(
        self, conversation_id: str, message_id: str, result: EvaluationResult
    ) -> None:
        decision = result.decision
        entry = DecisionLogEntry(
            user_id=result.user_id,
            conversation_id=conversation_id,
            message_id=message_id,
            should_notify=decision.should_notify,
            priority=decision.priority,
            reason=decision.reason,
            notification_text=decision.notification_text,
            resolution_path=result.resolution_path,
        )
        self._decision_log.append(entry)
        await self._store.put(
            DECISION_NAMESPACE,
            f"{result.user_id}_{conversation_id}_{message_id}",
            entry.model_dump(mode="json"),
        )
        logger.info(
            "Notification decision",
            user_id=result.user_id,
            conversation_id=conversation_id,
            message_id=message_id,
            should_notify=decision.should_notify,
            priority=decision.priority,
            reason=decision.reason,
            resolution_path=result.resolution_path,
            cached=result.cached,
        )

    async def _publish_decision(
        self, conversation_id: str, message_id: str, result: EvaluationResult
    ) -> None:
        if not self._event_bus:
            return
        decision = result.decision
        await self._event_bus.publish(
            NotificationDecisionEvent(
                user_id=result.user_id,
                conversation_id=conversation_id,
                message_id=message_id,
                should_notify=decision.should_notify,
                reason=decision.reason,
                notification_text=decision.notification_text,
                priority=decision.priority,
                resolution_path=result.resolution_path,
            )
        )
