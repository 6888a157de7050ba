"""Component wiring for the notification engine."""

from dataclasses import dataclass
from typing import Optional

import structlog

from .api.handlers import NotificationAPI
from .cache.store import CacheStore
from .config.settings import Settings, get_settings
from .events.bus import EventBus
from .feedback.analytics import AnalyticsReporter
from .feedback.ingestor import FeedbackIngestor
from .feedback.repository import FeedbackRepository
from .learning.profile import ProfileLearner
from .learning.repository import ProfileRepository
from .learning.scheduler import WeeklyProfileScheduler
from .llm.chat_pool import ChatProviderPool
from .notifications.collaborators import (
    ConversationDirectory,
    InMemoryConversationDirectory,
    InMemoryPreferencesProvider,
    InMemoryPresenceTracker,
    PreferencesProvider,
    PresenceTracker,
)
from .notifications.escalation import EscalationClient
from .notifications.orchestrator import DecisionOrchestrator
from .ratelimit.limiter import RateLimiter
from .storage.database import DatabaseManager
from .storage.kv import KeyValueStore
from .storage.sqlite_store import SQLiteKeyValueStore
from .utils.logging_config import configure_logging

logger = structlog.get_logger()


@dataclass
class NotificationEngine:
    """All engine components, wired against one store and one event bus."""

    settings: Settings
    store: KeyValueStore
    event_bus: EventBus
    orchestrator: DecisionOrchestrator
    learner: ProfileLearner
    scheduler: WeeklyProfileScheduler
    api: NotificationAPI
    chat_pool: Optional[ChatProviderPool] = None
    db_manager: Optional[DatabaseManager] = None

    async def start(self) -> None:
        await self.scheduler.start()

    async def stop(self) -> None:
        await self.scheduler.stop()
        if self.chat_pool:
            await self.chat_pool.close()
        if self.db_manager:
            await self.db_manager.close()


async def create_engine(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    directory: Optional[ConversationDirectory] = None,
    presence: Optional[PresenceTracker] = None,
    preferences: Optional[PreferencesProvider] = None,
    chat_pool: Optional[ChatProviderPool] = None,
    event_bus: Optional[EventBus] = None,
) -> NotificationEngine:
    """Build the engine. Without an explicit store, SQLite at ``database_url``."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)

    db_manager = None
    if store is None:
        db_manager = DatabaseManager(settings.database_url)
        await db_manager.initialize()
        store = SQLiteKeyValueStore(db_manager)

    event_bus = event_bus or EventBus()
    directory = directory or InMemoryConversationDirectory()
    chat_pool = chat_pool or ChatProviderPool(settings)

    provider = chat_pool.get_escalation_provider()
    if provider is None:
        logger.warning(
            "Escalation disabled, no API key for model",
            model=settings.model_escalation,
        )

    profiles = ProfileRepository(store)
    feedback = FeedbackRepository(store)

    orchestrator = DecisionOrchestrator.from_settings(
        settings,
        store=store,
        cache=CacheStore(store),
        rate_limiter=RateLimiter(store),
        escalation=EscalationClient(
            provider,
            timeout=settings.escalation_timeout_seconds,
            max_tokens=settings.escalation_max_tokens,
            temperature=settings.escalation_temperature,
        ),
        profiles=profiles,
        directory=directory,
        presence=presence or InMemoryPresenceTracker(),
        preferences=preferences or InMemoryPreferencesProvider(),
    )
    orchestrator.register(event_bus)

    learner = ProfileLearner(
        feedback,
        profiles,
        event_bus=event_bus,
        lookback_days=settings.profile_lookback_days,
        batch_concurrency=settings.profile_batch_concurrency,
    )
    api = NotificationAPI(
        ingestor=FeedbackIngestor(feedback, directory),
        analytics=AnalyticsReporter(feedback, lookback_days=settings.profile_lookback_days),
        learner=learner,
    )

    logger.info(
        "Notification engine ready",
        escalation_model=settings.model_escalation,
        daily_limit=settings.notification_daily_limit,
    )
    return NotificationEngine(
        settings=settings,
        store=store,
        event_bus=event_bus,
        orchestrator=orchestrator,
        learner=learner,
        scheduler=WeeklyProfileScheduler(learner),
        api=api,
        chat_pool=chat_pool,
        db_manager=db_manager,
    )
