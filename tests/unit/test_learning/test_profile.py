"""Tests for profile computation and the profile learner."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from src.events.bus import EventBus
from src.events.types import ProfileUpdatedEvent
from src.exceptions import AuthorizationError
from src.feedback.models import FeedbackRecord
from src.feedback.repository import FeedbackRepository
from src.learning.profile import ProfileLearner, compute_profile, preferred_rate
from src.learning.repository import PROFILE_NAMESPACE, ProfileRepository
from src.notifications.heuristics import HeuristicClassifier
from src.notifications.models import HeuristicVerdict, NotificationDecision


def record(message_id, notified, helpful, timestamp, user_id="u-alice", text="Bob: deploy is done"):
    decision = (
        NotificationDecision(
            should_notify=True,
            reason="Deploy status update",
            notification_text=text,
            priority="medium",
        )
        if notified
        else NotificationDecision.skip("Lunch plans chatter")
    )
    return FeedbackRecord(
        user_id=user_id,
        conversation_id="c1",
        message_id=message_id,
        decision=decision,
        feedback="helpful" if helpful else "not_helpful",
        timestamp=timestamp,
    )


class TestPreferredRate:
    def test_accurate_and_few_false_positives(self):
        assert preferred_rate(0.9, 0.1, 0.0) == "high"

    def test_many_false_positives(self):
        assert preferred_rate(0.5, 0.5, 0.0) == "low"

    def test_many_false_negatives(self):
        assert preferred_rate(0.6, 0.3, 0.4) == "high"

    def test_otherwise_medium(self):
        assert preferred_rate(0.7, 0.3, 0.2) == "medium"

    def test_first_rule_needs_both_conditions(self):
        assert preferred_rate(0.85, 0.25, 0.0) == "medium"


class TestComputeProfile:
    def test_empty_history(self, clock):
        assert compute_profile([], clock()) is None

    def test_half_false_positives_is_low(self, clock):
        now = clock()
        records = [
            record("m1", True, True, now),
            record("m2", True, False, now),
        ]

        profile = compute_profile(records, now)

        assert profile.false_positive_rate == 0.5
        assert profile.preferred_notification_rate == "low"

    def test_partition_and_ratios(self, clock):
        now = clock()
        records = [
            record("m1", True, True, now),
            record("m2", True, True, now),
            record("m3", True, False, now),
            record("m4", False, True, now),
            record("m5", False, False, now),
            record("m6", False, False, now),
        ]

        profile = compute_profile(records, now)

        assert profile.total_feedback == 6
        assert profile.helpful_count == 3
        assert profile.not_helpful_count == 3
        assert profile.helpful_notified == 2
        assert profile.helpful_suppressed == 1
        assert profile.not_helpful_notified == 1
        assert profile.not_helpful_suppressed == 2
        assert profile.accuracy == 0.5
        assert profile.false_positive_rate == 0.33
        assert profile.false_negative_rate == 0.33
        assert profile.notify_accuracy == 0.67
        assert profile.preferred_notification_rate == "high"
        assert profile.last_updated == now

    def test_no_suppressed_decisions_means_zero_fnr(self, clock):
        profile = compute_profile([record("m1", True, True, clock())], clock())
        assert profile.false_negative_rate == 0.0
        assert profile.preferred_notification_rate == "high"

    def test_keywords_split_by_feedback(self, clock):
        now = clock()
        records = [
            record("m1", True, True, now),
            record("m2", False, False, now),
        ]

        profile = compute_profile(records, now)

        assert "deploy" in profile.learned_keywords
        assert "lunch" in profile.suppressed_topics
        assert "lunch" not in profile.learned_keywords

    def test_decision_vocabulary_not_learned(self, clock):
        now = clock()
        question = NotificationDecision(
            should_notify=True,
            reason="Direct question detected (fallback heuristic)",
            notification_text="Bob: could you check the staging logs?",
            priority="medium",
        )
        records = [
            FeedbackRecord(
                user_id="u-alice",
                conversation_id="c1",
                message_id=f"m{i}",
                decision=question,
                feedback="helpful",
                timestamp=now,
            )
            for i in range(5)
        ]

        profile = compute_profile(records, now)

        assert "staging" in profile.learned_keywords
        for word in ("bob", "could", "question", "direct", "detected", "fallback"):
            assert word not in profile.learned_keywords
        result = HeuristicClassifier().classify(
            "I had a question about the team lunch menu",
            "Carol",
            "Alice",
            learned_keywords=profile.learned_keywords,
        )
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION

    def test_term_in_both_corpora_lands_on_one_side(self, clock):
        now = clock()
        records = [
            record("m1", True, True, now, text="Bob: lunch deploy"),
            record("m2", True, False, now, text="Bob: lunch moved"),
        ]

        profile = compute_profile(records, now)

        assert "lunch" in profile.learned_keywords
        assert "lunch" not in profile.suppressed_topics


class TestProfileLearner:
    @pytest.fixture
    def feedback(self, store):
        return FeedbackRepository(store)

    @pytest.fixture
    def profiles(self, store):
        return ProfileRepository(store)

    @pytest.fixture
    def event_bus(self):
        return EventBus()

    @pytest.fixture
    def learner(self, feedback, profiles, event_bus, clock):
        return ProfileLearner(feedback, profiles, event_bus=event_bus, clock=clock)

    async def test_run_for_user_writes_profile(self, learner, feedback, profiles, clock, event_bus):
        events = []

        async def on_update(event):
            events.append(event)

        event_bus.subscribe(ProfileUpdatedEvent, on_update)
        await feedback.upsert(record("m1", True, True, clock()))

        summary = await learner.run_for_user("u-alice", "u-alice")

        assert summary.users_updated == 1
        profile = await profiles.get("u-alice")
        assert profile.total_feedback == 1
        assert events[0].trigger == "manual"

    async def test_run_for_other_user_forbidden(self, learner):
        with pytest.raises(AuthorizationError):
            await learner.run_for_user("u-bob", "u-alice")

    async def test_no_feedback_writes_nothing(self, learner, store):
        summary = await learner.run_for_user("u-alice", "u-alice")

        assert summary.users_updated == 0
        assert await store.get(PROFILE_NAMESPACE, "u-alice") is None

    async def test_old_feedback_ignored(self, learner, feedback, profiles, clock):
        await feedback.upsert(record("m1", True, True, clock() - timedelta(days=31)))

        await learner.run_for_user("u-alice", "u-alice")

        assert await profiles.get("u-alice") is None

    async def test_merge_keeps_unrelated_fields(self, learner, feedback, store, clock):
        await store.put(PROFILE_NAMESPACE, "u-alice", {"custom_flag": True})
        await feedback.upsert(record("m1", True, True, clock()))

        await learner.run_for_user("u-alice", "u-alice")

        doc = await store.get(PROFILE_NAMESPACE, "u-alice")
        assert doc["custom_flag"] is True
        assert doc["total_feedback"] == 1

    async def test_scheduled_covers_all_recent_users(self, learner, feedback, clock):
        for user_id in ("u-alice", "u-bob", "u-carol"):
            await feedback.upsert(record("m1", True, True, clock(), user_id=user_id))
        await feedback.upsert(record("m1", True, True, clock() - timedelta(days=40), user_id="u-dave"))

        summary = await learner.run_scheduled()

        assert summary.total_users == 3
        assert summary.users_updated == 3
        assert summary.success

    async def test_scheduled_isolates_failures(self, feedback, profiles, clock):
        for user_id in ("u-alice", "u-bob"):
            await feedback.upsert(record("m1", True, True, clock(), user_id=user_id))

        original_save = profiles.save

        async def flaky_save(user_id, profile):
            if user_id == "u-alice":
                raise RuntimeError("disk full")
            return await original_save(user_id, profile)

        profiles.save = AsyncMock(side_effect=flaky_save)
        learner = ProfileLearner(feedback, profiles, clock=clock)

        summary = await learner.run_scheduled()

        assert summary.users_updated == 1
        assert summary.failed_users == ["u-alice"]
        assert not summary.success
        assert await profiles.get("u-bob") is not None

    async def test_scheduled_with_no_users(self, learner):
        summary = await learner.run_scheduled()
        assert summary.total_users == 0
        assert summary.users_updated == 0
