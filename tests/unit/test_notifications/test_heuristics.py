"""Unit tests for src/notifications/heuristics.py."""

import pytest

from src.notifications.heuristics import HeuristicClassifier, is_emoji_only
from src.notifications.models import HeuristicVerdict


@pytest.fixture
def classifier():
    return HeuristicClassifier()


def classify(classifier, text, sender="Bob", recipient="Alice", keywords=None):
    return classifier.classify(text, sender, recipient, learned_keywords=keywords)


class TestNotifyRules:
    """NOTIFY rules, in precedence order."""

    def test_direct_mention(self, classifier):
        result = classify(classifier, "@alice can you review this ASAP?")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "Direct @mention"
        assert result.priority == "high"
        assert result.rule == "mention"

    def test_mention_is_case_insensitive(self, classifier):
        result = classify(classifier, "ping @ALICE when you are back")
        assert result.reason == "Direct @mention"

    def test_mention_of_longer_handle_does_not_match(self, classifier):
        result = classify(classifier, "@alice the migration notes are up", recipient="Al")
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION

    def test_mention_followed_by_punctuation(self, classifier):
        result = classify(classifier, "thoughts, @Al?", recipient="Al")
        assert result.rule == "mention"

    def test_name_as_whole_word(self, classifier):
        result = classify(classifier, "I think Alice already fixed that")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "User mentioned by name"
        assert result.priority == "high"

    def test_name_inside_another_word_does_not_match(self, classifier):
        result = classify(classifier, "Alicent wrote the migration notes", recipient="Alice")
        assert result.rule != "name"

    @pytest.mark.parametrize(
        "text",
        [
            "the checkout flow is down, this is urgent",
            "need a fix asap for the login page",
            "we have a blocker on the release branch",
            "p0 incident in the payments service",
            "production is returning 500s again",
        ],
    )
    def test_urgent_vocabulary(self, classifier, text):
        result = classify(classifier, text)
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "Urgent keyword detected"
        assert result.priority == "high"

    def test_request_with_question_mark(self, classifier):
        result = classify(classifier, "Could you look at the logs?")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "Direct question detected"
        assert result.priority == "medium"

    def test_request_without_question_mark_escalates(self, classifier):
        result = classify(classifier, "could you look at the logs later")
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION

    def test_task_assignment(self, classifier):
        result = classify(classifier, "This ticket is assigned to the platform team")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "Task assignment detected"
        assert result.priority == "high"

    def test_learned_keyword(self, classifier):
        result = classify(
            classifier, "the kubernetes cluster looks odd today", keywords=["kubernetes"]
        )
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "User's priority keyword found"
        assert result.priority == "medium"

    def test_learned_keyword_must_be_whole_word(self, classifier):
        result = classify(
            classifier, "the kubernetesish setup looks odd today", keywords=["kubernetes"]
        )
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION

    def test_learned_keyword_with_regex_metacharacters(self, classifier):
        result = classify(classifier, "anyone still writing c++ here", keywords=["c++"])
        assert result.reason == "User's priority keyword found"

    def test_blank_keywords_are_ignored(self, classifier):
        result = classify(
            classifier, "the roadmap moved to thursday afternoon", keywords=["", "  "]
        )
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION


class TestPrecedence:
    def test_hi_name_notifies(self, classifier):
        result = classify(classifier, "hi Bo", recipient="Bo")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY
        assert result.reason == "User mentioned by name"

    def test_name_beats_too_short(self, classifier):
        result = classify(classifier, "Bo!", recipient="Bo")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY

    def test_urgent_beats_automated_sender(self, classifier):
        result = classify(classifier, "urgent: disk usage above 95%", sender="MonitorBot")
        assert result.verdict == HeuristicVerdict.DEFINITELY_NOTIFY

    def test_mention_wins_over_name(self, classifier):
        result = classify(classifier, "@Alice Alice are you there?")
        assert result.rule == "mention"


class TestSkipRules:
    @pytest.mark.parametrize("text", ["hmm", "ok", "k", "  yo  "])
    def test_too_short(self, classifier, text):
        result = classify(classifier, text)
        assert result.verdict == HeuristicVerdict.DEFINITELY_SKIP
        assert result.reason == "Message too short"
        assert result.priority == "low"

    @pytest.mark.parametrize(
        "text", ["thanks!", "thank you", "got it", "sounds good.", "no problem", "haha!!"]
    )
    def test_acknowledgment(self, classifier, text):
        result = classify(classifier, text)
        assert result.verdict == HeuristicVerdict.DEFINITELY_SKIP
        assert result.reason == "Common acknowledgment/reaction"

    def test_acknowledgment_requires_exact_match(self, classifier):
        result = classify(classifier, "thanks, the deploy notes were helpful")
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION

    @pytest.mark.parametrize("text", ["🎉 🎉 🎉", "👍👍👍👍👍", "❤️❤️❤️"])
    def test_emoji_only(self, classifier, text):
        result = classify(classifier, text)
        assert result.verdict == HeuristicVerdict.DEFINITELY_SKIP
        assert result.reason == "Emoji-only message"

    @pytest.mark.parametrize("sender", ["DeployBot", "Notification Service"])
    def test_automated_sender(self, classifier, sender):
        result = classify(classifier, "Build 1234 finished successfully", sender=sender)
        assert result.verdict == HeuristicVerdict.DEFINITELY_SKIP
        assert result.reason == "Automated message"

    def test_auto_reply(self, classifier):
        result = classify(classifier, "I am out of office until Monday")
        assert result.verdict == HeuristicVerdict.DEFINITELY_SKIP
        assert result.reason == "Auto-reply message"


class TestEscalation:
    def test_ambiguous_message_escalates(self, classifier):
        result = classify(classifier, "The roadmap discussion moved to Thursday afternoon")
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION
        assert result.reason == "Message requires contextual analysis"
        assert result.priority is None

    def test_empty_recipient_name_never_matches(self, classifier):
        result = classify(classifier, "@ the roadmap moved again", recipient="")
        assert result.verdict == HeuristicVerdict.NEED_ESCALATION


class TestIsEmojiOnly:
    def test_plain_text(self):
        assert not is_emoji_only("hello")

    def test_whitespace_only(self):
        assert not is_emoji_only("   ")

    def test_mixed(self):
        assert not is_emoji_only("🎉 done")

    def test_zwj_sequence(self):
        assert is_emoji_only("👩‍💻")
