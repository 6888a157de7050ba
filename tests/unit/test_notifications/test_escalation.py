"""Unit tests for src/notifications/escalation.py."""

import asyncio
import json
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from src.learning.models import UserNotificationProfile
from src.llm.chat_provider import ChatResponse
from src.notifications.escalation import (
    EscalationClient,
    EscalationOk,
    EscalationParseError,
    EscalationUpstreamError,
    classify_upstream_error,
    parse_decision,
)
from src.notifications.models import ConversationMessage, NotificationPreferences, Recipient
from src.notifications.prompts import NOTIFICATION_SYSTEM

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int):
    return cls(
        f"Error code: {status}",
        response=httpx.Response(status, request=_REQUEST),
        body=None,
    )


def _response(content: str) -> ChatResponse:
    return ChatResponse(
        content=content,
        model="gpt-4o-mini",
        cost=0.0001,
        input_tokens=500,
        output_tokens=40,
        duration_ms=320,
    )


@pytest.fixture
def provider():
    mock = MagicMock()
    mock.complete_json = AsyncMock()
    return mock


@pytest.fixture
def client(provider):
    return EscalationClient(provider, timeout=10.0)


@pytest.fixture
def recipient():
    return Recipient(user_id="u-alice", display_name="Alice")


@pytest.fixture
def messages():
    return [
        ConversationMessage(
            message_id="m1",
            sender_id="u-bob",
            sender_name="Bob",
            text="The roadmap discussion moved to Thursday afternoon",
            sent_at=datetime(2025, 3, 12, 9, 0, tzinfo=UTC),
        )
    ]


VALID = {
    "shouldNotify": True,
    "reason": "Roadmap changes affect Alice's planning",
    "notificationText": "Bob: Roadmap discussion moved to Thursday",
    "priority": "medium",
}


class TestParseDecision:
    def test_valid_payload(self):
        result = parse_decision(json.dumps(VALID))
        assert isinstance(result, EscalationOk)
        assert result.decision.priority == "medium"

    def test_non_json(self):
        result = parse_decision("Sure! I think you should notify them.")
        assert isinstance(result, EscalationParseError)
        assert "Invalid JSON" in result.detail
        assert result.raw.startswith("Sure!")

    def test_json_array_rejected(self):
        result = parse_decision("[1, 2]")
        assert isinstance(result, EscalationParseError)

    def test_schema_mismatch(self):
        result = parse_decision(json.dumps({**VALID, "priority": "critical"}))
        assert isinstance(result, EscalationParseError)


class TestClassifyUpstreamError:
    @pytest.mark.parametrize(
        "exc",
        [
            openai.APITimeoutError(request=_REQUEST),
            openai.APIConnectionError(request=_REQUEST),
            _status_error(openai.RateLimitError, 429),
            _status_error(openai.InternalServerError, 503),
            asyncio.TimeoutError(),
        ],
    )
    def test_transient(self, exc):
        assert classify_upstream_error(exc).kind == "transient"

    @pytest.mark.parametrize(
        "cls,status",
        [
            (openai.AuthenticationError, 401),
            (openai.PermissionDeniedError, 403),
            (openai.BadRequestError, 400),
            (openai.NotFoundError, 404),
        ],
    )
    def test_fatal(self, cls, status):
        error = classify_upstream_error(_status_error(cls, status))
        assert error.kind == "fatal"
        assert error.status_code == status

    def test_rate_limit_keeps_status(self):
        error = classify_upstream_error(_status_error(openai.RateLimitError, 429))
        assert error.status_code == 429


class TestEscalationClient:
    async def test_success(self, client, provider, recipient, messages):
        provider.complete_json.return_value = _response(json.dumps(VALID))

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationOk)
        assert result.decision.should_notify is True
        provider.complete_json.assert_awaited_once()
        kwargs = provider.complete_json.call_args.kwargs
        assert kwargs["system"] == NOTIFICATION_SYSTEM
        assert kwargs["temperature"] == 0.3
        assert kwargs["timeout"] == 10.0
        assert "Bob: The roadmap discussion" in kwargs["prompt"]

    async def test_prompt_includes_learned_profile(self, client, provider, recipient, messages):
        provider.complete_json.return_value = _response(json.dumps(VALID))
        profile = UserNotificationProfile(
            preferred_notification_rate="low",
            learned_keywords=["deploy"],
            suppressed_topics=["lunch"],
            accuracy=0.75,
        )

        await client.escalate(recipient, messages, NotificationPreferences(), profile)

        prompt = provider.complete_json.call_args.kwargs["prompt"]
        assert "Only notify for critical messages" in prompt
        assert "deploy" in prompt
        assert "lunch" in prompt
        assert "75%" in prompt

    async def test_parse_failure_is_returned(self, client, provider, recipient, messages):
        provider.complete_json.return_value = _response("not json")

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationParseError)

    async def test_rate_limit_is_transient(self, client, provider, recipient, messages):
        provider.complete_json.side_effect = _status_error(openai.RateLimitError, 429)

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationUpstreamError)
        assert result.kind == "transient"
        provider.complete_json.assert_awaited_once()

    async def test_auth_failure_is_fatal(self, client, provider, recipient, messages):
        provider.complete_json.side_effect = _status_error(openai.AuthenticationError, 401)

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationUpstreamError)
        assert result.kind == "fatal"
        assert result.status_code == 401

    async def test_programming_error_propagates(self, client, provider, recipient, messages):
        provider.complete_json.side_effect = TypeError("unexpected keyword argument")

        with pytest.raises(TypeError):
            await client.escalate(recipient, messages, NotificationPreferences())

    async def test_slow_provider_times_out(self, provider, recipient, messages):
        async def hang(**kwargs):
            await asyncio.sleep(5)

        provider.complete_json.side_effect = hang
        client = EscalationClient(provider, timeout=0.01)

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationUpstreamError)
        assert result.kind == "transient"

    async def test_missing_provider_is_fatal(self, recipient, messages):
        client = EscalationClient(None)

        result = await client.escalate(recipient, messages, NotificationPreferences())

        assert isinstance(result, EscalationUpstreamError)
        assert result.kind == "fatal"
        assert not client.available
