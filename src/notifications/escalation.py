"""Inference tier for messages the rule engine cannot resolve.

The client never raises for upstream or parse failures. It returns a tagged
result so the caller decides between degrading and surfacing the error.
Anything that is not a timeout or an SDK error is a bug and propagates.
"""

import asyncio
import json
from dataclasses import dataclass
from typing import Literal, Optional, Sequence, Union

import openai
import structlog
from pydantic import ValidationError as PydanticValidationError

from ..learning.models import UserNotificationProfile
from ..llm.chat_provider import ChatProvider
from .models import (
    ConversationMessage,
    NotificationDecision,
    NotificationPreferences,
    Recipient,
)
from .prompts import NOTIFICATION_SYSTEM, build_user_prompt

logger = structlog.get_logger()


@dataclass(frozen=True)
class EscalationOk:
    decision: NotificationDecision


@dataclass(frozen=True)
class EscalationParseError:
    """Response was not JSON or did not match the decision schema."""

    detail: str
    raw: str


@dataclass(frozen=True)
class EscalationUpstreamError:
    """Provider call failed. ``transient`` degrades, ``fatal`` needs an operator."""

    kind: Literal["transient", "fatal"]
    detail: str
    status_code: Optional[int] = None


EscalationResult = Union[EscalationOk, EscalationParseError, EscalationUpstreamError]

_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.APIConnectionError,
    openai.RateLimitError,
    openai.InternalServerError,
)

_FATAL_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.BadRequestError,
    openai.NotFoundError,
)

UPSTREAM_ERRORS = (asyncio.TimeoutError, openai.APIError)


def classify_upstream_error(exc: Exception) -> EscalationUpstreamError:
    """Map a timeout or SDK exception to transient or fatal."""
    status_code = getattr(exc, "status_code", None)
    if isinstance(exc, (asyncio.TimeoutError, *_TRANSIENT_ERRORS)):
        return EscalationUpstreamError("transient", str(exc) or type(exc).__name__, status_code)
    if isinstance(exc, _FATAL_ERRORS):
        return EscalationUpstreamError("fatal", str(exc), status_code)
    if isinstance(exc, openai.APIStatusError):
        kind = "transient" if exc.status_code >= 500 or exc.status_code == 429 else "fatal"
        return EscalationUpstreamError(kind, str(exc), exc.status_code)
    # Malformed responses and other SDK failures without a status
    return EscalationUpstreamError("transient", str(exc) or type(exc).__name__, status_code)


def parse_decision(raw: str) -> Union[EscalationOk, EscalationParseError]:
    """Validate a JSON payload into a decision."""
    try:
        data = json.loads(raw.strip())
    except json.JSONDecodeError as exc:
        return EscalationParseError(detail=f"Invalid JSON: {exc}", raw=raw)

    if not isinstance(data, dict):
        return EscalationParseError(detail="Expected a JSON object", raw=raw)

    try:
        return EscalationOk(NotificationDecision.model_validate(data))
    except PydanticValidationError as exc:
        return EscalationParseError(detail=str(exc), raw=raw)


class EscalationClient:
    """Asks the chat model for a decision on one ambiguous message."""

    def __init__(
        self,
        provider: Optional[ChatProvider],
        timeout: float = 10.0,
        max_tokens: int = 300,
        temperature: float = 0.3,
    ) -> None:
        self._provider = provider
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def available(self) -> bool:
        return self._provider is not None

    async def escalate(
        self,
        recipient: Recipient,
        messages: Sequence[ConversationMessage],
        preferences: NotificationPreferences,
        profile: Optional[UserNotificationProfile] = None,
    ) -> EscalationResult:
        if self._provider is None:
            return EscalationUpstreamError("fatal", "No API key configured for escalation")

        prompt = build_user_prompt(recipient, messages, preferences, profile)

        try:
            response = await asyncio.wait_for(
                self._provider.complete_json(
                    prompt=prompt,
                    system=NOTIFICATION_SYSTEM,
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                    timeout=self._timeout,
                ),
                timeout=self._timeout,
            )
        except UPSTREAM_ERRORS as exc:
            error = classify_upstream_error(exc)
            logger.warning(
                "Escalation call failed",
                user_id=recipient.user_id,
                kind=error.kind,
                status_code=error.status_code,
                error=error.detail,
            )
            return error

        result = parse_decision(response.content)
        if isinstance(result, EscalationParseError):
            logger.warning(
                "Escalation response unparseable",
                user_id=recipient.user_id,
                error=result.detail,
            )
        else:
            logger.debug(
                "Escalation decided",
                user_id=recipient.user_id,
                should_notify=result.decision.should_notify,
                cost=response.cost,
                duration_ms=response.duration_ms,
            )
        return result
