"""Notification decisions: rule engine, inference tier and orchestration."""

from .heuristics import HeuristicClassifier
from .models import (
    ConversationMessage,
    EvaluationResult,
    HeuristicResult,
    HeuristicVerdict,
    NotificationDecision,
    NotificationPreferences,
    Recipient,
)
from .orchestrator import DecisionOrchestrator

__all__ = [
    "ConversationMessage",
    "DecisionOrchestrator",
    "EvaluationResult",
    "HeuristicClassifier",
    "HeuristicResult",
    "HeuristicVerdict",
    "NotificationDecision",
    "NotificationPreferences",
    "Recipient",
]
