"""Feedback ingestion and analytics."""

from .analytics import AnalyticsReporter
from .ingestor import FeedbackIngestor
from .models import AnalyticsReport, FeedbackRecord
from .repository import FeedbackRepository

__all__ = [
    "AnalyticsReport",
    "AnalyticsReporter",
    "FeedbackIngestor",
    "FeedbackRecord",
    "FeedbackRepository",
]
