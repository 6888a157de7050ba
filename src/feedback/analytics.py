"""Per-user feedback analytics."""

from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Optional

import structlog

from ..exceptions import AuthorizationError
from .models import AnalyticsReport, FeedbackRecord, ReasonCount
from .repository import FeedbackRepository

logger = structlog.get_logger()

TOP_REASONS = 5


def _top_reasons(records: Iterable[FeedbackRecord], limit: int = TOP_REASONS) -> List[ReasonCount]:
    counts = Counter(r.decision.reason for r in records)
    return [ReasonCount(reason=reason, count=count) for reason, count in counts.most_common(limit)]


def build_report(records: List[FeedbackRecord]) -> AnalyticsReport:
    """Summarize records; empty input yields an all-zero report."""
    if not records:
        return AnalyticsReport()

    helpful = [r for r in records if r.helpful]
    not_helpful = [r for r in records if not r.helpful]

    # Notified but unwanted, and suppressed but wanted
    false_positives = [r for r in not_helpful if r.decision.should_notify]
    false_negatives = [r for r in helpful if not r.decision.should_notify]

    return AnalyticsReport(
        total_notifications=len(records),
        helpful_count=len(helpful),
        not_helpful_count=len(not_helpful),
        accuracy=round(len(helpful) / len(records) * 100, 2),
        common_false_positives=_top_reasons(false_positives),
        common_false_negatives=_top_reasons(false_negatives),
    )


class AnalyticsReporter:
    """Owner-only analytics over a trailing window."""

    def __init__(
        self,
        repository: FeedbackRepository,
        lookback_days: int = 30,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._repository = repository
        self._lookback = timedelta(days=lookback_days)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def get_analytics(self, caller_id: str, user_id: str) -> AnalyticsReport:
        if caller_id != user_id:
            raise AuthorizationError("Analytics are only available to their owner")

        since = self._clock() - self._lookback
        records = await self._repository.list_for_user(user_id, since=since)
        report = build_report(records)
        logger.info(
            "Generated notification analytics",
            user_id=user_id,
            total=report.total_notifications,
            accuracy=report.accuracy,
        )
        return report
