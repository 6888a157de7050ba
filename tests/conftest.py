"""Shared fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from src.storage.kv import InMemoryKeyValueStore


class FakeClock:
    """Settable clock for time-dependent components."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    # A Wednesday
    return FakeClock(datetime(2025, 3, 12, 9, 30, tzinfo=UTC))


@pytest.fixture
def store():
    return InMemoryKeyValueStore()
