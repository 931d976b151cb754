"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta

import pytest


class FakeClock:
    """Controllable wall clock."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0.0, days: int = 0) -> None:
        self.now = self.now + timedelta(seconds=seconds, days=days)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 15, 12, 0, 0))
