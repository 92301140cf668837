from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from tabsync._title import fallback_title


@dataclass
class ManualClock:
    """Clock that only moves when a test says so."""

    now: datetime = field(default_factory=lambda: datetime(2026, 1, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@dataclass
class FakeTitles:
    """Title lookup with fixed answers; unknown URLs behave like an offline fetch."""

    titles: dict[str, str] = field(default_factory=dict)
    calls: list[str] = field(default_factory=list)
    error: Exception | None = None

    async def resolve(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.titles.get(url) or fallback_title(url)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def titles() -> FakeTitles:
    return FakeTitles()
