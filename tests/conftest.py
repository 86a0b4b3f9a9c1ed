from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

import pytest

from dashboard.data_source import FetchResult, Reading


def make_reading(rid: str, hhmmss: str, count: int, day: str = "2024-05-01") -> Reading:
    return Reading(id=rid, created_at=f"{day}T{hhmmss}+00:00", people_count=count)


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Returns queued results (or raises queued exceptions) and counts calls."""

    def __init__(self, results: Optional[List[object]] = None) -> None:
        self.results = list(results or [])
        self.calls = 0

    def fetch(self) -> FetchResult:
        self.calls += 1
        if self.results:
            item = self.results.pop(0)
        else:
            item = FetchResult()
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def scenario_readings() -> List[Reading]:
    return [make_reading("a", "08:00:00", 3), make_reading("b", "08:00:05", 12)]


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 5, 1, 8, 3, 5, tzinfo=timezone.utc)
