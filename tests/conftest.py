import asyncio
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from livesync.config.models import StorageConfig
from livesync.models.metrics import MetricPoint, MetricType
from livesync.models.snapshot import CategoryTotal, DashboardSnapshot, LinePoint
from livesync.storage.metrics_store import MetricsStore

CATEGORIES = ["Category A", "Category B", "Category C", "Category D"]


@pytest.fixture
def now() -> datetime:
    """Fixed reference time for deterministic timestamps."""
    return datetime(2025, 1, 26, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def store(tmp_path):
    """File-backed store in a temporary directory."""
    s = MetricsStore(StorageConfig(database_path=str(tmp_path / "metrics.db")))
    s.connect()
    yield s
    s.close()


@pytest.fixture
def memory_store():
    """In-memory store."""
    s = MetricsStore(StorageConfig(database_path=":memory:"))
    s.connect()
    yield s
    s.close()


@pytest.fixture
def make_point(now):
    """Factory for metric points relative to the reference time."""

    def _make(
        metric_type: str = "line",
        value: float = 50.0,
        category: Optional[str] = None,
        offset: timedelta = timedelta(0),
    ) -> MetricPoint:
        return MetricPoint(
            timestamp=now + offset,
            metric_type=MetricType(metric_type),
            category=category,
            value=value,
        )

    return _make


@pytest.fixture
def tick_batch(make_point):
    """One realtime tick: 1 line + 4 bar + 4 pie points."""
    points = [make_point("line", 75)]
    points += [make_point("bar", 10, c) for c in CATEGORIES]
    points += [make_point("pie", 5, c) for c in CATEGORIES]
    return points


@pytest.fixture
def make_snapshot():
    """Factory for dashboard snapshots with a given event count."""

    def _make(total_events: int = 0) -> DashboardSnapshot:
        return DashboardSnapshot(
            line_chart_data=[LinePoint(timestamp="2025-01-26T12:00:00.000000Z", value=42)],
            bar_chart_data=[CategoryTotal(category="Category A", count=10)],
            pie_chart_data=[CategoryTotal(category="Category A", count=5)],
            total_events=total_events,
            last_updated="2025-01-26T12:00:00.000000Z",
        )

    return _make


@pytest.fixture
def wait_until():
    """Await a predicate with a timeout, polling the event loop."""

    async def _wait(predicate, timeout: float = 2.0) -> None:
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait
