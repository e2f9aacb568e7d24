import sqlite3
import threading
from datetime import timedelta

import pytest

from livesync.config.models import StorageConfig
from livesync.models.metrics import MetricPoint, MetricType, format_timestamp, utc_now
from livesync.storage.metrics_store import MetricsStore, StoreError


def test_insert_assigns_increasing_ids(memory_store, make_point):
    first = memory_store.insert(make_point("line", 10))
    second = memory_store.insert(make_point("line", 20))
    assert second > first >= 1
    assert memory_store.total_events() == 2


def test_insert_batch_returns_count_and_advances_total(store, tick_batch):
    before = store.total_events()
    assert store.insert_batch(tick_batch) == 9
    assert store.total_events() == before + 9


def test_insert_batch_empty_is_noop(store):
    assert store.insert_batch([]) == 0
    assert store.total_events() == 0
    assert store.is_empty()


def test_line_series_ascending_regardless_of_insert_order(memory_store, make_point):
    offsets = [5, 1, 9, 3, 7, 2, 8]
    memory_store.insert_batch(
        [make_point("line", m, offset=timedelta(minutes=m)) for m in offsets]
    )

    series = memory_store.query_line_series(limit=4)

    timestamps = [p.timestamp for p in series]
    assert timestamps == sorted(timestamps)
    # The four most recent points, oldest first
    assert [p.value for p in series] == [5, 7, 8, 9]


def test_line_series_rejects_non_positive_limit(memory_store):
    with pytest.raises(ValueError):
        memory_store.query_line_series(limit=0)


def test_aggregates_sum_values_per_category(memory_store, make_point):
    memory_store.insert_batch(
        [
            make_point("bar", 100, "Category A"),
            make_point("bar", -25, "Category A"),
            make_point("bar", 40, "Category B"),
            make_point("pie", 7, "Category A"),
        ]
    )

    bar = memory_store.query_aggregates(MetricType.BAR)
    pie = memory_store.query_aggregates(MetricType.PIE)

    assert [(c.category, c.count) for c in bar] == [("Category A", 75), ("Category B", 40)]
    assert [(c.category, c.count) for c in pie] == [("Category A", 7)]


def test_aggregates_reject_line_type(memory_store):
    with pytest.raises(ValueError):
        memory_store.query_aggregates(MetricType.LINE)


def test_dashboard_snapshot_limits_line_series(memory_store, make_point, now):
    # One hour of history at one point per minute
    points = [
        make_point("line", 20 + i, offset=timedelta(minutes=i - 60)) for i in range(61)
    ]
    memory_store.insert_batch(points)

    snapshot = memory_store.get_dashboard_snapshot(line_limit=10)

    assert len(snapshot.line_chart_data) == 10
    assert snapshot.line_chart_data[-1].timestamp == format_timestamp(now)
    assert snapshot.total_events == 61


def test_snapshot_wire_format_uses_camel_case(memory_store, tick_batch):
    memory_store.insert_batch(tick_batch)

    wire = memory_store.get_dashboard_snapshot().to_wire()

    assert set(wire) == {
        "lineChartData",
        "barChartData",
        "pieChartData",
        "totalEvents",
        "lastUpdated",
    }
    assert wire["totalEvents"] == 9
    assert wire["barChartData"][0] == {"category": "Category A", "count": 10.0}


def test_cleanup_removes_only_points_before_cutoff(store):
    now = utc_now()
    store.insert(MetricPoint(timestamp=now - timedelta(hours=30), metric_type="line", value=1))
    store.insert(MetricPoint(timestamp=now - timedelta(hours=1), metric_type="line", value=2))

    deleted = store.cleanup_older_than(hours=24)

    assert deleted == 1
    remaining = store.query_line_series(limit=10)
    assert [p.value for p in remaining] == [2]
    assert store.cleanup_older_than(hours=24) == 0


def test_cleanup_keeps_point_exactly_at_cutoff(memory_store, make_point, now):
    memory_store.insert(make_point("line", 1, offset=timedelta(seconds=-1)))
    memory_store.insert(make_point("line", 2))

    assert memory_store.cleanup(now) == 1
    assert [p.value for p in memory_store.query_line_series()] == [2]


def test_total_events_survives_cleanup(memory_store, make_point):
    memory_store.insert_batch([make_point("line", v, offset=timedelta(hours=-48)) for v in (1, 2, 3)])
    memory_store.cleanup_older_than(hours=24)

    assert memory_store.is_empty()
    assert memory_store.total_events() == 3


def test_failed_batch_writes_nothing(store, make_point):
    store.insert(make_point("line", 1))
    broken = MetricPoint.model_construct(
        id=None,
        timestamp=utc_now(),
        metric_type=MetricType.LINE,
        category=None,
        value=None,  # violates NOT NULL
        metadata=None,
    )

    with pytest.raises(StoreError):
        store.insert_batch([make_point("line", 2), make_point("line", 3), broken])

    assert store.total_events() == 1
    assert [p.value for p in store.query_line_series()] == [1]


class CommitFailingConnection:
    """Delegates to a real connection but fails the next COMMIT."""

    def __init__(self, conn):
        self._conn = conn
        self.fail_next_commit = True

    def execute(self, sql, *args):
        if sql == "COMMIT" and self.fail_next_commit:
            self.fail_next_commit = False
            raise sqlite3.OperationalError("database is locked")
        return self._conn.execute(sql, *args)

    def __getattr__(self, name):
        return getattr(self._conn, name)


def test_failed_commit_rolls_back_and_store_stays_usable(store, make_point):
    store._conn = CommitFailingConnection(store._conn)

    with pytest.raises(StoreError):
        store.insert_batch([make_point("line", 1), make_point("line", 2)])

    assert not store._conn.in_transaction
    assert store.is_empty()
    assert store.insert_batch([make_point("line", 3)]) == 1
    assert [p.value for p in store.query_line_series()] == [3]


def test_cleanup_rejects_unrepresentable_age(memory_store, make_point):
    memory_store.insert(make_point("line", 1))

    with pytest.raises(ValueError):
        memory_store.cleanup_older_than(hours=1e8)

    assert memory_store.total_events() == 1


def test_concurrent_reader_sees_only_batch_boundaries(tmp_path, make_point):
    path = str(tmp_path / "race.db")
    writer = MetricsStore(StorageConfig(database_path=path))
    writer.connect()
    batch_size = 9
    batches = 40
    observed = []
    done = threading.Event()

    def read_loop():
        reader = MetricsStore(StorageConfig(database_path=path))
        reader.connect()
        try:
            while not done.is_set():
                observed.append(reader.get_dashboard_snapshot().total_events)
        finally:
            reader.close()

    thread = threading.Thread(target=read_loop)
    thread.start()
    try:
        for _ in range(batches):
            writer.insert_batch([make_point("line", 1) for _ in range(batch_size)])
    finally:
        done.set()
        thread.join(timeout=10)
        writer.close()

    assert observed
    assert all(count % batch_size == 0 for count in observed)
    assert observed == sorted(observed)


def test_get_stats_reports_counts_and_range(memory_store, tick_batch):
    memory_store.insert_batch(tick_batch)

    stats = memory_store.get_stats()

    assert stats.total_metrics == 9
    assert stats.by_type == {"line": 1, "bar": 4, "pie": 4}
    assert stats.oldest_entry == stats.newest_entry
    assert stats.to_wire()["totalMetrics"] == 9


def test_operations_require_connection():
    s = MetricsStore(StorageConfig(database_path=":memory:"))
    assert not s.ping()
    with pytest.raises(StoreError):
        s.total_events()


def test_connect_creates_parent_directory(tmp_path):
    path = tmp_path / "nested" / "dir" / "metrics.db"
    s = MetricsStore(StorageConfig(database_path=str(path)))
    s.connect()
    try:
        assert path.exists()
        assert s.ping()
    finally:
        s.close()
