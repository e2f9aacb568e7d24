"""
Embedded SQLite store for dashboard metric points.

This module provides the MetricsStore class, the single owner of persisted
metric points. Writers go through insert/insert_batch; readers get line
series, per-category aggregates, statistics and full dashboard snapshots.

Key Table:
    - metrics: One row per MetricPoint (id, timestamp, metric_type, category,
      value, metadata, created_at)

Consistency:
    - insert_batch runs in one transaction: a reader on any connection sees
      either none or all of a batch.
    - get_dashboard_snapshot runs all its reads in one read transaction.
    - File databases use WAL so readers never block on the writer.

Example:
    >>> from livesync.config.models import StorageConfig
    >>> store = MetricsStore(StorageConfig(database_path=":memory:"))
    >>> store.connect()
    >>> store.insert_batch(points)
    9
    >>> snapshot = store.get_dashboard_snapshot(line_limit=10)
    >>> store.close()
"""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timedelta
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import structlog

from livesync.config.models import StorageConfig
from livesync.models.metrics import MetricPoint, MetricType, format_timestamp, utc_now
from livesync.models.snapshot import (
    CategoryTotal,
    DashboardSnapshot,
    LinePoint,
    StoreStats,
)

logger = structlog.get_logger(__name__)


class StoreError(Exception):
    """Raised when the underlying storage fails (I/O, constraint violation)."""

    pass


_SCHEMA = """
CREATE TABLE IF NOT EXISTS metrics (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    timestamp TEXT NOT NULL,
    metric_type TEXT NOT NULL,
    category TEXT,
    value REAL NOT NULL,
    metadata TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_metrics_timestamp ON metrics(timestamp);
CREATE INDEX IF NOT EXISTS idx_metrics_type ON metrics(metric_type);
CREATE INDEX IF NOT EXISTS idx_metrics_category ON metrics(category);
"""

_INSERT = """
INSERT INTO metrics (timestamp, metric_type, category, value, metadata)
VALUES (?, ?, ?, ?, ?)
"""


def _row_values(point: MetricPoint) -> tuple:
    return (
        point.timestamp_str,
        point.metric_type.value,
        point.category,
        point.value,
        point.metadata,
    )


class MetricsStore:
    """
    SQLite-backed store for metric points.

    One connection is shared by every caller and serialized with a
    re-entrant lock, so the store can be used from the event loop thread
    and from worker or test threads alike. Every sqlite3 failure is logged
    and re-raised as StoreError.

    Attributes:
        config: Storage configuration.
        database_path: Path of the SQLite file, or ":memory:".

    Example:
        >>> store = MetricsStore(StorageConfig(database_path="data/dashboard.db"))
        >>> store.connect()
        >>> point_id = store.insert(point)
        >>> deleted = store.cleanup_older_than(hours=24)
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        """
        Initialize the store.

        Args:
            config: Storage configuration. Defaults to StorageConfig().
        """
        self.config = config or StorageConfig()
        self.database_path = self.config.database_path
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

        logger.debug("metrics_store_initialized", path=self.database_path)

    @property
    def is_connected(self) -> bool:
        """Check if the store holds an open connection."""
        return self._conn is not None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def connect(self) -> None:
        """
        Open the database and create the schema if needed.

        Idempotent - does nothing if already connected.

        Raises:
            StoreError: If the database cannot be opened or initialized.
        """
        with self._lock:
            if self._conn is not None:
                return

            try:
                if self.database_path != ":memory:":
                    Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)

                conn = sqlite3.connect(
                    self.database_path,
                    timeout=self.config.busy_timeout_seconds,
                    isolation_level=None,
                    check_same_thread=False,
                )
                conn.row_factory = sqlite3.Row
                if self.database_path != ":memory:":
                    conn.execute("PRAGMA journal_mode=WAL")
                conn.executescript(_SCHEMA)
            except (sqlite3.Error, OSError) as e:
                logger.error(
                    "metrics_store_connect_failed",
                    path=self.database_path,
                    error=str(e),
                )
                raise StoreError(f"Failed to open metrics store: {e}") from e

            self._conn = conn
            logger.info("metrics_store_connected", path=self.database_path)

    def close(self) -> None:
        """
        Close the database connection.

        Safe to call multiple times.
        """
        with self._lock:
            if self._conn is None:
                return
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.warning("metrics_store_close_error", error=str(e))
            finally:
                self._conn = None
            logger.info("metrics_store_closed", path=self.database_path)

    def ping(self) -> bool:
        """
        Check store health.

        Returns:
            bool: True if a trivial query succeeds.
        """
        if self._conn is None:
            return False
        try:
            with self._lock:
                self._conn.execute("SELECT 1").fetchone()
            return True
        except sqlite3.Error as e:
            logger.warning("metrics_store_ping_failed", error=str(e))
            return False

    @contextmanager
    def _connection(self, operation: str) -> Iterator[sqlite3.Connection]:
        """
        Hold the lock and translate sqlite3 failures.

        Args:
            operation: Operation name for logging.

        Yields:
            sqlite3.Connection: The shared connection.

        Raises:
            StoreError: If not connected or the operation fails.
        """
        with self._lock:
            if self._conn is None:
                raise StoreError("Metrics store is not connected")
            try:
                yield self._conn
            except sqlite3.Error as e:
                logger.error(
                    "metrics_store_operation_failed",
                    operation=operation,
                    error=str(e),
                )
                raise StoreError(f"Operation '{operation}' failed: {e}") from e

    @contextmanager
    def _transaction(
        self, operation: str, immediate: bool = True
    ) -> Iterator[sqlite3.Connection]:
        """
        Run a block inside BEGIN/COMMIT, rolling back on any error.

        Args:
            operation: Operation name for logging.
            immediate: Take the write lock up front (writers) or defer (readers).
        """
        with self._connection(operation) as conn:
            conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
            try:
                yield conn
                conn.execute("COMMIT")
            except BaseException:
                # a failed COMMIT leaves the transaction open
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    # =========================================================================
    # WRITES
    # =========================================================================

    def insert(self, point: MetricPoint) -> int:
        """
        Insert a single metric point.

        Any id already set on the point is ignored; the store assigns one.

        Args:
            point: The point to write.

        Returns:
            int: The assigned id.

        Raises:
            StoreError: If the insert fails.
        """
        with self._transaction("insert") as conn:
            cursor = conn.execute(_INSERT, _row_values(point))
            point_id = cursor.lastrowid

        logger.debug(
            "metric_inserted",
            id=point_id,
            metric_type=point.metric_type.value,
        )
        return point_id

    def insert_batch(self, points: Sequence[MetricPoint]) -> int:
        """
        Insert many points atomically.

        Either every point becomes visible or none does.

        Args:
            points: Points to write.

        Returns:
            int: Number of points written.

        Raises:
            StoreError: If any insert fails; nothing from the batch is kept.
        """
        if not points:
            return 0

        with self._transaction("insert_batch") as conn:
            conn.executemany(_INSERT, [_row_values(p) for p in points])

        logger.debug("metrics_batch_inserted", count=len(points))
        return len(points)

    def cleanup(self, cutoff: datetime) -> int:
        """
        Delete every point with timestamp strictly before the cutoff.

        Args:
            cutoff: Retention boundary; points at exactly the cutoff survive.

        Returns:
            int: Number of points deleted.

        Raises:
            StoreError: If the delete fails; nothing is deleted.
        """
        cutoff_str = format_timestamp(cutoff)
        with self._transaction("cleanup") as conn:
            cursor = conn.execute(
                "DELETE FROM metrics WHERE timestamp < ?", (cutoff_str,)
            )
            deleted = cursor.rowcount

        logger.info("metrics_cleanup_completed", cutoff=cutoff_str, deleted=deleted)
        return deleted

    def cleanup_older_than(self, hours: float) -> int:
        """
        Delete points older than the given age.

        Args:
            hours: Age threshold in hours.

        Returns:
            int: Number of points deleted.

        Raises:
            ValueError: If the threshold reaches past the representable dates.
        """
        try:
            cutoff = utc_now() - timedelta(hours=hours)
        except OverflowError as e:
            raise ValueError(f"hours out of range: {hours}") from e
        return self.cleanup(cutoff)

    # =========================================================================
    # READS
    # =========================================================================

    def _line_series(self, conn: sqlite3.Connection, limit: int) -> List[LinePoint]:
        rows = conn.execute(
            """
            SELECT timestamp, value
            FROM metrics
            WHERE metric_type = 'line'
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (limit,),
        ).fetchall()
        # Newest-first from the query; the contract is ascending.
        return [LinePoint(timestamp=r["timestamp"], value=r["value"]) for r in reversed(rows)]

    def _aggregates(
        self, conn: sqlite3.Connection, metric_type: MetricType
    ) -> List[CategoryTotal]:
        rows = conn.execute(
            """
            SELECT category, SUM(value) AS total
            FROM metrics
            WHERE metric_type = ? AND category IS NOT NULL
            GROUP BY category
            ORDER BY category
            """,
            (metric_type.value,),
        ).fetchall()
        return [CategoryTotal(category=r["category"], count=r["total"]) for r in rows]

    def _total_events(self, conn: sqlite3.Connection) -> int:
        row = conn.execute(
            "SELECT seq FROM sqlite_sequence WHERE name = 'metrics'"
        ).fetchone()
        return int(row["seq"]) if row else 0

    def query_line_series(self, limit: int = 10) -> List[LinePoint]:
        """
        Get the most recent line points.

        Args:
            limit: Maximum number of points.

        Returns:
            List[LinePoint]: Points ascending by timestamp.

        Raises:
            ValueError: If limit is not positive.
            StoreError: If the query fails.
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")
        with self._connection("query_line_series") as conn:
            return self._line_series(conn, limit)

    def query_aggregates(self, metric_type: MetricType) -> List[CategoryTotal]:
        """
        Sum values per category for a categorical metric type.

        Args:
            metric_type: MetricType.BAR or MetricType.PIE.

        Returns:
            List[CategoryTotal]: One entry per category, ordered by category.

        Raises:
            ValueError: If metric_type is not categorical.
            StoreError: If the query fails.
        """
        metric_type = MetricType(metric_type)
        if not metric_type.is_categorical:
            raise ValueError(f"{metric_type.value} points carry no category")
        with self._connection("query_aggregates") as conn:
            return self._aggregates(conn, metric_type)

    def total_events(self) -> int:
        """
        Count metric points ever stored.

        Retention cleanup does not lower this count.

        Returns:
            int: Highest id ever assigned.
        """
        with self._connection("total_events") as conn:
            return self._total_events(conn)

    def is_empty(self) -> bool:
        """Check if the store currently holds no points."""
        with self._connection("is_empty") as conn:
            return conn.execute("SELECT 1 FROM metrics LIMIT 1").fetchone() is None

    def get_dashboard_snapshot(self, line_limit: int = 10) -> DashboardSnapshot:
        """
        Compute the full dashboard state.

        All reads share one read transaction, so the snapshot never mixes
        state from before and after a concurrent batch.

        Args:
            line_limit: Most recent line points to include.

        Returns:
            DashboardSnapshot: Current dashboard state.

        Raises:
            StoreError: If any query fails.
        """
        with self._transaction("get_dashboard_snapshot", immediate=False) as conn:
            line = self._line_series(conn, line_limit)
            bar = self._aggregates(conn, MetricType.BAR)
            pie = self._aggregates(conn, MetricType.PIE)
            total = self._total_events(conn)

        return DashboardSnapshot(
            line_chart_data=line,
            bar_chart_data=bar,
            pie_chart_data=pie,
            total_events=total,
            last_updated=format_timestamp(utc_now()),
        )

    def get_stats(self) -> StoreStats:
        """
        Get store statistics.

        Returns:
            StoreStats: Row count, per-type counts, and timestamp range.
        """
        with self._transaction("get_stats", immediate=False) as conn:
            total = conn.execute("SELECT COUNT(*) AS total FROM metrics").fetchone()["total"]
            by_type = {
                r["metric_type"]: r["count"]
                for r in conn.execute(
                    """
                    SELECT metric_type, COUNT(*) AS count
                    FROM metrics
                    GROUP BY metric_type
                    """
                ).fetchall()
            }
            span = conn.execute(
                "SELECT MIN(timestamp) AS oldest, MAX(timestamp) AS newest FROM metrics"
            ).fetchone()

        return StoreStats(
            total_metrics=total,
            by_type=by_type,
            oldest_entry=span["oldest"],
            newest_entry=span["newest"],
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return f"MetricsStore(path={self.database_path}, connected={self.is_connected})"
