"""
Synthetic metric generator.

Feeds the metrics store with realistic-looking dashboard data:

Seeding:
    One hour (or N hours) of backdated history so dashboards never render
    empty: 61 line points evenly spaced up to "now", plus one bar and one
    pie point per category.

Continuous mode:
    Every interval, one new line point plus a bar delta and a pie delta per
    category, written as one atomic batch. After the batch commits the
    on_write callback runs (push-on-write), so subscribers see new data
    without waiting for a timer.

Value ranges:
    - line: 20..120
    - bar seed: 100..600, bar delta: -25..+25
    - pie seed: 50..350, pie delta: -15..+15
"""

import asyncio
import random
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List, Optional

import structlog

from livesync.config.models import GeneratorConfig
from livesync.models.metrics import MetricPoint, MetricType, utc_now
from livesync.storage.metrics_store import MetricsStore, StoreError

logger = structlog.get_logger(__name__)

# Line points per seeded window: one per minute over an hour, both ends included.
SEED_LINE_POINTS = 61

OnWrite = Callable[[], Awaitable[None]]


class MetricsGenerator:
    """
    Produces metric points and writes them through the store.

    Attributes:
        store: Destination store.
        config: Generator configuration.
        ticks: Realtime batches written since start.
        failures: Realtime ticks that failed.

    Example:
        >>> generator = MetricsGenerator(store, GeneratorConfig())
        >>> generator.seed_if_empty()
        69
        >>> task = generator.start(on_write=broadcaster.broadcast_update)
        >>> await generator.stop()
    """

    def __init__(
        self,
        store: MetricsStore,
        config: Optional[GeneratorConfig] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        """
        Initialize the generator.

        Args:
            store: Destination store.
            config: Generator configuration. Defaults to GeneratorConfig().
            rng: Random source; inject a seeded instance for reproducible data.
        """
        self.store = store
        self.config = config or GeneratorConfig()
        self.categories: List[str] = list(self.config.categories)
        self._rng = rng or random.Random()
        self._task: Optional[asyncio.Task] = None
        self.ticks = 0
        self.failures = 0

    @property
    def is_running(self) -> bool:
        """Check if continuous generation is active."""
        return self._task is not None and not self._task.done()

    def _randint(self, low: int, high: int) -> int:
        return self._rng.randint(low, high)

    # =========================================================================
    # BATCH BUILDERS
    # =========================================================================

    def build_history(self, hours: float = 1, now: Optional[datetime] = None) -> List[MetricPoint]:
        """
        Build backdated history without writing it.

        Args:
            hours: Length of the history window.
            now: End of the window. Defaults to the current time.

        Returns:
            List[MetricPoint]: 61 line points plus one bar and one pie per category.
        """
        now = now or utc_now()
        step = timedelta(hours=hours) / (SEED_LINE_POINTS - 1)
        points: List[MetricPoint] = []

        for i in range(SEED_LINE_POINTS - 1, -1, -1):
            points.append(
                MetricPoint(
                    timestamp=now - step * i,
                    metric_type=MetricType.LINE,
                    value=self._randint(20, 120),
                )
            )

        for category in self.categories:
            points.append(
                MetricPoint(
                    timestamp=now,
                    metric_type=MetricType.BAR,
                    category=category,
                    value=self._randint(100, 600),
                )
            )

        for category in self.categories:
            points.append(
                MetricPoint(
                    timestamp=now,
                    metric_type=MetricType.PIE,
                    category=category,
                    value=self._randint(50, 350),
                )
            )

        return points

    def build_realtime(self, now: Optional[datetime] = None) -> List[MetricPoint]:
        """
        Build one realtime tick without writing it.

        Args:
            now: Timestamp for every point. Defaults to the current time.

        Returns:
            List[MetricPoint]: One line point plus one bar and one pie delta per category.
        """
        now = now or utc_now()
        points = [
            MetricPoint(
                timestamp=now,
                metric_type=MetricType.LINE,
                value=self._randint(20, 120),
            )
        ]
        points.extend(
            MetricPoint(
                timestamp=now,
                metric_type=MetricType.BAR,
                category=category,
                value=self._randint(-25, 25),
            )
            for category in self.categories
        )
        points.extend(
            MetricPoint(
                timestamp=now,
                metric_type=MetricType.PIE,
                category=category,
                value=self._randint(-15, 15),
            )
            for category in self.categories
        )
        return points

    # =========================================================================
    # WRITES
    # =========================================================================

    def seed_historical(self, hours: float = 1) -> int:
        """
        Write backdated history in one batch.

        Args:
            hours: Length of the history window.

        Returns:
            int: Number of points written.

        Raises:
            StoreError: If the batch fails; nothing is written.
        """
        logger.info("generator_seeding", hours=hours)
        count = self.store.insert_batch(self.build_history(hours))
        logger.info("generator_seeded", hours=hours, count=count)
        return count

    def seed_if_empty(self) -> int:
        """
        Seed history only when the store holds no points.

        Returns:
            int: Number of points written (0 if the store was not empty).
        """
        if not self.store.is_empty():
            logger.debug("generator_seed_skipped", reason="store_not_empty")
            return 0
        return self.seed_historical(self.config.seed_hours)

    def generate_realtime(self) -> List[MetricPoint]:
        """
        Write one realtime tick.

        Returns:
            List[MetricPoint]: The points written.

        Raises:
            StoreError: If the batch fails.
        """
        points = self.build_realtime()
        self.store.insert_batch(points)
        return points

    # =========================================================================
    # CONTINUOUS MODE
    # =========================================================================

    def start(self, on_write: Optional[OnWrite] = None) -> asyncio.Task:
        """
        Start continuous generation.

        Idempotent - returns the running task if already started.

        Args:
            on_write: Awaited after each committed batch.

        Returns:
            asyncio.Task: The generation task.
        """
        if self.is_running:
            return self._task

        self._task = asyncio.create_task(self._run(on_write))
        logger.info(
            "generator_started",
            interval_ms=self.config.update_interval_ms,
            categories=self.categories,
        )
        return self._task

    async def stop(self) -> None:
        """Stop continuous generation. Safe to call multiple times."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("generator_stopped", ticks=self.ticks)

    async def _run(self, on_write: Optional[OnWrite]) -> None:
        """Write a batch every interval, then notify."""
        interval = self.config.update_interval_ms / 1000

        while True:
            await asyncio.sleep(interval)
            try:
                self.generate_realtime()
            except StoreError as e:
                self.failures += 1
                logger.error("generator_tick_failed", error=str(e))
                continue

            self.ticks += 1
            logger.debug("generator_tick", ticks=self.ticks)

            if on_write is not None:
                try:
                    await on_write()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.error(
                        "generator_on_write_failed",
                        error=str(e),
                        error_type=type(e).__name__,
                    )
