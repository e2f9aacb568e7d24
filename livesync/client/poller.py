"""
Pull transport: fixed-cadence poll loop with an in-flight guard.

The loop fetches immediately on start and then once per interval. A tick
that finds the previous fetch still outstanding is skipped, so slow
responses never pile up. Failures are recorded and the loop keeps ticking
at the same cadence, with no backoff and no retry limit.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Optional

import structlog

from livesync.client.errors import TransportError
from livesync.models.metrics import utc_now
from livesync.models.snapshot import DashboardSnapshot

logger = structlog.get_logger(__name__)

FetchSnapshot = Callable[[], Awaitable[DashboardSnapshot]]


class PollLoop:
    """
    Periodically fetches dashboard snapshots.

    Attributes:
        interval: Seconds between ticks.
        last_snapshot: Most recent snapshot fetched.
        last_fetch: When the last successful fetch completed.
        last_error: Description of the last failure, cleared on success.
        fetch_count: Successful fetches.
        error_count: Failed fetches.
        skipped_ticks: Ticks skipped because a fetch was in flight.

    Example:
        >>> loop = PollLoop(rest_client.get_dashboard, interval_ms=3000)
        >>> loop.start()
        >>> await loop.stop()
    """

    def __init__(
        self,
        fetch: FetchSnapshot,
        interval_ms: int = 3000,
        on_snapshot: Optional[Callable[[DashboardSnapshot], None]] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self._fetch = fetch
        self.interval = interval_ms / 1000
        self._on_snapshot = on_snapshot
        self._on_error = on_error

        self._task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None

        self.last_snapshot: Optional[DashboardSnapshot] = None
        self.last_fetch: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.fetch_count = 0
        self.error_count = 0
        self.skipped_ticks = 0

    @property
    def is_running(self) -> bool:
        """Check if the loop is ticking."""
        return self._task is not None and not self._task.done()

    @property
    def is_fetching(self) -> bool:
        """Check if a fetch is outstanding."""
        return self._in_flight is not None and not self._in_flight.done()

    def start(self) -> None:
        """Start ticking. Does nothing if already running."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("poll_loop_started", interval_seconds=self.interval)

    async def stop(self) -> None:
        """Stop ticking and cancel any outstanding fetch."""
        for task in (self._task, self._in_flight):
            if task is None or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        was_running = self._task is not None
        self._task = None
        self._in_flight = None
        if was_running:
            logger.info("poll_loop_stopped", fetches=self.fetch_count, errors=self.error_count)

    def tick(self) -> bool:
        """
        Issue a fetch unless one is already outstanding.

        Returns:
            bool: True if a fetch was issued, False if the tick was skipped.
        """
        if self.is_fetching:
            self.skipped_ticks += 1
            logger.debug("poll_tick_skipped", reason="fetch_in_flight")
            return False
        self._in_flight = asyncio.create_task(self._fetch_once())
        return True

    def refresh(self) -> bool:
        """Fetch now, out of band. Subject to the same in-flight guard."""
        return self.tick()

    async def _run(self) -> None:
        while True:
            self.tick()
            await asyncio.sleep(self.interval)

    async def _fetch_once(self) -> None:
        try:
            snapshot = await self._fetch()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error_count += 1
            self.last_error = str(e)
            if isinstance(e, TransportError):
                logger.warning("poll_fetch_failed", error=str(e), errors=self.error_count)
            else:
                logger.error(
                    "poll_fetch_unexpected_error",
                    error=str(e),
                    error_type=type(e).__name__,
                )
            if self._on_error is not None:
                self._on_error(e)
            return

        self.last_snapshot = snapshot
        self.last_fetch = utc_now()
        self.last_error = None
        self.fetch_count += 1
        if self._on_snapshot is not None:
            self._on_snapshot(snapshot)
