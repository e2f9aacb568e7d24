"""
Server context for the dashboard service.

Holds the objects that live for the whole life of the server: the metrics
store, the generator and the WebSocket connection manager. One context is
built per application by create_app() and reached by handlers through
app.state.context.
"""

from datetime import datetime

import structlog
from starlette.requests import HTTPConnection

from livesync.config.models import AppConfig
from livesync.generator.generator import MetricsGenerator
from livesync.models.metrics import utc_now
from livesync.models.snapshot import DashboardSnapshot
from livesync.storage.metrics_store import MetricsStore
from services.dashboard.websocket.updates import ConnectionManager

logger = structlog.get_logger(__name__)


class ServerContext:
    """
    Long-lived server components.

    Attributes:
        config: Server configuration.
        store: Metrics store.
        generator: Synthetic metric generator.
        broadcaster: WebSocket connection manager.
        start_time: When the context was started.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.store = MetricsStore(config.storage)
        self.generator = MetricsGenerator(self.store, config.generator)
        self.broadcaster = ConnectionManager(
            self.snapshot,
            timer_interval_ms=config.broadcast.timer_interval_ms,
        )
        self.start_time: datetime = utc_now()

    def snapshot(self) -> DashboardSnapshot:
        """Compute the current dashboard snapshot."""
        return self.store.get_dashboard_snapshot(
            line_limit=self.config.broadcast.line_series_limit
        )

    @property
    def uptime_seconds(self) -> int:
        """Seconds since start()."""
        return int((utc_now() - self.start_time).total_seconds())

    async def start(self) -> None:
        """
        Open the store, seed it if empty, and start background work.

        Raises:
            StoreError: If the store cannot be opened or seeded.
        """
        self.store.connect()

        if self.config.generator.seed_on_empty:
            self.generator.seed_if_empty()

        if self.config.generator.enabled:
            self.generator.start(on_write=self.broadcaster.broadcast_update)

        self.broadcaster.start_timer()
        self.start_time = utc_now()
        logger.info(
            "server_context_started",
            database_path=self.store.database_path,
            generator_enabled=self.config.generator.enabled,
        )

    async def stop(self) -> None:
        """Stop background work, close connections and the store."""
        await self.generator.stop()
        await self.broadcaster.stop_timer()
        await self.broadcaster.close_all()
        self.store.close()
        logger.info("server_context_stopped", uptime_seconds=self.uptime_seconds)


def get_context(connection: HTTPConnection) -> ServerContext:
    """FastAPI dependency returning the application's server context."""
    return connection.app.state.context
