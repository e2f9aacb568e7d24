"""
Watcher service entry point.

A headless dashboard client. It follows a dashboard server through the
ClientSyncManager (WebSocket push, falling back to HTTP polling) and logs
every snapshot and every status change.

Usage:
    python -m services.watcher.main

    Or through the console script:
    livesync-watch

Environment Variables:
    CONFIG_PATH: Directory holding client.yaml (default: config)
    SYNC_SERVER_URL: Dashboard server URL (default: http://localhost:3001)
    LOG_LEVEL: Logging level (default: INFO)
"""

import asyncio
import os
import signal
import sys
from typing import Optional

import structlog

from livesync import __version__
from livesync.client.sync_manager import ClientSyncManager
from livesync.config.loader import ConfigLoadError, load_client_config
from livesync.config.models import ClientConfig
from livesync.logging_config import setup_logging
from livesync.models.health import SyncStatus
from livesync.models.snapshot import DashboardSnapshot

logger = structlog.get_logger(__name__)


class DashboardWatcher:
    """
    Runs a sync manager until asked to stop.

    Attributes:
        config: Client configuration.
        manager: The sync manager being followed.
        snapshots_seen: Snapshots received so far.
        shutdown_event: Set to stop the watcher.
    """

    def __init__(self, config: ClientConfig, manager: Optional[ClientSyncManager] = None):
        self.config = config
        self.manager = manager or ClientSyncManager(config)
        self.snapshots_seen = 0
        self.shutdown_event = asyncio.Event()

    def on_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self.snapshots_seen += 1
        latest = snapshot.line_chart_data[-1].value if snapshot.line_chart_data else None
        logger.info(
            "dashboard_snapshot",
            mode=self.manager.mode.value,
            total_events=snapshot.total_events,
            latest_value=latest,
            bar={c.category: c.count for c in snapshot.bar_chart_data},
            pie={c.category: c.count for c in snapshot.pie_chart_data},
        )

    def on_status(self, status: SyncStatus) -> None:
        log = logger.info if status.is_healthy else logger.warning
        log(
            "dashboard_connection_status",
            status=status.value,
            mode=self.manager.mode.value,
            error=self.manager.last_error,
            seconds_since_update=self.manager.seconds_since_update(),
        )

    def stop(self) -> None:
        """Request shutdown."""
        self.shutdown_event.set()

    async def run(self) -> None:
        """Follow the server until stop() is called."""
        unsubscribe = self.manager.subscribe(
            on_snapshot=self.on_snapshot,
            on_status=self.on_status,
        )
        try:
            await self.manager.start()
            await self.shutdown_event.wait()
        finally:
            unsubscribe()
            await self.manager.close()
            logger.info("watcher_stopped", snapshots_seen=self.snapshots_seen)


async def run_watcher() -> None:
    """Load configuration, install signal handlers and run the watcher."""
    config_path = os.getenv("CONFIG_PATH", "config")

    try:
        app_config = load_client_config(config_path)
    except ConfigLoadError as e:
        logger.error("config_load_failed", error=str(e), file_path=str(e.file_path))
        sys.exit(1)

    setup_logging(app_config.logging)
    logger.info(
        "watcher_service_starting",
        version=__version__,
        server_url=app_config.client.server_url,
        mode=app_config.client.default_mode.value,
    )

    watcher = DashboardWatcher(app_config.client)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, watcher.stop)
        except NotImplementedError:
            # Windows event loops have no signal handler support
            pass

    await watcher.run()


def main() -> None:
    """Main entry point."""
    try:
        asyncio.run(run_watcher())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
