"""
Client sync manager.

Owns one push transport and one poll loop and keeps exactly one of them
active. Subscribers receive every snapshot from the active transport and
every status change.

Failover:
    When the push transport reports MAX_RECONNECT_MARKER the manager stops
    it and starts the poll loop. Callers may switch transports at any time
    with set_mode(); switching is a strict stop-then-start sequence
    serialized by a lock, so two transports never deliver at once.

Status mapping:
    push CONNECTING -> connecting, OPEN -> connected,
    RECONNECT_WAIT -> reconnecting, DISCONNECTED -> disconnected,
    FAILED -> failed; poll success -> polling, poll failure -> polling_error
"""

import asyncio
from datetime import datetime
from typing import Callable, List, Optional

import structlog

from livesync.client.poller import FetchSnapshot, PollLoop
from livesync.client.rest import DashboardRestClient
from livesync.client.websocket import MAX_RECONNECT_MARKER, Connector, PushTransport
from livesync.config.models import ClientConfig, ConnectionMode
from livesync.models.health import SyncStatus, TransportState
from livesync.models.metrics import utc_now
from livesync.models.snapshot import DashboardSnapshot

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[DashboardSnapshot], None]
StatusListener = Callable[[SyncStatus], None]

_PUSH_STATUS = {
    TransportState.CONNECTING: SyncStatus.CONNECTING,
    TransportState.OPEN: SyncStatus.CONNECTED,
    TransportState.RECONNECT_WAIT: SyncStatus.RECONNECTING,
    TransportState.DISCONNECTED: SyncStatus.DISCONNECTED,
    TransportState.FAILED: SyncStatus.FAILED,
}


class ClientSyncManager:
    """
    Keeps a local dashboard snapshot in sync with the server.

    Attributes:
        config: Client configuration.
        push: WebSocket push transport.
        poll: HTTP poll loop.
        mode: Transport currently selected.
        snapshot: Latest snapshot delivered by the active transport.
        status: Current connection status.
        last_error: Last error reported by either transport.
        failovers: Automatic switches from push to polling.

    Example:
        >>> async with ClientSyncManager(ClientConfig()) as manager:
        ...     unsubscribe = manager.subscribe(on_snapshot=render)
        ...     await asyncio.sleep(60)
        ...     unsubscribe()
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        connector: Optional[Connector] = None,
        fetch: Optional[FetchSnapshot] = None,
    ):
        """
        Initialize the manager. Nothing connects until start().

        Args:
            config: Client configuration. Defaults to ClientConfig().
            connector: WebSocket connector override for the push transport.
            fetch: Snapshot fetch override for the poll loop. Defaults to
                DashboardRestClient.get_dashboard.
        """
        self.config = config or ClientConfig()

        self._rest: Optional[DashboardRestClient] = None
        if fetch is None:
            self._rest = DashboardRestClient(
                self.config.server_url,
                timeout_seconds=self.config.request_timeout_seconds,
            )
            fetch = self._rest.get_dashboard

        self.push = PushTransport(
            self.config.websocket_url,
            reconnect_interval_ms=self.config.reconnect_interval_ms,
            max_reconnect_attempts=self.config.max_reconnect_attempts,
            connector=connector,
            on_snapshot=self._on_push_snapshot,
            on_state=self._on_push_state,
            on_error=self._on_push_error,
        )
        self.poll = PollLoop(
            fetch,
            interval_ms=self.config.poll_interval_ms,
            on_snapshot=self._on_poll_snapshot,
            on_error=self._on_poll_error,
        )

        self.mode = self.config.default_mode
        self.snapshot: Optional[DashboardSnapshot] = None
        self.status = SyncStatus.DISCONNECTED
        self.last_error: Optional[str] = None
        self.failovers = 0

        self._started = False
        self._lock = asyncio.Lock()
        self._failover_task: Optional[asyncio.Task] = None
        self._snapshot_listeners: List[SnapshotListener] = []
        self._status_listeners: List[StatusListener] = []

    @property
    def is_connected(self) -> bool:
        """Check if snapshots are currently flowing."""
        return self.status.is_healthy

    @property
    def last_update_at(self) -> Optional[datetime]:
        """When the active transport last delivered data, or None."""
        if self.mode == ConnectionMode.WEBSOCKET:
            return self.push.last_message_at
        return self.poll.last_fetch

    def seconds_since_update(self, now: Optional[datetime] = None) -> Optional[float]:
        """
        Age of the newest data from the active transport.

        Args:
            now: Reference time (default: current UTC time).

        Returns:
            Optional[float]: Seconds since the last delivery, None if nothing arrived.
        """
        last = self.last_update_at
        if last is None:
            return None
        return ((now or utc_now()) - last).total_seconds()

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def subscribe(
        self,
        on_snapshot: Optional[SnapshotListener] = None,
        on_status: Optional[StatusListener] = None,
    ) -> Callable[[], None]:
        """
        Register listeners.

        Args:
            on_snapshot: Called with each new snapshot.
            on_status: Called with each status change.

        Returns:
            Callable[[], None]: Removes both listeners when called.
        """
        if on_snapshot is not None:
            self._snapshot_listeners.append(on_snapshot)
        if on_status is not None:
            self._status_listeners.append(on_status)

        def unsubscribe() -> None:
            if on_snapshot in self._snapshot_listeners:
                self._snapshot_listeners.remove(on_snapshot)
            if on_status in self._status_listeners:
                self._status_listeners.remove(on_status)

        return unsubscribe

    def _notify(self, listeners: List[Callable], value) -> None:
        for listener in list(listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(
                    "sync_listener_failed",
                    listener=getattr(listener, "__name__", repr(listener)),
                    error=str(e),
                    error_type=type(e).__name__,
                )

    def _set_status(self, status: SyncStatus) -> None:
        if status == self.status:
            return
        self.status = status
        logger.info("sync_status_changed", status=status.value, mode=self.mode.value)
        self._notify(self._status_listeners, status)

    def _apply_snapshot(self, snapshot: DashboardSnapshot) -> None:
        self.snapshot = snapshot
        self._notify(self._snapshot_listeners, snapshot)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Start the transport selected by the current mode."""
        async with self._lock:
            if self._started:
                return
            self._started = True
            logger.info("sync_manager_starting", mode=self.mode.value)
            self._start_transport(self.mode)

    async def close(self) -> None:
        """
        Tear everything down.

        Cancels any pending failover, stops both transports (the push close
        is intentional, so no retry is scheduled) and closes the HTTP session.
        """
        if self._failover_task is not None and not self._failover_task.done():
            self._failover_task.cancel()
            try:
                await self._failover_task
            except asyncio.CancelledError:
                pass
        self._failover_task = None

        async with self._lock:
            await self.push.stop()
            await self.poll.stop()
            self._started = False

        if self._rest is not None:
            await self._rest.close()

        self._set_status(SyncStatus.DISCONNECTED)
        logger.info("sync_manager_closed")

    async def __aenter__(self) -> "ClientSyncManager":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _start_transport(self, mode: ConnectionMode) -> None:
        if mode == ConnectionMode.WEBSOCKET:
            self.push.start()
        else:
            self._set_status(SyncStatus.POLLING)
            self.poll.start()

    async def _stop_transport(self, mode: ConnectionMode) -> None:
        if mode == ConnectionMode.WEBSOCKET:
            await self.push.stop()
        else:
            await self.poll.stop()

    # =========================================================================
    # MODE CONTROL
    # =========================================================================

    async def set_mode(self, mode: ConnectionMode) -> None:
        """
        Select a transport.

        Stops the active transport, then starts the requested one. Does
        nothing if the requested transport is already running.

        Args:
            mode: Transport to use.
        """
        mode = ConnectionMode(mode)
        async with self._lock:
            if mode == self.mode and self._started:
                return
            previous = self.mode
            if self._started:
                await self._stop_transport(previous)
            self.mode = mode
            self._started = True
            self._start_transport(mode)
            logger.info("sync_mode_changed", previous=previous.value, mode=mode.value)

    async def reconnect(self) -> None:
        """
        Restart the push transport with a fresh attempt budget.

        Switches back from polling first if needed.
        """
        async with self._lock:
            if self.mode != ConnectionMode.WEBSOCKET:
                await self.poll.stop()
                self.mode = ConnectionMode.WEBSOCKET
            self._started = True
            await self.push.reconnect()

    async def _failover(self) -> None:
        async with self._lock:
            if self.mode != ConnectionMode.WEBSOCKET or not self._started:
                return
            await self.push.stop()
            self.mode = ConnectionMode.POLLING
            self.failovers += 1
            logger.warning(
                "sync_failover_to_polling",
                failovers=self.failovers,
                poll_interval_seconds=self.poll.interval,
            )
            self._start_transport(ConnectionMode.POLLING)

    # =========================================================================
    # TRANSPORT CALLBACKS
    # =========================================================================

    def _on_push_snapshot(self, snapshot: DashboardSnapshot) -> None:
        if self.mode != ConnectionMode.WEBSOCKET:
            return
        self._apply_snapshot(snapshot)

    def _on_push_state(self, state: TransportState) -> None:
        if self.mode != ConnectionMode.WEBSOCKET:
            return
        if state == TransportState.OPEN:
            self.last_error = None
        self._set_status(_PUSH_STATUS[state])

    def _on_push_error(self, message: str) -> None:
        self.last_error = message
        logger.warning("sync_push_error", error=message)
        if MAX_RECONNECT_MARKER not in message:
            return
        if self._failover_task is not None and not self._failover_task.done():
            return
        self._failover_task = asyncio.create_task(self._failover())

    def _on_poll_snapshot(self, snapshot: DashboardSnapshot) -> None:
        if self.mode != ConnectionMode.POLLING:
            return
        self.last_error = None
        self._apply_snapshot(snapshot)
        self._set_status(SyncStatus.POLLING)

    def _on_poll_error(self, error: Exception) -> None:
        if self.mode != ConnectionMode.POLLING:
            return
        self.last_error = str(error)
        self._set_status(SyncStatus.POLLING_ERROR)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"ClientSyncManager(server={self.config.server_url}, "
            f"mode={self.mode.value}, status={self.status.value})"
        )
