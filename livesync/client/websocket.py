"""
Push transport: WebSocket client with bounded fixed-interval reconnection.

Receives dashboard snapshots pushed by the server and drives the transport
state machine described by TransportState.

Connection Management:
    - One socket and at most one pending retry timer at any instant
    - Fixed reconnect interval (no backoff); the attempt counter resets on
      every successful open
    - One initial connect plus up to max_reconnect_attempts reconnects, then
      FAILED with MAX_RECONNECT_MARKER emitted once
    - Intentional closes (stop, reconnect) never schedule a retry

Message Format:
    {"type": "initial" | "update", "data": {...snapshot...}, "timestamp"?: "..."}
"""

import asyncio
import json
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

import structlog
import websockets
from pydantic import ValidationError
from websockets.exceptions import ConnectionClosed, WebSocketException

from livesync.models.health import TransportState
from livesync.models.metrics import utc_now
from livesync.models.snapshot import DashboardSnapshot, PushMessage

logger = structlog.get_logger(__name__)

MAX_RECONNECT_MARKER = "Max reconnection attempts reached"

Connector = Callable[[str], Awaitable[Any]]


async def default_connector(url: str) -> Any:
    """Open a client WebSocket with the websockets library."""
    return await websockets.connect(
        url,
        close_timeout=5,
        max_size=2**20,  # 1MB max message size
    )


class _Attempt:
    """One connection attempt; owns at most one socket."""

    __slots__ = ("intentional", "socket", "task")

    def __init__(self) -> None:
        self.intentional = False
        self.socket: Any = None
        self.task: Optional[asyncio.Task] = None


class PushTransport:
    """
    WebSocket push transport.

    Callbacks are plain functions invoked on the event loop thread:
    on_snapshot(DashboardSnapshot), on_state(TransportState) and
    on_error(str).

    Attributes:
        url: WebSocket endpoint URL.
        reconnect_interval: Seconds between a close and the next attempt.
        max_reconnect_attempts: Reconnects allowed after the initial connect.

    Example:
        >>> transport = PushTransport(
        ...     "ws://localhost:3001/ws",
        ...     on_snapshot=print,
        ...     on_error=lambda message: print("error:", message),
        ... )
        >>> transport.start()
        >>> await transport.stop()
    """

    def __init__(
        self,
        url: str,
        reconnect_interval_ms: int = 3000,
        max_reconnect_attempts: int = 10,
        connector: Optional[Connector] = None,
        on_snapshot: Optional[Callable[[DashboardSnapshot], None]] = None,
        on_state: Optional[Callable[[TransportState], None]] = None,
        on_error: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize the transport.

        Args:
            url: WebSocket endpoint URL.
            reconnect_interval_ms: Fixed delay before each reconnect.
            max_reconnect_attempts: Reconnects allowed before FAILED.
            connector: Coroutine function opening a socket for a URL.
                Defaults to websockets.connect.
            on_snapshot: Called with every snapshot received.
            on_state: Called on every state transition.
            on_error: Called with an error description.
        """
        self.url = url
        self.reconnect_interval = reconnect_interval_ms / 1000
        self.max_reconnect_attempts = max_reconnect_attempts

        self._connector = connector or default_connector
        self._on_snapshot = on_snapshot
        self._on_state = on_state
        self._on_error = on_error

        self._state = TransportState.DISCONNECTED
        self._attempts = 0
        self._current: Optional[_Attempt] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._last_message_at: Optional[datetime] = None

    @property
    def state(self) -> TransportState:
        """Current state of the transport."""
        return self._state

    @property
    def attempts(self) -> int:
        """Reconnects made since the last successful open."""
        return self._attempts

    @property
    def is_connected(self) -> bool:
        """Check if a socket is open."""
        return self._state == TransportState.OPEN

    @property
    def has_pending_retry(self) -> bool:
        """Check if a retry timer is scheduled."""
        return self._timer is not None

    @property
    def last_message_at(self) -> Optional[datetime]:
        """Get timestamp of last received message."""
        return self._last_message_at

    # =========================================================================
    # CONTROL
    # =========================================================================

    def start(self) -> None:
        """
        Begin connecting.

        Does nothing if the transport already owns a socket or timer.
        """
        if self._state.is_active:
            return
        self._attempts = 0
        self._open_attempt()

    async def stop(self) -> None:
        """
        Close the socket and cancel any pending retry.

        The close is marked intentional, so nothing is rescheduled. Safe to
        call multiple times.
        """
        await self._teardown()
        self._set_state(TransportState.DISCONNECTED)

    async def reconnect(self) -> None:
        """Force-close any socket, reset the attempt budget and connect again."""
        await self._teardown()
        self._attempts = 0
        logger.info("push_manual_reconnect", url=self.url)
        self._open_attempt()

    def _open_attempt(self) -> None:
        attempt = _Attempt()
        self._current = attempt
        self._set_state(TransportState.CONNECTING)
        attempt.task = asyncio.create_task(self._run(attempt))

    async def _teardown(self) -> None:
        """Cancel the retry timer and close the current attempt intentionally."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

        attempt, self._current = self._current, None
        if attempt is None:
            return

        attempt.intentional = True
        task = attempt.task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if attempt.socket is not None:
            try:
                await attempt.socket.close()
            except Exception as e:
                logger.warning("push_close_error", url=self.url, error=str(e))

    # =========================================================================
    # CONNECTION LIFECYCLE
    # =========================================================================

    async def _run(self, attempt: _Attempt) -> None:
        """Open one socket and read from it until it closes."""
        try:
            socket = await self._connector(self.url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "push_connect_failed",
                url=self.url,
                attempt=self._attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._handle_close(attempt, str(e))
            return

        attempt.socket = socket
        if attempt.intentional:
            await socket.close()
            return

        self._attempts = 0
        self._set_state(TransportState.OPEN)
        logger.info("push_connected", url=self.url)

        reason = "connection closed"
        try:
            async for raw in socket:
                self._handle_message(raw)
        except ConnectionClosed as e:
            reason = str(e)
        except (WebSocketException, OSError) as e:
            reason = str(e)
            logger.error("push_socket_error", url=self.url, error=reason)

        self._handle_close(attempt, reason)

    def _handle_close(self, attempt: _Attempt, reason: str) -> None:
        """Decide what follows the close of an attempt's socket."""
        if attempt is not self._current:
            # A superseded attempt; its successor owns the state now.
            return

        if attempt.intentional:
            self._set_state(TransportState.DISCONNECTED)
            return

        if self._attempts < self.max_reconnect_attempts:
            self._attempts += 1
            self._set_state(TransportState.RECONNECT_WAIT)
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(self.reconnect_interval, self._fire_retry)
            logger.info(
                "push_reconnect_scheduled",
                url=self.url,
                attempt=self._attempts,
                max_attempts=self.max_reconnect_attempts,
                delay_seconds=self.reconnect_interval,
                reason=reason,
            )
            return

        self._current = None
        self._set_state(TransportState.FAILED)
        logger.error(
            "push_max_reconnect_exceeded",
            url=self.url,
            max_attempts=self.max_reconnect_attempts,
        )
        if self._on_error is not None:
            self._on_error(MAX_RECONNECT_MARKER)

    def _fire_retry(self) -> None:
        self._timer = None
        if self._state != TransportState.RECONNECT_WAIT:
            return
        self._open_attempt()

    def _handle_message(self, raw: Any) -> None:
        """Parse one pushed message and deliver its snapshot."""
        self._last_message_at = utc_now()
        try:
            message = PushMessage.model_validate(json.loads(raw))
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            logger.warning(
                "push_invalid_message",
                url=self.url,
                error=str(e)[:200],
                message=str(raw)[:100],
            )
            return

        logger.debug(
            "push_message_received",
            type=message.type,
            total_events=message.data.total_events,
        )
        if self._on_snapshot is not None:
            self._on_snapshot(message.data)

    def _set_state(self, state: TransportState) -> None:
        if state == self._state:
            return
        previous, self._state = self._state, state
        logger.debug("push_state_changed", previous=previous.value, state=state.value)
        if self._on_state is not None:
            self._on_state(state)

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"PushTransport(url={self.url}, "
            f"state={self._state.value}, "
            f"attempts={self._attempts})"
        )
