"""
WebSocket endpoint for real-time dashboard updates.

Provides:
    WS /ws - Push channel for dashboard snapshots
    WS /   - Same handler, kept for clients that connect to the bare host

Protocol:
    On connect the server sends the current snapshot:
    {
        "type": "initial",
        "data": {"lineChartData": [...], "barChartData": [...], ...}
    }

    After every committed write (and on the optional timer) it pushes:
    {
        "type": "update",
        "data": {...},
        "timestamp": "2025-01-26T12:34:56.789000Z"
    }

    Clients may send {"action": "ping"} and receive {"type": "pong"}.
    Text that is not JSON is answered with
    {"type": "error", "message": "Invalid JSON"}.
"""

import asyncio
import json
import uuid
from typing import Any, Callable, Dict, Optional

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.websockets import WebSocketState

from livesync.models.metrics import format_timestamp, utc_now
from livesync.models.snapshot import DashboardSnapshot, PushMessage
from livesync.storage.metrics_store import StoreError

logger = structlog.get_logger(__name__)

router = APIRouter()

SnapshotProvider = Callable[[], DashboardSnapshot]


class ConnectionManager:
    """
    Tracks live WebSocket connections and broadcasts snapshots to them.

    Connections are keyed by a generated id. A connection joins the set
    only after its initial snapshot has been sent, so it can never see an
    update before the initial message. Broadcasts are fire-and-forget:
    a failed send removes that connection and the loop moves on.
    Connections no longer in the CONNECTED state are dropped unsent.

    Attributes:
        active_connections: Live connections by id.
        total_connections: Connections accepted since start.
        broadcasts: Broadcast rounds performed.
        messages_sent: Update messages delivered.
        send_failures: Sends that failed and removed a connection.
    """

    def __init__(self, snapshot_provider: SnapshotProvider, timer_interval_ms: int = 0):
        """
        Initialize the connection manager.

        Args:
            snapshot_provider: Computes the current dashboard snapshot.
            timer_interval_ms: Periodic broadcast cadence; 0 disables it.
        """
        self.active_connections: Dict[str, WebSocket] = {}
        self._snapshot = snapshot_provider
        self.timer_interval = timer_interval_ms / 1000
        self._timer_task: Optional[asyncio.Task] = None

        self.total_connections = 0
        self.broadcasts = 0
        self.messages_sent = 0
        self.send_failures = 0

    @property
    def client_count(self) -> int:
        """Number of live connections."""
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a connection, send the initial snapshot, then register it.

        Args:
            websocket: The WebSocket connection to accept.

        Returns:
            str: Connection id.

        Raises:
            StoreError: If the initial snapshot cannot be computed.
        """
        await websocket.accept()
        connection_id = uuid.uuid4().hex

        message = PushMessage(type="initial", data=self._snapshot())
        await websocket.send_json(message.to_wire())

        self.active_connections[connection_id] = websocket
        self.total_connections += 1
        logger.info(
            "websocket_connected",
            connection_id=connection_id,
            total_connections=len(self.active_connections),
        )
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """
        Remove a connection. Unknown ids are ignored.

        Args:
            connection_id: Id returned by connect().
        """
        if self.active_connections.pop(connection_id, None) is None:
            return
        logger.info(
            "websocket_disconnected",
            connection_id=connection_id,
            total_connections=len(self.active_connections),
        )

    async def broadcast_update(self) -> int:
        """
        Send one fresh snapshot to every live connection.

        Returns:
            int: Number of connections the update reached.
        """
        if not self.active_connections:
            return 0

        try:
            snapshot = self._snapshot()
        except StoreError as e:
            logger.error("broadcast_snapshot_failed", error=str(e))
            return 0

        message = PushMessage(
            type="update",
            data=snapshot,
            timestamp=format_timestamp(utc_now()),
        ).to_wire()

        self.broadcasts += 1
        sent = 0
        failed = []
        closing = []

        for connection_id, websocket in list(self.active_connections.items()):
            if websocket.client_state != WebSocketState.CONNECTED:
                closing.append(connection_id)
                continue
            try:
                await websocket.send_json(message)
                sent += 1
            except Exception as e:
                logger.warning(
                    "websocket_send_failed",
                    connection_id=connection_id,
                    error=str(e),
                )
                failed.append(connection_id)

        # Clean up disconnected clients
        for connection_id in failed + closing:
            self.disconnect(connection_id)

        self.messages_sent += sent
        self.send_failures += len(failed)
        logger.debug(
            "broadcast_completed", sent=sent, failed=len(failed), closing=len(closing)
        )
        return sent

    def start_timer(self) -> None:
        """Start periodic broadcasts if a timer interval is configured."""
        if self.timer_interval <= 0 or self._timer_task is not None:
            return
        self._timer_task = asyncio.create_task(self._timer_loop())
        logger.info("broadcast_timer_started", interval_seconds=self.timer_interval)

    async def stop_timer(self) -> None:
        """Stop periodic broadcasts."""
        if self._timer_task is None:
            return
        self._timer_task.cancel()
        try:
            await self._timer_task
        except asyncio.CancelledError:
            pass
        self._timer_task = None
        logger.info("broadcast_timer_stopped")

    async def _timer_loop(self) -> None:
        while True:
            await asyncio.sleep(self.timer_interval)
            await self.broadcast_update()

    async def close_all(self) -> None:
        """Close every live connection (server shutdown)."""
        for connection_id, websocket in list(self.active_connections.items()):
            try:
                await websocket.close(code=status.WS_1001_GOING_AWAY)
            except Exception as e:
                logger.debug(
                    "websocket_close_error",
                    connection_id=connection_id,
                    error=str(e),
                )
            self.disconnect(connection_id)

    def stats(self) -> Dict[str, Any]:
        """Broadcast counters for the health endpoint."""
        return {
            "clients": self.client_count,
            "totalConnections": self.total_connections,
            "broadcasts": self.broadcasts,
            "messagesSent": self.messages_sent,
            "sendFailures": self.send_failures,
        }


@router.websocket("/ws")
@router.websocket("/")
async def dashboard_updates(websocket: WebSocket) -> None:
    """
    WebSocket endpoint for dashboard snapshots.

    Protocol:
        1. Client connects to /ws (or /)
        2. Server sends {"type": "initial", "data": {...}}
        3. Server pushes {"type": "update", ...} after every write
        4. Client may send {"action": "ping"} at any time

    Args:
        websocket: The WebSocket connection.
    """
    manager: ConnectionManager = websocket.app.state.context.broadcaster

    try:
        connection_id = await manager.connect(websocket)
    except StoreError as e:
        logger.error("websocket_initial_snapshot_failed", error=str(e))
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return
    except (WebSocketDisconnect, RuntimeError) as e:
        logger.info("websocket_initial_send_failed", error=str(e))
        return

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await websocket.send_json({
                    "type": "error",
                    "message": "Invalid JSON",
                })
                continue

            if isinstance(message, dict) and message.get("action") == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("websocket_error", connection_id=connection_id, error=str(e))
    finally:
        manager.disconnect(connection_id)
