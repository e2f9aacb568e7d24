"""
Connection state and status models for the sync client.

Models:
    TransportState: States of the push transport state machine
    SyncStatus: Coarse status reported to subscribers
"""

from enum import Enum


class TransportState(str, Enum):
    """
    Push transport state.

    Transitions:
        DISCONNECTED -> CONNECTING            (start)
        CONNECTING -> OPEN                    (socket opened)
        CONNECTING|OPEN -> RECONNECT_WAIT     (unintentional close, budget left)
        RECONNECT_WAIT -> CONNECTING          (retry timer fired)
        CONNECTING|OPEN -> FAILED             (unintentional close, budget spent)
        CONNECTING|OPEN -> DISCONNECTED       (intentional close)

    Attributes:
        DISCONNECTED: No socket, no timer.
        CONNECTING: A socket is being opened.
        OPEN: Socket open and delivering snapshots.
        RECONNECT_WAIT: Socket gone, one retry timer pending.
        FAILED: Reconnection budget exhausted; terminal until reconnect().
    """

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"
    RECONNECT_WAIT = "reconnect_wait"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        """Check if the transport owns a socket or a pending timer."""
        return self in (
            TransportState.CONNECTING,
            TransportState.OPEN,
            TransportState.RECONNECT_WAIT,
        )


class SyncStatus(str, Enum):
    """
    Connection status exposed to subscribers.

    Attributes:
        CONNECTING: Push socket is opening.
        CONNECTED: Push socket is open.
        RECONNECTING: Push socket lost, retry pending.
        DISCONNECTED: No transport running.
        FAILED: Push reconnection budget exhausted.
        POLLING: Pull transport active, last fetch succeeded.
        POLLING_ERROR: Pull transport active, last fetch failed.
    """

    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISCONNECTED = "disconnected"
    FAILED = "failed"
    POLLING = "polling"
    POLLING_ERROR = "polling_error"

    @property
    def is_healthy(self) -> bool:
        """Check if snapshots are currently flowing."""
        return self in (SyncStatus.CONNECTED, SyncStatus.POLLING)
