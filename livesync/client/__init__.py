"""
Client-side sync for the live dashboard.

Components:
    websocket: Push transport with bounded fixed-interval reconnection
    poller: Pull transport with an in-flight guard
    rest: aiohttp client for the dashboard HTTP API
    sync_manager: Supervisor keeping exactly one transport active
"""

from livesync.client.errors import TransportError
from livesync.client.poller import PollLoop
from livesync.client.rest import DashboardRestClient
from livesync.client.sync_manager import ClientSyncManager
from livesync.client.websocket import MAX_RECONNECT_MARKER, PushTransport

__all__: list[str] = [
    "ClientSyncManager",
    "DashboardRestClient",
    "MAX_RECONNECT_MARKER",
    "PollLoop",
    "PushTransport",
    "TransportError",
]
