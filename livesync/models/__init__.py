"""
Shared Pydantic data models for the live dashboard sync system.

Modules:
    metrics: Stored metric points and timestamp helpers
    snapshot: Derived dashboard snapshot and wire envelopes
    health: Client transport state and status

Example:
    >>> from livesync.models import MetricPoint, MetricType, DashboardSnapshot
"""

# Metric models
from livesync.models.metrics import (
    MetricPoint,
    MetricType,
    format_timestamp,
    parse_timestamp,
    utc_now,
)

# Snapshot models
from livesync.models.snapshot import (
    CategoryTotal,
    DashboardSnapshot,
    LinePoint,
    PollResponse,
    PushMessage,
    StoreStats,
)

# Health models
from livesync.models.health import (
    SyncStatus,
    TransportState,
)

__all__ = [
    # Metrics
    "MetricType",
    "MetricPoint",
    "format_timestamp",
    "parse_timestamp",
    "utc_now",
    # Snapshot
    "LinePoint",
    "CategoryTotal",
    "DashboardSnapshot",
    "PushMessage",
    "PollResponse",
    "StoreStats",
    # Health
    "TransportState",
    "SyncStatus",
]
