"""
Storage for the live dashboard sync system.

Components:
    metrics_store: Embedded SQLite store for metric points
"""

from livesync.storage.metrics_store import MetricsStore, StoreError

__all__: list[str] = [
    "MetricsStore",
    "StoreError",
]
