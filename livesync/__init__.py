"""
Live Dashboard Sync.

Keeps dashboard clients in sync with a continuously updated metrics store.

This package provides:
- Data models for metric points, dashboard snapshots and wire envelopes
- An embedded SQLite metrics store
- A synthetic metric generator
- Client-side sync with WebSocket push and HTTP polling fallback
- Configuration management and structured logging setup
"""

__version__ = "0.1.0"
