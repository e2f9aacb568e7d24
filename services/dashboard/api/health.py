"""
Health API endpoint for server status.

Provides:
    GET /health - Liveness, connected clients, store statistics and
                  broadcast counters
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

import structlog

from livesync.models.metrics import format_timestamp, utc_now
from livesync.storage.metrics_store import StoreError
from services.dashboard.context import ServerContext, get_context

logger = structlog.get_logger(__name__)

router = APIRouter()


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = "ok"
    timestamp: str
    clients: int = 0
    uptime_seconds: int = 0
    store: str = "unknown"
    stats: Optional[Dict[str, Any]] = None
    counters: Dict[str, Any]

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "ok",
                "timestamp": "2025-01-26T12:34:57.000000Z",
                "clients": 2,
                "uptime_seconds": 3600,
                "store": "connected",
                "stats": {
                    "totalMetrics": 18069,
                    "byType": {"line": 2061, "bar": 8004, "pie": 8004},
                    "oldestEntry": "2025-01-26T11:34:57.000000Z",
                    "newestEntry": "2025-01-26T12:34:57.000000Z",
                },
                "counters": {
                    "clients": 2,
                    "totalConnections": 5,
                    "broadcasts": 18000,
                    "messagesSent": 36000,
                    "sendFailures": 1,
                    "generatorTicks": 18000,
                    "generatorFailures": 0,
                },
            }
        }
    }


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Get server health status",
)
async def get_health(context: ServerContext = Depends(get_context)) -> HealthResponse:
    """
    Get server health status.

    The endpoint answers even when the store is unavailable; in that case
    stats is null and store reports "error".

    Returns:
        HealthResponse: Server health status.
    """
    stats = None
    store_status = "disconnected"

    if context.store.ping():
        store_status = "connected"
        try:
            stats = context.store.get_stats().to_wire()
        except StoreError as e:
            logger.error("get_health_stats_error", error=str(e))
            store_status = "error"

    counters = context.broadcaster.stats()
    counters["generatorTicks"] = context.generator.ticks
    counters["generatorFailures"] = context.generator.failures

    return HealthResponse(
        timestamp=format_timestamp(utc_now()),
        clients=context.broadcaster.client_count,
        uptime_seconds=context.uptime_seconds,
        store=store_status,
        stats=stats,
        counters=counters,
    )
