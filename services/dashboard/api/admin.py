"""
Admin API endpoints for the metrics store.

Provides:
    GET    /api/stats   - Store statistics
    POST   /api/seed    - Write backdated history
    DELETE /api/cleanup - Delete points older than N hours
    POST   /api/metrics - Write externally produced points

Every write is one atomic batch and is followed by a broadcast to live
WebSocket clients once it has committed. Invalid bodies are rejected with
HTTP 400 before reaching the store (see the validation handler in app.py).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

import structlog

from livesync.models.metrics import MetricPoint
from livesync.storage.metrics_store import StoreError
from services.dashboard.context import ServerContext, get_context

logger = structlog.get_logger(__name__)

router = APIRouter()


class SeedRequest(BaseModel):
    """Request body for the seed endpoint."""

    model_config = {"extra": "forbid"}

    hours: float = Field(default=1, description="Hours of history to write", gt=0, le=24 * 30)


class CleanupRequest(BaseModel):
    """Request body for the cleanup endpoint."""

    model_config = {"extra": "forbid"}

    hours: float = Field(
        default=24, description="Age threshold in hours", gt=0, le=24 * 365 * 100
    )


class IngestRequest(BaseModel):
    """Request body for the metrics ingest endpoint."""

    model_config = {"extra": "forbid"}

    points: List[MetricPoint] = Field(..., min_length=1, max_length=10_000)


def _failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=500, content={"success": False, "error": message})


@router.get(
    "/stats",
    summary="Get store statistics",
)
async def get_stats(context: ServerContext = Depends(get_context)):
    """
    Get store statistics.

    Returns:
        dict: {success, stats} with row count, per-type counts and time range.
    """
    try:
        stats = context.store.get_stats()
    except StoreError as e:
        logger.error("get_stats_error", error=str(e))
        return _failure("Failed to fetch stats")

    return {"success": True, "stats": stats.to_wire()}


@router.post(
    "/seed",
    summary="Seed historical data",
)
async def seed(
    request: Optional[SeedRequest] = None,
    context: ServerContext = Depends(get_context),
):
    """
    Write backdated history and notify clients.

    Args:
        request: Optional body with the number of hours (default 1).

    Returns:
        dict: {success, message, count}.
    """
    hours = request.hours if request is not None else 1

    try:
        count = context.generator.seed_historical(hours)
    except StoreError as e:
        logger.error("seed_error", hours=hours, error=str(e))
        return _failure("Failed to seed data")

    await context.broadcaster.broadcast_update()
    return {
        "success": True,
        "message": f"Seeded {hours:g} hours of historical data",
        "count": count,
    }


@router.delete(
    "/cleanup",
    summary="Delete old data",
)
async def cleanup(
    request: Optional[CleanupRequest] = None,
    context: ServerContext = Depends(get_context),
):
    """
    Delete points older than the given number of hours and notify clients.

    Args:
        request: Optional body with the age threshold (default 24).

    Returns:
        dict: {success, message, deleted}.
    """
    hours = request.hours if request is not None else context.config.storage.retention_hours

    try:
        deleted = context.store.cleanup_older_than(hours)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"success": False, "error": str(e)})
    except StoreError as e:
        logger.error("cleanup_error", hours=hours, error=str(e))
        return _failure("Failed to clean up data")

    await context.broadcaster.broadcast_update()
    return {
        "success": True,
        "message": f"Cleaned up data older than {hours:g} hours",
        "deleted": deleted,
    }


@router.post(
    "/metrics",
    summary="Ingest metric points",
)
async def ingest_metrics(
    request: IngestRequest,
    context: ServerContext = Depends(get_context),
):
    """
    Write externally produced points as one batch and notify clients.

    Args:
        request: Body with the points to write.

    Returns:
        dict: {success, count}.
    """
    try:
        count = context.store.insert_batch(request.points)
    except StoreError as e:
        logger.error("ingest_error", points=len(request.points), error=str(e))
        return _failure("Failed to store metrics")

    logger.info("metrics_ingested", count=count)
    await context.broadcaster.broadcast_update()
    return {"success": True, "count": count}
