"""
Dashboard API endpoint for the pull transport.

Provides:
    GET /api/dashboard - Current dashboard snapshot

The body carries the same snapshot shape as a WebSocket "update" message,
so polling clients and push clients render identical data.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

import structlog

from livesync.models.metrics import format_timestamp, utc_now
from livesync.models.snapshot import PollResponse
from livesync.storage.metrics_store import StoreError
from services.dashboard.context import ServerContext, get_context

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/dashboard",
    summary="Get current dashboard snapshot",
    description="Computes the line series, bar and pie totals and event count.",
)
async def get_dashboard(context: ServerContext = Depends(get_context)) -> JSONResponse:
    """
    Get the current dashboard snapshot.

    Returns:
        JSONResponse: {success, data, timestamp}, or 500 with
            {success: false, error} if the store fails.
    """
    try:
        snapshot = context.snapshot()
    except StoreError as e:
        logger.error("get_dashboard_error", error=str(e))
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to fetch dashboard data"},
        )

    body = PollResponse(
        success=True,
        data=snapshot,
        timestamp=format_timestamp(utc_now()),
    )
    return JSONResponse(content=body.model_dump(by_alias=True, mode="json", exclude_none=True))
