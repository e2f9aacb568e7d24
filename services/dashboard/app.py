"""
FastAPI application for the live dashboard server.

This module creates and configures the FastAPI application with:
- CORS configuration for cross-origin requests
- Router registration for API and WebSocket endpoints
- Lifespan events that start and stop the server context
- A validation handler that turns malformed bodies into HTTP 400

The server runs on port 3001 by default and provides:
- REST API: /api/dashboard, /api/stats, /api/seed, /api/cleanup, /api/metrics
- Health: /health
- WebSocket: /ws (and /) for real-time push updates
"""

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from livesync import __version__
from livesync.config.loader import load_config
from livesync.config.models import AppConfig
from services.dashboard.context import ServerContext

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Manage application lifespan events.

    Starts the server context (store, seed, generator, broadcast timer) on
    startup and stops it on shutdown.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control flow returns to the application.
    """
    context: ServerContext = app.state.context
    logger.info("dashboard_starting")

    await context.start()
    logger.info("dashboard_ready")

    try:
        yield
    finally:
        logger.info("dashboard_shutting_down")
        await context.stop()
        logger.info("dashboard_shutdown_complete")


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error.get("loc", ()) if p != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "Invalid request"


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Reject malformed request bodies with HTTP 400."""
    error = _describe_validation_error(exc)
    logger.warning(
        "request_validation_failed",
        path=request.url.path,
        method=request.method,
        error=error,
    )
    return JSONResponse(status_code=400, content={"success": False, "error": error})


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        config: Server configuration. Defaults to the YAML files in the
            directory named by CONFIG_PATH (default: config).

    Returns:
        FastAPI: Configured FastAPI application instance.

    Example:
        >>> app = create_app(AppConfig())
        >>> import uvicorn
        >>> uvicorn.run(app, host="0.0.0.0", port=3001)
    """
    if config is None:
        config = load_config(os.getenv("CONFIG_PATH", "config"))

    app = FastAPI(
        title="Live Dashboard Sync",
        description="Real-time dashboard metrics over WebSocket push with HTTP polling fallback",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.context = ServerContext(config)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.server.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    # Register API routers
    from services.dashboard.api.admin import router as admin_router
    from services.dashboard.api.dashboard import router as dashboard_router
    from services.dashboard.api.health import router as health_router

    app.include_router(dashboard_router, prefix="/api", tags=["Dashboard"])
    app.include_router(admin_router, prefix="/api", tags=["Admin"])
    app.include_router(health_router, tags=["Health"])

    # Register WebSocket router
    from services.dashboard.websocket.updates import router as ws_router
    app.include_router(ws_router, tags=["WebSocket"])

    logger.info("fastapi_app_created", database_path=config.storage.database_path)

    return app
