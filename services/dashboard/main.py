"""
Dashboard service entry point.

This module initializes and runs the FastAPI dashboard server using Uvicorn.

The server:
- Runs on 0.0.0.0:3001 by default
- Provides REST API for snapshots, stats, seeding, cleanup and ingest
- Provides WebSocket for real-time push updates
- Runs the synthetic metric generator in the background

Usage:
    python -m services.dashboard.main

    Or through the console script:
    livesync-dashboard

Environment Variables:
    CONFIG_PATH: Directory holding server.yaml (default: config)
    DATABASE_PATH: SQLite database file (default: data/dashboard.db)
    LOG_LEVEL: Logging level (default: INFO)
    DASHBOARD_PORT: Port to run the server on (default: 3001)
    DASHBOARD_HOST: Host to bind to (default: 0.0.0.0)
"""

import os
import sys

import structlog
import uvicorn

from livesync import __version__
from livesync.config.loader import load_config
from livesync.logging_config import setup_logging
from services.dashboard.app import create_app


def main() -> None:
    """
    Main entry point for the dashboard service.

    Loads configuration, configures logging and starts the Uvicorn server
    with the FastAPI application.
    """
    config = load_config(os.getenv("CONFIG_PATH", "config"))
    setup_logging(config.logging)

    logger = structlog.get_logger(__name__)
    logger.info(
        "dashboard_service_starting",
        version=__version__,
        python_version=sys.version,
        host=config.server.host,
        port=config.server.port,
    )

    # Single worker: the store and the connection set live in this process
    uvicorn.run(
        create_app(config),
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.value.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
