"""
Structured logging setup shared by the dashboard server and the watcher.

Both processes log through structlog on top of the standard library, so
uvicorn's own loggers and ours end up on the same handler. JSON output is
the default for services; the text renderer is meant for a terminal.
"""

import logging

import structlog

from livesync.config.models import LogFormat, LoggingConfig


def setup_logging(config: LoggingConfig) -> None:
    """
    Configure structlog and the standard logging module.

    Args:
        config: Logging configuration (format and level).
    """
    if config.format == LogFormat.JSON:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, config.level.value),
    )

    # Reduce noise from uvicorn access logs
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
