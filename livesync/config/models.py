"""
Pydantic models for application configuration.

This module defines all configuration models that are validated when loading
YAML configuration files. The models ensure type safety and provide sensible
defaults for optional settings.

Configuration files:
    - config/server.yaml: Dashboard server, storage, generator and broadcast settings
    - config/client.yaml: Client sync settings (push/pull transports)

Example:
    >>> from livesync.config.models import AppConfig
    >>> config = AppConfig()
    >>> config.generator.update_interval_ms
    200
"""

from enum import Enum
from typing import List

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ConnectionMode(str, Enum):
    """Transport used by a client to receive dashboard snapshots."""

    WEBSOCKET = "websocket"
    POLLING = "polling"


# =============================================================================
# SERVER CONFIGURATION
# =============================================================================


class ServerSettings(BaseModel):
    """HTTP/WebSocket listener settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    host: str = Field(
        default="0.0.0.0",
        description="Interface to bind to",
    )
    port: int = Field(
        default=3001,
        description="Port to listen on",
        ge=1,
        le=65535,
    )
    cors_origins: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Allowed CORS origins",
    )


class StorageConfig(BaseModel):
    """Embedded metrics store settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    database_path: str = Field(
        default="data/dashboard.db",
        description="SQLite database file, or ':memory:'",
        min_length=1,
    )
    retention_hours: int = Field(
        default=24,
        description="Default age threshold for retention cleanup",
        ge=1,
        le=24 * 365,
    )
    busy_timeout_seconds: float = Field(
        default=5.0,
        description="Seconds to wait on a locked database before failing",
        gt=0,
        le=60,
    )


class GeneratorConfig(BaseModel):
    """Synthetic metric generator settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(
        default=True,
        description="Run continuous generation while the server is up",
    )
    update_interval_ms: int = Field(
        default=200,
        description="Milliseconds between realtime generation ticks",
        ge=10,
        le=3_600_000,
    )
    seed_on_empty: bool = Field(
        default=True,
        description="Seed historical data on startup when the store is empty",
    )
    seed_hours: int = Field(
        default=1,
        description="Hours of history written by the startup seed",
        ge=1,
        le=24 * 30,
    )
    categories: List[str] = Field(
        default_factory=lambda: [
            "Category A",
            "Category B",
            "Category C",
            "Category D",
        ],
        description="Categories used for bar and pie metrics",
    )

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, v: List[str]) -> List[str]:
        """Require at least one non-empty, unique category."""
        if not v:
            raise ValueError("at least one category is required")
        if any(not c.strip() for c in v):
            raise ValueError("categories must be non-empty strings")
        if len(set(v)) != len(v):
            raise ValueError("categories must be unique")
        return v


class BroadcastConfig(BaseModel):
    """Snapshot and push broadcast settings."""

    model_config = {"frozen": True, "extra": "forbid"}

    line_series_limit: int = Field(
        default=10,
        description="Most recent line points included in a snapshot",
        ge=1,
        le=10_000,
    )
    timer_interval_ms: int = Field(
        default=0,
        description="Periodic broadcast cadence; 0 disables timer broadcasts",
        ge=0,
        le=3_600_000,
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Minimum log level",
    )


# =============================================================================
# CLIENT CONFIGURATION
# =============================================================================


class ClientConfig(BaseModel):
    """
    Client sync settings.

    Attributes:
        server_url: Base HTTP URL of the dashboard server.
        websocket_path: Path of the push endpoint on the server.
        reconnect_interval_ms: Fixed delay between reconnection attempts.
        max_reconnect_attempts: Reconnects allowed before failing over.
        poll_interval_ms: Cadence of the pull transport.
        request_timeout_seconds: Timeout of a single poll request.
        default_mode: Transport selected on start.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    server_url: str = Field(
        default="http://localhost:3001",
        description="Base HTTP URL of the dashboard server",
    )
    websocket_path: str = Field(
        default="/ws",
        description="Path of the push endpoint",
    )
    reconnect_interval_ms: int = Field(
        default=3000,
        description="Fixed delay between reconnection attempts",
        ge=0,
        le=600_000,
    )
    max_reconnect_attempts: int = Field(
        default=10,
        description="Reconnection attempts before failing over to polling",
        ge=0,
        le=1000,
    )
    poll_interval_ms: int = Field(
        default=3000,
        description="Milliseconds between poll requests",
        ge=1,
        le=3_600_000,
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for a single poll request",
        gt=0,
        le=300,
    )
    default_mode: ConnectionMode = Field(
        default=ConnectionMode.WEBSOCKET,
        description="Transport selected on start",
    )

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Require an http(s) URL without a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("server_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("websocket_path")
    @classmethod
    def validate_websocket_path(cls, v: str) -> str:
        """Require an absolute path."""
        if not v.startswith("/"):
            raise ValueError("websocket_path must start with '/'")
        return v

    @property
    def websocket_url(self) -> str:
        """
        Push endpoint URL derived from the server URL.

        Returns:
            str: ws:// or wss:// URL.

        Example:
            >>> ClientConfig(server_url="https://dash.local").websocket_url
            'wss://dash.local/ws'
        """
        return "ws" + self.server_url[len("http"):] + self.websocket_path

    @property
    def dashboard_url(self) -> str:
        """Pull endpoint URL."""
        return f"{self.server_url}/api/dashboard"


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root configuration for the dashboard server.

    Example:
        >>> config = AppConfig(storage=StorageConfig(database_path=":memory:"))
        >>> config.broadcast.line_series_limit
        10
    """

    model_config = {"frozen": True, "extra": "forbid"}

    server: ServerSettings = Field(default_factory=ServerSettings)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)
    broadcast: BroadcastConfig = Field(default_factory=BroadcastConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


class ClientAppConfig(BaseModel):
    """Root configuration for a headless sync client."""

    model_config = {"frozen": True, "extra": "forbid"}

    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
