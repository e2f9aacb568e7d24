"""
Configuration management for the live dashboard sync system.

This module handles loading and validating configuration from YAML files.
All configuration values are validated using Pydantic models to ensure
type safety and catch configuration errors early.

Configuration is loaded from YAML files in the config/ directory:
    - server.yaml: Server, storage, generator and broadcast settings
    - client.yaml: Push/pull client settings

Environment variables can override selected settings:
    - DATABASE_PATH: SQLite database file
    - DASHBOARD_HOST / DASHBOARD_PORT: Server bind address
    - SYNC_SERVER_URL: Server URL used by clients
    - LOG_LEVEL: Application log level

Example:
    >>> from livesync.config import load_config
    >>> config = load_config()
    >>> config.generator.categories
    ['Category A', 'Category B', 'Category C', 'Category D']
"""

from livesync.config.loader import (
    ConfigLoadError,
    ConfigLoader,
    load_client_config,
    load_config,
)
from livesync.config.models import (
    # Enums
    ConnectionMode,
    LogFormat,
    LogLevel,
    # Server config
    BroadcastConfig,
    GeneratorConfig,
    LoggingConfig,
    ServerSettings,
    StorageConfig,
    # Client config
    ClientConfig,
    # Root config
    AppConfig,
    ClientAppConfig,
)

__all__: list[str] = [
    # Loader
    "load_config",
    "load_client_config",
    "ConfigLoader",
    "ConfigLoadError",
    # Enums
    "ConnectionMode",
    "LogFormat",
    "LogLevel",
    # Server config
    "ServerSettings",
    "StorageConfig",
    "GeneratorConfig",
    "BroadcastConfig",
    "LoggingConfig",
    # Client config
    "ClientConfig",
    # Root config
    "AppConfig",
    "ClientAppConfig",
]
