"""
Configuration loader for YAML-based application configuration.

This module provides utilities to load and validate configuration from YAML
files. All configuration is validated using Pydantic models to ensure type
safety and catch configuration errors early.

Configuration files expected:
    - config/server.yaml: Dashboard server settings
    - config/client.yaml: Sync client settings

Environment variables override:
    - DATABASE_PATH: SQLite database file
    - DASHBOARD_HOST / DASHBOARD_PORT: Server bind address
    - SYNC_SERVER_URL: Server URL used by clients
    - LOG_LEVEL: Application log level

Example:
    >>> from livesync.config.loader import load_config
    >>> config = load_config("config")
    >>> print(config.storage.database_path)
    data/dashboard.db
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from livesync.config.models import (
    AppConfig,
    BroadcastConfig,
    ClientAppConfig,
    ClientConfig,
    GeneratorConfig,
    LoggingConfig,
    LogLevel,
    ServerSettings,
    StorageConfig,
)


class ConfigLoadError(Exception):
    """
    Raised when configuration loading fails.

    Attributes:
        message: Error message describing what went wrong.
        file_path: Path to the file that caused the error, if applicable.
        cause: Original exception that caused the error, if any.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


class ConfigLoader:
    """
    Loads and validates application configuration from YAML files.

    Expects the following directory structure:
        config/
        ├── server.yaml   - Server, storage, generator, broadcast, logging
        └── client.yaml   - Client transports and logging

    Example:
        >>> loader = ConfigLoader("config")
        >>> server = loader.load_server()
        >>> client = loader.load_client()
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').

        Raises:
            ConfigLoadError: If config directory does not exist.
        """
        self.config_dir = Path(config_dir)
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Load a YAML file from the config directory.

        Args:
            filename: Name of YAML file (e.g., 'server.yaml').

        Returns:
            Dict containing parsed YAML content.

        Raises:
            ConfigLoadError: If file not found, empty, or invalid YAML.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            raise ConfigLoadError(
                f"Configuration file not found: {file_path}",
                file_path=file_path,
            )

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            raise ConfigLoadError(
                f"Configuration file is empty: {file_path}",
                file_path=file_path,
            )
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration root must be a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_logging(self, data: Dict[str, Any]) -> LoggingConfig:
        """Build logging config, letting LOG_LEVEL win over the file."""
        logging_data = dict(data.get("logging") or {})
        level = self._get_log_level()
        if level is not None:
            logging_data["level"] = level
        return LoggingConfig(**logging_data)

    def _get_log_level(self) -> Optional[LogLevel]:
        """
        Get log level from environment.

        Environment variables:
            - LOG_LEVEL: Log level

        Returns:
            LogLevel enum value, or None when unset or unrecognised.
        """
        level_str = os.getenv("LOG_LEVEL")
        if not level_str:
            return None
        try:
            return LogLevel(level_str.upper())
        except ValueError:
            return None

    def load_server(self) -> AppConfig:
        """
        Load and validate server.yaml.

        Returns:
            AppConfig: Validated server configuration.

        Raises:
            ConfigLoadError: If the file is missing or invalid.
        """
        file_path = self.config_dir / "server.yaml"
        data = self._load_yaml("server.yaml")

        try:
            server_data = dict(data.get("server") or {})
            if os.getenv("DASHBOARD_HOST"):
                server_data["host"] = os.environ["DASHBOARD_HOST"]
            if os.getenv("DASHBOARD_PORT"):
                server_data["port"] = int(os.environ["DASHBOARD_PORT"])

            storage_data = dict(data.get("storage") or {})
            if os.getenv("DATABASE_PATH"):
                storage_data["database_path"] = os.environ["DATABASE_PATH"]

            return AppConfig(
                server=ServerSettings(**server_data),
                storage=StorageConfig(**storage_data),
                generator=GeneratorConfig(**(data.get("generator") or {})),
                broadcast=BroadcastConfig(**(data.get("broadcast") or {})),
                logging=self._load_logging(data),
            )

        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid server configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except (TypeError, ValueError) as e:
            raise ConfigLoadError(
                f"Malformed server configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e

    def load_client(self) -> ClientAppConfig:
        """
        Load and validate client.yaml.

        Returns:
            ClientAppConfig: Validated client configuration.

        Raises:
            ConfigLoadError: If the file is missing or invalid.
        """
        file_path = self.config_dir / "client.yaml"
        data = self._load_yaml("client.yaml")

        try:
            client_data = dict(data.get("client") or {})
            if os.getenv("SYNC_SERVER_URL"):
                client_data["server_url"] = os.environ["SYNC_SERVER_URL"]

            return ClientAppConfig(
                client=ClientConfig(**client_data),
                logging=self._load_logging(data),
            )

        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid client configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except TypeError as e:
            raise ConfigLoadError(
                f"Malformed client configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e


def load_config(config_dir: Path | str = "config") -> AppConfig:
    """
    Convenience function to load the server configuration.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        AppConfig: Validated server configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.
    """
    return ConfigLoader(config_dir).load_server()


def load_client_config(config_dir: Path | str = "config") -> ClientAppConfig:
    """
    Convenience function to load the client configuration.

    Args:
        config_dir: Path to configuration directory (default: 'config').

    Returns:
        ClientAppConfig: Validated client configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.
    """
    return ConfigLoader(config_dir).load_client()
