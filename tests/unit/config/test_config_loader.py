from pathlib import Path

import pytest

from livesync.config.loader import ConfigLoadError, ConfigLoader, load_client_config, load_config
from livesync.config.models import (
    AppConfig,
    ClientConfig,
    ConnectionMode,
    GeneratorConfig,
    LogFormat,
    LogLevel,
)

REPO_CONFIG = Path(__file__).resolve().parents[3] / "config"


@pytest.fixture(autouse=True)
def clear_env(monkeypatch):
    for name in ("DATABASE_PATH", "LOG_LEVEL", "DASHBOARD_HOST", "DASHBOARD_PORT", "SYNC_SERVER_URL"):
        monkeypatch.delenv(name, raising=False)


def write(tmp_path, name, text):
    (tmp_path / name).write_text(text, encoding="utf-8")
    return tmp_path


def test_shipped_configs_load():
    server = load_config(REPO_CONFIG)
    client = load_client_config(REPO_CONFIG)

    assert server.server.port == 3001
    assert server.generator.update_interval_ms == 200
    assert server.broadcast.line_series_limit == 10
    assert client.client.max_reconnect_attempts == 10
    assert client.client.default_mode == ConnectionMode.WEBSOCKET
    assert client.logging.format == LogFormat.TEXT


def test_server_env_overrides(tmp_path, monkeypatch):
    write(tmp_path, "server.yaml", "server:\n  port: 3001\nstorage:\n  database_path: a.db\n")
    monkeypatch.setenv("DASHBOARD_PORT", "9000")
    monkeypatch.setenv("DATABASE_PATH", ":memory:")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = load_config(tmp_path)

    assert config.server.port == 9000
    assert config.storage.database_path == ":memory:"
    assert config.logging.level == LogLevel.DEBUG


def test_unknown_log_level_is_ignored(tmp_path, monkeypatch):
    write(tmp_path, "server.yaml", "logging:\n  level: WARNING\n")
    monkeypatch.setenv("LOG_LEVEL", "verbose")

    assert load_config(tmp_path).logging.level == LogLevel.WARNING


def test_client_server_url_override(tmp_path, monkeypatch):
    write(tmp_path, "client.yaml", "client:\n  poll_interval_ms: 500\n")
    monkeypatch.setenv("SYNC_SERVER_URL", "https://dash.example.com/")

    client = load_client_config(tmp_path).client

    assert client.server_url == "https://dash.example.com"
    assert client.websocket_url == "wss://dash.example.com/ws"
    assert client.dashboard_url == "https://dash.example.com/api/dashboard"
    assert client.poll_interval_ms == 500


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigLoadError) as exc_info:
        ConfigLoader(tmp_path).load_server()
    assert exc_info.value.file_path == tmp_path / "server.yaml"


def test_missing_directory_raises(tmp_path):
    with pytest.raises(ConfigLoadError):
        ConfigLoader(tmp_path / "nope")


def test_invalid_values_raise_config_error(tmp_path):
    write(tmp_path, "server.yaml", "generator:\n  update_interval_ms: 1\n")
    with pytest.raises(ConfigLoadError) as exc_info:
        load_config(tmp_path)
    assert exc_info.value.cause is not None


def test_unknown_keys_are_rejected(tmp_path):
    write(tmp_path, "client.yaml", "client:\n  retries: 3\n")
    with pytest.raises(ConfigLoadError):
        load_client_config(tmp_path)


def test_invalid_yaml_raises(tmp_path):
    write(tmp_path, "server.yaml", "server: [unclosed\n")
    with pytest.raises(ConfigLoadError):
        load_config(tmp_path)


def test_duplicate_categories_rejected():
    with pytest.raises(ValueError):
        GeneratorConfig(categories=["A", "A"])


def test_client_url_must_be_http():
    with pytest.raises(ValueError):
        ClientConfig(server_url="ftp://host")


def test_defaults():
    config = AppConfig()
    assert config.storage.retention_hours == 24
    assert config.broadcast.timer_interval_ms == 0
    assert ClientConfig().websocket_url == "ws://localhost:3001/ws"
