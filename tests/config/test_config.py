"""Tests for configuration loading."""

from __future__ import annotations

import pytest
import toml

from ccstream.config import config as config_module
from ccstream.config.config import ConfigManager, init_config, reset_config
from ccstream.models import LogLevel
from ccstream.utils.exceptions import ConfigurationError


def _write(tmp_path, data) -> str:
    path = tmp_path / "ccstream.toml"
    path.write_text(toml.dumps(data), encoding="utf-8")
    return str(path)


def test_defaults():
    cfg = ConfigManager(setup_logs=False).config
    assert cfg.server.port == 5000
    assert cfg.server.host == "0.0.0.0"
    assert cfg.streaming.default_chunk_size == 1_000_000
    assert cfg.engine.join_timeout == 120.0


def test_file_values(tmp_path):
    path = _write(
        tmp_path,
        {
            "server": {"port": 8080},
            "engine": {"join_timeout": 30},
            "observability": {"log_level": "debug"},
        },
    )
    cfg = ConfigManager(path, setup_logs=False).config
    assert cfg.server.port == 8080
    assert cfg.engine.join_timeout == 30
    assert cfg.observability.log_level is LogLevel.DEBUG


def test_discovers_file_in_cwd(tmp_path):
    _write(tmp_path, {"server": {"port": 7000}})
    assert ConfigManager(setup_logs=False).config.server.port == 7000


def test_env_overrides_file(tmp_path, monkeypatch):
    path = _write(tmp_path, {"server": {"port": 8080, "cors_enabled": True}})
    monkeypatch.setenv("CCSTREAM_PORT", "9090")
    monkeypatch.setenv("CCSTREAM_CORS_ENABLED", "false")
    cfg = ConfigManager(path, setup_logs=False).config
    assert cfg.server.port == 9090
    assert cfg.server.cors_enabled is False


def test_plain_port_env(monkeypatch):
    monkeypatch.setenv("PORT", "6000")
    assert ConfigManager(setup_logs=False).config.server.port == 6000

    monkeypatch.setenv("CCSTREAM_PORT", "6001")
    assert ConfigManager(setup_logs=False).config.server.port == 6001


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        ConfigManager(str(tmp_path / "absent.toml"), setup_logs=False)


def test_invalid_toml_raises(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("[server\nport = ", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="Invalid TOML"):
        ConfigManager(str(path), setup_logs=False)


def test_invalid_value_raises(tmp_path):
    path = _write(tmp_path, {"server": {"port": 70000}})
    with pytest.raises(ConfigurationError, match="Invalid configuration"):
        ConfigManager(path, setup_logs=False)


def test_apply_overrides_ignores_none():
    manager = ConfigManager(setup_logs=False)
    manager.apply_overrides(
        {
            "server.port": 0,
            "server.host": None,
            "engine.save_path": "/tmp/swarms",
        }
    )
    assert manager.config.server.port == 0
    assert manager.config.server.host == "0.0.0.0"
    assert manager.config.engine.save_path == "/tmp/swarms"


def test_apply_overrides_validates():
    manager = ConfigManager(setup_logs=False)
    with pytest.raises(ConfigurationError):
        manager.apply_overrides({"streaming.read_chunk_size": 1})


def test_export_round_trips(tmp_path):
    manager = ConfigManager(setup_logs=False)
    exported = toml.loads(manager.export())
    assert exported["server"]["port"] == 5000
    assert "log_file" not in exported["observability"]


def test_global_config(tmp_path):
    path = _write(tmp_path, {"server": {"port": 5555}})
    manager = init_config(path)
    assert manager.config.server.port == 5555
    assert config_module._config_manager is manager

    reset_config()
    assert config_module._config_manager is None
