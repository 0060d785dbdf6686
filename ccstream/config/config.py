"""Configuration management for ccStream.

Provides centralized configuration with TOML support and validation,
loaded hierarchically from defaults, then config file, then environment, then CLI.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import toml

from ccstream.models import Config
from ccstream.utils.exceptions import ConfigurationError
from ccstream.utils.logging_config import setup_logging

# Global configuration instance
_config_manager: ConfigManager | None = None

# Mapping of environment variables to config paths
ENV_MAPPINGS: dict[str, str] = {
    # Server
    "CCSTREAM_HOST": "server.host",
    "CCSTREAM_PORT": "server.port",
    "CCSTREAM_CORS_ENABLED": "server.cors_enabled",
    # Engine
    "CCSTREAM_SAVE_PATH": "engine.save_path",
    "CCSTREAM_LISTEN_INTERFACES": "engine.listen_interfaces",
    "CCSTREAM_JOIN_TIMEOUT": "engine.join_timeout",
    "CCSTREAM_PIECE_POLL_INTERVAL": "engine.piece_poll_interval",
    "CCSTREAM_READ_TIMEOUT": "engine.read_timeout",
    # Catalog
    "CCSTREAM_MAX_ARCHIVE_BYTES": "catalog.max_archive_bytes",
    # Streaming
    "CCSTREAM_DEFAULT_CHUNK_SIZE": "streaming.default_chunk_size",
    "CCSTREAM_READ_CHUNK_SIZE": "streaming.read_chunk_size",
    # Observability
    "CCSTREAM_LOG_LEVEL": "observability.log_level",
    "CCSTREAM_LOG_FILE": "observability.log_file",
    "CCSTREAM_STRUCTURED_LOGGING": "observability.structured_logging",
    "CCSTREAM_LOG_CORRELATION_ID": "observability.log_correlation_id",
}

# Honoured for compatibility with PaaS hosts that inject PORT
PLAIN_ENV_MAPPINGS: dict[str, str] = {
    "PORT": "server.port",
}


def _parse_env_value(raw: str) -> Any:
    low = raw.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(
        self,
        config_file: str | Path | None = None,
        setup_logs: bool = True,
    ):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for ccstream.toml
            setup_logs: Configure logging from the loaded observability section

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()
        if setup_logs:
            self._setup_logging()

    def _find_config_file(
        self,
        config_file: str | Path | None,
    ) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / "ccstream.toml",
            Path.home() / ".config" / "ccstream" / "ccstream.toml",
            Path.home() / ".ccstream.toml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file is not None:
            if not self.config_file.exists():
                msg = f"Config file not found: {self.config_file}"
                raise ConfigurationError(msg)
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except toml.TomlDecodeError as e:
                msg = f"Invalid TOML in {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        # Namespaced variables win over plain ones
        for mappings in (PLAIN_ENV_MAPPINGS, ENV_MAPPINGS):
            for env_name, cfg_path in mappings.items():
                raw = os.getenv(env_name)
                if raw is None:
                    continue
                _set_nested(env_config, cfg_path, _parse_env_value(raw))

        return env_config

    def _merge_config(
        self,
        base: dict[str, Any],
        override: dict[str, Any],
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def apply_overrides(self, overrides: dict[str, Any]) -> None:
        """Apply dotted-path CLI overrides and revalidate.

        ``None`` values are ignored so unset CLI options keep file/env values.
        """
        nested: dict[str, Any] = {}
        for path, value in overrides.items():
            if value is not None:
                _set_nested(nested, path, value)
        if not nested:
            return
        data = self._merge_config(self.config.model_dump(mode="json"), nested)
        try:
            self.config = Config(**data)
        except Exception as e:
            msg = f"Invalid configuration override: {e}"
            raise ConfigurationError(msg) from e
        self._setup_logging()

    def export(self) -> str:
        """Export current configuration as TOML."""
        data = self.config.model_dump(mode="json", exclude_none=True)
        return toml.dumps(data)

    def _setup_logging(self) -> None:
        """Set up logging configuration."""
        setup_logging(self.config.observability)


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    return _config_manager


def reset_config() -> None:
    """Forget the global configuration manager (used by tests)."""
    global _config_manager
    _config_manager = None
