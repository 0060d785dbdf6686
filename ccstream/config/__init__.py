"""Configuration management.

This module handles configuration loading and validation.
"""

from __future__ import annotations

from ccstream.config.config import (
    Config,
    ConfigManager,
    init_config,
    reset_config,
)

__all__ = [
    "Config",
    "ConfigManager",
    "init_config",
    "reset_config",
]
