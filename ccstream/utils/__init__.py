"""Shared utilities and infrastructure.

This module contains common utilities used throughout the application.
"""

from __future__ import annotations

from ccstream.utils.exceptions import (
    ArchiveParseError,
    CCStreamError,
    ConfigurationError,
    FileNotFoundInTorrentError,
    InvalidMagnetError,
    InvalidRangeError,
    MissingRangeHeaderError,
    NotFoundError,
    StreamReadError,
    SwarmJoinError,
    TorrentNotFoundError,
    ValidationError,
)
from ccstream.utils.logging_config import get_logger, setup_logging

__all__ = [
    # Exceptions
    "ArchiveParseError",
    "CCStreamError",
    "ConfigurationError",
    "FileNotFoundInTorrentError",
    "InvalidMagnetError",
    "InvalidRangeError",
    "MissingRangeHeaderError",
    "NotFoundError",
    "StreamReadError",
    "SwarmJoinError",
    "TorrentNotFoundError",
    "ValidationError",
    # Logging
    "get_logger",
    "setup_logging",
]
