"""Exception hierarchy for ccStream.

Every error raised by the gateway derives from :class:`CCStreamError`. Errors
that reach the HTTP layer carry an ``http_status`` and a machine-readable
``code`` so the API can answer without exposing exception text.
"""

from __future__ import annotations

from typing import Any, ClassVar


class CCStreamError(Exception):
    """Base exception for all ccStream errors."""

    http_status: ClassVar[int] = 500
    code: ClassVar[str] = "INTERNAL_ERROR"
    reason: ClassVar[str] = "Internal server error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """Initialize ccStream error."""
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} (Details: {self.details})"
        return self.message


class ValidationError(CCStreamError):
    """Request validation errors."""

    http_status = 400
    code = "VALIDATION_ERROR"
    reason = "Invalid request"


class InvalidMagnetError(ValidationError):
    """Magnet URI lacks a well-formed ``urn:btih:<40 hex>`` component."""

    code = "INVALID_MAGNET"
    reason = "Invalid magnet link"


class MissingRangeHeaderError(ValidationError):
    """Stream request arrived without a Range header."""

    code = "MISSING_RANGE_HEADER"
    reason = "Requires Range header"


class InvalidRangeError(ValidationError):
    """Range header is malformed or outside the resource."""

    code = "INVALID_RANGE"
    reason = "Invalid Range header"


class ConfigurationError(ValidationError):
    """Configuration validation errors."""

    http_status = 500
    code = "CONFIGURATION_ERROR"
    reason = "Server misconfigured"


class NotFoundError(CCStreamError):
    """Lookup errors."""

    http_status = 404
    code = "NOT_FOUND"
    reason = "Not found"


class TorrentNotFoundError(NotFoundError):
    """No swarm session exists for the info-hash."""

    code = "TORRENT_NOT_FOUND"
    reason = "Torrent not found"


class FileNotFoundInTorrentError(NotFoundError):
    """The catalog has no entry with the requested name."""

    code = "FILE_NOT_FOUND"
    reason = "File not found"


class ArchiveParseError(CCStreamError):
    """A ZIP container could not be buffered or parsed."""

    code = "ARCHIVE_PARSE_ERROR"
    reason = "Archive could not be read"


class StreamReadError(CCStreamError):
    """The content source failed while serving a byte range."""

    code = "STREAM_READ_ERROR"
    reason = "Stream error"


class SwarmJoinError(CCStreamError):
    """The swarm engine failed or timed out joining a swarm."""

    http_status = 502
    code = "SWARM_JOIN_FAILED"
    reason = "Could not join swarm"
