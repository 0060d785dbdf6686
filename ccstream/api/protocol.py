"""HTTP protocol definitions for the streaming gateway.

Defines route paths and the JSON models exchanged with clients.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.utils.exceptions import CCStreamError

LIST_FILES_PATH = "/list-files/{magnet}"
STREAM_PATH = "/stream/{magnet}/{filename:.+}"
HEALTH_PATH = "/health"


class CatalogEntryResponse(BaseModel):
    """One catalog entry."""

    name: str = Field(..., description="Display name")
    length: int = Field(..., ge=0, description="Length in bytes")
    path: str = Field(..., description="Logical path inside the swarm")
    type: str = Field(..., description="Content kind: video or image")


class HealthResponse(BaseModel):
    """Gateway health response."""

    status: str = Field(..., description="Gateway status")
    version: str = Field(..., description="ccStream version")
    sessions: int = Field(..., ge=0, description="Known swarm sessions")
    uptime: float = Field(..., description="Uptime in seconds")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Human-readable reason")
    code: str = Field(..., description="Machine-readable error code")


def error_payload(error: CCStreamError) -> dict[str, Any]:
    """JSON body for ``error``; carries the class reason, never internals."""
    return ErrorResponse(error=error.reason, code=error.code).model_dump()
