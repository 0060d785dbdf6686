"""Response sinks for the range streamer.

A sink is the write side of one HTTP response. It tracks whether the status
line has been committed, which decides how a read failure is reported.
Writing to a sink whose peer has gone away raises ``ConnectionError``.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from aiohttp import web

from ccstream.api.protocol import error_payload

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.utils.exceptions import CCStreamError

logger = logging.getLogger(__name__)


class ResponseSink(ABC):
    """Write side of one streaming response."""

    @property
    @abstractmethod
    def headers_sent(self) -> bool:
        """True once the status line and headers are committed."""

    @abstractmethod
    async def send_headers(self, status: int, headers: dict[str, str]) -> None:
        """Commit status and headers."""

    @abstractmethod
    async def write(self, chunk: bytes) -> None:
        """Write body bytes; raises ``ConnectionError`` if the peer is gone."""

    @abstractmethod
    async def finish(self) -> None:
        """Complete a fully written body."""

    @abstractmethod
    async def send_error(self, error: CCStreamError) -> None:
        """Answer with a JSON error; only valid before headers are sent."""

    @abstractmethod
    def abort(self) -> None:
        """Drop the connection without writing anything further."""


class AiohttpResponseSink(ResponseSink):
    """Sink writing to an ``aiohttp.web.StreamResponse``."""

    def __init__(self, request: web.Request):
        """Bind the sink to ``request``."""
        self.request = request
        self.response: web.StreamResponse | None = None

    @property
    def headers_sent(self) -> bool:
        return self.response is not None and self.response.prepared

    async def send_headers(self, status: int, headers: dict[str, str]) -> None:
        if self.headers_sent:
            msg = "Headers already sent"
            raise RuntimeError(msg)
        self.response = web.StreamResponse(status=status, headers=headers)
        await self.response.prepare(self.request)

    async def write(self, chunk: bytes) -> None:
        transport = self.request.transport
        if transport is None or transport.is_closing():
            msg = "Client disconnected"
            raise ConnectionResetError(msg)
        if self.response is None:
            msg = "Headers not sent"
            raise RuntimeError(msg)
        await self.response.write(chunk)

    async def finish(self) -> None:
        if self.response is None:
            msg = "Headers not sent"
            raise RuntimeError(msg)
        await self.response.write_eof()

    async def send_error(self, error: CCStreamError) -> None:
        if self.headers_sent:
            msg = "Cannot send an error response after headers"
            raise RuntimeError(msg)
        self.response = web.json_response(
            error_payload(error),
            status=error.http_status,
        )

    def abort(self) -> None:
        transport = self.request.transport
        if transport is not None and not transport.is_closing():
            transport.abort()
