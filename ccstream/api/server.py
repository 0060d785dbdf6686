"""HTTP gateway server.

Exposes swarm catalogs and byte-range streams over aiohttp:

- ``GET /list-files/{magnet}``: join (or reuse) the swarm, return its catalog
- ``GET /stream/{magnet}/{filename}``: 206 stream of one catalog entry
- ``GET /health``: liveness and session count
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from aiohttp import hdrs, web

from ccstream import __version__
from ccstream.api.protocol import (
    HEALTH_PATH,
    LIST_FILES_PATH,
    STREAM_PATH,
    CatalogEntryResponse,
    ErrorResponse,
    HealthResponse,
    error_payload,
)
from ccstream.catalog.builder import CatalogBuilder
from ccstream.core.magnet import extract_info_hash
from ccstream.session.registry import SwarmRegistry
from ccstream.streaming.sink import AiohttpResponseSink
from ccstream.streaming.streamer import RangeStreamer
from ccstream.utils.exceptions import CCStreamError, ValidationError
from ccstream.utils.logging_config import get_logger, set_correlation_id

if TYPE_CHECKING:  # pragma: no cover
    from aiohttp.web_request import Request
    from aiohttp.web_response import StreamResponse

    from ccstream.engine.base import SwarmEngine
    from ccstream.models import Config

logger = get_logger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Type",
    "Access-Control-Expose-Headers": "Content-Range, Content-Length, Accept-Ranges",
}


class GatewayServer:
    """Streaming gateway over HTTP."""

    def __init__(
        self,
        engine: SwarmEngine,
        registry: SwarmRegistry,
        catalog: CatalogBuilder,
        streamer: RangeStreamer,
        host: str = "0.0.0.0",  # nosec B104
        port: int = 5000,
        cors_enabled: bool = True,
    ):
        """Initialize gateway server.

        Args:
            engine: Swarm engine, shut down with the server
            registry: Swarm session registry owned by this server
            catalog: Catalog builder
            streamer: Range streamer
            host: Host to bind to
            port: Port to bind to (0 picks a free port)
            cors_enabled: Send permissive CORS headers

        """
        self.engine = engine
        self.registry = registry
        self.catalog = catalog
        self.streamer = streamer
        self.host = host
        self.port = port
        self.cors_enabled = cors_enabled

        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._start_time = time.time()

        self._setup_middleware()
        self._setup_routes()

    @classmethod
    def from_config(cls, config: Config, engine: SwarmEngine) -> GatewayServer:
        """Wire registry, catalog and streamer from configuration."""
        registry = SwarmRegistry(engine, join_timeout=config.engine.join_timeout)
        catalog = CatalogBuilder(
            engine,
            max_archive_bytes=config.catalog.max_archive_bytes,
            read_chunk_size=config.streaming.read_chunk_size,
        )
        streamer = RangeStreamer(
            catalog,
            default_chunk_size=config.streaming.default_chunk_size,
        )
        return cls(
            engine,
            registry,
            catalog,
            streamer,
            host=config.server.host,
            port=config.server.port,
            cors_enabled=config.server.cors_enabled,
        )

    def _setup_middleware(self) -> None:
        """Set up middleware for correlation IDs and error handling."""

        @web.middleware
        async def correlation_middleware(request: Request, handler: Any) -> StreamResponse:
            """Tag every request's log records with a fresh correlation ID."""
            set_correlation_id()
            return await handler(request)

        @web.middleware
        async def error_middleware(request: Request, handler: Any) -> StreamResponse:
            """Map ccStream errors to JSON responses."""
            try:
                return await handler(request)
            except asyncio.CancelledError:
                raise
            except web.HTTPException:
                raise
            except CCStreamError as e:
                if isinstance(e, ValidationError) or e.http_status == 404:
                    logger.info(
                        "%s %s -> %d %s",
                        request.method,
                        request.path,
                        e.http_status,
                        e.code,
                    )
                else:
                    logger.warning(
                        "%s %s -> %d %s: %s",
                        request.method,
                        request.path,
                        e.http_status,
                        e.code,
                        e,
                    )
                return web.json_response(error_payload(e), status=e.http_status)
            except Exception:
                logger.exception(
                    "Error handling request %s %s from %s",
                    request.method,
                    request.path,
                    request.remote,
                )
                return web.json_response(
                    ErrorResponse(
                        error="Internal server error",
                        code="INTERNAL_ERROR",
                    ).model_dump(),
                    status=500,
                )

        self.app.middlewares.append(correlation_middleware)
        self.app.middlewares.append(error_middleware)
        if self.cors_enabled:
            self.app.on_response_prepare.append(self._add_cors_headers)

    async def _add_cors_headers(self, _request: Request, response: StreamResponse) -> None:
        for name, value in CORS_HEADERS.items():
            response.headers.setdefault(name, value)

    def _setup_routes(self) -> None:
        """Set up HTTP routes."""
        self.app.router.add_get(LIST_FILES_PATH, self._handle_list_files)
        self.app.router.add_get(STREAM_PATH, self._handle_stream)
        self.app.router.add_get(HEALTH_PATH, self._handle_health)
        if self.cors_enabled:
            self.app.router.add_route(
                hdrs.METH_OPTIONS,
                "/{tail:.*}",
                self._handle_preflight,
            )

    async def _handle_preflight(self, _request: Request) -> StreamResponse:
        """Answer CORS preflight requests."""
        return web.Response(status=204)

    async def _handle_health(self, _request: Request) -> StreamResponse:
        """Handle GET /health."""
        health = HealthResponse(
            status="running",
            version=__version__,
            sessions=len(self.registry),
            uptime=time.time() - self._start_time,
        )
        return web.json_response(health.model_dump())

    async def _handle_list_files(self, request: Request) -> StreamResponse:
        """Handle GET /list-files/{magnet}."""
        magnet = request.match_info["magnet"]
        info_hash = extract_info_hash(magnet)
        session = await self.registry.resolve(info_hash, magnet)
        catalog = await self.catalog.build(session)
        return web.json_response(
            [CatalogEntryResponse(**entry.to_dict()).model_dump() for entry in catalog]
        )

    async def _handle_stream(self, request: Request) -> StreamResponse:
        """Handle GET /stream/{magnet}/{filename}."""
        magnet = request.match_info["magnet"]
        filename = request.match_info["filename"]
        info_hash = extract_info_hash(magnet)
        session = self.registry.lookup(info_hash)

        sink = AiohttpResponseSink(request)
        outcome = await self.streamer.stream(
            session,
            filename,
            request.headers.get(hdrs.RANGE),
            sink,
        )
        logger.debug("Stream %s/%s finished: %s", info_hash[:8], filename, outcome.value)
        if sink.response is None:
            msg = f"Stream of {filename} produced no response"
            raise RuntimeError(msg)
        return sink.response

    async def start(self) -> None:
        """Start the HTTP server."""
        # Cancel handlers when the client goes away so bounded reads close promptly
        self.runner = web.AppRunner(self.app, handler_cancellation=True)
        await self.runner.setup()
        self.site = web.TCPSite(self.runner, self.host, self.port)
        try:
            await self.site.start()
        except OSError as e:
            logger.exception("Failed to bind %s:%d", self.host, self.port)
            await self.runner.cleanup()
            self.runner = None
            msg = f"Gateway failed to bind to {self.host}:{self.port}: {e}"
            raise RuntimeError(msg) from e

        # Get actual port (in case port 0 was used for random port)
        addresses = self.runner.addresses
        if addresses:
            self.port = addresses[0][1]
        self._start_time = time.time()
        logger.info("Server is running on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Stop the server, release every swarm session and the engine."""
        if self.site:
            await self.site.stop()
            self.site = None
        if self.runner:
            await self.runner.cleanup()
            self.runner = None

        await self.registry.shutdown()
        await self.engine.shutdown()
        logger.info("Gateway stopped")
