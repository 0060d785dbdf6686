"""Range stream server.

Serves one catalog entry as a ``206 Partial Content`` response:

    PARSED -> VALIDATED -> STREAMING -> COMPLETED
                                     -> ABORTED              (peer went away)
                                     -> ERRORED_PRE_HEADER   (500 JSON)
                                     -> ERRORED_POST_HEADER  (connection dropped)

The first chunk is pulled from the source before the status line is
committed, so a source that fails on open still yields a clean 500. Whatever
the outcome, the bounded read is closed before ``stream`` returns.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator

from ccstream.streaming.range import DEFAULT_CHUNK_SIZE, parse_range_header
from ccstream.utils.exceptions import StreamReadError

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.catalog.builder import CatalogBuilder
    from ccstream.catalog.models import CatalogEntry
    from ccstream.session.models import SwarmSession
    from ccstream.streaming.range import RangeRequest
    from ccstream.streaming.sink import ResponseSink

logger = logging.getLogger(__name__)


class StreamOutcome(str, Enum):
    """Terminal state of one stream request."""

    COMPLETED = "completed"
    ABORTED = "aborted"
    ERRORED_PRE_HEADER = "errored_pre_header"
    ERRORED_POST_HEADER = "errored_post_header"


def response_headers(entry: CatalogEntry, rng: RangeRequest) -> dict[str, str]:
    """Headers of a successful partial-content response."""
    return {
        "Content-Range": rng.content_range,
        "Accept-Ranges": "bytes",
        "Content-Length": str(rng.content_length),
        "Content-Type": entry.content_type,
    }


class RangeStreamer:
    """Streams byte ranges of catalog entries to response sinks."""

    def __init__(
        self,
        catalog: CatalogBuilder,
        default_chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize range streamer.

        Args:
            catalog: Catalog builder used to find entries and open reads
            default_chunk_size: Window served when the Range end is omitted

        """
        self.catalog = catalog
        self.default_chunk_size = default_chunk_size

    async def stream(
        self,
        session: SwarmSession,
        filename: str,
        range_header: str | None,
        sink: ResponseSink,
    ) -> StreamOutcome:
        """Stream the requested range of ``filename`` into ``sink``.

        Raises:
            FileNotFoundInTorrentError: ``filename`` is not in the catalog.
            MissingRangeHeaderError: ``range_header`` is absent.
            InvalidRangeError: the range is malformed or out of bounds.

        """
        entry = await self.catalog.find(session, filename)
        rng = parse_range_header(range_header, entry.length, self.default_chunk_size)

        source = self.catalog.open_entry(session, entry, rng.start, rng.end)
        try:
            return await self._pump(session, entry, rng, source, sink)
        finally:
            await source.aclose()

    async def _pump(
        self,
        session: SwarmSession,
        entry: CatalogEntry,
        rng: RangeRequest,
        source: AsyncIterator[bytes],
        sink: ResponseSink,
    ) -> StreamOutcome:
        label = f"{session.info_hash[:8]}/{entry.name}"

        try:
            chunk = await source.__anext__()
        except asyncio.CancelledError:
            logger.info("Stream %s cancelled before headers", label)
            raise
        except StopAsyncIteration:
            chunk = None
        except Exception as e:
            logger.warning(
                "Stream error before headers for %s (%s): %s",
                label,
                rng.content_range,
                e,
            )
            await sink.send_error(StreamReadError("Stream error"))
            return StreamOutcome.ERRORED_PRE_HEADER

        await sink.send_headers(206, response_headers(entry, rng))
        logger.debug("Streaming %s %s", label, rng.content_range)

        sent = 0
        try:
            while chunk is not None:
                try:
                    if chunk:
                        await sink.write(chunk)
                except ConnectionError:
                    logger.info(
                        "Client disconnected, stopping stream %s after %d byte(s)",
                        label,
                        sent,
                    )
                    return StreamOutcome.ABORTED
                sent += len(chunk)
                try:
                    chunk = await source.__anext__()
                except StopAsyncIteration:
                    chunk = None
        except asyncio.CancelledError:
            logger.info("Client disconnected, stopping stream %s", label)
            raise
        except Exception as e:
            logger.warning(
                "Stream error after headers for %s at byte %d: %s",
                label,
                rng.start + sent,
                e,
            )
            sink.abort()
            return StreamOutcome.ERRORED_POST_HEADER

        if sent != rng.content_length:
            logger.warning(
                "Source ended early for %s: %d of %d byte(s)",
                label,
                sent,
                rng.content_length,
            )
            sink.abort()
            return StreamOutcome.ERRORED_POST_HEADER

        try:
            await sink.finish()
        except ConnectionError:
            return StreamOutcome.ABORTED
        return StreamOutcome.COMPLETED
