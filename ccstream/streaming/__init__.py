"""HTTP Range streaming of catalog entries."""

from __future__ import annotations

from ccstream.streaming.range import DEFAULT_CHUNK_SIZE, RangeRequest, parse_range_header
from ccstream.streaming.sink import AiohttpResponseSink, ResponseSink
from ccstream.streaming.streamer import RangeStreamer, StreamOutcome, response_headers

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "AiohttpResponseSink",
    "RangeRequest",
    "RangeStreamer",
    "ResponseSink",
    "StreamOutcome",
    "parse_range_header",
    "response_headers",
]
