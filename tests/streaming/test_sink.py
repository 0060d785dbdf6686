"""Tests for the aiohttp response sink outside a running server."""

from __future__ import annotations

from unittest.mock import Mock

import pytest
from aiohttp.test_utils import make_mocked_request

from ccstream.streaming.sink import AiohttpResponseSink

pytestmark = [pytest.mark.streaming]


def make_sink(closing: bool = False) -> AiohttpResponseSink:
    transport = Mock()
    transport.is_closing.return_value = closing
    return AiohttpResponseSink(make_mocked_request("GET", "/", transport=transport))


@pytest.mark.asyncio
async def test_write_before_headers_raises():
    sink = make_sink()
    with pytest.raises(RuntimeError, match="Headers not sent"):
        await sink.write(b"data")


@pytest.mark.asyncio
async def test_finish_before_headers_raises():
    sink = make_sink()
    with pytest.raises(RuntimeError, match="Headers not sent"):
        await sink.finish()


@pytest.mark.asyncio
async def test_write_to_closing_transport_raises_connection_reset():
    sink = make_sink(closing=True)
    with pytest.raises(ConnectionResetError):
        await sink.write(b"data")
