"""Tests for the swarm session registry."""

from __future__ import annotations

import asyncio

import pytest

from conftest import INFO_HASH, MAGNET, OTHER_INFO_HASH, OTHER_MAGNET, FakeSwarmEngine
from ccstream.session.models import SessionState
from ccstream.session.registry import SwarmRegistry
from ccstream.utils.exceptions import SwarmJoinError, TorrentNotFoundError

pytestmark = [pytest.mark.session]


@pytest.mark.asyncio
async def test_resolve_is_idempotent(files):
    engine = FakeSwarmEngine(files)
    registry = SwarmRegistry(engine)

    first = await registry.resolve(INFO_HASH, MAGNET)
    second = await registry.resolve(INFO_HASH, MAGNET)

    assert first is second
    assert first.state is SessionState.READY
    assert len(first.files) == len(files)
    assert engine.join_calls == 1
    assert len(registry) == 1


@pytest.mark.asyncio
async def test_concurrent_resolves_share_one_join(files):
    engine = FakeSwarmEngine(files, join_delay=0.05)
    registry = SwarmRegistry(engine)

    sessions = await asyncio.gather(
        *(registry.resolve(INFO_HASH, MAGNET) for _ in range(10))
    )

    assert engine.join_calls == 1
    assert all(s is sessions[0] for s in sessions)


@pytest.mark.asyncio
async def test_distinct_swarms_join_separately(files):
    engine = FakeSwarmEngine(files)
    registry = SwarmRegistry(engine)

    a = await registry.resolve(INFO_HASH, MAGNET)
    b = await registry.resolve(OTHER_INFO_HASH, OTHER_MAGNET)

    assert a is not b
    assert engine.join_calls == 2
    assert set(s.info_hash for s in registry.sessions()) == {INFO_HASH, OTHER_INFO_HASH}


@pytest.mark.asyncio
async def test_failed_join_is_not_cached(files):
    engine = FakeSwarmEngine(files, join_error=RuntimeError("no peers"))
    registry = SwarmRegistry(engine)

    with pytest.raises(SwarmJoinError) as exc_info:
        await registry.resolve(INFO_HASH, MAGNET)
    assert exc_info.value.http_status == 502
    assert INFO_HASH not in registry

    engine.join_error = None
    session = await registry.resolve(INFO_HASH, MAGNET)
    assert session.is_ready
    assert engine.join_calls == 2


@pytest.mark.asyncio
async def test_concurrent_waiters_all_see_failure(files):
    engine = FakeSwarmEngine(files, join_delay=0.02, join_error=RuntimeError("boom"))
    registry = SwarmRegistry(engine)

    results = await asyncio.gather(
        *(registry.resolve(INFO_HASH, MAGNET) for _ in range(3)),
        return_exceptions=True,
    )

    assert engine.join_calls == 1
    assert all(isinstance(r, SwarmJoinError) for r in results)
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_join_timeout(files):
    engine = FakeSwarmEngine(files, join_delay=5.0)
    registry = SwarmRegistry(engine, join_timeout=0.05)

    with pytest.raises(SwarmJoinError, match="timed out"):
        await registry.resolve(INFO_HASH, MAGNET)
    assert INFO_HASH not in registry


@pytest.mark.asyncio
async def test_cancelled_caller_does_not_cancel_join(files):
    engine = FakeSwarmEngine(files, join_delay=0.05)
    registry = SwarmRegistry(engine)

    waiter = asyncio.create_task(registry.resolve(INFO_HASH, MAGNET))
    await asyncio.sleep(0.01)
    waiter.cancel()
    with pytest.raises(asyncio.CancelledError):
        await waiter

    session = await registry.resolve(INFO_HASH, MAGNET)
    assert session.is_ready
    assert engine.join_calls == 1


@pytest.mark.asyncio
async def test_lookup_requires_ready_session(files):
    engine = FakeSwarmEngine(files, join_delay=0.05)
    registry = SwarmRegistry(engine)

    with pytest.raises(TorrentNotFoundError):
        registry.lookup(INFO_HASH)

    pending = asyncio.create_task(registry.resolve(INFO_HASH, MAGNET))
    await asyncio.sleep(0)
    with pytest.raises(TorrentNotFoundError):
        registry.lookup(INFO_HASH)

    session = await pending
    assert registry.lookup(INFO_HASH) is session


@pytest.mark.asyncio
async def test_shutdown_closes_sessions(files):
    engine = FakeSwarmEngine(files)
    registry = SwarmRegistry(engine)
    session = await registry.resolve(INFO_HASH, MAGNET)

    await registry.shutdown()

    assert engine.closed == [INFO_HASH]
    assert session.state is SessionState.CLOSED
    assert len(registry) == 0
    with pytest.raises(SwarmJoinError):
        await registry.resolve(INFO_HASH, MAGNET)


@pytest.mark.asyncio
async def test_shutdown_cancels_pending_join(files):
    engine = FakeSwarmEngine(files, join_delay=5.0)
    registry = SwarmRegistry(engine)

    waiter = asyncio.create_task(registry.resolve(INFO_HASH, MAGNET))
    await asyncio.sleep(0.01)
    await registry.shutdown()

    with pytest.raises(asyncio.CancelledError):
        await waiter
    assert engine.closed == []
