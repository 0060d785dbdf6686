"""Swarm engine abstraction.

The gateway never speaks the peer wire protocol itself. It delegates swarm
joins and byte reads to a :class:`SwarmEngine`; the libtorrent-backed
implementation lives in :mod:`ccstream.engine.libtorrent_engine`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.session.models import RawFile, SwarmSession


@runtime_checkable
class BoundedRead(Protocol):
    """Asynchronous byte stream covering exactly one inclusive range.

    Async generators satisfy this protocol. ``aclose`` must release any
    swarm-side resources (piece deadlines, open files) immediately.
    """

    def __aiter__(self) -> BoundedRead: ...

    async def __anext__(self) -> bytes: ...

    async def aclose(self) -> None: ...


@dataclass
class JoinResult:
    """Outcome of a successful swarm join."""

    info_hash: str
    files: list[RawFile] = field(default_factory=list)
    handle: Any | None = None


class SwarmEngine(ABC):
    """Interface of the BitTorrent engine consumed by the gateway."""

    @abstractmethod
    async def join(self, magnet: str) -> JoinResult:
        """Join the swarm for ``magnet`` and return its file listing.

        Implementations may take arbitrarily long; the registry applies the
        join timeout. Failures propagate as exceptions.
        """

    @abstractmethod
    def open_read(
        self,
        session: SwarmSession,
        file_index: int,
        start: int,
        end: int,
        chunk_size: int = 64 * 1024,
    ) -> BoundedRead:
        """Open a read over bytes ``start..end`` (inclusive) of one file.

        Every call returns an independent stream, so several reads may run
        against the same file concurrently.
        """

    @abstractmethod
    async def close(self, session: SwarmSession) -> None:
        """Leave the swarm behind ``session``."""

    async def shutdown(self) -> None:
        """Release engine-wide resources."""
        return None


async def read_fully(read: BoundedRead) -> bytes:
    """Drain a bounded read into memory and close it."""
    chunks: list[bytes] = []
    try:
        async for chunk in read:
            chunks.append(chunk)
    finally:
        await read.aclose()
    return b"".join(chunks)
