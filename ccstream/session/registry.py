"""Swarm session registry.

Holds at most one :class:`SwarmSession` per info-hash. Every slot is either
``_Pending`` (a join task that late arrivals await) or ``_Ready``; a missing
key means the swarm was never joined or its join failed. The lookup and the
insertion of a pending slot happen without an intervening ``await``, which
makes ``resolve`` an atomic find-or-create on the event loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from ccstream.session.models import SessionState, SwarmSession
from ccstream.utils.exceptions import (
    CCStreamError,
    SwarmJoinError,
    TorrentNotFoundError,
)

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.engine.base import SwarmEngine

logger = logging.getLogger(__name__)


@dataclass
class _Pending:
    session: SwarmSession
    task: asyncio.Task[SwarmSession]


@dataclass
class _Ready:
    session: SwarmSession


_Slot = Union[_Pending, _Ready]


class SwarmRegistry:
    """Maps info-hashes to joined swarm sessions."""

    def __init__(self, engine: SwarmEngine, join_timeout: float = 120.0):
        """Initialize the registry.

        Args:
            engine: Swarm engine used to join and leave swarms
            join_timeout: Seconds a join may take before it fails

        """
        self.engine = engine
        self.join_timeout = join_timeout
        self._slots: dict[str, _Slot] = {}
        self._closed = False

    def __len__(self) -> int:
        return len(self._slots)

    def __contains__(self, info_hash: object) -> bool:
        return info_hash in self._slots

    def sessions(self) -> list[SwarmSession]:
        """Return every known session, joining ones included."""
        return [slot.session for slot in self._slots.values()]

    async def resolve(self, info_hash: str, magnet: str) -> SwarmSession:
        """Return the session for ``info_hash``, joining the swarm if needed.

        Concurrent callers for the same unseen info-hash share one join.
        Cancelling a caller never cancels the shared join.

        Raises:
            SwarmJoinError: the engine failed, timed out, or the registry
                is shut down.

        """
        if self._closed:
            msg = "Registry is shut down"
            raise SwarmJoinError(msg, {"info_hash": info_hash})

        slot = self._slots.get(info_hash)
        if isinstance(slot, _Ready):
            return slot.session
        if slot is None:
            session = SwarmSession(info_hash=info_hash, magnet=magnet)
            task = asyncio.create_task(
                self._join(session),
                name=f"swarm-join-{info_hash[:8]}",
            )
            task.add_done_callback(self._log_join_outcome)
            slot = _Pending(session=session, task=task)
            self._slots[info_hash] = slot
        else:
            logger.debug("Awaiting in-flight join for %s", info_hash)

        return await asyncio.shield(slot.task)

    def lookup(self, info_hash: str) -> SwarmSession:
        """Return the ready session for ``info_hash`` without joining.

        Raises:
            TorrentNotFoundError: no ready session exists.

        """
        slot = self._slots.get(info_hash)
        if not isinstance(slot, _Ready):
            msg = "Torrent not found"
            raise TorrentNotFoundError(msg, {"info_hash": info_hash})
        return slot.session

    async def _join(self, session: SwarmSession) -> SwarmSession:
        info_hash = session.info_hash
        logger.info("Joining swarm %s", info_hash)
        try:
            result = await asyncio.wait_for(
                self.engine.join(session.magnet),
                timeout=self.join_timeout,
            )
        except asyncio.CancelledError:
            self._discard_pending(info_hash, session)
            raise
        except asyncio.TimeoutError as e:
            self._discard_pending(info_hash, session)
            msg = f"Swarm join timed out after {self.join_timeout:.0f}s"
            raise SwarmJoinError(msg, {"info_hash": info_hash}) from e
        except SwarmJoinError:
            self._discard_pending(info_hash, session)
            raise
        except Exception as e:
            self._discard_pending(info_hash, session)
            msg = f"Swarm join failed: {type(e).__name__}"
            raise SwarmJoinError(msg, {"info_hash": info_hash}) from e

        if result.info_hash and result.info_hash != info_hash:
            logger.warning(
                "Engine reported info-hash %s for requested %s",
                result.info_hash,
                info_hash,
            )

        session.files = list(result.files)
        session.handle = result.handle
        if self._closed:
            session.state = SessionState.CLOSED
            await self.engine.close(session)
            msg = "Registry shut down during join"
            raise SwarmJoinError(msg, {"info_hash": info_hash})

        session.state = SessionState.READY
        self._slots[info_hash] = _Ready(session=session)
        return session

    def _discard_pending(self, info_hash: str, session: SwarmSession) -> None:
        slot = self._slots.get(info_hash)
        if isinstance(slot, _Pending) and slot.session is session:
            del self._slots[info_hash]
        session.state = SessionState.CLOSED

    @staticmethod
    def _log_join_outcome(task: asyncio.Task[SwarmSession]) -> None:
        # Retrieve the exception so an unobserved failure is not reported twice
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            session = task.result()
            logger.info(
                "Swarm %s ready with %d file(s)",
                session.info_hash,
                len(session.files),
            )
        elif isinstance(exc, CCStreamError):
            logger.warning("%s", exc)
        else:  # pragma: no cover
            logger.error("Unexpected join failure", exc_info=exc)

    async def shutdown(self) -> None:
        """Cancel pending joins and close every session."""
        self._closed = True
        slots = list(self._slots.values())
        self._slots.clear()

        pending = [slot.task for slot in slots if isinstance(slot, _Pending)]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for slot in slots:
            if isinstance(slot, _Ready):
                try:
                    await self.engine.close(slot.session)
                except Exception:
                    logger.exception("Failed to close swarm %s", slot.session.info_hash)
                slot.session.state = SessionState.CLOSED

        logger.info("Swarm registry stopped (%d session(s) released)", len(slots))
