"""libtorrent-backed swarm engine.

Joins swarms from magnet links, keeps every file at priority 0 until a
byte range is requested, then raises the deadline of exactly the pieces that
cover the range and serves them from ``read_piece`` alerts as they verify.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, AsyncIterator

import libtorrent as lt

from ccstream import __version__
from ccstream.core.magnet import parse_magnet
from ccstream.engine.base import JoinResult, SwarmEngine
from ccstream.session.models import RawFile
from ccstream.utils.exceptions import StreamReadError, SwarmJoinError

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.models import EngineConfig
    from ccstream.session.models import SwarmSession

logger = logging.getLogger(__name__)

# Milliseconds between consecutive piece deadlines of one read
DEADLINE_STEP_MS = 50
TOP_PRIORITY = 7


class LibtorrentEngine(SwarmEngine):
    """Swarm engine on top of a single ``libtorrent.session``."""

    def __init__(self, config: EngineConfig):
        """Initialize the libtorrent session.

        Args:
            config: Engine configuration (save path, listen interfaces, timeouts)

        """
        self.config = config
        self.save_path = Path(config.save_path)
        self.save_path.mkdir(parents=True, exist_ok=True)
        self._session = lt.session(
            {
                "listen_interfaces": config.listen_interfaces,
                "user_agent": f"ccstream/{__version__}",
                "alert_mask": (
                    lt.alert.category_t.error_notification
                    | lt.alert.category_t.storage_notification
                    | lt.alert.category_t.status_notification
                ),
            }
        )
        # (handle, piece, future) triples waiting on a read_piece_alert
        self._piece_waiters: list[tuple[Any, int, asyncio.Future[bytes]]] = []
        # (handle, piece) -> number of open reads that raised its priority
        self._piece_refs: dict[tuple[Any, int], int] = {}
        self._alert_task: asyncio.Task | None = None

    def _ensure_alert_pump(self) -> None:
        if self._alert_task is None or self._alert_task.done():
            self._alert_task = asyncio.create_task(self._alert_loop())

    async def _alert_loop(self) -> None:
        while True:
            for alert in self._session.pop_alerts():
                if isinstance(alert, lt.read_piece_alert):
                    self._deliver_piece(alert)
                elif alert.category() & lt.alert.category_t.error_notification:
                    logger.warning("libtorrent: %s", alert.message())
            await asyncio.sleep(self.config.piece_poll_interval)

    def _deliver_piece(self, alert: Any) -> None:
        remaining = []
        for handle, piece, future in self._piece_waiters:
            if handle == alert.handle and piece == alert.piece:
                if future.done():
                    continue
                if alert.error.value():
                    future.set_exception(
                        StreamReadError(
                            f"read_piece failed: {alert.error.message()}",
                            {"piece": piece},
                        )
                    )
                else:
                    future.set_result(bytes(alert.buffer))
            else:
                remaining.append((handle, piece, future))
        self._piece_waiters = remaining

    async def join(self, magnet: str) -> JoinResult:
        """Add the magnet to the session and wait for its metadata."""
        info = parse_magnet(magnet)
        try:
            params = lt.parse_magnet_uri(magnet)
        except RuntimeError as e:
            msg = f"libtorrent rejected magnet: {e}"
            raise SwarmJoinError(msg, {"info_hash": info.info_hash}) from e
        params.save_path = str(self.save_path)
        handle = self._session.add_torrent(params)
        self._ensure_alert_pump()

        logger.info("Joining swarm %s (%s)", info.info_hash, info.display_name or "?")
        try:
            while not handle.status().has_metadata:
                status = handle.status()
                if status.errc.value():
                    msg = f"Swarm error: {status.errc.message()}"
                    raise SwarmJoinError(msg, {"info_hash": info.info_hash})
                await asyncio.sleep(self.config.piece_poll_interval)
        except BaseException:
            # Leave the swarm when the join is abandoned
            self._session.remove_torrent(handle)
            raise

        torrent_info = handle.torrent_file()
        storage = torrent_info.files()
        # Nothing is downloaded until a range asks for it
        handle.prioritize_files([0] * storage.num_files())
        files = [
            RawFile(
                index=i,
                name=storage.file_name(i),
                path=storage.file_path(i).replace("\\", "/"),
                length=storage.file_size(i),
            )
            for i in range(storage.num_files())
        ]
        logger.info("Swarm %s ready with %d file(s)", info.info_hash, len(files))
        return JoinResult(info_hash=info.info_hash, files=files, handle=handle)

    def open_read(
        self,
        session: SwarmSession,
        file_index: int,
        start: int,
        end: int,
        chunk_size: int = 64 * 1024,
    ) -> AsyncIterator[bytes]:
        """Open a piece-deadline driven read over ``start..end`` of one file."""
        return self._read(session.handle, file_index, start, end, chunk_size)

    async def _wait_for_piece(self, handle: Any, piece: int) -> bytes:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.read_timeout
        while not handle.have_piece(piece):
            if loop.time() > deadline:
                msg = f"Timed out waiting for piece {piece}"
                raise StreamReadError(msg, {"piece": piece})
            await asyncio.sleep(self.config.piece_poll_interval)

        future: asyncio.Future[bytes] = loop.create_future()
        self._piece_waiters.append((handle, piece, future))
        handle.read_piece(piece)
        self._ensure_alert_pump()
        try:
            return await asyncio.wait_for(future, timeout=self.config.read_timeout)
        except asyncio.TimeoutError as e:
            msg = f"Timed out reading piece {piece}"
            raise StreamReadError(msg, {"piece": piece}) from e
        finally:
            self._piece_waiters = [w for w in self._piece_waiters if w[2] is not future]

    async def _read(
        self,
        handle: Any,
        file_index: int,
        start: int,
        end: int,
        chunk_size: int,
    ) -> AsyncIterator[bytes]:
        torrent_info = handle.torrent_file()
        file_offset = torrent_info.files().file_offset(file_index)
        piece_length = torrent_info.piece_length()
        first = (file_offset + start) // piece_length
        last = (file_offset + end) // piece_length

        pieces = range(first, last + 1)

        pos = start
        try:
            self._claim_pieces(handle, pieces)
            for piece in range(first, last + 1):
                data = await self._wait_for_piece(handle, piece)
                piece_start = piece * piece_length - file_offset
                lo = pos - piece_start
                hi = min(end, piece_start + len(data) - 1) - piece_start
                for offset in range(lo, hi + 1, chunk_size):
                    chunk = data[offset : min(offset + chunk_size, hi + 1)]
                    pos += len(chunk)
                    yield chunk
        finally:
            self._release_pieces(handle, pieces)

    def _claim_pieces(self, handle: Any, pieces: range) -> None:
        for step, piece in enumerate(pieces):
            key = (handle, piece)
            self._piece_refs[key] = self._piece_refs.get(key, 0) + 1
            handle.piece_priority(piece, TOP_PRIORITY)
            handle.set_piece_deadline(piece, step * DEADLINE_STEP_MS)

    def _release_pieces(self, handle: Any, pieces: range) -> None:
        """Drop deadlines and priority of pieces no other read still needs."""
        for piece in pieces:
            key = (handle, piece)
            refs = self._piece_refs.get(key, 0) - 1
            if refs > 0:
                self._piece_refs[key] = refs
                continue
            self._piece_refs.pop(key, None)
            with contextlib.suppress(RuntimeError):
                if not handle.have_piece(piece):
                    handle.reset_piece_deadline(piece)
                    handle.piece_priority(piece, 0)

    async def close(self, session: SwarmSession) -> None:
        """Remove the torrent from the libtorrent session."""
        if session.handle is not None:
            self._session.remove_torrent(session.handle)
            session.handle = None

    async def shutdown(self) -> None:
        """Stop the alert pump and pause the session."""
        if self._alert_task is not None:
            self._alert_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._alert_task
            self._alert_task = None
        for _, _, future in self._piece_waiters:
            if not future.done():
                future.cancel()
        self._piece_waiters.clear()
        self._piece_refs.clear()
        self._session.pause()
        logger.info("libtorrent engine stopped")
