"""ZIP container expansion.

Archives inside a swarm are buffered in memory through the engine (bounded
by ``max_bytes``) and their central directory is walked entry by entry.
Nothing is written to disk.
"""

from __future__ import annotations

import asyncio
import io
import logging
import zipfile
from typing import TYPE_CHECKING, AsyncIterator

from ccstream.catalog.models import ArchiveMemberLocator, CatalogEntry
from ccstream.core.file_kind import classify
from ccstream.engine.base import read_fully
from ccstream.utils.exceptions import ArchiveParseError

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.engine.base import SwarmEngine
    from ccstream.session.models import RawFile, SwarmSession

logger = logging.getLogger(__name__)


async def buffer_archive(
    engine: SwarmEngine,
    session: SwarmSession,
    raw_file: RawFile,
    max_bytes: int,
    chunk_size: int = 64 * 1024,
) -> zipfile.ZipFile:
    """Read a whole ZIP container from the swarm and open it.

    Raises:
        ArchiveParseError: the archive is empty, larger than ``max_bytes``,
            unreadable from the swarm, or not a valid ZIP.

    """
    details = {"info_hash": session.info_hash, "path": raw_file.path}
    if raw_file.length <= 0:
        msg = "Archive is empty"
        raise ArchiveParseError(msg, details)
    if raw_file.length > max_bytes:
        msg = f"Archive exceeds {max_bytes} byte buffering limit"
        raise ArchiveParseError(msg, {**details, "length": raw_file.length})

    try:
        data = await read_fully(
            engine.open_read(
                session,
                raw_file.index,
                0,
                raw_file.length - 1,
                chunk_size,
            )
        )
    except asyncio.CancelledError:
        raise
    except Exception as e:
        msg = f"Could not read archive: {type(e).__name__}"
        raise ArchiveParseError(msg, details) from e

    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, OSError, ValueError) as e:
        msg = f"Invalid ZIP archive: {e}"
        raise ArchiveParseError(msg, details) from e


async def expand_archive(
    engine: SwarmEngine,
    session: SwarmSession,
    raw_file: RawFile,
    max_bytes: int,
    chunk_size: int = 64 * 1024,
) -> AsyncIterator[CatalogEntry]:
    """Yield the video and image members of a ZIP swarm file.

    Directory members are skipped. Each entry's path is
    ``<archive path>/<member name>`` and its length is the member's
    uncompressed size from the central directory.
    """
    archive = await buffer_archive(engine, session, raw_file, max_bytes, chunk_size)
    with archive:
        for info in archive.infolist():
            if info.filename.endswith("/"):
                continue
            kind = classify(info.filename)
            if not kind.is_media:
                continue
            yield CatalogEntry(
                name=info.filename,
                length=info.file_size,
                path=f"{raw_file.path}/{info.filename}",
                kind=kind,
                locator=ArchiveMemberLocator(
                    file_index=raw_file.index,
                    member=info.filename,
                ),
            )


async def read_archive_member(
    engine: SwarmEngine,
    session: SwarmSession,
    raw_file: RawFile,
    member: str,
    start: int,
    end: int,
    max_bytes: int,
    chunk_size: int = 64 * 1024,
) -> AsyncIterator[bytes]:
    """Serve bytes ``start..end`` (inclusive) of one archive member.

    Decompression and seeking run in the default executor so large deflated
    members do not stall the event loop.
    """
    archive = await buffer_archive(engine, session, raw_file, max_bytes, chunk_size)
    loop = asyncio.get_running_loop()
    with archive:
        try:
            handle = archive.open(member)
        except (KeyError, zipfile.BadZipFile, RuntimeError) as e:
            msg = f"Cannot open archive member: {e}"
            raise ArchiveParseError(msg, {"member": member}) from e
        with handle:
            if start:
                await loop.run_in_executor(None, handle.seek, start)
            remaining = end - start + 1
            while remaining > 0:
                chunk = await loop.run_in_executor(
                    None, handle.read, min(chunk_size, remaining)
                )
                if not chunk:
                    msg = "Archive member ended before requested range"
                    raise ArchiveParseError(
                        msg, {"member": member, "missing": remaining}
                    )
                remaining -= len(chunk)
                yield chunk
