"""File catalog construction.

Turns a swarm session's raw file list into the flat list of streamable
entries served by ``/list-files`` and looked up by ``/stream``.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, AsyncIterator

from ccstream.catalog.archive import expand_archive, read_archive_member
from ccstream.catalog.models import (
    ArchiveMemberLocator,
    CatalogEntry,
    RawFileLocator,
)
from ccstream.core.file_kind import FileKind
from ccstream.utils.exceptions import ArchiveParseError, FileNotFoundInTorrentError

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.engine.base import SwarmEngine
    from ccstream.session.models import RawFile, SwarmSession

logger = logging.getLogger(__name__)


def _raw_entry(raw: RawFile) -> CatalogEntry:
    return CatalogEntry(
        name=raw.name,
        length=raw.length,
        path=raw.path,
        kind=raw.kind,
        locator=RawFileLocator(file_index=raw.index),
    )


def find_entry(catalog: list[CatalogEntry], filename: str) -> CatalogEntry:
    """Find an entry by display name, falling back to its logical path.

    Raises:
        FileNotFoundInTorrentError: nothing matches ``filename``.

    """
    for entry in catalog:
        if entry.name == filename:
            return entry
    for entry in catalog:
        if entry.path == filename:
            return entry
    msg = "File not found"
    raise FileNotFoundInTorrentError(msg, {"filename": filename})


class CatalogBuilder:
    """Builds catalogs and opens reads against catalog entries."""

    def __init__(
        self,
        engine: SwarmEngine,
        max_archive_bytes: int = 256 * 1024 * 1024,
        read_chunk_size: int = 64 * 1024,
    ):
        """Initialize catalog builder.

        Args:
            engine: Swarm engine serving the raw bytes
            max_archive_bytes: Largest ZIP container buffered for expansion
            read_chunk_size: Chunk size requested from the engine

        """
        self.engine = engine
        self.max_archive_bytes = max_archive_bytes
        self.read_chunk_size = read_chunk_size

    async def build(self, session: SwarmSession) -> list[CatalogEntry]:
        """Return the catalog of ``session`` in engine listing order.

        Archives are replaced in place by their media members. An archive
        that cannot be read contributes whatever it yielded before failing
        and never aborts the rest of the catalog.
        """
        catalog: list[CatalogEntry] = []
        for raw in session.files:
            kind = raw.kind
            if kind is FileKind.ARCHIVE:
                try:
                    async for entry in expand_archive(
                        self.engine,
                        session,
                        raw,
                        self.max_archive_bytes,
                        self.read_chunk_size,
                    ):
                        catalog.append(entry)
                except ArchiveParseError as e:
                    logger.warning("Skipping archive %s: %s", raw.path, e.message)
            elif kind.is_media:
                catalog.append(_raw_entry(raw))
        logger.debug(
            "Catalog for %s: %d entr%s",
            session.info_hash,
            len(catalog),
            "y" if len(catalog) == 1 else "ies",
        )
        return catalog

    async def find(self, session: SwarmSession, filename: str) -> CatalogEntry:
        """Look ``filename`` up, expanding archives only when no raw file matches.

        A raw media file therefore wins over an archive member of the same name.
        """
        raw_entries = [_raw_entry(raw) for raw in session.files if raw.kind.is_media]
        with contextlib.suppress(FileNotFoundInTorrentError):
            return find_entry(raw_entries, filename)
        return find_entry(await self.build(session), filename)

    def open_entry(
        self,
        session: SwarmSession,
        entry: CatalogEntry,
        start: int,
        end: int,
    ) -> AsyncIterator[bytes]:
        """Open a bounded read over ``start..end`` of a catalog entry."""
        locator = entry.locator
        if isinstance(locator, ArchiveMemberLocator):
            return read_archive_member(
                self.engine,
                session,
                session.file(locator.file_index),
                locator.member,
                start,
                end,
                self.max_archive_bytes,
                self.read_chunk_size,
            )
        return self.engine.open_read(
            session,
            locator.file_index,
            start,
            end,
            self.read_chunk_size,
        )


async def build_catalog(
    engine: SwarmEngine,
    session: SwarmSession,
    max_archive_bytes: int = 256 * 1024 * 1024,
) -> list[CatalogEntry]:
    """Build the catalog of ``session`` with a one-off :class:`CatalogBuilder`."""
    return await CatalogBuilder(engine, max_archive_bytes=max_archive_bytes).build(session)
