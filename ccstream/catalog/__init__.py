"""Swarm file catalog: classification, archive expansion and lookup."""

from __future__ import annotations

from ccstream.catalog.archive import buffer_archive, expand_archive, read_archive_member
from ccstream.catalog.builder import CatalogBuilder, build_catalog, find_entry
from ccstream.catalog.models import (
    ArchiveMemberLocator,
    CatalogEntry,
    ContentLocator,
    RawFileLocator,
)

__all__ = [
    "ArchiveMemberLocator",
    "CatalogBuilder",
    "CatalogEntry",
    "ContentLocator",
    "RawFileLocator",
    "buffer_archive",
    "build_catalog",
    "expand_archive",
    "find_entry",
    "read_archive_member",
]
