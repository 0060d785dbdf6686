"""Extension-based file classification."""

from __future__ import annotations

import posixpath
from enum import Enum


class FileKind(str, Enum):
    """Kind of a swarm file or archive member."""

    VIDEO = "video"
    IMAGE = "image"
    ARCHIVE = "archive"
    OTHER = "other"

    @property
    def is_media(self) -> bool:
        """True for kinds that appear in the catalog."""
        return self in (FileKind.VIDEO, FileKind.IMAGE)


VIDEO_EXTENSIONS = frozenset({".mp4", ".mkv", ".avi"})
IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif"})
ARCHIVE_EXTENSIONS = frozenset({".zip"})


def file_extension(name: str) -> str:
    """Return the lowercase extension of ``name`` including its dot."""
    return posixpath.splitext(name)[1].lower()


def classify(name: str) -> FileKind:
    """Classify a file name by its extension."""
    ext = file_extension(name)
    if ext in VIDEO_EXTENSIONS:
        return FileKind.VIDEO
    if ext in IMAGE_EXTENSIONS:
        return FileKind.IMAGE
    if ext in ARCHIVE_EXTENSIONS:
        return FileKind.ARCHIVE
    return FileKind.OTHER


def content_type_for(name: str, kind: FileKind) -> str:
    """Content-Type served for a catalog entry.

    Video is always announced as ``video/mp4``; images use their own
    extension (``image/png``, ``image/jpeg`` for ``.jpeg``, ...).
    """
    if kind is FileKind.VIDEO:
        return "video/mp4"
    if kind is FileKind.IMAGE:
        return f"image/{file_extension(name)[1:]}"
    return "application/octet-stream"
