"""Core identity and classification helpers.

- Magnet link handling
- File kind classification
"""

from __future__ import annotations

from ccstream.core.file_kind import FileKind, classify, content_type_for
from ccstream.core.magnet import MagnetInfo, extract_info_hash, parse_magnet

__all__ = [
    # Classification
    "FileKind",
    "classify",
    "content_type_for",
    # Magnet
    "MagnetInfo",
    "extract_info_hash",
    "parse_magnet",
]
