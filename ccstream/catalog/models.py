from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from ccstream.core.file_kind import FileKind, content_type_for


@dataclass(frozen=True)
class RawFileLocator:
    """Content lives in raw swarm file ``file_index``."""

    file_index: int


@dataclass(frozen=True)
class ArchiveMemberLocator:
    """Content is member ``member`` of the ZIP at swarm file ``file_index``."""

    file_index: int
    member: str


ContentLocator = Union[RawFileLocator, ArchiveMemberLocator]


@dataclass(frozen=True)
class CatalogEntry:
    """A streamable item of a swarm's catalog."""

    name: str
    length: int
    path: str
    kind: FileKind
    locator: ContentLocator

    @property
    def content_type(self) -> str:
        return content_type_for(self.name, self.kind)

    @property
    def in_archive(self) -> bool:
        return isinstance(self.locator, ArchiveMemberLocator)

    def to_dict(self) -> dict[str, Any]:
        """Public JSON shape: ``{name, length, path, type}``."""
        return {
            "name": self.name,
            "length": self.length,
            "path": self.path,
            "type": self.kind.value,
        }
