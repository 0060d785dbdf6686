from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ccstream.core.file_kind import FileKind, classify


class SessionState(str, Enum):
    """Typed swarm session lifecycle state."""

    JOINING = "joining"
    READY = "ready"
    CLOSED = "closed"


@dataclass(frozen=True)
class RawFile:
    """One file of a swarm as listed by the engine."""

    index: int
    name: str
    path: str
    length: int

    @property
    def kind(self) -> FileKind:
        return classify(self.name)


@dataclass
class SwarmSession:
    """Local handle onto one joined swarm."""

    info_hash: str
    magnet: str
    files: list[RawFile] = field(default_factory=list)
    state: SessionState = SessionState.JOINING
    # Opaque engine-side object (e.g. a libtorrent torrent_handle)
    handle: Any | None = None

    @property
    def is_ready(self) -> bool:
        return self.state is SessionState.READY

    def file(self, index: int) -> RawFile:
        return self.files[index]
