"""Swarm engine abstraction and implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ccstream.engine.base import BoundedRead, JoinResult, SwarmEngine, read_fully

if TYPE_CHECKING:  # pragma: no cover
    from ccstream.models import EngineConfig


def create_engine(config: EngineConfig) -> SwarmEngine:
    """Build the default (libtorrent) engine.

    The import is deferred so the rest of the package works without the
    libtorrent bindings installed.
    """
    from ccstream.engine.libtorrent_engine import LibtorrentEngine

    return LibtorrentEngine(config)


__all__ = [
    "BoundedRead",
    "JoinResult",
    "SwarmEngine",
    "create_engine",
    "read_fully",
]
