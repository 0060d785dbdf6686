"""ccStream - BitTorrent content-resolution and range-streaming gateway."""

from __future__ import annotations

__version__ = "0.1.0"
