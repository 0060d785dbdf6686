"""Swarm session models and the session registry."""

from __future__ import annotations

from ccstream.session.models import RawFile, SessionState, SwarmSession
from ccstream.session.registry import SwarmRegistry

__all__ = [
    "RawFile",
    "SessionState",
    "SwarmRegistry",
    "SwarmSession",
]
