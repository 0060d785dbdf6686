"""Magnet URI parsing (BEP 9) utilities.

``extract_info_hash`` is the strict identity parser used to key swarm
sessions. ``parse_magnet`` additionally decodes display name, trackers and
web seeds for the engine and for logging.
"""

from __future__ import annotations

import base64
import binascii
import re
import urllib.parse
from dataclasses import dataclass, field

from ccstream.utils.exceptions import InvalidMagnetError

_BTIH_HEX_RE = re.compile(r"urn:btih:([a-fA-F0-9]{40})")
_BTIH_ANY_RE = re.compile(r"^urn:btih:([a-zA-Z0-9]+)$")


@dataclass
class MagnetInfo:
    """Information extracted from a magnet link."""

    info_hash: str
    display_name: str | None = None
    trackers: list[str] = field(default_factory=list)
    web_seeds: list[str] = field(default_factory=list)


def extract_info_hash(magnet: str) -> str:
    """Return the lowercase 40-hex info-hash embedded in ``magnet``.

    The match is a plain pattern search, so the hash is found regardless of
    surrounding query parameters or the casing of its hex digits.

    Raises:
        InvalidMagnetError: no ``urn:btih:<40 hex>`` component is present.

    """
    match = _BTIH_HEX_RE.search(magnet or "")
    if match is None:
        msg = "Magnet URI missing xt=urn:btih:<40 hex digits>"
        raise InvalidMagnetError(msg, {"magnet": (magnet or "")[:120]})
    return match.group(1).lower()


def _btih_to_hex(btih: str) -> str:
    """Decode btih which can be hex (40 chars) or base32 (32 chars)."""
    btih = btih.strip()
    if len(btih) == 40:
        try:
            return bytes.fromhex(btih).hex()
        except ValueError as e:
            msg = "Invalid hex info-hash"
            raise InvalidMagnetError(msg) from e
    if len(btih) == 32:
        try:
            return base64.b32decode(btih.upper()).hex()
        except (binascii.Error, ValueError) as e:
            msg = "Invalid base32 info-hash"
            raise InvalidMagnetError(msg) from e
    msg = f"Unsupported info-hash length {len(btih)}"
    raise InvalidMagnetError(msg)


def parse_magnet(uri: str) -> MagnetInfo:
    """Parse a magnet URI and return `MagnetInfo`.

    Supports: xt=urn:btih:<hash> (hex or base32), dn, tr (multiple),
    ws (multiple).
    """
    parsed = urllib.parse.urlparse(uri)
    if parsed.scheme != "magnet":
        msg = "Not a magnet URI"
        raise InvalidMagnetError(msg)

    qs = urllib.parse.parse_qs(parsed.query)
    info_hash = None
    for xt in qs.get("xt", []):
        match = _BTIH_ANY_RE.match(xt)
        if match:
            info_hash = _btih_to_hex(match.group(1))
            break
    if info_hash is None:
        msg = "Magnet URI missing xt=urn:btih"
        raise InvalidMagnetError(msg)

    return MagnetInfo(
        info_hash=info_hash,
        display_name=qs.get("dn", [None])[0],
        trackers=qs.get("tr", []),
        web_seeds=qs.get("ws", []),
    )
