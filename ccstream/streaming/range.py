"""HTTP Range header parsing (single ``bytes=start-end`` form only)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from ccstream.utils.exceptions import InvalidRangeError, MissingRangeHeaderError

DEFAULT_CHUNK_SIZE = 1_000_000

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class RangeRequest:
    """A validated inclusive byte range of a resource of known length."""

    start: int
    end: int
    length: int

    @property
    def content_length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.length}"


def parse_range_header(
    header: str | None,
    length: int,
    default_chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> RangeRequest:
    """Parse ``Range: bytes=start-[end]`` against a resource of ``length`` bytes.

    An omitted end defaults to ``min(start + default_chunk_size - 1,
    length - 1)`` so each open-ended request is capped to one window.

    Raises:
        MissingRangeHeaderError: ``header`` is ``None`` or blank.
        InvalidRangeError: the header is malformed, multi-range, a suffix
            range, or falls outside ``0..length-1``.

    """
    if header is None or not header.strip():
        msg = "Requires Range header"
        raise MissingRangeHeaderError(msg)

    match = _RANGE_RE.match(header)
    if match is None:
        msg = "Malformed Range header"
        raise InvalidRangeError(msg, {"range": header[:100]})

    start = int(match.group(1))
    if match.group(2):
        end = int(match.group(2))
    else:
        end = min(start + default_chunk_size - 1, length - 1)

    if not 0 <= start <= end < length:
        msg = "Range not satisfiable"
        raise InvalidRangeError(
            msg,
            {"start": start, "end": end, "length": length},
        )
    return RangeRequest(start=start, end=end, length=length)
