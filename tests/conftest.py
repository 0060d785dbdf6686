"""Pytest configuration and shared fixtures for ccStream tests."""

from __future__ import annotations

import asyncio
import io
import logging
import os
import posixpath
import zipfile

import pytest

from ccstream.config.config import reset_config
from ccstream.core.magnet import extract_info_hash
from ccstream.engine.base import JoinResult, SwarmEngine
from ccstream.session.models import RawFile, SessionState, SwarmSession

INFO_HASH = "0123456789abcdef0123456789abcdef01234567"
MAGNET = f"magnet:?xt=urn:btih:{INFO_HASH}&dn=Show"
OTHER_INFO_HASH = "89abcdef89abcdef89abcdef89abcdef89abcd12"
OTHER_MAGNET = f"magnet:?xt=urn:btih:{OTHER_INFO_HASH.upper()}"


def pytest_configure(config):
    """Register project markers to avoid warnings when ini isn't loaded."""
    markers = [
        ("integration", "marks tests as integration tests"),
        ("unit", "marks tests as unit tests"),
        ("session", "marks tests as swarm session tests"),
        ("catalog", "marks tests as catalog tests"),
        ("streaming", "marks tests as range streaming tests"),
        ("cli", "marks tests as CLI tests"),
    ]
    for name, desc in markers:
        config.addinivalue_line("markers", f"{name}: {desc}")


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Clean up logging handlers after each test to prevent closed file errors."""
    yield
    for logger_name in list(logging.Logger.manager.loggerDict.keys()):
        logger = logging.getLogger(logger_name)
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)


@pytest.fixture(autouse=True)
def _isolate_config(monkeypatch, tmp_path):
    """Keep tests away from real config files and gateway env variables."""
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "home")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PORT", raising=False)
    for name in list(os.environ):
        if name.startswith("CCSTREAM_"):
            monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def payload(length: int, seed: int = 0) -> bytes:
    """Deterministic, position-dependent test bytes."""
    block = bytes((i * 7 + seed) % 256 for i in range(256))
    return (block * (length // 256 + 1))[:length]


def make_zip(
    members: dict[str, bytes],
    directories: tuple[str, ...] = (),
    compression: int = zipfile.ZIP_DEFLATED,
) -> bytes:
    """Build a ZIP archive in memory."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=compression) as zf:
        for directory in directories:
            zf.writestr(zipfile.ZipInfo(directory.rstrip("/") + "/"), b"")
        for name, data in members.items():
            zf.writestr(name, data)
    return buf.getvalue()


class FakeSwarmEngine(SwarmEngine):
    """In-memory engine serving fixed file contents.

    Counts joins and reads so tests can assert on swarm-side effects.
    """

    def __init__(
        self,
        files: dict[str, bytes],
        join_delay: float = 0.0,
        join_error: Exception | None = None,
        chunk_delay: float = 0.0,
    ):
        self.files = list(files.items())
        # seconds slept after each served chunk
        self.chunk_delay = chunk_delay
        self.join_delay = join_delay
        self.join_error = join_error
        # path -> byte offset at which reads of that file fail
        self.fail_at: dict[str, int] = {}
        self.join_calls = 0
        self.closed: list[str] = []
        self.reads_opened = 0
        self.reads_closed = 0
        self.chunks_served = 0
        self.shutdown_called = False

    async def join(self, magnet: str) -> JoinResult:
        self.join_calls += 1
        if self.join_delay:
            await asyncio.sleep(self.join_delay)
        if self.join_error is not None:
            raise self.join_error
        return JoinResult(
            info_hash=extract_info_hash(magnet),
            files=[
                RawFile(
                    index=i,
                    name=posixpath.basename(path),
                    path=path,
                    length=len(data),
                )
                for i, (path, data) in enumerate(self.files)
            ],
            handle=object(),
        )

    def open_read(
        self,
        session: SwarmSession,
        file_index: int,
        start: int,
        end: int,
        chunk_size: int = 64 * 1024,
    ):
        return self._read(file_index, start, end, chunk_size)

    async def _read(self, file_index: int, start: int, end: int, chunk_size: int):
        path, data = self.files[file_index]
        fail_at = self.fail_at.get(path)
        self.reads_opened += 1
        try:
            pos = start
            while pos <= end:
                if fail_at is not None and pos >= fail_at:
                    msg = f"piece read failed at {pos}"
                    raise OSError(msg)
                chunk = data[pos : min(pos + chunk_size, end + 1)]
                self.chunks_served += 1
                yield chunk
                pos += len(chunk)
                await asyncio.sleep(self.chunk_delay)
        finally:
            self.reads_closed += 1

    async def close(self, session: SwarmSession) -> None:
        self.closed.append(session.info_hash)

    async def shutdown(self) -> None:
        self.shutdown_called = True


EPISODE = payload(5_000_000)
MOVIE = payload(300_000, seed=1)
POSTER = payload(4_096, seed=2)
COVER = payload(2_048, seed=3)


def default_files() -> dict[str, bytes]:
    """A swarm with a raw video, a ZIP of media, a text file and an image."""
    return {
        "Show/episode.mp4": EPISODE,
        "Show/readme.txt": b"not media",
        "Show/extras.zip": make_zip(
            {
                "movie.mp4": MOVIE,
                "posters/poster.jpg": POSTER,
                "notes.txt": b"skip me",
            },
            directories=("posters/",),
        ),
        "Show/cover.png": COVER,
    }


@pytest.fixture
def files() -> dict[str, bytes]:
    return default_files()


@pytest.fixture
def engine(files) -> FakeSwarmEngine:
    return FakeSwarmEngine(files)


def build_session(engine: FakeSwarmEngine, info_hash: str = INFO_HASH) -> SwarmSession:
    """Synchronously build a ready session for ``engine``'s files."""
    return SwarmSession(
        info_hash=info_hash,
        magnet=f"magnet:?xt=urn:btih:{info_hash}",
        files=[
            RawFile(i, posixpath.basename(path), path, len(data))
            for i, (path, data) in enumerate(engine.files)
        ],
        state=SessionState.READY,
    )
