"""
Shared fixtures and fakes for the leaderboard test suite.
"""

import asyncio
import os
import sys
from datetime import datetime, timezone
from typing import List

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from leaderboard.config import Config
from leaderboard.data_models.leaderboard import Entry, LeaderboardSnapshot
from leaderboard.utils.leaderboard_exceptions import FetchError
from leaderboard.views.leaderboard import CLEAR_SCREEN, ViewSettings

CAPTURED_AT = datetime(2025, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


def make_snapshot(*rows, captured_at: datetime = CAPTURED_AT) -> LeaderboardSnapshot:
    """Build a snapshot from (rank, name, score) tuples."""
    return LeaderboardSnapshot.from_entries(
        (Entry(rank=rank, name=name, score=score) for rank, name, score in rows),
        captured_at=captured_at
    )


def ranked(*names: str) -> LeaderboardSnapshot:
    """Snapshot with the given names ranked in order, scores descending."""
    return make_snapshot(*((i + 1, name, 1000 - i * 10) for i, name in enumerate(names)))


class ScriptedGateway:
    """Returns scripted results in order; the last result repeats forever."""

    def __init__(self, *results):
        if not results:
            raise ValueError("at least one result is required")
        self._results = list(results)
        self.calls = 0

    async def fetch_snapshot(self) -> LeaderboardSnapshot:
        self.calls += 1
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FailingGateway(ScriptedGateway):
    def __init__(self):
        super().__init__(FetchError("fetch_ranked", "connection refused"))


class RecordingWriter:
    """Collects everything a session writes to its terminal."""

    def __init__(self):
        self.writes: List[str] = []

    def __call__(self, text: str):
        self.writes.append(text)

    @property
    def frames(self) -> List[str]:
        return [w[len(CLEAR_SCREEN):] for w in self.writes if w.startswith(CLEAR_SCREEN)]

    @property
    def last_frame(self) -> str:
        return self.frames[-1]


class BrokenWriter:
    def __call__(self, text: str):
        raise BrokenPipeError("channel closed")


class FakeStdin:
    """Stand-in for an SSH process stdin: yields queued strings or raises queued errors."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()

    def feed(self, item):
        self._queue.put_nowait(item)

    async def read(self, n: int = -1):
        item = await self._queue.get()
        if isinstance(item, BaseException):
            raise item
        return item


class FakeStream:
    def __init__(self):
        self.writes: List[str] = []

    def write(self, text: str):
        self.writes.append(text)

    @property
    def text(self) -> str:
        return "".join(self.writes)


class FakeProcess:
    """Minimal SSH server process for acceptor tests."""

    def __init__(self, term_type="xterm-256color", size=(80, 24), peer=("127.0.0.1", 50022)):
        self._term_type = term_type
        self._size = size
        self._peer = peer
        self.stdin = FakeStdin()
        self.stdout = FakeStream()
        self.stderr = FakeStream()
        self.exit_status = None
        self.closed = False

    def get_terminal_type(self):
        return self._term_type

    def get_terminal_size(self):
        return (self._size[0], self._size[1], 0, 0)

    def get_extra_info(self, name, default=None):
        return {'peername': self._peer}.get(name, default)

    def exit(self, status):
        self.exit_status = status

    def close(self):
        self.closed = True


async def wait_until(predicate, timeout: float = 2.0, interval: float = 0.005):
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(interval)


@pytest.fixture
def settings() -> ViewSettings:
    return ViewSettings(title="Test Board", refresh_interval=10.0, table_height=5)


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        host="127.0.0.1",
        port=0,
        host_key_path=str(tmp_path / "keys" / "id_ed25519"),
        refresh_interval=0.02,
        shutdown_timeout=1.0,
        table_height=5,
        log_dir=None
    )
