"""
Tests for the SSH session acceptor using a fake SSH process.
"""

import asyncio
from dataclasses import replace

import asyncssh
import pytest

from leaderboard.server.acceptor import LeaderboardSSHServer, SessionAcceptor, format_peer
from leaderboard.server.registry import SessionRegistry
from leaderboard.utils.leaderboard_exceptions import FetchError, StartupError
from leaderboard.views.leaderboard import LEAVE_SCREEN
from tests.conftest import FakeProcess, ScriptedGateway, make_snapshot, wait_until

INITIAL = make_snapshot((1, "Alpha", 500), (2, "Beta", 300))


def make_acceptor(config, gateway=None):
    registry = SessionRegistry()
    acceptor = SessionAcceptor(config, gateway or ScriptedGateway(INITIAL), registry)
    return acceptor, registry


@pytest.mark.asyncio
async def test_session_without_terminal_is_rejected(config):
    gateway = ScriptedGateway(INITIAL)
    acceptor, registry = make_acceptor(config, gateway)
    process = FakeProcess(term_type=None)

    await asyncio.wait_for(acceptor.handle_process(process), timeout=1)

    assert process.exit_status == 1
    assert "interactive terminal" in process.stderr.text
    assert gateway.calls == 0
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_initial_fetch_failure_terminates_session(config):
    gateway = ScriptedGateway(FetchError("fetch_ranked", "connection refused"))
    acceptor, registry = make_acceptor(config, gateway)
    process = FakeProcess()

    await asyncio.wait_for(acceptor.handle_process(process), timeout=1)

    assert process.exit_status == 1
    assert "temporarily unavailable" in process.stderr.text
    assert process.stdout.text == ""
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_session_runs_until_quit_key(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))

    await wait_until(lambda: len(registry) == 1)
    await wait_until(lambda: "Alpha" in process.stdout.text)
    process.stdin.feed("q")
    await asyncio.wait_for(task, timeout=1)

    assert process.exit_status == 0
    assert process.stdout.writes[-1] == LEAVE_SCREEN
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_eof_disconnects_session(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))

    await wait_until(lambda: len(registry) == 1)
    process.stdin.feed("")
    await asyncio.wait_for(task, timeout=1)

    assert len(registry) == 0
    assert process.exit_status == 0


@pytest.mark.asyncio
async def test_resize_and_navigation_reach_the_session(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess(size=(60, 20))
    task = asyncio.create_task(acceptor.handle_process(process))
    await wait_until(lambda: len(registry) == 1)

    process.stdin.feed(asyncssh.TerminalSizeChanged(120, 40, 0, 0))
    process.stdin.feed("j")
    frames_before = process.stdout.text.count("Alpha")
    await wait_until(lambda: process.stdout.text.count("Alpha") >= frames_before + 2)

    process.stdin.feed("\x03")
    await asyncio.wait_for(task, timeout=1)
    assert process.exit_status == 0


@pytest.mark.asyncio
async def test_refresh_runs_inside_session(config):
    gateway = ScriptedGateway(INITIAL, make_snapshot((1, "Beta", 600), (2, "Alpha", 500)))
    acceptor, registry = make_acceptor(config, gateway)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))

    await wait_until(lambda: gateway.calls >= 2)
    await wait_until(lambda: "600" in process.stdout.text)
    process.stdin.feed("q")
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_rejects_sessions_while_shutting_down(config):
    acceptor, registry = make_acceptor(config)
    await registry.begin_shutdown()
    process = FakeProcess()

    await asyncio.wait_for(acceptor.handle_process(process), timeout=1)

    assert process.exit_status == 1
    assert "shutting down" in process.stderr.text


@pytest.mark.asyncio
async def test_force_close_cancels_session(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))
    await wait_until(lambda: len(registry) == 1)

    registry.handles()[0].force_close()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert process.closed
    assert process.exit_status is None
    assert len(registry) == 0


def test_host_key_generated_when_missing(config):
    acceptor, _ = make_acceptor(config)
    key = acceptor.load_host_key()
    assert key is not None
    # A second load reads the same file
    assert acceptor.load_host_key().export_public_key() == key.export_public_key()


def test_invalid_host_key_is_startup_error(config, tmp_path):
    bad_key = tmp_path / "bad_key"
    bad_key.write_text("not a key")
    acceptor, _ = make_acceptor(replace(config, host_key_path=str(bad_key)))

    with pytest.raises(StartupError):
        acceptor.load_host_key()


def test_missing_host_key_without_generation_is_startup_error(config, tmp_path):
    acceptor, _ = make_acceptor(
        replace(config, host_key_path=str(tmp_path / "missing"), generate_host_key=False)
    )

    with pytest.raises(StartupError):
        acceptor.load_host_key()


@pytest.mark.asyncio
async def test_bind_failure_is_startup_error(config):
    first, _ = make_acceptor(config)
    await first.start()
    try:
        taken = replace(config, port=first.port)
        second, _ = make_acceptor(taken)
        with pytest.raises(StartupError):
            await second.start()
    finally:
        first.stop_accepting()
        await first.wait_closed()


def test_format_peer():
    assert format_peer(("10.0.0.1", 2222)) == "10.0.0.1:2222"
    assert format_peer(None) == "unknown"
    assert format_peer("socket") == "socket"


def running_program(registry):
    """The SessionProgram behind the only registered session."""
    return registry.handles()[0].request_termination.__self__


@pytest.mark.asyncio
async def test_arrow_key_split_across_reads_moves_selection(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))
    await wait_until(lambda: len(registry) == 1)
    program = running_program(registry)

    process.stdin.feed("\x1b")
    process.stdin.feed("[B")
    await wait_until(lambda: program.state.selected == 1)
    assert program.state.focused

    process.stdin.feed("q")
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_lone_escape_blurs_after_timeout(config):
    acceptor, registry = make_acceptor(config)
    process = FakeProcess()
    task = asyncio.create_task(acceptor.handle_process(process))
    await wait_until(lambda: len(registry) == 1)
    program = running_program(registry)

    process.stdin.feed("\x1b")
    await wait_until(lambda: not program.state.focused)

    process.stdin.feed("q")
    await asyncio.wait_for(task, timeout=1)


@pytest.mark.asyncio
async def test_unexpected_initial_fetch_error_rejects_session(config):
    gateway = ScriptedGateway(RuntimeError("driver bug"))
    acceptor, registry = make_acceptor(config, gateway)
    process = FakeProcess()

    await asyncio.wait_for(acceptor.handle_process(process), timeout=1)

    assert process.exit_status == 1
    assert "Something went wrong" in process.stderr.text
    assert "driver bug" not in process.stderr.text
    assert len(registry) == 0


class FakeConnection:
    def __init__(self, peer=("10.0.0.9", 40000)):
        self.peer = peer
        self.aborted = False

    def get_extra_info(self, name, default=None):
        return {'peername': self.peer}.get(name, default)

    def abort(self):
        self.aborted = True


def test_connections_are_tracked_and_aborted(config):
    acceptor, _ = make_acceptor(config)
    idle, finished = FakeConnection(), FakeConnection()
    idle_server = LeaderboardSSHServer(acceptor._connections)
    finished_server = LeaderboardSSHServer(acceptor._connections)

    idle_server.connection_made(idle)
    finished_server.connection_made(finished)
    assert acceptor.connection_count == 2

    finished_server.connection_lost(None)
    assert acceptor.connection_count == 1

    acceptor.abort_connections()
    assert idle.aborted
    assert not finished.aborted
    assert acceptor.connection_count == 0
