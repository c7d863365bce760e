"""
SSH session acceptor.

Listens for SSH connections, requires an interactive terminal for every
session, performs the initial leaderboard fetch and then hands the session
over to its own SessionProgram. Failures are contained to the connection
that caused them.
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Optional, Set

import asyncssh

from leaderboard.config import Config
from leaderboard.constants import InputConstants, UIConstants
from leaderboard.server.registry import SessionHandle, SessionRegistry
from leaderboard.session.events import Quit, QuitReason, Resize
from leaderboard.session.keymap import KeyDecoder, KeyMap
from leaderboard.session.program import SessionProgram
from leaderboard.session.state import SessionState
from leaderboard.utils.leaderboard_exceptions import FetchError, HandshakeError, StartupError
from leaderboard.views.leaderboard import ViewSettings

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_MESSAGE = "Something went wrong while loading the leaderboard. Please try again later."


def format_peer(peername) -> str:
    if not peername:
        return "unknown"
    if isinstance(peername, (tuple, list)) and len(peername) >= 2:
        return f"{peername[0]}:{peername[1]}"
    return str(peername)


class LeaderboardSSHServer(asyncssh.SSHServer):
    """Per-connection SSH callbacks: logging, open access and connection tracking."""

    def __init__(self, connections: Optional[Set[asyncssh.SSHServerConnection]] = None):
        self._connections = connections if connections is not None else set()
        self._conn: Optional[asyncssh.SSHServerConnection] = None
        self._peer = "unknown"
        self._authenticated = False

    def connection_made(self, conn: asyncssh.SSHServerConnection):
        self._conn = conn
        self._connections.add(conn)
        self._peer = format_peer(conn.get_extra_info('peername'))
        logger.info(f"Connection from {self._peer}")

    def connection_lost(self, exc: Optional[Exception]):
        self._connections.discard(self._conn)
        if exc is None:
            logger.debug(f"Connection from {self._peer} closed")
        elif not self._authenticated:
            error = HandshakeError(str(exc))
            logger.warning(f"{error.kind} from {self._peer}: {error}")
        else:
            logger.info(f"Connection from {self._peer} lost: {exc}")

    def begin_auth(self, username: str) -> bool:
        # Anyone with an interactive terminal may watch the board
        return False

    def auth_completed(self):
        self._authenticated = True


class SessionAcceptor:
    """Accepts SSH sessions and spawns one SessionProgram per terminal."""

    def __init__(self, config: Config, gateway, registry: SessionRegistry):
        self.config = config
        self.gateway = gateway
        self.registry = registry
        self.settings = ViewSettings.from_config(config)
        self.keymap = KeyMap(page_size=config.table_height)
        self._server: Optional[asyncssh.SSHAcceptor] = None
        self._connections: Set[asyncssh.SSHServerConnection] = set()

    @property
    def port(self) -> Optional[int]:
        return self._server.get_port() if self._server else None

    def load_host_key(self) -> asyncssh.SSHKey:
        """Read the host key, generating it first if allowed and missing."""
        path = Path(self.config.host_key_path)
        if not path.exists() and self.config.generate_host_key:
            logger.info(f"Generating new host key at {path}")
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                asyncssh.generate_private_key('ssh-ed25519').write_private_key(str(path))
                path.chmod(0o600)
            except OSError as e:
                raise StartupError("host key", f"cannot write {path}: {e}") from e
        try:
            return asyncssh.read_private_key(str(path))
        except (OSError, asyncssh.KeyImportError) as e:
            raise StartupError("host key", f"cannot load {path}: {e}") from e

    async def start(self):
        """Bind the SSH listener; raises StartupError when that is impossible."""
        host_key = self.load_host_key()
        try:
            self._server = await asyncssh.create_server(
                lambda: LeaderboardSSHServer(self._connections),
                self.config.host,
                self.config.port,
                server_host_keys=[host_key],
                process_factory=self.handle_process,
                line_editor=False,
                encoding='utf-8'
            )
        except OSError as e:
            raise StartupError(
                "SSH listener", f"cannot bind {self.config.host}:{self.config.port}: {e}"
            ) from e
        self.registry.endpoint = (self.config.host, self.port)
        logger.info(f"Starting SSH server on {self.config.host}:{self.port}")

    def stop_accepting(self):
        if self._server is not None:
            logger.info("Stopping SSH listener")
            self._server.close()

    async def wait_closed(self):
        if self._server is not None:
            await self._server.wait_closed()

    def abort_connections(self):
        """Drop every SSH connection that is still open, with or without a session."""
        for conn in list(self._connections):
            conn.abort()
        self._connections.clear()

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def handle_process(self, process: asyncssh.SSHServerProcess):
        """Run one SSH session from handshake checks to close."""
        session_id = uuid.uuid4().hex[:8]
        peer = format_peer(process.get_extra_info('peername'))

        try:
            self.check_terminal(process, session_id)
            if self.registry.shutting_down:
                raise HandshakeError("server is shutting down", session_id)
        except HandshakeError as e:
            logger.warning(f"{e.kind} from {peer}: {e}")
            self._reject(process, e.user_message)
            return

        try:
            snapshot = await self.gateway.fetch_snapshot()
        except FetchError as e:
            logger.error(f"[session {session_id}] initial {e.kind}: {e}")
            self._reject(process, e.user_message)
            return
        except Exception as e:
            logger.exception(f"[session {session_id}] initial fetch failed unexpectedly: {e}")
            self._reject(process, UNEXPECTED_ERROR_MESSAGE)
            return

        width, height = process.get_terminal_size()[:2]
        program = SessionProgram(
            session_id,
            self.gateway,
            SessionState.initial(snapshot, width=width or UIConstants.MAX_WIDTH, height=height or 24),
            process.stdout.write,
            self.settings,
            refresh_interval=self.config.refresh_interval
        )
        handle = SessionHandle(
            session_id,
            program.request_termination,
            task=asyncio.current_task(),
            close_connection=process.close,
            peer=peer
        )
        if not await self.registry.add(handle):
            error = HandshakeError("server is shutting down", session_id)
            logger.warning(f"{error.kind} from {peer}: {error}")
            self._reject(process, error.user_message)
            return

        logger.info(
            f"[session {session_id}] started for {peer} "
            f"(term={process.get_terminal_type()}, {width}x{height})"
        )
        started = time.monotonic()
        pump = asyncio.create_task(self._pump_input(process, program), name=f"input-{session_id}")
        try:
            await program.run()
        finally:
            pump.cancel()
            await self.registry.remove(session_id)
            if not handle.forced:
                self._finish(process, 0)
            logger.info(f"[session {session_id}] closed after {time.monotonic() - started:.1f}s")

    def check_terminal(self, process, session_id: str):
        """Reject sessions that did not request a PTY."""
        if process.get_terminal_type() is None:
            raise HandshakeError("an interactive terminal is required (try ssh -t)", session_id)

    async def _pump_input(self, process, program: SessionProgram):
        """Feed terminal input into the session until EOF.

        One read stays outstanding at a time. While an escape sequence is
        incomplete the wait is bounded, and a lone ESC is released as the
        escape key once the timeout passes.
        """
        decoder = KeyDecoder()
        read: Optional[asyncio.Future] = None
        try:
            while not program.closed:
                if read is None:
                    read = asyncio.ensure_future(process.stdin.read(1024))
                timeout = InputConstants.ESCAPE_TIMEOUT_SECONDS if decoder.pending else None
                done, _ = await asyncio.wait({read}, timeout=timeout)
                if not done:
                    program.post_all(self.keymap.events_for_keys(decoder.flush()))
                    continue
                finished, read = read, None
                try:
                    data = finished.result()
                except asyncssh.TerminalSizeChanged as exc:
                    program.post(Resize(exc.width, exc.height))
                    continue
                except (asyncssh.BreakReceived, asyncssh.SignalReceived):
                    continue
                if not data:
                    program.post_all(self.keymap.events_for_keys(decoder.flush()))
                    program.post(Quit(QuitReason.DISCONNECT))
                    return
                program.post_all(self.keymap.events_for_keys(decoder.feed(data)))
        except (asyncssh.Error, ConnectionError) as e:
            logger.info(f"[session {program.session_id}] input closed: {e}")
            program.post(Quit(QuitReason.DISCONNECT))
        finally:
            if read is not None:
                read.cancel()

    def _reject(self, process, message: str):
        try:
            process.stderr.write(message + "\r\n")
        except (BrokenPipeError, ConnectionError) as e:
            logger.debug(f"Could not send rejection message: {e}")
        self._finish(process, 1)

    def _finish(self, process, status: int):
        try:
            process.exit(status)
        except OSError as e:
            logger.debug(f"Channel already closed: {e}")
