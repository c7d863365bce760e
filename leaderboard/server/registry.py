"""
Process-wide server state: the set of active sessions.

The registry only ever holds SessionHandle objects (an id plus ways to ask a
session to stop), never the sessions' interactive state. Add and remove are
serialized by a single lock.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from leaderboard.session.events import QuitReason

logger = logging.getLogger(__name__)


@dataclass
class SessionHandle:
    """What the server keeps about a running session."""
    session_id: str
    request_termination: Callable[[QuitReason], None]
    task: Optional[asyncio.Task] = None
    close_connection: Optional[Callable[[], None]] = None
    peer: str = "unknown"
    forced: bool = field(default=False, init=False)

    def terminate(self):
        """Ask the session to finish at its next processed event."""
        self.request_termination(QuitReason.SHUTDOWN)

    def force_close(self):
        """Cancel the session task and drop its connection."""
        self.forced = True
        if self.task is not None and not self.task.done():
            self.task.cancel()
        if self.close_connection is not None:
            self.close_connection()


class SessionRegistry:
    """Active sessions, the shutting-down flag and the listening endpoint."""

    def __init__(self):
        self._sessions: Dict[str, SessionHandle] = {}
        self._lock = asyncio.Lock()
        self._empty = asyncio.Event()
        self._empty.set()
        self.shutting_down = False
        self.endpoint: Optional[Tuple[str, int]] = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def active_ids(self) -> List[str]:
        return sorted(self._sessions)

    def handles(self) -> List[SessionHandle]:
        return list(self._sessions.values())

    async def add(self, handle: SessionHandle) -> bool:
        """Register a session; refused once shutdown has begun."""
        async with self._lock:
            if self.shutting_down:
                return False
            if handle.session_id in self._sessions:
                raise ValueError(f"Session {handle.session_id} is already registered")
            self._sessions[handle.session_id] = handle
            self._empty.clear()
        logger.debug(f"Registered session {handle.session_id} ({len(self._sessions)} active)")
        return True

    async def remove(self, session_id: str) -> bool:
        async with self._lock:
            handle = self._sessions.pop(session_id, None)
            if not self._sessions:
                self._empty.set()
        if handle is not None:
            logger.debug(f"Removed session {session_id} ({len(self._sessions)} active)")
        return handle is not None

    async def begin_shutdown(self) -> List[SessionHandle]:
        """Flag shutdown and return the sessions active at that moment."""
        async with self._lock:
            self.shutting_down = True
            return list(self._sessions.values())

    async def wait_empty(self, timeout: Optional[float] = None):
        """Wait until no session is registered; raises asyncio.TimeoutError."""
        if timeout is None:
            await self._empty.wait()
        else:
            await asyncio.wait_for(self._empty.wait(), timeout=timeout)
