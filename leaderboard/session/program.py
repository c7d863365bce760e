"""
Session program: the event loop that drives one connected terminal.

Events from the input pump, the refresh scheduler and the shutdown
coordinator land in one queue and are processed strictly one at a time, in
arrival order. The program is the only code that touches its SessionState.
"""

import asyncio
import logging
from typing import Callable, Iterable, Optional

from leaderboard.services.scheduler import RefreshScheduler
from leaderboard.session.events import (
    Effect, Event, Quit, QuitReason, Refreshed, RefreshFailed, Tick
)
from leaderboard.session.state import SessionState, SessionMode
from leaderboard.session.transitions import transition
from leaderboard.utils.leaderboard_exceptions import FetchError
from leaderboard.views.leaderboard import (
    CLEAR_SCREEN, ENTER_SCREEN, LEAVE_SCREEN, ViewSettings, render_frame
)

logger = logging.getLogger(__name__)


class SessionProgram:
    """Runs the state machine for a single session."""

    def __init__(
        self,
        session_id: str,
        gateway,
        initial_state: SessionState,
        write: Callable[[str], None],
        settings: ViewSettings,
        *,
        refresh_interval: Optional[float] = None
    ):
        """
        Args:
            session_id: Identifier used in logs and by the registry
            gateway: Object with an async fetch_snapshot() raising FetchError
            initial_state: State built from the initial fetch
            write: Sink for output text (the session's terminal)
            settings: Frame settings shared by all sessions
            refresh_interval: Seconds between refreshes; defaults to settings
        """
        self.session_id = session_id
        self.gateway = gateway
        self.state = initial_state
        self.settings = settings
        self._write = write
        self._events: asyncio.Queue = asyncio.Queue()
        self._closed = False
        self._output_broken = False
        self.frames_rendered = 0
        self.scheduler = RefreshScheduler(
            refresh_interval if refresh_interval is not None else settings.refresh_interval,
            self.post,
            name=session_id
        )

    @property
    def mode(self) -> SessionMode:
        return self.state.mode

    @property
    def closed(self) -> bool:
        return self._closed

    def post(self, event: Event):
        """Queue an event; events posted after the program closed are dropped."""
        if self._closed:
            return
        self._events.put_nowait(event)

    def post_all(self, events: Iterable[Event]):
        for event in events:
            self.post(event)

    def request_termination(self, reason: QuitReason = QuitReason.SHUTDOWN):
        self.post(Quit(reason))

    async def run(self):
        """Process events until the session reaches the terminating state."""
        logger.debug(f"[session {self.session_id}] program started")
        self._emit(ENTER_SCREEN)
        self._render()
        self.scheduler.arm()
        try:
            while not self.state.terminating:
                event = await self._events.get()
                await self.dispatch(event)
        finally:
            self.scheduler.cancel()
            self._closed = True
            self._emit(LEAVE_SCREEN)
            logger.debug(f"[session {self.session_id}] program stopped")

    async def dispatch(self, event: Event):
        """Apply one event: run the transition, then carry out its effects."""
        if isinstance(event, Tick) and not self.scheduler.is_current(event):
            logger.debug(f"[session {self.session_id}] dropping stale tick {event.seq}")
            return

        was_stale = self.state.stale
        self.state, effects = transition(self.state, event)
        if was_stale and isinstance(event, Refreshed):
            logger.info(f"[session {self.session_id}] refresh recovered")

        for effect in effects:
            if effect is Effect.FETCH:
                await self.dispatch(await self._refresh())
            elif effect is Effect.REARM:
                self.scheduler.arm()
            elif effect is Effect.RENDER:
                self._render()
            elif effect is Effect.CANCEL_TIMER:
                self.scheduler.cancel()
            elif effect is Effect.CLOSE:
                reason = event.reason.value if isinstance(event, Quit) else "unknown"
                logger.info(f"[session {self.session_id}] terminating ({reason})")

    async def _refresh(self) -> Event:
        try:
            snapshot = await self.gateway.fetch_snapshot()
        except FetchError as e:
            logger.warning(f"[session {self.session_id}] {e.kind}: {e}")
            return RefreshFailed(str(e))
        logger.debug(f"[session {self.session_id}] refreshed {len(snapshot)} entries")
        return Refreshed(snapshot)

    def _render(self):
        self._emit(CLEAR_SCREEN + render_frame(self.state, self.settings))
        self.frames_rendered += 1

    def _emit(self, text: str):
        if self._output_broken:
            return
        try:
            self._write(text)
        except (BrokenPipeError, ConnectionError) as e:
            # The client is gone; finish the session through the normal path
            self._output_broken = True
            logger.info(f"[session {self.session_id}] output closed: {e}")
            self.post(Quit(QuitReason.DISCONNECT))
