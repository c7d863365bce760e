"""
Per-session refresh timer.

The interval is measured from the moment the previous tick was processed:
the session re-arms the scheduler after each refresh, so at most one tick is
ever outstanding and ticks can never overtake each other.
"""

import asyncio
import logging
from typing import Callable, Optional

from leaderboard.session.events import Tick

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Emits Tick events into one session at a fixed interval."""

    def __init__(self, interval: float, deliver: Callable[[Tick], None], name: str = "session"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self._deliver = deliver
        self._name = name
        self._seq = 0
        self._task: Optional[asyncio.Task] = None
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def current_seq(self) -> int:
        return self._seq

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def arm(self):
        """Schedule the next tick one interval from now."""
        if self._cancelled:
            return
        if self.pending:
            self._task.cancel()
        self._seq += 1
        self._task = asyncio.create_task(
            self._wait_and_emit(self._seq),
            name=f"refresh-{self._name}-{self._seq}"
        )

    def cancel(self):
        """Stop the scheduler; ticks already in flight are rejected by is_current()."""
        if self._cancelled:
            return
        self._cancelled = True
        if self._task is not None:
            self._task.cancel()
            self._task = None
        logger.debug(f"[session {self._name}] refresh scheduler cancelled")

    def is_current(self, tick: Tick) -> bool:
        """Whether a delivered tick still belongs to the live schedule."""
        return not self._cancelled and tick.seq == self._seq

    async def _wait_and_emit(self, seq: int):
        await asyncio.sleep(self.interval)
        if self._cancelled or seq != self._seq:
            return
        self._deliver(Tick(seq=seq))
