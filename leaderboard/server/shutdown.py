"""
Graceful shutdown for the SSH leaderboard.

On SIGINT/SIGTERM the coordinator stops the acceptor, asks every active
session to terminate and waits for the registry to drain. Sessions still
alive after the timeout are force-closed.
"""

import asyncio
import logging
import signal
from typing import Optional

from leaderboard.constants import ShutdownConstants
from leaderboard.server.registry import SessionRegistry
from leaderboard.utils.leaderboard_exceptions import ShutdownTimeoutError

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownCoordinator:
    """Turns termination signals into an orderly drain of all sessions."""

    def __init__(
        self,
        registry: SessionRegistry,
        acceptor,
        timeout: float = ShutdownConstants.DEFAULT_TIMEOUT_SECONDS,
        listener_timeout: float = ShutdownConstants.LISTENER_CLOSE_TIMEOUT_SECONDS
    ):
        """
        Args:
            registry: Active session registry
            acceptor: Object with stop_accepting(), abort_connections() and
                async wait_closed()
            timeout: Seconds to wait for sessions to drain before forcing
            listener_timeout: Seconds to wait for the listener to close before
                aborting the connections it still holds
        """
        self.registry = registry
        self.acceptor = acceptor
        self.timeout = timeout
        self.listener_timeout = listener_timeout
        self._requested = asyncio.Event()
        self.received_signal: Optional[signal.Signals] = None
        self.timed_out: Optional[ShutdownTimeoutError] = None

    def install_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        loop = loop or asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self.request_shutdown, sig)

    def remove_signal_handlers(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        loop = loop or asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)

    def request_shutdown(self, sig: Optional[signal.Signals] = None):
        if self._requested.is_set():
            logger.info("Shutdown already in progress")
            return
        self.received_signal = sig
        name = signal.Signals(sig).name if sig is not None else "request"
        logger.info(f"Received {name}, stopping SSH server")
        self._requested.set()

    @property
    def shutdown_requested(self) -> bool:
        return self._requested.is_set()

    async def wait_for_shutdown(self):
        await self._requested.wait()

    async def drain(self) -> bool:
        """Stop accepting, terminate every session and wait for them to finish.

        Returns True when all sessions drained within the timeout.
        """
        self.acceptor.stop_accepting()

        handles = await self.registry.begin_shutdown()
        logger.info(f"Draining {len(handles)} active session(s) (timeout {self.timeout:g}s)")
        for handle in handles:
            handle.terminate()

        drained = True
        try:
            await self.registry.wait_empty(timeout=self.timeout)
        except asyncio.TimeoutError:
            drained = False
            remaining = self.registry.handles()
            self.timed_out = ShutdownTimeoutError([h.session_id for h in remaining], self.timeout)
            logger.error(f"{self.timed_out.kind}: {self.timed_out}; forcing close")
            for handle in remaining:
                handle.force_close()
            try:
                await self.registry.wait_empty(timeout=ShutdownConstants.FORCE_CLOSE_GRACE_SECONDS)
            except asyncio.TimeoutError:
                logger.error(f"Sessions still registered after force close: {', '.join(self.registry.active_ids())}")

        try:
            await asyncio.wait_for(self.acceptor.wait_closed(), timeout=self.listener_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Listener still has open connections after {self.listener_timeout:g}s; aborting them"
            )
            self.acceptor.abort_connections()
        if drained:
            logger.info("All sessions drained")
        return drained

    async def run(self) -> bool:
        """Wait for a termination signal, then drain."""
        await self.wait_for_shutdown()
        return await self.drain()
