"""
Custom exceptions for the SSH leaderboard with user-friendly error messages.
"""

from typing import Iterable, Optional


class LeaderboardException(Exception):
    """Base exception for leaderboard-related errors."""
    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message

    @property
    def kind(self) -> str:
        return type(self).__name__


class HandshakeError(LeaderboardException):
    """Raised when a connection attempt is rejected before a session starts."""
    def __init__(self, reason: str, session_id: Optional[str] = None):
        self.reason = reason
        self.session_id = session_id
        prefix = f"[session {session_id}] " if session_id else ""
        super().__init__(
            f"{prefix}Handshake rejected: {reason}",
            f"Connection rejected: {reason}"
        )


class FetchError(LeaderboardException):
    """Raised when the backing store cannot produce a ranking."""
    def __init__(self, operation: str, details: str = None):
        self.operation = operation
        self.details = details
        super().__init__(
            f"Fetch failed during {operation}: {details}",
            "Leaderboard is temporarily unavailable. Please try again later."
        )


class StartupError(LeaderboardException):
    """Raised when a server component cannot start; the process exits non-zero."""
    def __init__(self, component: str, details: str):
        self.component = component
        super().__init__(
            f"Could not start {component}: {details}",
            f"Startup failed: {component}"
        )


class ShutdownTimeoutError(LeaderboardException):
    """Raised when sessions fail to drain within the shutdown timeout."""
    def __init__(self, session_ids: Iterable[str], timeout: float):
        self.session_ids = sorted(session_ids)
        self.timeout = timeout
        super().__init__(
            f"{len(self.session_ids)} session(s) did not drain within {timeout:g}s: "
            f"{', '.join(self.session_ids)}",
            "Server is shutting down."
        )
