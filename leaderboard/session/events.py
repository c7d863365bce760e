"""
Events consumed by a session and the effects its transitions request.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from leaderboard.data_models.leaderboard import LeaderboardSnapshot


@dataclass(frozen=True)
class Tick:
    """Refresh request from the session's scheduler."""
    seq: int


@dataclass(frozen=True)
class Refreshed:
    """A refresh produced a new snapshot."""
    snapshot: LeaderboardSnapshot


@dataclass(frozen=True)
class RefreshFailed:
    """A refresh failed; the current snapshot stays on screen."""
    reason: str


@dataclass(frozen=True)
class Navigate:
    """Move the selection by delta rows."""
    delta: int


@dataclass(frozen=True)
class Jump:
    """Move the selection to the first or last row."""
    to_last: bool


@dataclass(frozen=True)
class ToggleFocus:
    """Switch table focus; None toggles, True/False set it explicitly."""
    focused: Optional[bool] = None


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


class QuitReason(Enum):
    USER = "user"
    DISCONNECT = "disconnect"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True)
class Quit:
    reason: QuitReason = QuitReason.USER


Event = Union[Tick, Refreshed, RefreshFailed, Navigate, Jump, ToggleFocus, Resize, Quit]


class Effect(Enum):
    FETCH = "fetch"
    REARM = "rearm"
    RENDER = "render"
    CANCEL_TIMER = "cancel_timer"
    CLOSE = "close"
