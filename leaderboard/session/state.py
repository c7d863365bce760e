"""
Per-session interactive state.

A SessionState is owned by exactly one session program and replaced, never
mutated, by each transition.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from leaderboard.constants import UIConstants
from leaderboard.data_models.leaderboard import LeaderboardSnapshot


class SessionMode(Enum):
    RUNNING_FOCUSED = "running_focused"
    RUNNING_UNFOCUSED = "running_unfocused"
    TERMINATING = "terminating"


def clamp_selection(index: Optional[int], length: int) -> Optional[int]:
    """Clamp a selection index to [0, length - 1]; None when there are no rows."""
    if length <= 0:
        return None
    if index is None:
        return 0
    return max(0, min(index, length - 1))


@dataclass(frozen=True)
class SessionState:
    snapshot: LeaderboardSnapshot = field(default_factory=LeaderboardSnapshot)
    selected: Optional[int] = None
    focused: bool = True
    terminating: bool = False
    width: int = UIConstants.MAX_WIDTH
    height: int = 24
    stale: bool = False
    last_error: Optional[str] = None

    @classmethod
    def initial(cls, snapshot: LeaderboardSnapshot, width: int = UIConstants.MAX_WIDTH, height: int = 24) -> 'SessionState':
        return cls(
            snapshot=snapshot,
            selected=clamp_selection(0, len(snapshot)),
            width=width,
            height=height
        )

    @property
    def mode(self) -> SessionMode:
        if self.terminating:
            return SessionMode.TERMINATING
        if self.focused:
            return SessionMode.RUNNING_FOCUSED
        return SessionMode.RUNNING_UNFOCUSED
