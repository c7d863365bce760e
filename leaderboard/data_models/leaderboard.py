"""
Leaderboard data models.

Provides immutable data transfer objects for ranked leaderboard data.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Tuple


@dataclass(frozen=True)
class Entry:
    """Single leaderboard row."""
    rank: int
    name: str
    score: int


@dataclass(frozen=True)
class LeaderboardSnapshot:
    """Rank-ordered entries captured at one fetch.

    Ranks must be unique and strictly increasing in sequence order. A session
    replaces its snapshot as a whole; there is no way to update single rows.
    """
    entries: Tuple[Entry, ...] = ()
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        # Accept any iterable but store a tuple so the snapshot stays immutable
        object.__setattr__(self, 'entries', tuple(self.entries))
        previous = 0
        for entry in self.entries:
            if entry.rank < 1:
                raise ValueError(f"Rank must be 1-based, got {entry.rank} for '{entry.name}'")
            if entry.rank <= previous:
                raise ValueError(
                    f"Ranks must be strictly increasing, got {entry.rank} after {previous}"
                )
            previous = entry.rank

    @classmethod
    def from_entries(cls, entries: Iterable[Entry], captured_at: Optional[datetime] = None) -> 'LeaderboardSnapshot':
        if captured_at is None:
            return cls(entries=tuple(entries))
        return cls(entries=tuple(entries), captured_at=captured_at)

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, index):
        return self.entries[index]
