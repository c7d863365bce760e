"""
Live leaderboard served over SSH.

Every SSH session gets its own interactive view of the same ranking,
refreshed on a timer from the backing database.
"""

__version__ = "0.1.0"
