"""
Services package for the SSH leaderboard.
"""

from .base import BaseService
from .leaderboard import LeaderboardService

__all__ = ['BaseService', 'LeaderboardService']
