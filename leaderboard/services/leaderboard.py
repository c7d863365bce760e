"""
Leaderboard service: the data gateway between sessions and the backing store.

Every call opens its own database session, runs the ranking query, maps the
rows to immutable entries and releases the session. Nothing is cached or
shared between calls, so any number of sessions may call concurrently.
"""

import asyncio
import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from leaderboard.data_models.leaderboard import Entry, LeaderboardSnapshot
from leaderboard.services.base import BaseService, RETRYABLE_ERRORS
from leaderboard.utils.leaderboard_exceptions import FetchError
from leaderboard.utils.ranking import RankingUtility

logger = logging.getLogger(__name__)


class LeaderboardService(BaseService):
    """Fetches the current ranking from the backing store."""

    def __init__(
        self,
        session_factory: Optional[async_sessionmaker],
        *,
        tie_break: str = "earliest",
        fetch_timeout: float = 5.0,
        max_retries: int = 1
    ):
        super().__init__(session_factory)
        if not RankingUtility.validate_tie_break(tie_break):
            raise ValueError(f"Invalid tie_break value: {tie_break}")
        self.tie_break = tie_break
        self.fetch_timeout = fetch_timeout
        self.max_retries = max_retries

    @classmethod
    def from_config(cls, database, config) -> 'LeaderboardService':
        return cls(
            database.session_factory,
            tie_break=config.tie_break,
            fetch_timeout=config.fetch_timeout,
            max_retries=config.fetch_retries
        )

    async def fetch_ranked(self) -> List[Entry]:
        """Return the ranked entries ordered by ascending rank.

        Raises:
            FetchError: the store is not configured, unreachable, too slow,
                or the query failed.
        """
        if self.session_factory is None:
            raise FetchError("fetch_ranked", "no database configured")

        try:
            return await self.execute_with_retry(self._query_ranked, max_retries=self.max_retries)
        except asyncio.TimeoutError:
            raise FetchError("fetch_ranked", f"query timed out after {self.fetch_timeout:g}s")
        except RETRYABLE_ERRORS as e:
            raise FetchError("fetch_ranked", f"{type(e).__name__}: {e}") from e

    async def fetch_snapshot(self) -> LeaderboardSnapshot:
        """Return the ranked entries as a snapshot stamped with the capture time."""
        entries = await self.fetch_ranked()
        try:
            return LeaderboardSnapshot.from_entries(entries)
        except ValueError as e:
            raise FetchError("fetch_snapshot", f"invalid ranking: {e}") from e

    async def _query_ranked(self) -> List[Entry]:
        return await asyncio.wait_for(self._run_ranking_query(), timeout=self.fetch_timeout)

    async def _run_ranking_query(self) -> List[Entry]:
        query = RankingUtility.create_team_ranking_query(tie_break=self.tie_break)
        async with self.get_session() as session:
            result = await session.execute(query)
            entries = []
            for row in result:
                score = row.score
                if score is None:
                    logger.warning(f"Team '{row.name}' has NULL total_points. Defaulting to 0.")
                    score = 0
                entries.append(Entry(rank=int(row.rank), name=row.name, score=int(score)))
            return entries
