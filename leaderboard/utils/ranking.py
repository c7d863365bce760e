"""
Ranking utilities for the live leaderboard.

Builds the ranking query used by LeaderboardService following a CTE pattern:
aggregate per team first, then number the aggregated rows.
"""

from typing import List
from sqlalchemy import select, func
from sqlalchemy.sql import Select
from leaderboard.database.models import Team, TeamPoints, CompletedQuestion


class RankingUtility:
    """Shared ranking logic for leaderboard queries."""

    TIE_BREAKS = ('earliest', 'name')

    @staticmethod
    def create_team_ranking_query(tie_break: str = "earliest") -> Select:
        """
        Create a query returning (rank, name, score) rows ordered by rank.

        Teams are ranked by accumulated score, highest first. Equal scores are
        resolved by the tie-break policy:

        - earliest: the team whose most recent completion happened first wins;
          teams with no completions go after teams with completions.
        - name: alphabetical by team name.

        Name and team id are always appended as final tie-breakers, and ranks
        come from ROW_NUMBER so every rank in a result is unique.
        """
        if not RankingUtility.validate_tie_break(tie_break):
            raise ValueError(f"Invalid tie_break value: {tie_break}")

        # Aggregate per team; the LEFT JOIN keeps teams with no completions
        team_stats = (
            select(
                Team.team_id.label('team_id'),
                Team.team_name.label('name'),
                TeamPoints.total_points.label('score'),
                func.max(CompletedQuestion.completed_at).label('last_completed_at')
            )
            .join(TeamPoints, Team.team_id == TeamPoints.team_id)
            .outerjoin(CompletedQuestion, Team.team_id == CompletedQuestion.team_id)
            .group_by(Team.team_id, Team.team_name, TeamPoints.total_points)
            .cte('team_stats')
        )

        order_by: List = [team_stats.c.score.desc()]
        if tie_break == "earliest":
            order_by.append(team_stats.c.last_completed_at.asc().nulls_last())
        order_by.extend([team_stats.c.name.asc(), team_stats.c.team_id.asc()])

        ranked = (
            select(
                func.row_number().over(order_by=order_by).label('rank'),
                team_stats.c.name,
                team_stats.c.score
            )
            .cte('ranked_teams')
        )

        return select(ranked.c.rank, ranked.c.name, ranked.c.score).order_by(ranked.c.rank)

    @staticmethod
    def validate_tie_break(tie_break: str) -> bool:
        """Validate tie_break parameter against allowed values."""
        return tie_break in RankingUtility.TIE_BREAKS
