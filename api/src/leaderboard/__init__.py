"""Leaderboard module.

Provides:
- Course leaderboard (completion percentage in one course)
- Learning leaderboard (mean completion across enrolled courses)
"""

from .engine import LeaderboardEntry, LeaderboardPage, rank_entries


__all__ = [
    "LeaderboardEntry",
    "LeaderboardPage",
    "rank_entries",
]
