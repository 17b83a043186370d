"""
User match statistics.
"""

from src.modules.stats.service import PROFILE_CORRUPTED, UsersStatsService

__all__ = ["UsersStatsService", "PROFILE_CORRUPTED"]
