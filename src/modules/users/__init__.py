"""
User accounts: registration, login, profile reads and balance grants.
"""

from src.modules.users.currencies_service import CurrenciesService
from src.modules.users.repository import UserRepository, UserStatsRepository
from src.modules.users.service import UsersService, hash_password, serialize_user

__all__ = [
    "UsersService",
    "CurrenciesService",
    "UserRepository",
    "UserStatsRepository",
    "hash_password",
    "serialize_user",
]
