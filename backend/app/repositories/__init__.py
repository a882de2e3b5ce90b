"""
Repository layer for the SkillSwap platform.

Repositories own all SQL; services own transactions and business rules.
"""

from .base_repository import BaseRepository, IRepository
from .factory import RepositoryFactory
from .session_repository import SessionRepository
from .user_repository import UserRepository

__all__ = [
    "BaseRepository",
    "IRepository",
    "RepositoryFactory",
    "SessionRepository",
    "UserRepository",
]
