# backend/app/repositories/user_repository.py
"""
User Repository for the SkillSwap platform.

Read-only lookups used to resolve session participants.
"""

import logging

from sqlalchemy.orm import Session

from ..models.user import User
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class UserRepository(BaseRepository[User]):
    """Repository for user lookups."""

    def __init__(self, db: Session):
        super().__init__(db, User)
