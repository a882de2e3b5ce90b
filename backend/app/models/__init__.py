"""
Database models for the SkillSwap platform.

- User: participants and administrators
- SkillSession / SessionFeedback: the session lifecycle
"""

from .session import (
    ParticipantRole,
    SessionFeedback,
    SessionStatus,
    SessionType,
    SkillLevel,
    SkillSession,
)
from .user import AccountStatus, User, UserRole

__all__ = [
    "AccountStatus",
    "ParticipantRole",
    "SessionFeedback",
    "SessionStatus",
    "SessionType",
    "SkillLevel",
    "SkillSession",
    "User",
    "UserRole",
]
