# backend/app/models/user.py
"""
User model for the SkillSwap platform.

Only the fields the session lifecycle needs are kept locally: identity,
account status and the platform role used for administrative actions.
Profiles, skills and credentials live in their own services.
"""

from enum import Enum
import logging

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, String
from sqlalchemy.sql import func
import ulid

from ..database import Base

logger = logging.getLogger(__name__)


class AccountStatus(str, Enum):
    """Account lifecycle statuses."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DEACTIVATED = "deactivated"


class UserRole(str, Enum):
    """Platform roles."""

    MEMBER = "member"
    ADMIN = "admin"


class User(Base):
    """
    Platform member who can request or provide skill sessions.

    Attributes:
        id: ULID primary key
        email: Unique email address
        first_name: User's first name
        last_name: User's last name
        role: Platform role (member or admin)
        account_status: Lifecycle status (active, suspended, deactivated)
        is_active: Whether the account may take part in sessions
    """

    __tablename__ = "users"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, default=UserRole.MEMBER.value)
    account_status = Column(String(20), nullable=False, default=AccountStatus.ACTIVE.value)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("role IN ('member', 'admin')", name="ck_users_role"),
        CheckConstraint(
            "account_status IN ('active', 'suspended', 'deactivated')",
            name="ck_users_account_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<User {self.id}: {self.email} role={self.role}>"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value
