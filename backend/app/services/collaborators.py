# backend/app/services/collaborators.py
"""
Interfaces of the systems the session lifecycle talks to.

The lifecycle never reaches into user profiles, delivery channels or the
review subsystem directly. It depends on these protocols, and the API layer
wires the default implementations below.
"""

from dataclasses import dataclass
import logging
from typing import Any, Dict, Optional, Protocol

from sqlalchemy.orm import Session

from ..events.session_events import SessionEvent
from ..models.user import AccountStatus, UserRole
from ..repositories.factory import RepositoryFactory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserRecord:
    """What the lifecycle needs to know about a user."""

    id: str
    status: str
    role: str

    @property
    def is_available(self) -> bool:
        return self.status == AccountStatus.ACTIVE.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


class UserDirectory(Protocol):
    def resolve(self, user_id: str) -> Optional[UserRecord]:
        ...


class NotificationDispatcher(Protocol):
    def emit(self, event: SessionEvent) -> None:
        ...


class ReviewStore(Protocol):
    def record_completed_session(self, snapshot: Dict[str, Any]) -> None:
        ...


class SqlUserDirectory:
    """UserDirectory backed by the local users table."""

    def __init__(self, db: Session):
        self.repository = RepositoryFactory.create_user_repository(db)

    def resolve(self, user_id: str) -> Optional[UserRecord]:
        user = self.repository.get_by_id(user_id, load_relationships=False)
        if user is None:
            return None
        status = user.account_status if user.is_active else AccountStatus.DEACTIVATED.value
        return UserRecord(id=user.id, status=status, role=user.role)


class NullReviewStore:
    """ReviewStore that only records the hand-off in the log."""

    def record_completed_session(self, snapshot: Dict[str, Any]) -> None:
        logger.info(
            "Completed session %s handed to review store",
            snapshot.get("id"),
        )
