# backend/app/services/cancellation_policy.py
"""
Cancellation Policy for skill sessions.

Either participant may cancel a pending or accepted session as long as the
start is at least the configured notice (two hours by default) away.
"""

from datetime import timedelta
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import CancellationWindowException
from ..core.timezone_utils import Clock
from ..events.session_events import SessionCancelled
from ..models.session import SkillSession
from ..repositories.session_repository import SessionRepository
from .base import BaseService
from .collaborators import NotificationDispatcher
from .session_lifecycle_base import SessionLifecycleService
from .session_state_machine import SessionAction

logger = logging.getLogger(__name__)


class CancellationPolicy(SessionLifecycleService):
    """Cancels sessions that are still outside the notice window."""

    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        repository: Optional[SessionRepository] = None,
        clock: Optional[Clock] = None,
        notice_hours: Optional[int] = None,
    ):
        super().__init__(db, repository=repository, dispatcher=dispatcher, clock=clock)
        self.notice_hours = settings.cancellation_notice_hours if notice_hours is None else notice_hours

    def check_notice(self, session: SkillSession) -> None:
        """
        Raises:
            CancellationWindowException: Less than the required notice remains
        """
        remaining = session.start_time - self.now()
        if remaining < timedelta(hours=self.notice_hours):
            raise CancellationWindowException(
                required_hours=self.notice_hours,
                remaining_hours=remaining.total_seconds() / 3600,
            )

    @BaseService.measure_operation("cancel_session")
    def cancel_session(
        self, session_id: str, user_id: str, reason: Optional[str] = None
    ) -> SkillSession:
        """
        Cancel a session on behalf of one of its participants.

        Raises:
            NotFoundException: Unknown session or caller is not a participant
            InvalidTransitionException: Session is already terminal
            CancellationWindowException: Too close to the start
            ConcurrentModificationException: Status changed since it was read
        """
        session = self._load_for_participant(session_id, user_id)
        transition = self.state_machine.resolve(
            session.status, SessionAction.CANCEL, self._actor_role(session, user_id)
        )
        self.check_notice(session)

        self._commit_transition(
            session,
            transition,
            {
                "cancelled_at": self.now(),
                "cancelled_by_id": user_id,
                "cancellation_reason": reason,
            },
        )
        self.logger.info(f"Session {session.id} cancelled by {user_id}")
        self._emit(
            self._build_event(SessionCancelled, session, cancelled_by_id=user_id, reason=reason)
        )
        return session
