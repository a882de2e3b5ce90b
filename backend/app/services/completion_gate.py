# backend/app/services/completion_gate.py
"""
Completion Gate for skill sessions.

An accepted session can be marked completed by either participant once its
time window has passed. The completed session is then handed to the review
subsystem; a failure there is logged and never undoes the completion.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import SessionNotElapsedException
from ..core.timezone_utils import Clock
from ..events.session_events import SessionCompleted
from ..models.session import ParticipantRole, SkillSession
from ..repositories.session_repository import SessionRepository
from .base import BaseService
from .collaborators import NotificationDispatcher, ReviewStore
from .session_lifecycle_base import SessionLifecycleService
from .session_state_machine import SessionAction

logger = logging.getLogger(__name__)


class CompletionGate(SessionLifecycleService):
    """Marks accepted sessions completed once they are over."""

    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        review_store: Optional[ReviewStore] = None,
        repository: Optional[SessionRepository] = None,
        clock: Optional[Clock] = None,
        requires_elapsed: Optional[bool] = None,
    ):
        super().__init__(db, repository=repository, dispatcher=dispatcher, clock=clock)
        self.review_store = review_store
        self.requires_elapsed = (
            settings.completion_requires_elapsed if requires_elapsed is None else requires_elapsed
        )

    def check_window(self, session: SkillSession) -> None:
        """
        With requires_elapsed the session must have ended, otherwise started.

        Raises:
            SessionNotElapsedException: Too early to complete
        """
        now = self.now()
        if self.requires_elapsed:
            if now < session.end_time:
                raise SessionNotElapsedException(
                    details={"ends_at": session.end_time.isoformat()}
                )
        elif now < session.start_time:
            raise SessionNotElapsedException(
                "Only accepted sessions that have started can be marked as completed",
                details={"starts_at": session.start_time.isoformat()},
            )

    @BaseService.measure_operation("complete_session")
    def complete_session(
        self, session_id: str, user_id: str, notes: Optional[str] = None
    ) -> SkillSession:
        """
        Mark a session completed, storing the caller's notes under their role.

        Raises:
            NotFoundException: Unknown session or caller is not a participant
            InvalidTransitionException: Session is not accepted
            SessionNotElapsedException: The window has not passed yet
            ConcurrentModificationException: Status changed since it was read
        """
        session = self._load_for_participant(session_id, user_id)
        transition = self.state_machine.resolve(
            session.status, SessionAction.COMPLETE, self._actor_role(session, user_id)
        )
        self.check_window(session)

        values: Dict[str, Any] = {"completed_at": self.now()}
        if notes:
            notes_field = (
                "provider_notes"
                if session.role_of(user_id) is ParticipantRole.PROVIDER
                else "requester_notes"
            )
            values[notes_field] = notes

        self._commit_transition(session, transition, values)
        self.logger.info(f"Session {session.id} completed by {user_id}")

        self._emit(self._build_event(SessionCompleted, session))
        self._hand_to_review_store(session)
        return session

    def _hand_to_review_store(self, session: SkillSession) -> None:
        if self.review_store is None:
            return
        try:
            self.review_store.record_completed_session(session.snapshot())
        except Exception as e:
            self.logger.error(f"Review store rejected completed session {session.id}: {str(e)}")
