# backend/app/services/session_admin_service.py
"""
Administrative session actions.

Recording a no-show is reserved for administrators and has no participant
route; it is deliberately separate from accept/decline.
"""

import logging

from ..core.exceptions import ForbiddenException, NotFoundException
from ..events.session_events import SessionNoShow
from ..models.session import SkillSession
from .base import BaseService
from .collaborators import UserRecord
from .session_lifecycle_base import SESSION_NOT_FOUND, SessionLifecycleService
from .session_state_machine import ActorRole, SessionAction

logger = logging.getLogger(__name__)


class SessionAdminService(SessionLifecycleService):
    """Operations performed by platform administrators."""

    @BaseService.measure_operation("mark_no_show")
    def mark_no_show(self, session_id: str, admin: UserRecord) -> SkillSession:
        """
        Record that an accepted session did not take place.

        Raises:
            ForbiddenException: Caller is not an administrator
            NotFoundException: Unknown session
            InvalidTransitionException: Session is not accepted
        """
        if not admin.is_admin:
            raise ForbiddenException("Only administrators can mark a session as a no-show")

        session = self.repository.get_by_id(session_id)
        if session is None:
            raise NotFoundException(SESSION_NOT_FOUND, details={"session_id": session_id})

        transition = self.state_machine.resolve(
            session.status, SessionAction.MARK_NO_SHOW, ActorRole.ADMIN
        )
        self._commit_transition(session, transition, {})
        self.logger.warning(f"Session {session.id} marked as no-show by admin {admin.id}")
        self._emit(self._build_event(SessionNoShow, session))
        return session
