# backend/app/services/session_lifecycle_base.py
"""
Shared plumbing for services that move sessions through their lifecycle.

Every status change follows the same shape: load the session for a
participant, resolve the edge in the state machine, write it with a
conditional update inside one transaction, then emit the event after commit.
"""

from typing import Any, Dict, Optional, Type

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from ..core.exceptions import ConcurrentModificationException, NotFoundException
from ..core.timezone_utils import Clock
from ..events.session_events import SessionEvent
from ..models.session import ParticipantRole, SkillSession
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.factory import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from .base import BaseService
from .collaborators import NotificationDispatcher
from .session_state_machine import (
    ActorRole,
    SessionStateMachine,
    Transition,
    session_state_machine,
)

SESSION_NOT_FOUND = "Session not found"


class SessionLifecycleService(BaseService):
    """Base class for the booking, response, cancellation and completion services."""

    def __init__(
        self,
        db: Session,
        *,
        repository: Optional[SessionRepository] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        state_machine: Optional[SessionStateMachine] = None,
        clock: Optional[Clock] = None,
    ):
        super().__init__(db, clock)
        self.repository = repository or RepositoryFactory.create_session_repository(db)
        self.dispatcher = dispatcher
        self.state_machine = state_machine or session_state_machine

    def _load_for_participant(self, session_id: str, user_id: str) -> SkillSession:
        """Non-participants get the same answer as for a missing session."""
        session = self.repository.get_for_participant(session_id, user_id)
        if session is None:
            raise NotFoundException(SESSION_NOT_FOUND, details={"session_id": session_id})
        return session

    @staticmethod
    def _actor_role(session: SkillSession, user_id: str) -> ActorRole:
        role = session.role_of(user_id)
        if role is ParticipantRole.PROVIDER:
            return ActorRole.PROVIDER
        if role is ParticipantRole.REQUESTER:
            return ActorRole.REQUESTER
        raise NotFoundException(SESSION_NOT_FOUND, details={"session_id": session.id})

    def _commit_transition(
        self, session: SkillSession, transition: Transition, values: Dict[str, Any]
    ) -> SkillSession:
        """
        Write the transition only if the status is still the one we read.

        Raises:
            ConcurrentModificationException: Another request changed the status first
        """
        expected = session.status
        changes = dict(values)
        changes["status"] = transition.to_status.value
        changes["updated_at"] = self.now()

        with self.transaction():
            if not self.repository.conditional_update(session.id, expected, changes):
                prometheus_metrics.record_transition_conflict(transition.action.value)
                self.logger.warning(
                    f"Lost race on session {session.id}: {transition.action.value} "
                    f"expected {expected}"
                )
                raise ConcurrentModificationException(session.id, expected)

        # Mirror the committed row onto the loaded instance without dirtying it
        for key, value in changes.items():
            set_committed_value(session, key, value)

        prometheus_metrics.record_transition(expected, transition.to_status.value)
        return session

    def _build_event(
        self, event_cls: Type[SessionEvent], session: SkillSession, **extra: Any
    ) -> SessionEvent:
        return event_cls(
            session_id=session.id,
            requester_id=session.requester_id,
            provider_id=session.provider_id,
            occurred_at=self.now(),
            snapshot=session.snapshot(),
            **extra,
        )

    def _emit(self, event: SessionEvent) -> None:
        """Hand the event to the dispatcher; failures are logged, never raised."""
        if self.dispatcher is None:
            return
        try:
            self.dispatcher.emit(event)
        except Exception as e:
            self.logger.error(
                f"Failed to dispatch {event.event_name} for session {event.session_id}: {str(e)}"
            )
