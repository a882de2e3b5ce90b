# backend/app/services/session_response_service.py
"""
Session Response Service for the SkillSwap platform.

Handles the provider's answer to a pending request and alternative-time
proposals exchanged while the request is still open.
"""

from datetime import datetime
import logging
from typing import Any, Dict, Optional

from ..core.exceptions import ValidationException
from ..core.timezone_utils import ensure_utc
from ..events.session_events import AlternativeTimeProposed, SessionAccepted, SessionRejected
from ..models.session import SessionType, SkillSession
from .base import BaseService
from .session_lifecycle_base import SessionLifecycleService
from .session_state_machine import SessionAction

logger = logging.getLogger(__name__)

RESPONSE_ACTIONS = {
    "accept": SessionAction.ACCEPT,
    "decline": SessionAction.DECLINE,
}


class SessionResponseService(SessionLifecycleService):
    """Accept, decline and propose-alternative-time operations."""

    def _venue_values(
        self, session: SkillSession, meeting_link: Optional[str], location: Optional[str]
    ) -> Dict[str, Any]:
        """Venue detail supplied on acceptance must match the session type."""
        if session.session_type == SessionType.ONLINE.value:
            if location:
                raise ValidationException("Online sessions take a meeting link, not a location")
            return {"meeting_link": meeting_link} if meeting_link else {}
        if meeting_link:
            raise ValidationException(
                f"{session.session_type} sessions take a location, not a meeting link"
            )
        return {"location": location} if location else {}

    @BaseService.measure_operation("respond_to_session")
    def respond(
        self,
        session_id: str,
        user_id: str,
        action: str,
        *,
        response_message: Optional[str] = None,
        confirmed_date: Optional[datetime] = None,
        use_proposed_time: bool = False,
        meeting_link: Optional[str] = None,
        location: Optional[str] = None,
    ) -> SkillSession:
        """
        Accept or decline a pending request.

        Args:
            session_id: Session to answer
            user_id: Caller, must be the provider
            action: "accept" or "decline"
            response_message: Optional note to the requester (decline reason)
            confirmed_date: New start time confirmed on acceptance
            use_proposed_time: Confirm the pending alternative-time proposal
            meeting_link: Online sessions only
            location: In-person and hybrid sessions only

        Raises:
            NotFoundException: Unknown session or caller is not a participant
            InvalidTransitionException: Session is no longer pending
            ForbiddenException: Caller is not the provider
            ValidationException: Confirmed time in the past or venue mismatch
            ConcurrentModificationException: Status changed since it was read
        """
        session_action = RESPONSE_ACTIONS.get(action)
        if session_action is None:
            raise ValidationException("action must be 'accept' or 'decline'")

        session = self._load_for_participant(session_id, user_id)
        transition = self.state_machine.resolve(
            session.status, session_action, self._actor_role(session, user_id)
        )

        now = self.now()
        values: Dict[str, Any] = {"responded_at": now, "response_message": response_message}

        if session_action is SessionAction.ACCEPT:
            if use_proposed_time:
                if session.proposed_date is None:
                    raise ValidationException("There is no proposed time to accept")
                confirmed_date = ensure_utc(session.proposed_date)
            if confirmed_date is not None:
                confirmed_date = ensure_utc(confirmed_date)
                if confirmed_date <= now:
                    raise ValidationException("Confirmed time must be in the future")
                values["scheduled_date"] = confirmed_date
            values.update(self._venue_values(session, meeting_link, location))
            values.update(
                proposed_date=None, proposed_by_id=None, proposed_at=None, proposal_message=None
            )

        self._commit_transition(session, transition, values)
        self.logger.info(f"Session {session.id} {transition.to_status.value} by {user_id}")

        event_cls = SessionAccepted if session_action is SessionAction.ACCEPT else SessionRejected
        self._emit(self._build_event(event_cls, session))
        return session

    @BaseService.measure_operation("propose_alternative_time")
    def propose_alternative_time(
        self,
        session_id: str,
        user_id: str,
        proposed_date: datetime,
        message: Optional[str] = None,
    ) -> SkillSession:
        """
        Suggest a different start time for a pending request.

        Either participant may propose; the latest proposal replaces any
        earlier one and the session stays pending.
        """
        session = self._load_for_participant(session_id, user_id)
        transition = self.state_machine.resolve(
            session.status,
            SessionAction.PROPOSE_ALTERNATIVE,
            self._actor_role(session, user_id),
        )

        now = self.now()
        proposed_date = ensure_utc(proposed_date)
        if proposed_date <= now:
            raise ValidationException("Alternative time must be in the future")

        self._commit_transition(
            session,
            transition,
            {
                "proposed_date": proposed_date,
                "proposed_by_id": user_id,
                "proposed_at": now,
                "proposal_message": message,
            },
        )
        self.logger.info(
            f"Alternative time {proposed_date.isoformat()} proposed for session {session.id} by {user_id}"
        )
        self._emit(
            self._build_event(
                AlternativeTimeProposed,
                session,
                proposed_by_id=user_id,
                proposed_date=proposed_date,
            )
        )
        return session
