# backend/app/repositories/session_repository.py
"""
Session Repository for the SkillSwap platform.

Implements all data access operations for skill sessions and their embedded
feedback. Status changes go through conditional_update, which only writes
when the row still holds the status the caller read.
"""

from datetime import datetime, timedelta
import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, cast

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Query, Session, selectinload

from ..core.constants import MAX_SESSION_DURATION
from ..core.exceptions import RepositoryException
from ..models.session import SessionFeedback, SessionStatus, SkillSession
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

ROLE_ALL = "all"
ROLE_REQUESTED = "requested"
ROLE_RECEIVED = "received"


class SessionRepository(BaseRepository[SkillSession]):
    """
    Repository for skill session data access.

    Query methods never commit; the service layer owns the transaction.
    """

    def __init__(self, db: Session):
        super().__init__(db, SkillSession)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(selectinload(SkillSession.feedback))

    def _participant_filter(self, user_id: str, role: str = ROLE_ALL) -> Any:
        if role == ROLE_REQUESTED:
            return SkillSession.requester_id == user_id
        if role == ROLE_RECEIVED:
            return SkillSession.provider_id == user_id
        return or_(SkillSession.requester_id == user_id, SkillSession.provider_id == user_id)

    # Reads

    def get_for_participant(self, session_id: str, user_id: str) -> Optional[SkillSession]:
        """Load a session only if the user is its requester or provider."""
        try:
            query = self.db.query(SkillSession).filter(
                SkillSession.id == session_id,
                self._participant_filter(user_id),
            )
            return cast(Optional[SkillSession], self._apply_eager_loading(query).first())
        except SQLAlchemyError as e:
            self.logger.error(f"Error loading session {session_id} for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to load session: {str(e)}")

    def list_for_user(
        self,
        user_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        role: str = ROLE_ALL,
        starting_after: Optional[datetime] = None,
        offset: int = 0,
        limit: int = 20,
    ) -> Tuple[List[SkillSession], int]:
        """
        Page through a user's sessions, newest first.

        Returns:
            Tuple of (page items, total matching rows)
        """
        try:
            query = self.db.query(SkillSession).filter(self._participant_filter(user_id, role))
            if statuses:
                query = query.filter(SkillSession.status.in_(list(statuses)))
            if starting_after is not None:
                query = query.filter(SkillSession.scheduled_date >= starting_after)

            total = query.count()
            items = (
                self._apply_eager_loading(query)
                .order_by(SkillSession.created_at.desc(), SkillSession.id.desc())
                .offset(offset)
                .limit(limit)
                .all()
            )
            return cast(List[SkillSession], items), total
        except SQLAlchemyError as e:
            self.logger.error(f"Error listing sessions for user {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to list sessions: {str(e)}")

    def get_upcoming(
        self, user_id: str, *, now: datetime, statuses: Iterable[str], limit: int
    ) -> List[SkillSession]:
        """Sessions starting at or after now, soonest first."""
        try:
            query = (
                self.db.query(SkillSession)
                .filter(
                    self._participant_filter(user_id),
                    SkillSession.status.in_(list(statuses)),
                    SkillSession.scheduled_date >= now,
                )
                .order_by(SkillSession.scheduled_date.asc())
                .limit(limit)
            )
            return cast(List[SkillSession], self._apply_eager_loading(query).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting upcoming sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to get upcoming sessions: {str(e)}")

    def count_by_status(self, user_id: str) -> Dict[str, int]:
        """Per-status counts over every session the user takes part in."""
        try:
            rows = (
                self.db.query(SkillSession.status, func.count(SkillSession.id))
                .filter(self._participant_filter(user_id))
                .group_by(SkillSession.status)
                .all()
            )
            counts = {status.value: 0 for status in SessionStatus}
            for status_value, count in rows:
                counts[str(status_value)] = int(count)
            return counts
        except SQLAlchemyError as e:
            self.logger.error(f"Error counting sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to count sessions: {str(e)}")

    def find_slot_holding_sessions(
        self,
        user_id: str,
        *,
        window_start: datetime,
        window_end: datetime,
        statuses: Iterable[str],
        exclude_session_id: Optional[str] = None,
    ) -> List[SkillSession]:
        """
        Candidate sessions that may overlap [window_start, window_end).

        The SQL filter is a coarse prefilter bounded by the longest allowed
        duration; callers apply the exact interval test.
        """
        try:
            earliest_start = window_start - timedelta(minutes=MAX_SESSION_DURATION)
            query = self.db.query(SkillSession).filter(
                self._participant_filter(user_id),
                SkillSession.status.in_(list(statuses)),
                and_(
                    SkillSession.scheduled_date < window_end,
                    SkillSession.scheduled_date > earliest_start,
                ),
            )
            if exclude_session_id:
                query = query.filter(SkillSession.id != exclude_session_id)
            return cast(List[SkillSession], query.order_by(SkillSession.scheduled_date).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error finding slot-holding sessions for {user_id}: {str(e)}")
            raise RepositoryException(f"Failed to check conflicts: {str(e)}")

    # Writes

    def conditional_update(
        self, session_id: str, expected_status: str, values: Dict[str, Any]
    ) -> bool:
        """
        Write values only if the row still has expected_status.

        Returns:
            True if the row was updated, False if another writer got there first
        """
        try:
            result = self.db.execute(
                update(SkillSession)
                .where(
                    SkillSession.id == session_id,
                    SkillSession.status == expected_status,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            updated = bool(result.rowcount)
            if not updated:
                self.logger.info(
                    "Conditional update skipped for session %s (expected %s)",
                    session_id,
                    expected_status,
                )
            return updated
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to update session: {str(e)}")

    def has_feedback_from(self, session_id: str, author_id: str) -> bool:
        try:
            return (
                self.db.query(SessionFeedback.id)
                .filter(
                    SessionFeedback.session_id == session_id,
                    SessionFeedback.author_id == author_id,
                )
                .first()
                is not None
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error checking feedback for session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to check feedback: {str(e)}")

    def add_feedback(
        self,
        session: SkillSession,
        *,
        author_id: str,
        rating: int,
        comment: Optional[str],
        submitted_at: datetime,
    ) -> SessionFeedback:
        """Append a feedback entry to the session's collection. Does NOT commit."""
        session_id = session.id
        try:
            entry = SessionFeedback(
                session=session,
                author_id=author_id,
                rating=rating,
                comment=comment,
                submitted_at=submitted_at,
            )
            self.db.add(entry)
            self.db.flush()
            return entry
        except IntegrityError as exc:
            self.db.rollback()
            self.logger.warning(
                "Duplicate feedback from %s on session %s rejected", author_id, session_id
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.db.rollback()
            self.logger.error(f"Error adding feedback to session {session_id}: {str(e)}")
            raise RepositoryException(f"Failed to add feedback: {str(e)}")
