# backend/app/services/feedback_recorder.py
"""
Feedback Recorder for completed sessions.

Feedback is a rating and comment embedded in the session itself. It is a
separate concept from the review subsystem's public reviews.
"""

import logging
from typing import Optional

from ..core.constants import MAX_RATING, MIN_RATING
from ..core.exceptions import (
    ConflictException,
    InvalidTransitionException,
    RepositoryException,
    ValidationException,
)
from ..models.session import SessionFeedback, SessionStatus
from .base import BaseService
from .session_lifecycle_base import SessionLifecycleService

logger = logging.getLogger(__name__)


class FeedbackRecorder(SessionLifecycleService):
    """Appends participant feedback to completed sessions."""

    @BaseService.measure_operation("submit_feedback")
    def submit_feedback(
        self,
        session_id: str,
        author_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> SessionFeedback:
        """
        Record one participant's feedback on a completed session.

        Raises:
            ValidationException: Rating outside 1..5
            NotFoundException: Unknown session or caller is not a participant
            InvalidTransitionException: Session is not completed
            ConflictException: The caller already left feedback
        """
        if not MIN_RATING <= rating <= MAX_RATING:
            raise ValidationException(
                f"Rating must be between {MIN_RATING} and {MAX_RATING}",
                details={"rating": rating},
            )

        session = self._load_for_participant(session_id, author_id)
        if session.status != SessionStatus.COMPLETED.value:
            raise InvalidTransitionException(
                "Can only provide feedback for completed sessions",
                current_status=session.status,
                action="feedback",
            )
        if self.repository.has_feedback_from(session.id, author_id):
            raise ConflictException(
                "You have already provided feedback for this session",
                code="FEEDBACK_EXISTS",
            )

        try:
            with self.transaction():
                entry = self.repository.add_feedback(
                    session,
                    author_id=author_id,
                    rating=rating,
                    comment=comment,
                    submitted_at=self.now(),
                )
        except RepositoryException as exc:
            # Unique (session_id, author_id) lost to a concurrent submission
            raise ConflictException(
                "You have already provided feedback for this session",
                code="FEEDBACK_EXISTS",
            ) from exc

        self.logger.info(f"Feedback ({rating}/5) recorded on session {session.id} by {author_id}")
        return entry
