# backend/app/services/booking_service.py
"""
Booking Service for the SkillSwap platform.

Handles session requests and the read side of the lifecycle:
- Creating a pending session between a requester and a provider
- Fetching a session for one of its participants
- Listing, upcoming view and per-status statistics

Creation does not consult the ConflictChecker. Overlaps are reported to
clients separately because a provider may accept despite one.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import NotFoundException, ValidationException
from ..core.timezone_utils import Clock
from ..events.session_events import SessionCreated
from ..models.session import SessionStatus, SkillSession
from ..repositories.session_repository import (
    ROLE_ALL,
    ROLE_RECEIVED,
    ROLE_REQUESTED,
    SessionRepository,
)
from ..schemas.session import SessionCreate
from .base import BaseService
from .collaborators import NotificationDispatcher, UserDirectory
from .session_lifecycle_base import SessionLifecycleService

logger = logging.getLogger(__name__)

UPCOMING_STATUSES = (SessionStatus.PENDING.value, SessionStatus.ACCEPTED.value)
LIST_ROLES = (ROLE_ALL, ROLE_REQUESTED, ROLE_RECEIVED)


class BookingService(SessionLifecycleService):
    """Service layer for requesting and reading skill sessions."""

    def __init__(
        self,
        db: Session,
        user_directory: UserDirectory,
        dispatcher: Optional[NotificationDispatcher] = None,
        repository: Optional[SessionRepository] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            user_directory: Resolves participants and their account status
            dispatcher: Receives session.created after commit
            repository: Optional SessionRepository for testing
            clock: Optional clock for testing
        """
        super().__init__(db, repository=repository, dispatcher=dispatcher, clock=clock)
        self.user_directory = user_directory

    @BaseService.measure_operation("create_session")
    def create_session(self, requester_id: str, data: SessionCreate) -> SkillSession:
        """
        Create a pending session request.

        Args:
            requester_id: Caller, who will learn the skill
            data: Validated request payload

        Returns:
            The persisted session

        Raises:
            ValidationException: Self-booking, past start or duration out of bounds
            NotFoundException: Either participant is unknown or unavailable
        """
        now = self.now()

        if requester_id == data.provider_id:
            raise ValidationException("You cannot book a session with yourself")

        if data.scheduled_date <= now:
            raise ValidationException(
                "Session must be scheduled for a future date and time",
                details={"scheduled_date": data.scheduled_date.isoformat()},
            )

        if not (
            settings.session_min_duration_minutes
            <= data.duration_minutes
            <= settings.session_max_duration_minutes
        ):
            raise ValidationException(
                f"Duration must be between {settings.session_min_duration_minutes} and "
                f"{settings.session_max_duration_minutes} minutes"
            )

        requester = self.user_directory.resolve(requester_id)
        if requester is None or not requester.is_available:
            raise NotFoundException("Requester not found or not available")

        provider = self.user_directory.resolve(data.provider_id)
        if provider is None or not provider.is_available:
            raise NotFoundException("Provider not found or not available")

        with self.transaction():
            session = self.repository.create(
                requester_id=requester_id,
                provider_id=data.provider_id,
                skill_name=data.skill.name,
                skill_category=data.skill.category,
                skill_level=data.skill.level.value,
                scheduled_date=data.scheduled_date,
                duration_minutes=data.duration_minutes,
                timezone=data.timezone,
                status=SessionStatus.PENDING.value,
                request_message=data.request_message,
                created_at=now,
                **data.venue.as_columns(),
            )

        self.logger.info(
            f"Session {session.id} requested by {requester_id} from {data.provider_id} "
            f"for {data.scheduled_date.isoformat()}"
        )
        self._emit(self._build_event(SessionCreated, session))
        return session

    @BaseService.measure_operation("get_session")
    def get_session_for_user(self, session_id: str, user_id: str) -> SkillSession:
        """
        Fetch a session the user takes part in.

        Raises:
            NotFoundException: Unknown session, or the user is not a participant
        """
        return self._load_for_participant(session_id, user_id)

    @BaseService.measure_operation("list_sessions")
    def list_sessions(
        self,
        user_id: str,
        *,
        statuses: Optional[Sequence[str]] = None,
        role: str = ROLE_ALL,
        page: int = 1,
        per_page: Optional[int] = None,
        upcoming_only: bool = False,
    ) -> Tuple[List[SkillSession], int]:
        """
        Page through the user's sessions, newest request first.

        Args:
            user_id: Participant whose sessions are listed
            statuses: Restrict to these statuses
            role: "requested" (as requester), "received" (as provider) or "all"
            page: 1-based page number
            per_page: Page size, capped by settings.max_page_size
            upcoming_only: Only pending/accepted sessions that have not started

        Returns:
            Tuple of (page items, total)
        """
        if role not in LIST_ROLES:
            raise ValidationException(f"role must be one of {list(LIST_ROLES)}")
        if page < 1:
            raise ValidationException("page must be at least 1")

        size = min(per_page or settings.default_page_size, settings.max_page_size)
        try:
            wanted = [SessionStatus(s).value for s in statuses] if statuses else None
        except ValueError as exc:
            raise ValidationException(f"Unknown session status: {exc}") from exc
        starting_after = None
        if upcoming_only:
            starting_after = self.now()
            wanted = [s for s in (wanted or UPCOMING_STATUSES) if s in UPCOMING_STATUSES]
            if not wanted:
                return [], 0

        return self.repository.list_for_user(
            user_id,
            statuses=wanted,
            role=role,
            starting_after=starting_after,
            offset=(page - 1) * size,
            limit=size,
        )

    @BaseService.measure_operation("get_upcoming_sessions")
    def get_upcoming_sessions(self, user_id: str, limit: Optional[int] = None) -> List[SkillSession]:
        """Pending or accepted sessions that have not started, soonest first."""
        return self.repository.get_upcoming(
            user_id,
            now=self.now(),
            statuses=UPCOMING_STATUSES,
            limit=min(limit or settings.upcoming_limit, settings.upcoming_limit),
        )

    @BaseService.measure_operation("get_session_stats")
    def get_session_stats(self, user_id: str) -> Dict[str, int]:
        """Per-status counts across both roles, keyed by status value."""
        return self.repository.count_by_status(user_id)
