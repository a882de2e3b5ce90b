# backend/app/services/conflict_checker.py
"""
Conflict Checker Service for the SkillSwap platform.

Answers "would this slot double-book me, or them?" for a candidate start
time and duration. The answer is advisory: creating or accepting a session
never consults it, so callers decide what to do with an overlap.

Two intervals [s1, s1+d1) and [s2, s2+d2) overlap iff s1 < s2+d2 and
s2 < s1+d1. Back-to-back sessions therefore never conflict.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_utils import Clock, ensure_utc
from ..repositories import RepositoryFactory
from ..repositories.session_repository import SessionRepository
from .base import BaseService

logger = logging.getLogger(__name__)


def intervals_overlap(
    start_a: datetime, duration_a: int, start_b: datetime, duration_b: int
) -> bool:
    """Half-open interval overlap test on (start, minutes) pairs."""
    end_a = start_a + timedelta(minutes=duration_a)
    end_b = start_b + timedelta(minutes=duration_b)
    return start_a < end_b and start_b < end_a


@dataclass
class ConflictCheckResult:
    user_conflicts: List[Dict[str, Any]] = field(default_factory=list)
    counterpart_conflicts: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return bool(self.user_conflicts or self.counterpart_conflicts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_conflicts": self.has_conflicts,
            "user_conflicts": self.user_conflicts,
            "counterpart_conflicts": self.counterpart_conflicts,
        }


class ConflictChecker(BaseService):
    """
    Service for detecting overlaps between a candidate slot and existing sessions.

    Only slot-holding statuses count; by default both pending and accepted
    sessions hold a slot.
    """

    def __init__(
        self,
        db: Session,
        repository: Optional[SessionRepository] = None,
        slot_statuses: Optional[Sequence[str]] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize conflict checker service.

        Args:
            db: Database session
            repository: Optional SessionRepository instance
            slot_statuses: Statuses treated as occupying a calendar slot
        """
        super().__init__(db, clock)
        self.logger = logging.getLogger(__name__)
        self.repository = repository or RepositoryFactory.create_session_repository(db)
        self.slot_statuses = list(slot_statuses or settings.conflict_slot_statuses)

    def find_conflicts_for_user(
        self,
        user_id: str,
        candidate_start: datetime,
        duration_minutes: int,
        exclude_session_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Slot-holding sessions of one user that overlap the candidate slot."""
        start = ensure_utc(candidate_start)
        end = start + timedelta(minutes=duration_minutes)
        candidates = self.repository.find_slot_holding_sessions(
            user_id,
            window_start=start,
            window_end=end,
            statuses=self.slot_statuses,
            exclude_session_id=exclude_session_id,
        )

        conflicts = []
        for session in candidates:
            if intervals_overlap(session.start_time, session.duration_minutes, start, duration_minutes):
                conflicts.append(
                    {
                        "session_id": session.id,
                        "scheduled_date": session.start_time,
                        "end_time": session.end_time,
                        "duration_minutes": session.duration_minutes,
                        "status": session.status,
                        "skill_name": session.skill_name,
                    }
                )
        return conflicts

    @BaseService.measure_operation("check_conflicts")
    def check_conflicts(
        self,
        user_id: str,
        candidate_start: datetime,
        duration_minutes: int,
        counterpart_id: Optional[str] = None,
        exclude_session_id: Optional[str] = None,
    ) -> ConflictCheckResult:
        """
        Check a candidate slot against the user's and optionally the counterpart's calendar.

        Args:
            user_id: Caller whose calendar is always checked
            candidate_start: Proposed start instant
            duration_minutes: Proposed length
            counterpart_id: Other participant to check as well
            exclude_session_id: Session to ignore (e.g. the one being rescheduled)

        Returns:
            ConflictCheckResult with the two lists kept apart
        """
        result = ConflictCheckResult(
            user_conflicts=self.find_conflicts_for_user(
                user_id, candidate_start, duration_minutes, exclude_session_id
            )
        )
        if counterpart_id:
            result.counterpart_conflicts = self.find_conflicts_for_user(
                counterpart_id, candidate_start, duration_minutes, exclude_session_id
            )

        if result.has_conflicts:
            self.logger.info(
                f"Found {len(result.user_conflicts)} user and "
                f"{len(result.counterpart_conflicts)} counterpart conflicts for {user_id} "
                f"at {ensure_utc(candidate_start).isoformat()} ({duration_minutes}min)"
            )
        return result
