# backend/app/models/session.py
"""
Skill session model for the SkillSwap platform.

A session is a scheduled exchange where a requester learns a skill from a
provider. The row stores the schedule, a snapshot of the skill being taught,
the venue, and the lifecycle status with the timestamps each transition sets.

Architecture: end time, duration in hours, time until start and the
participant list are derived on read and never stored, so they cannot drift
from scheduled_date and duration_minutes.
"""

from datetime import datetime, timedelta
from enum import Enum
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import ulid

from ..core.constants import (
    DEFAULT_TIMEZONE,
    MAX_RATING,
    MAX_SESSION_DURATION,
    MIN_RATING,
    MIN_SESSION_DURATION,
)
from ..core.timezone_utils import ensure_utc
from ..database import Base

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Session lifecycle statuses."""

    PENDING = "pending"  # Awaiting provider response
    ACCEPTED = "accepted"  # Provider agreed, slot is booked
    REJECTED = "rejected"  # Provider declined
    CANCELLED = "cancelled"  # Withdrawn by a participant
    COMPLETED = "completed"  # Took place
    NO_SHOW = "no-show"  # Recorded by an administrator


class SessionType(str, Enum):
    """Where the session takes place."""

    ONLINE = "online"
    IN_PERSON = "in-person"
    HYBRID = "hybrid"


class SkillLevel(str, Enum):
    """Level of the skill being exchanged."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class ParticipantRole(str, Enum):
    """Caller's role relative to a session."""

    REQUESTER = "requester"
    PROVIDER = "provider"


class SkillSession(Base):
    """
    Scheduled skill exchange between a requester and a provider.

    The skill fields are a snapshot taken at creation and never change.
    Each status-changing field (responded_at, cancelled_at, completed_at ...)
    is written only by the transition that owns it.
    """

    __tablename__ = "sessions"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    # Participants
    requester_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)
    provider_id = Column(String(26), ForeignKey("users.id"), nullable=False, index=True)

    # Skill snapshot
    skill_name = Column(String(100), nullable=False)
    skill_category = Column(String(50), nullable=False)
    skill_level = Column(String(20), nullable=False)

    # Schedule
    scheduled_date = Column(DateTime(timezone=True), nullable=False, index=True)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)

    # Venue
    session_type = Column(String(20), nullable=False, default=SessionType.ONLINE.value)
    meeting_link = Column(String(500), nullable=True)
    location = Column(String(200), nullable=True)

    # Lifecycle
    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value, index=True)
    request_message = Column(Text, nullable=True)
    response_message = Column(Text, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Completion notes, one per role
    requester_notes = Column(Text, nullable=True)
    provider_notes = Column(Text, nullable=True)

    # Alternative time proposal (pending sessions only)
    proposed_date = Column(DateTime(timezone=True), nullable=True)
    proposed_by_id = Column(String(26), ForeignKey("users.id"), nullable=True)
    proposed_at = Column(DateTime(timezone=True), nullable=True)
    proposal_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    feedback = relationship(
        "SessionFeedback",
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="SessionFeedback.submitted_at",
    )

    __table_args__ = (
        CheckConstraint("requester_id <> provider_id", name="ck_sessions_distinct_participants"),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'cancelled', 'completed', 'no-show')",
            name="ck_sessions_status",
        ),
        CheckConstraint(
            "session_type IN ('online', 'in-person', 'hybrid')",
            name="ck_sessions_session_type",
        ),
        CheckConstraint(
            "skill_level IN ('beginner', 'intermediate', 'advanced', 'expert')",
            name="ck_sessions_skill_level",
        ),
        CheckConstraint(
            f"duration_minutes >= {MIN_SESSION_DURATION} AND duration_minutes <= {MAX_SESSION_DURATION}",
            name="ck_sessions_duration",
        ),
        CheckConstraint(
            "(session_type = 'online' AND location IS NULL) OR "
            "(session_type IN ('in-person', 'hybrid') AND meeting_link IS NULL)",
            name="ck_sessions_venue_matches_type",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SkillSession {self.id}: requester={self.requester_id}, "
            f"provider={self.provider_id}, at={self.scheduled_date}, status={self.status}>"
        )

    # Derived fields

    @property
    def start_time(self) -> datetime:
        return ensure_utc(self.scheduled_date)

    @property
    def end_time(self) -> datetime:
        return self.start_time + timedelta(minutes=int(self.duration_minutes))

    @property
    def duration_hours(self) -> float:
        return round(int(self.duration_minutes) / 60, 1)

    @property
    def participants(self) -> List[str]:
        return [self.requester_id, self.provider_id]

    def time_until_session(self, now: datetime) -> int:
        """Whole seconds until the session starts, floored at zero."""
        remaining = (self.start_time - ensure_utc(now)).total_seconds()
        return max(0, int(remaining))

    def role_of(self, user_id: str) -> Optional[ParticipantRole]:
        if user_id == self.requester_id:
            return ParticipantRole.REQUESTER
        if user_id == self.provider_id:
            return ParticipantRole.PROVIDER
        return None

    @property
    def venue(self) -> Dict[str, Any]:
        """Tagged venue: the detail field present depends on session_type."""
        if self.session_type == SessionType.ONLINE.value:
            return {"session_type": self.session_type, "meeting_link": self.meeting_link}
        return {"session_type": self.session_type, "location": self.location}

    def snapshot(self) -> Dict[str, Any]:
        """Plain dict of the stored fields, used for event payloads."""
        return {
            "id": self.id,
            "requester_id": self.requester_id,
            "provider_id": self.provider_id,
            "skill": {
                "name": self.skill_name,
                "category": self.skill_category,
                "level": self.skill_level,
            },
            "scheduled_date": self.start_time.isoformat(),
            "duration_minutes": self.duration_minutes,
            "timezone": self.timezone,
            "venue": self.venue,
            "status": self.status,
            "cancellation_reason": self.cancellation_reason,
            "cancelled_by_id": self.cancelled_by_id,
        }


class SessionFeedback(Base):
    """Participant feedback embedded in a completed session."""

    __tablename__ = "session_feedback"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    session_id = Column(String(26), ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    author_id = Column(String(26), ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    session = relationship("SkillSession", back_populates="feedback")

    __table_args__ = (
        UniqueConstraint("session_id", "author_id", name="uq_session_feedback_author"),
        CheckConstraint(
            f"rating >= {MIN_RATING} AND rating <= {MAX_RATING}",
            name="ck_session_feedback_rating",
        ),
    )

    def __repr__(self) -> str:
        return f"<SessionFeedback {self.id}: session={self.session_id} rating={self.rating}>"


# Participant lookups filtered by status drive listings and conflict scans
Index("ix_sessions_requester_status_date", SkillSession.requester_id, SkillSession.status, SkillSession.scheduled_date)
Index("ix_sessions_provider_status_date", SkillSession.provider_id, SkillSession.status, SkillSession.scheduled_date)
