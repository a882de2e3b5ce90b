# backend/app/schemas/session.py
"""
Schemas for skill session requests and responses.

The venue is a tagged union keyed on session_type: an online session can only
carry a meeting link, in-person and hybrid sessions can only carry a location.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from urllib.parse import urlparse

from pydantic import Field, field_validator, model_validator

from ..core.constants import (
    DEFAULT_TIMEZONE,
    MAX_CANCELLATION_REASON_LENGTH,
    MAX_FEEDBACK_COMMENT_LENGTH,
    MAX_LOCATION_LENGTH,
    MAX_MESSAGE_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_RATING,
    MAX_SESSION_DURATION,
    MAX_SKILL_CATEGORY_LENGTH,
    MAX_SKILL_NAME_LENGTH,
    MIN_RATING,
    MIN_SESSION_DURATION,
    MIN_SKILL_CATEGORY_LENGTH,
    MIN_SKILL_NAME_LENGTH,
)
from ..core.timezone_utils import ensure_utc, is_valid_timezone
from ..models.session import SessionFeedback, SessionStatus, SkillLevel, SkillSession
from ._strict_base import StrictModel, StrictRequestModel


def _validate_meeting_link(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Meeting link must be a valid http(s) URL")
    return value


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


class SkillSnapshot(StrictRequestModel):
    """Skill being exchanged, copied onto the session at creation."""

    name: str = Field(..., min_length=MIN_SKILL_NAME_LENGTH, max_length=MAX_SKILL_NAME_LENGTH)
    category: str = Field(
        ..., min_length=MIN_SKILL_CATEGORY_LENGTH, max_length=MAX_SKILL_CATEGORY_LENGTH
    )
    level: SkillLevel


# Venue variants


class OnlineVenue(StrictRequestModel):
    session_type: Literal["online"] = "online"
    meeting_link: Optional[str] = Field(None, max_length=500)

    @field_validator("meeting_link")
    @classmethod
    def _check_link(cls, v: Optional[str]) -> Optional[str]:
        return _validate_meeting_link(v)

    @property
    def detail(self) -> Optional[str]:
        return self.meeting_link

    def as_columns(self) -> Dict[str, Any]:
        return {"session_type": self.session_type, "meeting_link": self.meeting_link, "location": None}


class InPersonVenue(StrictRequestModel):
    session_type: Literal["in-person"] = "in-person"
    location: Optional[str] = Field(None, max_length=MAX_LOCATION_LENGTH)

    @property
    def detail(self) -> Optional[str]:
        return self.location or None

    def as_columns(self) -> Dict[str, Any]:
        return {"session_type": self.session_type, "meeting_link": None, "location": self.detail}


class HybridVenue(StrictRequestModel):
    session_type: Literal["hybrid"] = "hybrid"
    location: Optional[str] = Field(None, max_length=MAX_LOCATION_LENGTH)

    @property
    def detail(self) -> Optional[str]:
        return self.location or None

    def as_columns(self) -> Dict[str, Any]:
        return {"session_type": self.session_type, "meeting_link": None, "location": self.detail}


Venue = Annotated[Union[OnlineVenue, InPersonVenue, HybridVenue], Field(discriminator="session_type")]


# Requests


class SessionCreate(StrictRequestModel):
    """Request a session with a provider."""

    provider_id: str = Field(..., description="User who will teach the skill")
    skill: SkillSnapshot
    scheduled_date: datetime = Field(..., description="Start instant; naive values are read as UTC")
    duration_minutes: int = Field(..., ge=MIN_SESSION_DURATION, le=MAX_SESSION_DURATION)
    timezone: str = Field(DEFAULT_TIMEZONE, description="IANA timezone label for display")
    venue: Venue = Field(default_factory=OnlineVenue)
    request_message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("scheduled_date")
    @classmethod
    def _normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        if not is_valid_timezone(v):
            raise ValueError(f"Unknown timezone: {v}")
        return v


class SessionRespond(StrictRequestModel):
    """
    Provider's answer to a pending request.

    Accepting may confirm a different start time (explicitly, or by taking the
    pending alternative-time proposal) and fill in the venue detail.
    """

    action: Literal["accept", "decline"]
    response_message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)
    confirmed_date: Optional[datetime] = None
    use_proposed_time: bool = False
    meeting_link: Optional[str] = Field(None, max_length=500)
    location: Optional[str] = Field(None, max_length=MAX_LOCATION_LENGTH)

    @field_validator("confirmed_date")
    @classmethod
    def _normalize_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _to_utc(v)

    @field_validator("meeting_link")
    @classmethod
    def _check_link(cls, v: Optional[str]) -> Optional[str]:
        return _validate_meeting_link(v)

    @model_validator(mode="after")
    def _check_combination(self) -> "SessionRespond":
        if self.meeting_link and self.location:
            raise ValueError("Provide either a meeting link or a location, not both")
        if self.confirmed_date is not None and self.use_proposed_time:
            raise ValueError("Use either confirmed_date or use_proposed_time, not both")
        if self.action == "decline" and (
            self.confirmed_date is not None
            or self.use_proposed_time
            or self.meeting_link
            or self.location
        ):
            raise ValueError("Declining a session only accepts a response message")
        return self


class AlternativeTimeProposal(StrictRequestModel):
    proposed_date: datetime
    message: Optional[str] = Field(None, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("proposed_date")
    @classmethod
    def _normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SessionCancel(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=MAX_CANCELLATION_REASON_LENGTH)


class SessionComplete(StrictRequestModel):
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class FeedbackCreate(StrictRequestModel):
    rating: int = Field(..., ge=MIN_RATING, le=MAX_RATING)
    comment: Optional[str] = Field(None, max_length=MAX_FEEDBACK_COMMENT_LENGTH)


class ConflictCheckRequest(StrictRequestModel):
    """Advisory overlap check for a candidate slot."""

    scheduled_date: datetime
    duration_minutes: int = Field(..., ge=MIN_SESSION_DURATION, le=MAX_SESSION_DURATION)
    counterpart_id: Optional[str] = Field(None, description="Also check this user's calendar")
    exclude_session_id: Optional[str] = None

    @field_validator("scheduled_date")
    @classmethod
    def _normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)


# Responses


class SkillResponse(StrictModel):
    name: str
    category: str
    level: SkillLevel


class FeedbackResponse(StrictModel):
    id: str
    author_id: str
    rating: int
    comment: Optional[str] = None
    submitted_at: datetime

    @classmethod
    def from_feedback(cls, entry: SessionFeedback) -> "FeedbackResponse":
        return cls(
            id=entry.id,
            author_id=entry.author_id,
            rating=entry.rating,
            comment=entry.comment,
            submitted_at=ensure_utc(entry.submitted_at),
        )


class SessionResponse(StrictModel):
    """Session with its derived fields computed for the viewer."""

    id: str
    requester_id: str
    provider_id: str
    skill: SkillResponse
    scheduled_date: datetime
    duration_minutes: int
    timezone: str
    venue: Venue
    status: SessionStatus
    request_message: Optional[str] = None
    response_message: Optional[str] = None
    responded_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancelled_by_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    requester_notes: Optional[str] = None
    provider_notes: Optional[str] = None
    proposed_date: Optional[datetime] = None
    proposed_by_id: Optional[str] = None
    proposed_at: Optional[datetime] = None
    proposal_message: Optional[str] = None
    feedback: List[FeedbackResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # Derived
    end_time: datetime
    duration_hours: float
    time_until_session: int = Field(..., ge=0, description="Seconds until start, zero once started")
    participants: List[str]
    user_role: Optional[Literal["requester", "provider"]] = None

    @classmethod
    def from_session(
        cls, session: SkillSession, *, viewer_id: Optional[str], now: datetime
    ) -> "SessionResponse":
        role = session.role_of(viewer_id) if viewer_id else None
        return cls(
            id=session.id,
            requester_id=session.requester_id,
            provider_id=session.provider_id,
            skill=SkillResponse(
                name=session.skill_name,
                category=session.skill_category,
                level=session.skill_level,
            ),
            scheduled_date=session.start_time,
            duration_minutes=session.duration_minutes,
            timezone=session.timezone,
            venue=session.venue,
            status=session.status,
            request_message=session.request_message,
            response_message=session.response_message,
            responded_at=_to_utc(session.responded_at),
            cancelled_at=_to_utc(session.cancelled_at),
            cancelled_by_id=session.cancelled_by_id,
            cancellation_reason=session.cancellation_reason,
            completed_at=_to_utc(session.completed_at),
            requester_notes=session.requester_notes,
            provider_notes=session.provider_notes,
            proposed_date=_to_utc(session.proposed_date),
            proposed_by_id=session.proposed_by_id,
            proposed_at=_to_utc(session.proposed_at),
            proposal_message=session.proposal_message,
            feedback=[FeedbackResponse.from_feedback(entry) for entry in session.feedback],
            created_at=_to_utc(session.created_at),
            updated_at=_to_utc(session.updated_at),
            end_time=session.end_time,
            duration_hours=session.duration_hours,
            time_until_session=session.time_until_session(now),
            participants=session.participants,
            user_role=role.value if role else None,
        )


class SessionStatsResponse(StrictModel):
    total: int = 0
    pending: int = 0
    accepted: int = 0
    rejected: int = 0
    cancelled: int = 0
    completed: int = 0
    no_show: int = 0

    @classmethod
    def from_counts(cls, counts: Dict[str, Any]) -> "SessionStatsResponse":
        return cls(
            total=sum(counts.values()),
            pending=counts.get(SessionStatus.PENDING.value, 0),
            accepted=counts.get(SessionStatus.ACCEPTED.value, 0),
            rejected=counts.get(SessionStatus.REJECTED.value, 0),
            cancelled=counts.get(SessionStatus.CANCELLED.value, 0),
            completed=counts.get(SessionStatus.COMPLETED.value, 0),
            no_show=counts.get(SessionStatus.NO_SHOW.value, 0),
        )


class ConflictEntry(StrictModel):
    session_id: str
    scheduled_date: datetime
    end_time: datetime
    duration_minutes: int
    status: SessionStatus
    skill_name: str


class ConflictCheckResponse(StrictModel):
    has_conflicts: bool
    user_conflicts: List[ConflictEntry] = Field(default_factory=list)
    counterpart_conflicts: List[ConflictEntry] = Field(default_factory=list)
