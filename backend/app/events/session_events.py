"""Session lifecycle domain events."""
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional


@dataclass
class SessionEvent:
    """Common shape: the session id, both participants and a stored-field snapshot."""

    event_name: ClassVar[str] = "session.event"

    session_id: str
    requester_id: str
    provider_id: str
    occurred_at: datetime
    snapshot: Dict[str, Any] = field(default_factory=dict)

    @property
    def recipients(self) -> List[str]:
        return [self.requester_id, self.provider_id]

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["event"] = self.event_name
        return payload


@dataclass
class SessionCreated(SessionEvent):
    """Fired after a session request is persisted."""

    event_name: ClassVar[str] = "session.created"


@dataclass
class SessionAccepted(SessionEvent):
    """Fired after the provider accepts a request."""

    event_name: ClassVar[str] = "session.accepted"


@dataclass
class SessionRejected(SessionEvent):
    """Fired after the provider declines a request."""

    event_name: ClassVar[str] = "session.rejected"


@dataclass
class SessionCancelled(SessionEvent):
    """Fired after a participant cancels."""

    event_name: ClassVar[str] = "session.cancelled"

    cancelled_by_id: Optional[str] = None
    reason: Optional[str] = None


@dataclass
class SessionCompleted(SessionEvent):
    """Fired after a session is marked complete."""

    event_name: ClassVar[str] = "session.completed"


@dataclass
class SessionNoShow(SessionEvent):
    """Fired after an administrator records a no-show."""

    event_name: ClassVar[str] = "session.no_show"


@dataclass
class AlternativeTimeProposed(SessionEvent):
    """Fired when a participant proposes a new time for a pending request."""

    event_name: ClassVar[str] = "session.alternative_time_proposed"

    proposed_by_id: Optional[str] = None
    proposed_date: Optional[datetime] = None
