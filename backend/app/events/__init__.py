"""Domain events emitted by the session lifecycle."""

from .session_events import (
    AlternativeTimeProposed,
    SessionAccepted,
    SessionCancelled,
    SessionCompleted,
    SessionCreated,
    SessionEvent,
    SessionNoShow,
    SessionRejected,
)

__all__ = [
    "AlternativeTimeProposed",
    "SessionAccepted",
    "SessionCancelled",
    "SessionCompleted",
    "SessionCreated",
    "SessionEvent",
    "SessionNoShow",
    "SessionRejected",
]
