# backend/app/services/session_state_machine.py
"""
Lifecycle state machine for skill sessions.

The transition table is the single source of truth for which action may move
a session from one status to another, and who may perform it. Every check
looks at the current status before the actor, so an action on a terminal
session always reports the status conflict, whoever asks.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from ..core.exceptions import ForbiddenException, InvalidTransitionException
from ..models.session import SessionStatus


class SessionAction(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark-no-show"
    PROPOSE_ALTERNATIVE = "propose-alternative"


class ActorRole(str, Enum):
    REQUESTER = "requester"
    PROVIDER = "provider"
    ADMIN = "admin"


PARTICIPANTS: FrozenSet[ActorRole] = frozenset({ActorRole.REQUESTER, ActorRole.PROVIDER})


@dataclass(frozen=True)
class Transition:
    """One edge of the lifecycle graph."""

    from_status: SessionStatus
    action: SessionAction
    to_status: SessionStatus
    allowed_actors: FrozenSet[ActorRole]
    forbidden_message: str


_TRANSITIONS: Tuple[Transition, ...] = (
    Transition(
        SessionStatus.PENDING,
        SessionAction.ACCEPT,
        SessionStatus.ACCEPTED,
        frozenset({ActorRole.PROVIDER}),
        "Only the session provider can respond to this request",
    ),
    Transition(
        SessionStatus.PENDING,
        SessionAction.DECLINE,
        SessionStatus.REJECTED,
        frozenset({ActorRole.PROVIDER}),
        "Only the session provider can respond to this request",
    ),
    Transition(
        SessionStatus.PENDING,
        SessionAction.CANCEL,
        SessionStatus.CANCELLED,
        PARTICIPANTS,
        "Only session participants can cancel this session",
    ),
    Transition(
        SessionStatus.ACCEPTED,
        SessionAction.CANCEL,
        SessionStatus.CANCELLED,
        PARTICIPANTS,
        "Only session participants can cancel this session",
    ),
    Transition(
        SessionStatus.ACCEPTED,
        SessionAction.COMPLETE,
        SessionStatus.COMPLETED,
        PARTICIPANTS,
        "Only session participants can complete this session",
    ),
    Transition(
        SessionStatus.ACCEPTED,
        SessionAction.MARK_NO_SHOW,
        SessionStatus.NO_SHOW,
        frozenset({ActorRole.ADMIN}),
        "Only administrators can mark a session as a no-show",
    ),
    # Status-preserving edge: a new time is proposed while the request is open
    Transition(
        SessionStatus.PENDING,
        SessionAction.PROPOSE_ALTERNATIVE,
        SessionStatus.PENDING,
        PARTICIPANTS,
        "Only session participants can propose an alternative time",
    ),
)

TRANSITIONS: Dict[Tuple[SessionStatus, SessionAction], Transition] = {
    (t.from_status, t.action): t for t in _TRANSITIONS
}

# Status-conflict wording per action
_STATE_MESSAGES: Dict[SessionAction, str] = {
    SessionAction.ACCEPT: "Cannot respond to a {status} session",
    SessionAction.DECLINE: "Cannot respond to a {status} session",
    SessionAction.CANCEL: "Cannot cancel a {status} session",
    SessionAction.COMPLETE: "Only accepted sessions can be marked as completed, this session is {status}",
    SessionAction.MARK_NO_SHOW: "Only accepted sessions can be marked as a no-show, this session is {status}",
    SessionAction.PROPOSE_ALTERNATIVE: "Cannot propose a new time for a {status} session",
}


class SessionStateMachine:
    """Validates lifecycle edges against the transition table."""

    def __init__(self, transitions: Optional[Dict[Tuple[SessionStatus, SessionAction], Transition]] = None):
        self.transitions = transitions if transitions is not None else TRANSITIONS

    def allowed_actions(self, status: SessionStatus) -> FrozenSet[SessionAction]:
        return frozenset(action for (src, action) in self.transitions if src == status)

    def is_terminal(self, status: SessionStatus) -> bool:
        return not self.allowed_actions(status)

    def resolve(self, current: str, action: SessionAction, actor: ActorRole) -> Transition:
        """
        Return the edge for (current, action) if the actor may take it.

        Raises:
            InvalidTransitionException: No edge leaves the current status for this action
            ForbiddenException: The edge exists but the actor may not take it
        """
        status = SessionStatus(current)
        transition = self.transitions.get((status, action))
        if transition is None:
            raise InvalidTransitionException(
                _STATE_MESSAGES[action].format(status=status.value),
                current_status=status.value,
                action=action.value,
            )
        if actor not in transition.allowed_actors:
            raise ForbiddenException(
                transition.forbidden_message,
                details={"action": action.value, "actor": actor.value},
            )
        return transition


session_state_machine = SessionStateMachine()
