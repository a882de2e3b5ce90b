"""
Tests for CancellationPolicy: who may cancel, and how close to the start.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import (
    CancellationWindowException,
    InvalidTransitionException,
    NotFoundException,
)
from app.events.session_events import SessionCancelled
from app.models.session import SessionStatus
from app.schemas.session import SessionCreate
from app.services.booking_service import BookingService
from app.services.cancellation_policy import CancellationPolicy
from app.services.collaborators import SqlUserDirectory
from app.services.session_response_service import SessionResponseService


@pytest.fixture
def dispatcher():
    return MagicMock()


@pytest.fixture
def policy(db, clock, dispatcher):
    return CancellationPolicy(db, dispatcher=dispatcher, clock=clock)


def test_request_accept_then_cancel_three_hours_before(
    db, clock, dispatcher, requester, provider
):
    start = (clock.current + timedelta(days=1)).replace(hour=10, minute=0)
    booking = BookingService(db, SqlUserDirectory(db), clock=clock)
    created = booking.create_session(
        requester.id,
        SessionCreate.model_validate(
            {
                "provider_id": provider.id,
                "skill": {"name": "Chess openings", "category": "Games", "level": "intermediate"},
                "scheduled_date": start.isoformat(),
                "duration_minutes": 60,
            }
        ),
    )
    SessionResponseService(db, clock=clock).respond(created.id, provider.id, "accept")

    clock.set(start - timedelta(hours=3))
    cancelled = CancellationPolicy(db, dispatcher=dispatcher, clock=clock).cancel_session(
        created.id, requester.id, "Something came up"
    )

    assert cancelled.status == SessionStatus.CANCELLED.value
    assert cancelled.cancelled_by_id == requester.id
    assert cancelled.cancelled_at == clock.current
    assert cancelled.cancellation_reason == "Something came up"
    event = dispatcher.emit.call_args.args[0]
    assert isinstance(event, SessionCancelled)
    assert event.cancelled_by_id == requester.id
    assert event.reason == "Something came up"


class TestCancellationPolicy:
    def test_provider_can_cancel_pending(self, policy, make_session, provider):
        pending = make_session()

        session = policy.cancel_session(pending.id, provider.id)

        assert session.status == SessionStatus.CANCELLED.value
        assert session.cancelled_by_id == provider.id
        assert session.cancellation_reason is None

    def test_exactly_two_hours_notice_is_allowed(self, policy, make_session, requester, clock):
        session = make_session(
            scheduled_date=clock.current + timedelta(hours=2),
            status=SessionStatus.ACCEPTED.value,
        )

        assert policy.cancel_session(session.id, requester.id).status == "cancelled"

    def test_inside_notice_window_rejected(
        self, policy, dispatcher, make_session, requester, clock
    ):
        session = make_session(
            scheduled_date=clock.current + timedelta(hours=1, minutes=59),
            status=SessionStatus.ACCEPTED.value,
        )

        with pytest.raises(CancellationWindowException) as exc_info:
            policy.cancel_session(session.id, requester.id)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["required_hours"] == 2
        assert session.status == SessionStatus.ACCEPTED.value
        dispatcher.emit.assert_not_called()

    def test_started_session_cannot_be_cancelled(self, policy, make_session, requester, clock):
        session = make_session(
            scheduled_date=clock.current - timedelta(minutes=10),
            status=SessionStatus.ACCEPTED.value,
        )
        with pytest.raises(CancellationWindowException):
            policy.cancel_session(session.id, requester.id)

    @pytest.mark.parametrize("status", ["rejected", "cancelled", "completed", "no-show"])
    def test_terminal_session_reports_status_conflict(
        self, policy, make_session, requester, clock, status
    ):
        # Status is checked before the notice window
        session = make_session(scheduled_date=clock.current + timedelta(minutes=30), status=status)

        with pytest.raises(InvalidTransitionException) as exc_info:
            policy.cancel_session(session.id, requester.id)

        assert exc_info.value.message == f"Cannot cancel a {status} session"

    def test_non_participant_gets_not_found(self, policy, make_session, outsider):
        session = make_session()
        with pytest.raises(NotFoundException):
            policy.cancel_session(session.id, outsider.id)

    def test_custom_notice_hours(self, db, clock, make_session, requester):
        session = make_session(scheduled_date=clock.current + timedelta(hours=5))
        policy = CancellationPolicy(db, clock=clock, notice_hours=6)

        with pytest.raises(CancellationWindowException) as exc_info:
            policy.cancel_session(session.id, requester.id)
        assert "6 hours" in exc_info.value.message
