"""
Tests for SessionResponseService: accept, decline and alternative-time proposals.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from app.core.exceptions import (
    ConcurrentModificationException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from app.events.session_events import AlternativeTimeProposed, SessionAccepted, SessionRejected
from app.models.session import SessionStatus, SessionType
from app.services.session_response_service import SessionResponseService


@pytest.fixture
def dispatcher():
    return MagicMock()


@pytest.fixture
def service(db, clock, dispatcher):
    return SessionResponseService(db, dispatcher=dispatcher, clock=clock)


class TestRespond:
    def test_provider_accepts(self, service, dispatcher, make_session, provider, clock, db):
        pending = make_session()

        session = service.respond(
            pending.id,
            provider.id,
            "accept",
            response_message="See you then",
            meeting_link="https://meet.example.com/xyz",
        )

        assert session.status == SessionStatus.ACCEPTED.value
        assert session.responded_at == clock.current
        assert session.response_message == "See you then"
        assert session.meeting_link == "https://meet.example.com/xyz"
        assert isinstance(dispatcher.emit.call_args.args[0], SessionAccepted)

        db.expire_all()
        assert service.repository.get_by_id(pending.id).status == SessionStatus.ACCEPTED.value

    def test_provider_declines(self, service, dispatcher, make_session, provider):
        pending = make_session()

        session = service.respond(
            pending.id, provider.id, "decline", response_message="Fully booked"
        )

        assert session.status == SessionStatus.REJECTED.value
        assert session.response_message == "Fully booked"
        assert isinstance(dispatcher.emit.call_args.args[0], SessionRejected)

    def test_requester_cannot_respond(self, service, dispatcher, make_session, requester):
        pending = make_session()

        with pytest.raises(ForbiddenException):
            service.respond(pending.id, requester.id, "accept")

        assert pending.status == SessionStatus.PENDING.value
        dispatcher.emit.assert_not_called()

    def test_outsider_gets_not_found(self, service, make_session, outsider):
        pending = make_session()
        with pytest.raises(NotFoundException):
            service.respond(pending.id, outsider.id, "accept")

    def test_cannot_respond_twice(self, service, make_session, provider):
        pending = make_session()
        service.respond(pending.id, provider.id, "accept")

        with pytest.raises(InvalidTransitionException) as exc_info:
            service.respond(pending.id, provider.id, "decline")
        assert exc_info.value.message == "Cannot respond to a accepted session"

    def test_unknown_action(self, service, make_session, provider):
        pending = make_session()
        with pytest.raises(ValidationException):
            service.respond(pending.id, provider.id, "maybe")

    def test_accept_with_confirmed_date(self, service, make_session, provider, clock):
        pending = make_session()
        new_start = clock.current + timedelta(days=2, hours=3)

        session = service.respond(pending.id, provider.id, "accept", confirmed_date=new_start)

        assert session.start_time == new_start

    def test_confirmed_date_must_be_future(self, service, make_session, provider, clock):
        pending = make_session()
        with pytest.raises(ValidationException) as exc_info:
            service.respond(
                pending.id,
                provider.id,
                "accept",
                confirmed_date=clock.current - timedelta(hours=1),
            )
        assert exc_info.value.message == "Confirmed time must be in the future"

    def test_accept_online_with_location_rejected(self, service, make_session, provider):
        pending = make_session(session_type=SessionType.ONLINE.value)
        with pytest.raises(ValidationException):
            service.respond(pending.id, provider.id, "accept", location="Cafe")

    def test_accept_in_person_sets_location(self, service, make_session, provider):
        pending = make_session(session_type=SessionType.IN_PERSON.value)

        session = service.respond(pending.id, provider.id, "accept", location="Cafe Nero")

        assert session.venue == {"session_type": "in-person", "location": "Cafe Nero"}

    def test_lost_race_raises_concurrent_modification(
        self, service, make_session, provider, db
    ):
        pending = make_session()
        # Another writer cancels the row behind the loaded instance's back
        service.repository.conditional_update(
            pending.id, "pending", {"status": SessionStatus.CANCELLED.value}
        )
        db.commit()

        with pytest.raises(ConcurrentModificationException):
            service.respond(pending.id, provider.id, "accept")


class TestAlternativeTime:
    def test_requester_proposes_then_provider_accepts_it(
        self, service, dispatcher, make_session, requester, provider, clock
    ):
        pending = make_session()
        proposed = clock.current + timedelta(days=4)

        session = service.propose_alternative_time(
            pending.id, requester.id, proposed, "Friday works better"
        )

        assert session.status == SessionStatus.PENDING.value
        assert session.proposed_by_id == requester.id
        assert session.proposal_message == "Friday works better"
        event = dispatcher.emit.call_args.args[0]
        assert isinstance(event, AlternativeTimeProposed)
        assert event.proposed_date == proposed

        accepted = service.respond(pending.id, provider.id, "accept", use_proposed_time=True)

        assert accepted.status == SessionStatus.ACCEPTED.value
        assert accepted.start_time == proposed
        assert accepted.proposed_date is None

    def test_use_proposed_time_without_proposal(self, service, make_session, provider):
        pending = make_session()
        with pytest.raises(ValidationException):
            service.respond(pending.id, provider.id, "accept", use_proposed_time=True)

    def test_proposal_must_be_future(self, service, make_session, provider, clock):
        pending = make_session()
        with pytest.raises(ValidationException):
            service.propose_alternative_time(pending.id, provider.id, clock.current)

    def test_no_proposals_once_accepted(self, service, make_session, provider, clock):
        accepted = make_session(status=SessionStatus.ACCEPTED.value)
        with pytest.raises(InvalidTransitionException):
            service.propose_alternative_time(
                accepted.id, provider.id, clock.current + timedelta(days=1)
            )
