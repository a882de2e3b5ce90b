# backend/tests/routes/test_sessions_routes.py
"""
Route tests for /api/v1/sessions.

Service classes are replaced with MagicMock(spec=...) through
dependency_overrides so these tests pin down status codes, the error
envelope and the shape of response bodies.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from fastapi import status
import pytest

from app.api.dependencies import (
    get_booking_service,
    get_cancellation_policy,
    get_completion_gate,
    get_conflict_checker,
    get_current_active_user,
    get_feedback_recorder,
    get_session_admin_service,
    get_session_response_service,
)
from app.core.exceptions import (
    CancellationWindowException,
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from app.core.ulid_helper import generate_ulid
from app.main import fastapi_app as app
from app.models.session import SessionFeedback, SkillSession
from app.services.booking_service import BookingService
from app.services.cancellation_policy import CancellationPolicy
from app.services.collaborators import UserRecord
from app.services.completion_gate import CompletionGate
from app.services.conflict_checker import ConflictChecker, ConflictCheckResult
from app.services.feedback_recorder import FeedbackRecorder
from app.services.session_admin_service import SessionAdminService
from app.services.session_response_service import SessionResponseService

BASE = "/api/v1/sessions"

REQUESTER_ID = generate_ulid()
PROVIDER_ID = generate_ulid()


def _session(**overrides) -> SkillSession:
    start = datetime.now(timezone.utc) + timedelta(days=1)
    fields = dict(
        id=generate_ulid(),
        requester_id=REQUESTER_ID,
        provider_id=PROVIDER_ID,
        skill_name="Guitar",
        skill_category="Music",
        skill_level="beginner",
        scheduled_date=start,
        duration_minutes=60,
        timezone="UTC",
        session_type="online",
        meeting_link=None,
        location=None,
        status="pending",
        created_at=datetime.now(timezone.utc),
    )
    fields.update(overrides)
    return SkillSession(**fields)


class TestSessionRoutes:
    @pytest.fixture
    def current_user(self):
        return UserRecord(id=REQUESTER_ID, status="active", role="member")

    @pytest.fixture
    def booking_service(self):
        return MagicMock(spec=BookingService)

    @pytest.fixture
    def response_service(self):
        return MagicMock(spec=SessionResponseService)

    @pytest.fixture
    def cancellation_policy(self):
        return MagicMock(spec=CancellationPolicy)

    @pytest.fixture
    def completion_gate(self):
        return MagicMock(spec=CompletionGate)

    @pytest.fixture
    def feedback_recorder(self):
        return MagicMock(spec=FeedbackRecorder)

    @pytest.fixture
    def conflict_checker(self):
        return MagicMock(spec=ConflictChecker)

    @pytest.fixture
    def api(
        self,
        client,
        current_user,
        booking_service,
        response_service,
        cancellation_policy,
        completion_gate,
        feedback_recorder,
        conflict_checker,
    ):
        app.dependency_overrides[get_current_active_user] = lambda: current_user
        app.dependency_overrides[get_booking_service] = lambda: booking_service
        app.dependency_overrides[get_session_response_service] = lambda: response_service
        app.dependency_overrides[get_cancellation_policy] = lambda: cancellation_policy
        app.dependency_overrides[get_completion_gate] = lambda: completion_gate
        app.dependency_overrides[get_feedback_recorder] = lambda: feedback_recorder
        app.dependency_overrides[get_conflict_checker] = lambda: conflict_checker
        yield client
        app.dependency_overrides.clear()

    def test_create_session(self, api, booking_service):
        created = _session()
        booking_service.create_session.return_value = created

        response = api.post(
            BASE,
            json={
                "provider_id": PROVIDER_ID,
                "skill": {"name": "Guitar", "category": "Music", "level": "beginner"},
                "scheduled_date": created.start_time.isoformat(),
                "duration_minutes": 60,
                "venue": {"session_type": "online"},
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["id"] == created.id
        assert body["status"] == "pending"
        assert body["user_role"] == "requester"
        assert body["participants"] == [REQUESTER_ID, PROVIDER_ID]
        assert body["duration_hours"] == 1.0
        assert body["venue"] == {"session_type": "online", "meeting_link": None}
        args = booking_service.create_session.call_args.args
        assert args[0] == REQUESTER_ID
        assert args[1].provider_id == PROVIDER_ID

    def test_create_rejects_location_on_online_session(self, api, booking_service):
        response = api.post(
            BASE,
            json={
                "provider_id": PROVIDER_ID,
                "skill": {"name": "Guitar", "category": "Music", "level": "beginner"},
                "scheduled_date": "2030-01-01T10:00:00Z",
                "duration_minutes": 60,
                "venue": {"session_type": "online", "location": "Park"},
            },
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["code"] == "validation_error"
        booking_service.create_session.assert_not_called()

    def test_self_booking_maps_to_400_envelope(self, api, booking_service):
        booking_service.create_session.side_effect = ValidationException(
            "You cannot book a session with yourself"
        )

        response = api.post(
            BASE,
            json={
                "provider_id": REQUESTER_ID,
                "skill": {"name": "Guitar", "category": "Music", "level": "beginner"},
                "scheduled_date": "2030-01-01T10:00:00Z",
                "duration_minutes": 60,
            },
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        body = response.json()
        assert body["detail"] == "You cannot book a session with yourself"
        assert body["code"] == "VALIDATION_ERROR"
        assert body["status"] == 400
        assert body["instance"] == BASE

    def test_get_session_not_found(self, api, booking_service):
        booking_service.get_session_for_user.side_effect = NotFoundException("Session not found")

        response = api.get(f"{BASE}/{generate_ulid()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["detail"] == "Session not found"

    def test_malformed_session_id_rejected(self, api, booking_service):
        response = api.get(f"{BASE}/not-a-ulid")

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        booking_service.get_session_for_user.assert_not_called()

    def test_list_sessions(self, api, booking_service):
        booking_service.list_sessions.return_value = ([_session(), _session()], 7)

        response = api.get(
            BASE, params={"status": ["pending", "accepted"], "role": "requested", "per_page": 2}
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["total"] == 7
        assert len(body["items"]) == 2
        assert body["has_next"] is True
        kwargs = booking_service.list_sessions.call_args.kwargs
        assert kwargs["statuses"] == ["pending", "accepted"]
        assert kwargs["role"] == "requested"
        assert kwargs["per_page"] == 2

    def test_list_rejects_unknown_status(self, api, booking_service):
        response = api.get(BASE, params={"status": "archived"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        booking_service.list_sessions.assert_not_called()

    def test_upcoming(self, api, booking_service):
        booking_service.get_upcoming_sessions.return_value = [_session(status="accepted")]

        response = api.get(f"{BASE}/upcoming")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()[0]["status"] == "accepted"
        assert response.json()[0]["time_until_session"] > 0

    def test_stats(self, api, booking_service):
        booking_service.get_session_stats.return_value = {
            "pending": 1,
            "accepted": 2,
            "rejected": 0,
            "cancelled": 0,
            "completed": 4,
            "no-show": 1,
        }

        response = api.get(f"{BASE}/stats")

        assert response.json() == {
            "total": 8,
            "pending": 1,
            "accepted": 2,
            "rejected": 0,
            "cancelled": 0,
            "completed": 4,
            "no_show": 1,
        }

    def test_check_conflicts(self, api, conflict_checker):
        start = datetime(2030, 1, 8, 10, 0, tzinfo=timezone.utc)
        conflict_checker.check_conflicts.return_value = ConflictCheckResult(
            user_conflicts=[
                {
                    "session_id": generate_ulid(),
                    "scheduled_date": start,
                    "end_time": start + timedelta(hours=1),
                    "duration_minutes": 60,
                    "status": "accepted",
                    "skill_name": "Guitar",
                }
            ]
        )

        response = api.post(
            f"{BASE}/check-conflicts",
            json={
                "scheduled_date": "2030-01-08T10:30:00Z",
                "duration_minutes": 60,
                "counterpart_id": PROVIDER_ID,
            },
        )

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["has_conflicts"] is True
        assert len(body["user_conflicts"]) == 1
        assert body["counterpart_conflicts"] == []
        args = conflict_checker.check_conflicts.call_args.args
        assert args[0] == REQUESTER_ID
        assert args[3] == PROVIDER_ID

    def test_respond_forbidden_for_requester(self, api, response_service):
        response_service.respond.side_effect = ForbiddenException(
            "Only the session provider can respond to this request"
        )

        response = api.put(f"{BASE}/{generate_ulid()}/respond", json={"action": "accept"})

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["code"] == "FORBIDDEN"

    def test_respond_on_terminal_session(self, api, response_service):
        response_service.respond.side_effect = InvalidTransitionException(
            "Cannot respond to a accepted session", current_status="accepted", action="accept"
        )

        response = api.put(f"{BASE}/{generate_ulid()}/respond", json={"action": "accept"})

        assert response.status_code == status.HTTP_409_CONFLICT
        body = response.json()
        assert body["detail"] == "Cannot respond to a accepted session"
        assert body["code"] == "INVALID_TRANSITION"
        assert body["errors"] == {"current_status": "accepted", "action": "accept"}

    def test_respond_no_show_action_is_not_accepted(self, api, response_service):
        response = api.put(f"{BASE}/{generate_ulid()}/respond", json={"action": "no-show"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        response_service.respond.assert_not_called()

    def test_accept(self, api, response_service):
        accepted = _session(status="accepted")
        response_service.respond.return_value = accepted

        response = api.put(
            f"{BASE}/{accepted.id}/respond",
            json={"action": "accept", "meeting_link": "https://meet.example.com/g"},
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "accepted"
        kwargs = response_service.respond.call_args.kwargs
        assert kwargs["meeting_link"] == "https://meet.example.com/g"

    def test_propose_alternative_time(self, api, response_service):
        pending = _session()
        response_service.propose_alternative_time.return_value = pending

        response = api.post(
            f"{BASE}/{pending.id}/alternative-time",
            json={"proposed_date": "2030-02-01T15:00:00Z", "message": "Later?"},
        )

        assert response.status_code == status.HTTP_200_OK
        args = response_service.propose_alternative_time.call_args.args
        assert args[2] == datetime(2030, 2, 1, 15, 0, tzinfo=timezone.utc)
        assert args[3] == "Later?"

    def test_cancel_without_body(self, api, cancellation_policy):
        cancelled = _session(status="cancelled", cancelled_by_id=REQUESTER_ID)
        cancellation_policy.cancel_session.return_value = cancelled

        response = api.put(f"{BASE}/{cancelled.id}/cancel")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["cancelled_by_id"] == REQUESTER_ID
        cancellation_policy.cancel_session.assert_called_once_with(
            cancelled.id, REQUESTER_ID, None
        )

    def test_cancel_inside_window(self, api, cancellation_policy):
        cancellation_policy.cancel_session.side_effect = CancellationWindowException(2, 1.5)

        response = api.put(f"{BASE}/{generate_ulid()}/cancel", json={"reason": "Late"})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["code"] == "CANCELLATION_WINDOW"

    def test_complete(self, api, completion_gate):
        completed = _session(
            status="completed",
            scheduled_date=datetime.now(timezone.utc) - timedelta(hours=2),
            requester_notes="Fun",
        )
        completion_gate.complete_session.return_value = completed

        response = api.put(f"{BASE}/{completed.id}/complete", json={"notes": "Fun"})

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["status"] == "completed"
        assert body["requester_notes"] == "Fun"
        assert body["time_until_session"] == 0

    def test_feedback(self, api, feedback_recorder):
        entry = SessionFeedback(
            id=generate_ulid(),
            session_id=generate_ulid(),
            author_id=REQUESTER_ID,
            rating=5,
            comment="Great",
            submitted_at=datetime.now(timezone.utc),
        )
        feedback_recorder.submit_feedback.return_value = entry

        response = api.post(
            f"{BASE}/{entry.session_id}/feedback", json={"rating": 5, "comment": "Great"}
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["rating"] == 5

    def test_feedback_rating_out_of_range(self, api, feedback_recorder):
        response = api.post(f"{BASE}/{generate_ulid()}/feedback", json={"rating": 6})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        feedback_recorder.submit_feedback.assert_not_called()


class TestAuthentication:
    def test_missing_token(self, client):
        response = client.get("/api/v1/sessions")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"] == "Not authenticated"

    def test_invalid_token(self, client):
        response = client.get(
            "/api/v1/sessions", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_no_show_requires_admin(self, client, auth_headers_provider):
        admin_service = MagicMock(spec=SessionAdminService)
        app.dependency_overrides[get_session_admin_service] = lambda: admin_service

        response = client.post(
            f"/api/v1/sessions/{generate_ulid()}/no-show", headers=auth_headers_provider
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["detail"] == "Administrator access required"
        admin_service.mark_no_show.assert_not_called()

    def test_suspended_user_forbidden(self, client, suspended_user):
        from app.auth import create_access_token

        token = create_access_token({"sub": suspended_user.id})
        response = client.get(
            "/api/v1/sessions", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_token_user_resolved_from_overridden_database(self, client, auth_headers_requester):
        response = client.get("/api/v1/sessions/stats", headers=auth_headers_requester)

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["total"] == 0

    def test_api_layer_shares_database_dependency(self):
        from app.api.dependencies import get_db as api_get_db
        from app.database import get_db

        assert api_get_db is get_db
