# backend/app/routes/v1/sessions.py
"""
Skill session routes - API v1

Versioned session endpoints under /api/v1/sessions.
All business logic delegated to the session services.

Endpoints:
    GET /upcoming - Pending and accepted sessions that have not started
    GET /stats - Per-status session counts for the caller
    POST /check-conflicts - Advisory overlap check for a candidate slot
    GET - List sessions with filters and pagination
    POST - Request a session with a provider
    GET /{session_id} - Session details
    PUT /{session_id}/respond - Provider accepts or declines
    POST /{session_id}/alternative-time - Propose a different start time
    PUT /{session_id}/cancel - Cancel a session
    PUT /{session_id}/complete - Mark a session as completed
    POST /{session_id}/feedback - Leave feedback on a completed session
    POST /{session_id}/no-show - Record a no-show (admin only)
"""

import asyncio
import logging
from typing import Any, List, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.params import Path

from ...api.dependencies import (
    get_booking_service,
    get_cancellation_policy,
    get_completion_gate,
    get_conflict_checker,
    get_current_active_user,
    get_feedback_recorder,
    get_session_admin_service,
    get_session_response_service,
    require_admin,
)
from ...core.config import settings
from ...core.exceptions import DomainException
from ...core.timezone_utils import utc_now
from ...core.ulid_helper import ULID_PATTERN
from ...models.session import SessionStatus
from ...schemas.base_responses import PaginatedResponse, create_paginated_response
from ...schemas.session import (
    AlternativeTimeProposal,
    ConflictCheckRequest,
    ConflictCheckResponse,
    FeedbackCreate,
    FeedbackResponse,
    SessionCancel,
    SessionComplete,
    SessionCreate,
    SessionRespond,
    SessionResponse,
    SessionStatsResponse,
)
from ...services.booking_service import BookingService
from ...services.cancellation_policy import CancellationPolicy
from ...services.collaborators import UserRecord
from ...services.completion_gate import CompletionGate
from ...services.conflict_checker import ConflictChecker
from ...services.feedback_recorder import FeedbackRecorder
from ...services.session_admin_service import SessionAdminService
from ...services.session_response_service import SessionResponseService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["sessions-v1"])

def _session_id_path() -> Any:
    return Path(
        ...,
        description="Session ULID",
        pattern=ULID_PATTERN,
        examples=["01HF4G12ABCDEF3456789XYZAB"],
    )


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


# ============================================================================
# SECTION 1: Static routes (no path parameters)
# ============================================================================


@router.get("/upcoming", response_model=List[SessionResponse])
async def get_upcoming_sessions(
    limit: int = Query(settings.upcoming_limit, ge=1, le=settings.upcoming_limit),
    current_user: UserRecord = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> List[SessionResponse]:
    """Pending and accepted sessions that have not started yet, soonest first."""
    try:
        sessions = await asyncio.to_thread(
            booking_service.get_upcoming_sessions, current_user.id, limit
        )
        now = utc_now()
        return [
            SessionResponse.from_session(s, viewer_id=current_user.id, now=now) for s in sessions
        ]
    except DomainException as e:
        handle_domain_exception(e)


@router.get("/stats", response_model=SessionStatsResponse)
async def get_session_stats(
    current_user: UserRecord = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> SessionStatsResponse:
    """Session counts per status across both roles."""
    try:
        counts = await asyncio.to_thread(booking_service.get_session_stats, current_user.id)
        return SessionStatsResponse.from_counts(counts)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/check-conflicts", response_model=ConflictCheckResponse)
async def check_conflicts(
    check_data: ConflictCheckRequest = Body(...),
    current_user: UserRecord = Depends(get_current_active_user),
    conflict_checker: ConflictChecker = Depends(get_conflict_checker),
) -> ConflictCheckResponse:
    """
    Check whether a candidate slot overlaps the caller's (and optionally the
    counterpart's) pending or accepted sessions. Advisory only.
    """
    try:
        result = await asyncio.to_thread(
            conflict_checker.check_conflicts,
            current_user.id,
            check_data.scheduled_date,
            check_data.duration_minutes,
            check_data.counterpart_id,
            check_data.exclude_session_id,
        )
        return ConflictCheckResponse(**result.to_dict())
    except DomainException as e:
        handle_domain_exception(e)


@router.get("", response_model=PaginatedResponse[SessionResponse])
async def list_sessions(
    status_filter: Optional[List[SessionStatus]] = Query(None, alias="status"),
    role: str = Query("all", pattern="^(all|requested|received)$"),
    upcoming: bool = Query(False, description="Only pending/accepted sessions not yet started"),
    page: int = Query(1, ge=1),
    per_page: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    current_user: UserRecord = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> PaginatedResponse[SessionResponse]:
    """List the caller's sessions, newest request first."""
    try:
        sessions, total = await asyncio.to_thread(
            lambda: booking_service.list_sessions(
                current_user.id,
                statuses=[s.value for s in status_filter] if status_filter else None,
                role=role,
                page=page,
                per_page=per_page,
                upcoming_only=upcoming,
            )
        )
        now = utc_now()
        items = [
            SessionResponse.from_session(s, viewer_id=current_user.id, now=now) for s in sessions
        ]
        return create_paginated_response(items, total, page=page, per_page=per_page)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    session_data: SessionCreate = Body(...),
    current_user: UserRecord = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> SessionResponse:
    """Request a session with a provider. The new session starts as pending."""
    try:
        session = await asyncio.to_thread(
            booking_service.create_session, current_user.id, session_data
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


# ============================================================================
# SECTION 2: Session-scoped routes
# ============================================================================


@router.get(
    "/{session_id}",
    response_model=SessionResponse,
    responses={404: {"description": "Session not found"}},
)
async def get_session(
    session_id: str = _session_id_path(),
    current_user: UserRecord = Depends(get_current_active_user),
    booking_service: BookingService = Depends(get_booking_service),
) -> SessionResponse:
    """Session details, visible to its participants only."""
    try:
        session = await asyncio.to_thread(
            booking_service.get_session_for_user, session_id, current_user.id
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{session_id}/respond",
    response_model=SessionResponse,
    responses={403: {"description": "Only the provider can respond"}, 409: {"description": "Not pending"}},
)
async def respond_to_session(
    session_id: str = _session_id_path(),
    response_data: SessionRespond = Body(...),
    current_user: UserRecord = Depends(get_current_active_user),
    response_service: SessionResponseService = Depends(get_session_response_service),
) -> SessionResponse:
    """Accept or decline a pending session request."""
    try:
        session = await asyncio.to_thread(
            lambda: response_service.respond(
                session_id,
                current_user.id,
                response_data.action,
                response_message=response_data.response_message,
                confirmed_date=response_data.confirmed_date,
                use_proposed_time=response_data.use_proposed_time,
                meeting_link=response_data.meeting_link,
                location=response_data.location,
            )
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/alternative-time", response_model=SessionResponse)
async def propose_alternative_time(
    session_id: str = _session_id_path(),
    proposal: AlternativeTimeProposal = Body(...),
    current_user: UserRecord = Depends(get_current_active_user),
    response_service: SessionResponseService = Depends(get_session_response_service),
) -> SessionResponse:
    """Propose a different start time while the request is pending."""
    try:
        session = await asyncio.to_thread(
            response_service.propose_alternative_time,
            session_id,
            current_user.id,
            proposal.proposed_date,
            proposal.message,
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


@router.put(
    "/{session_id}/cancel",
    response_model=SessionResponse,
    responses={409: {"description": "Terminal session or inside the notice window"}},
)
async def cancel_session(
    session_id: str = _session_id_path(),
    cancel_data: Optional[SessionCancel] = Body(None),
    current_user: UserRecord = Depends(get_current_active_user),
    cancellation_policy: CancellationPolicy = Depends(get_cancellation_policy),
) -> SessionResponse:
    """Cancel a session."""
    try:
        session = await asyncio.to_thread(
            cancellation_policy.cancel_session,
            session_id,
            current_user.id,
            cancel_data.reason if cancel_data else None,
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


@router.put("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(
    session_id: str = _session_id_path(),
    complete_data: Optional[SessionComplete] = Body(None),
    current_user: UserRecord = Depends(get_current_active_user),
    completion_gate: CompletionGate = Depends(get_completion_gate),
) -> SessionResponse:
    """Mark an accepted session as completed once it is over."""
    try:
        session = await asyncio.to_thread(
            completion_gate.complete_session,
            session_id,
            current_user.id,
            complete_data.notes if complete_data else None,
        )
        return SessionResponse.from_session(session, viewer_id=current_user.id, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)


@router.post(
    "/{session_id}/feedback",
    response_model=FeedbackResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_feedback(
    session_id: str = _session_id_path(),
    feedback_data: FeedbackCreate = Body(...),
    current_user: UserRecord = Depends(get_current_active_user),
    feedback_recorder: FeedbackRecorder = Depends(get_feedback_recorder),
) -> FeedbackResponse:
    """Leave a rating and comment on a completed session."""
    try:
        entry = await asyncio.to_thread(
            feedback_recorder.submit_feedback,
            session_id,
            current_user.id,
            feedback_data.rating,
            feedback_data.comment,
        )
        return FeedbackResponse.from_feedback(entry)
    except DomainException as e:
        handle_domain_exception(e)


@router.post("/{session_id}/no-show", response_model=SessionResponse)
async def mark_no_show(
    session_id: str = _session_id_path(),
    admin_user: UserRecord = Depends(require_admin),
    admin_service: SessionAdminService = Depends(get_session_admin_service),
) -> SessionResponse:
    """Record that an accepted session did not take place. Admin only."""
    try:
        session = await asyncio.to_thread(admin_service.mark_no_show, session_id, admin_user)
        return SessionResponse.from_session(session, viewer_id=None, now=utc_now())
    except DomainException as e:
        handle_domain_exception(e)
