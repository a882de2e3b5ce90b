# backend/app/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ...services.booking_service import BookingService
from ...services.cancellation_policy import CancellationPolicy
from ...services.collaborators import NullReviewStore, ReviewStore, SqlUserDirectory, UserDirectory
from ...services.completion_gate import CompletionGate
from ...services.conflict_checker import ConflictChecker
from ...services.feedback_recorder import FeedbackRecorder
from ...services.notification_dispatcher import SessionEventDispatcher, build_default_dispatcher
from ...services.session_admin_service import SessionAdminService
from ...services.session_response_service import SessionResponseService
from .database import get_db

logger = logging.getLogger(__name__)

_review_store = NullReviewStore()


def get_notification_dispatcher(request: Request) -> SessionEventDispatcher:
    """Dispatcher owned by the running app; created on first use when the lifespan did not run."""
    dispatcher = getattr(request.app.state, "session_dispatcher", None)
    if dispatcher is None:
        scheduler = getattr(request.app.state, "notification_retry_scheduler", None)
        dispatcher = build_default_dispatcher(retry_scheduler=scheduler)
        request.app.state.session_dispatcher = dispatcher
    return dispatcher


def get_review_store() -> ReviewStore:
    return _review_store


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return SqlUserDirectory(db)


def get_booking_service(
    db: Session = Depends(get_db),
    user_directory: UserDirectory = Depends(get_user_directory),
    dispatcher: SessionEventDispatcher = Depends(get_notification_dispatcher),
) -> BookingService:
    """
    Get booking service instance with all dependencies.

    Args:
        db: Database session
        user_directory: Resolves participants
        dispatcher: Notification fan-out

    Returns:
        BookingService instance
    """
    return BookingService(db, user_directory, dispatcher)


def get_conflict_checker(db: Session = Depends(get_db)) -> ConflictChecker:
    return ConflictChecker(db)


def get_session_response_service(
    db: Session = Depends(get_db),
    dispatcher: SessionEventDispatcher = Depends(get_notification_dispatcher),
) -> SessionResponseService:
    return SessionResponseService(db, dispatcher=dispatcher)


def get_cancellation_policy(
    db: Session = Depends(get_db),
    dispatcher: SessionEventDispatcher = Depends(get_notification_dispatcher),
) -> CancellationPolicy:
    return CancellationPolicy(db, dispatcher=dispatcher)


def get_completion_gate(
    db: Session = Depends(get_db),
    dispatcher: SessionEventDispatcher = Depends(get_notification_dispatcher),
    review_store: ReviewStore = Depends(get_review_store),
) -> CompletionGate:
    return CompletionGate(db, dispatcher=dispatcher, review_store=review_store)


def get_feedback_recorder(db: Session = Depends(get_db)) -> FeedbackRecorder:
    return FeedbackRecorder(db)


def get_session_admin_service(
    db: Session = Depends(get_db),
    dispatcher: SessionEventDispatcher = Depends(get_notification_dispatcher),
) -> SessionAdminService:
    return SessionAdminService(db, dispatcher=dispatcher)
