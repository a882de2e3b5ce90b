# backend/app/api/dependencies/__init__.py
"""
Dependency injection package for FastAPI routes.
"""

from .auth import get_current_active_user, require_admin
from .database import get_db
from .services import (
    get_booking_service,
    get_cancellation_policy,
    get_completion_gate,
    get_conflict_checker,
    get_feedback_recorder,
    get_notification_dispatcher,
    get_review_store,
    get_session_admin_service,
    get_session_response_service,
    get_user_directory,
)

__all__ = [
    "get_booking_service",
    "get_cancellation_policy",
    "get_completion_gate",
    "get_conflict_checker",
    "get_current_active_user",
    "get_db",
    "get_feedback_recorder",
    "get_notification_dispatcher",
    "get_review_store",
    "get_session_admin_service",
    "get_session_response_service",
    "get_user_directory",
    "require_admin",
]
