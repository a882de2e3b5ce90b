# backend/app/core/exceptions.py
"""
Domain-specific exceptions for the SkillSwap session platform.

These exceptions provide clear, business-focused error messages
that can be caught and handled appropriately at the API layer.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        """Convert to an HTTPException carrying message, code and details."""
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when business validation fails."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        code: Optional[str] = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, details)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        message: str,
        code: Optional[str] = "NOT_FOUND",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, details)


class ConflictException(DomainException):
    """Raised when the requested change conflicts with the current state."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str,
        code: Optional[str] = "CONFLICT",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, details)


class ForbiddenException(DomainException):
    """Raised when the caller's role does not permit the action."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        message: str,
        code: Optional[str] = "FORBIDDEN",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message, code, details)


class ServiceException(DomainException):
    """Raised when a service operation fails."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific lifecycle exceptions


class InvalidTransitionException(ConflictException):
    """Raised when an action is not allowed from the session's current status."""

    def __init__(self, message: str, *, current_status: str, action: str):
        super().__init__(
            message=message,
            code="INVALID_TRANSITION",
            details={"current_status": current_status, "action": action},
        )


class CancellationWindowException(ConflictException):
    """Raised when a cancellation is attempted inside the notice window."""

    def __init__(self, required_hours: int, remaining_hours: float):
        super().__init__(
            message=(
                f"Cancelling with less than {required_hours} hours notice is not allowed"
            ),
            code="CANCELLATION_WINDOW",
            details={
                "required_hours": required_hours,
                "remaining_hours": round(remaining_hours, 2),
            },
        )


class SessionNotElapsedException(ConflictException):
    """Raised when completion is attempted before the session window has passed."""

    def __init__(self, message: Optional[str] = None, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message or "Only accepted sessions that have ended can be marked as completed",
            code="SESSION_NOT_ELAPSED",
            details=details or {},
        )


class ConcurrentModificationException(ConflictException):
    """Raised when another writer changed the session status first."""

    def __init__(self, session_id: str, expected_status: str):
        super().__init__(
            message="Session was modified by another request, reload and try again",
            code="CONCURRENT_MODIFICATION",
            details={"session_id": session_id, "expected_status": expected_status},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    This exception is used when data access operations fail,
    such as database connection issues, query failures, or
    constraint violations.
    """
