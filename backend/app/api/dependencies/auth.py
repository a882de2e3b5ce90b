# backend/app/api/dependencies/auth.py
"""
Authentication and authorization dependencies.

The bearer token names a user id; the UserDirectory decides whether that
user may act.
"""

import asyncio
import logging

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...services.collaborators import SqlUserDirectory, UserRecord
from .database import get_db

logger = logging.getLogger(__name__)


async def get_current_active_user(
    user_id: str = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> UserRecord:
    """
    Get the current authenticated and active user.

    Raises:
        HTTPException: 401 if the user no longer exists, 403 if the account is inactive
    """
    record = await asyncio.to_thread(SqlUserDirectory(db).resolve, user_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not record.is_available:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return record


async def require_admin(
    current_user: UserRecord = Depends(get_current_active_user),
) -> UserRecord:
    """Get the current user if they hold the admin role."""
    if not current_user.is_admin:
        logger.warning(f"Non-admin user {current_user.id} attempted an admin action")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"message": "Administrator access required", "code": "FORBIDDEN"},
        )
    return current_user
