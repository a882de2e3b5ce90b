# backend/app/routes/health.py
"""
Health check endpoints for the application.
"""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..api.dependencies import get_db
from ..schemas.base_responses import HealthCheckResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthCheckResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Report service health, including database connectivity."""
    response.headers["Cache-Control"] = "no-store"
    database_ok = True
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check database probe failed: {str(e)}")
        database_ok = False
    return HealthCheckResponse(
        status="healthy" if database_ok else "degraded",
        version=API_VERSION,
        checks={"database": database_ok},
    )
