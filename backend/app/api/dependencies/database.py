# backend/app/api/dependencies/database.py
"""
Database-related dependencies.

Routes and dependencies share ``app.database.get_db`` so a single
dependency override swaps the session everywhere.
"""

from ...database import get_db

__all__ = ["get_db"]
