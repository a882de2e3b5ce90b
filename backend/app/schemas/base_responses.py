"""
Base response schemas for standardized API responses.

These schemas keep list and health responses in one shape across endpoints.
"""

from datetime import datetime, timezone
from typing import Dict, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginatedResponse(BaseModel, Generic[T]):
    """Standard paginated response for all list endpoints."""

    items: List[T] = Field(description="List of items")
    total: int = Field(description="Total number of items")
    page: int = Field(default=1, description="Current page number", ge=1)
    per_page: int = Field(default=20, description="Items per page", ge=1, le=100)
    has_next: bool = Field(description="Whether there's a next page")
    has_prev: bool = Field(description="Whether there's a previous page")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"items": ["..."], "total": 100, "page": 1, "per_page": 20, "has_next": True, "has_prev": False}
        }
    )


class HealthCheckResponse(BaseModel):
    """Standard health check response."""

    status: str = Field(description="Service health status", pattern="^(healthy|degraded|unhealthy)$")
    service: str = Field(default="SkillSwap API", description="Service name")
    version: str = Field(description="API version")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp")
    checks: Dict[str, bool] = Field(description="Individual component health checks")


def create_paginated_response(items: List[T], total: int, page: int = 1, per_page: int = 20) -> PaginatedResponse[T]:
    """
    Helper function to create a paginated response.

    Args:
        items: List of items for current page
        total: Total count of all items
        page: Current page number
        per_page: Items per page

    Returns:
        PaginatedResponse with calculated pagination metadata
    """
    return PaginatedResponse(
        items=items, total=total, page=page, per_page=per_page, has_next=page * per_page < total, has_prev=page > 1
    )
