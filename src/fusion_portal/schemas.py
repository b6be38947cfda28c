"""
Fusion Portal - Common Schemas.

Shared Pydantic models used across all modules.
"""

from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


# =============================================================================
# Error Responses
# =============================================================================


class ErrorDetail(BaseModel):
    """Error detail structure."""

    code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(default=None, description="Additional context")
    request_id: UUID | None = Field(default=None, description="Request ID for tracing")


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: ErrorDetail


# =============================================================================
# Pagination
# =============================================================================


class PaginationMeta(BaseModel):
    """Page-number pagination metadata."""

    total_count: int = Field(ge=0)
    page: int = Field(ge=1)
    page_size: int = Field(ge=1, le=100)
    total_pages: int = Field(ge=0)


# =============================================================================
# Navigation
# =============================================================================


class Navigation(BaseModel):
    """Where the portal should go next.

    `reload` asks for a full navigation so every per-organization view state
    is discarded.
    """

    to: str
    reload: bool = False


class Notification(BaseModel):
    """A user-visible notification produced by an action."""

    level: Literal["success", "info", "warning", "error"]
    message: str


# =============================================================================
# Health Check
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., pattern="^(healthy|degraded)$")
    version: str
    features: dict[str, bool]
    app_env: str | None = None
    is_production: bool | None = None
