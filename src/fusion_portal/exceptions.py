"""
Fusion Portal - Custom Exceptions.

Centralized exception handling with standardized error responses.
"""

from typing import Any
from uuid import UUID


class PortalException(Exception):
    """Base exception for the portal."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        request_id: UUID | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.request_id = request_id
        super().__init__(message)


class UnauthorizedException(PortalException):
    """Raised when there is no usable session."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
            details={"redirect_to": "/client/login"},
        )


class SessionExpiredException(PortalException):
    """Raised when the backend rejects the stored session token."""

    def __init__(self, message: str = "Session expired"):
        super().__init__(
            code="SESSION_EXPIRED",
            message=message,
            status_code=401,
            details={"redirect_to": "/client/login"},
        )


class ForbiddenException(PortalException):
    """Raised when the user's role in the organization does not allow an action."""

    def __init__(self, message: str = "Insufficient permissions", required_role: str | None = None):
        details = {"required_role": required_role} if required_role else None
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
            details=details,
        )


class NotFoundException(PortalException):
    """Raised when a resource is not found."""

    def __init__(self, resource_type: str, resource_id: str | UUID):
        super().__init__(
            code="NOT_FOUND",
            message=f"{resource_type} not found: {resource_id}",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": str(resource_id)},
        )


class ConflictException(PortalException):
    """Raised when state transition is not allowed."""

    def __init__(self, message: str, current_state: str | None = None, target_state: str | None = None):
        details = {}
        if current_state:
            details["current_state"] = current_state
        if target_state:
            details["target_state"] = target_state
        super().__init__(
            code="CONFLICT",
            message=message,
            status_code=409,
            details=details if details else None,
        )


class ValidationException(PortalException):
    """Raised for validation errors caught before any backend call."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details={"errors": errors} if errors else None,
        )


class FeatureDisabledException(PortalException):
    """Raised when a feature flag is disabled."""

    def __init__(self, feature_name: str):
        super().__init__(
            code="FEATURE_DISABLED",
            message=f"Feature '{feature_name}' is currently disabled",
            status_code=503,
            details={"feature": feature_name},
        )


class BackendException(PortalException):
    """Raised when a backend function answers with a non-2xx status.

    The message is the backend's own error text when it sent one.
    """

    def __init__(self, function_name: str, message: str, upstream_status: int):
        super().__init__(
            code="BACKEND_ERROR",
            message=message,
            status_code=502 if upstream_status >= 500 else upstream_status,
            details={"function": function_name, "upstream_status": upstream_status},
        )
        self.function_name = function_name
        self.upstream_status = upstream_status


class BackendUnavailableException(PortalException):
    """Raised when a backend function cannot be reached at all."""

    def __init__(self, function_name: str, message: str = "Service temporarily unavailable. Please try again."):
        super().__init__(
            code="BACKEND_UNAVAILABLE",
            message=message,
            status_code=502,
            details={"function": function_name},
        )
        self.function_name = function_name
