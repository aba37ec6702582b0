"""
Service Error Taxonomy

Every service-layer failure is a ServiceError carrying a machine readable
error code and the HTTP status it maps to. Routers translate these into
HTTPException responses with a ``{"error": ..., "message": ...}`` detail.
"""

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class ValidationError(ServiceError):
    """Raised when input is malformed or a required field is missing."""

    def __init__(self, message: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class InvalidTransitionError(ServiceError):
    """Raised when a state transition is not allowed from the current state."""

    def __init__(self, current: str, target: str, message: str | None = None):
        self.current = current
        self.target = target
        super().__init__(
            message=message or f"Cannot move from {current} to {target}.",
            error_code="INVALID_TRANSITION",
            status_code=400,
        )


class ForbiddenError(ServiceError):
    """Raised when an authenticated actor acts outside their scope."""

    def __init__(self, message: str = "You do not have permission to perform this action."):
        super().__init__(message=message, error_code="FORBIDDEN", status_code=403)


class NotFoundError(ServiceError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity: str, entity_id: str | None = None):
        message = f"{entity} {entity_id} not found" if entity_id else f"{entity} not found"
        super().__init__(
            message=message,
            error_code=f"{entity.upper().replace(' ', '_')}_NOT_FOUND",
            status_code=404,
        )


class ConflictError(ServiceError):
    """Raised when the request conflicts with the current state."""

    def __init__(self, message: str, error_code: str = "CONFLICT"):
        super().__init__(message=message, error_code=error_code, status_code=409)


class InternalError(ServiceError):
    """Raised when an operation fails for reasons the caller cannot fix."""

    def __init__(self, message: str = "An unexpected error occurred."):
        super().__init__(message=message, error_code="INTERNAL_ERROR", status_code=500)


def to_http_exception(error: ServiceError) -> HTTPException:
    """Convert a service error into the HTTPException the API returns."""
    return HTTPException(
        status_code=error.status_code,
        detail={
            "error": error.error_code,
            "message": error.message,
        },
    )


def internal_server_error() -> HTTPException:
    """Generic 500 that leaks no internal detail to the caller."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


__all__ = [
    "ServiceError",
    "ValidationError",
    "InvalidTransitionError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
    "to_http_exception",
    "internal_server_error",
]
