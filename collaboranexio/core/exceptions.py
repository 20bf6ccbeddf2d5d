"""
Custom exception hierarchy for the application.

Services raise these; the API layer turns them into the JSON envelope
(``success``/``message``/``field``) with the matching HTTP status.
"""

from typing import Any

from fastapi import HTTPException, status


class CollaboraNexioException(Exception):
    """Base exception for all application exceptions."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(CollaboraNexioException):
    """Raised when input validation fails on a specific field."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.field = field
        super().__init__(message, details)


class ConflictError(CollaboraNexioException):
    """Raised on uniqueness violations (duplicate email, fiscal code, ...)."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(
        self,
        message: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.field = field
        super().__init__(message, details)


class AuthenticationError(CollaboraNexioException):
    """Raised when authentication fails."""

    status_code = status.HTTP_401_UNAUTHORIZED


class AuthorizationError(CollaboraNexioException):
    """Raised when the caller acts outside its role or tenant scope."""

    status_code = status.HTTP_403_FORBIDDEN


class ResourceNotFoundError(CollaboraNexioException):
    """Raised when a requested resource doesn't exist."""

    status_code = status.HTTP_404_NOT_FOUND


class StorageError(CollaboraNexioException):
    """Raised when the database fails (connection loss, aborted transaction)."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


# HTTP Exception helpers
def unauthorized(detail: str = "Not authenticated") -> HTTPException:
    """Return 401 Unauthorized exception."""
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def forbidden(detail: str = "Insufficient permissions") -> HTTPException:
    """Return 403 Forbidden exception."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )
