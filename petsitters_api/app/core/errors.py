"""
Domain error taxonomy shared by the service layer.

Services raise subclasses of ``ServiceError``; endpoints catch the base
class and translate it into an HTTP response with ``raise_http_error``.
``ServiceError`` derives from ``ValueError`` so callers that only care
about "the operation was rejected" can keep catching ``ValueError``.
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ServiceError(ValueError):
    """Base class for user-visible business-rule failures."""


class ValidationError(ServiceError):
    """Malformed input or a violated business rule."""


class NotFoundError(ServiceError):
    """A referenced user, pet, request or review does not exist."""


class ForbiddenError(ServiceError):
    """The caller is authenticated but has no rights over the resource."""


class UnauthorizedError(ServiceError):
    """Missing or invalid credentials, or a deactivated account."""


class ConflictError(ServiceError):
    """Duplicate email, duplicate review or a lost acceptance race."""


class InvalidTransitionError(ValidationError):
    """A request status change not allowed from the current status."""

    def __init__(self, current_status: str, requested_status: str) -> None:
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Invalid status transition from '{current_status}' to '{requested_status}'"
        )


def raise_http_error(exc: ServiceError) -> NoReturn:
    """Re-raise a service error as the matching ``HTTPException``."""
    if isinstance(exc, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    if isinstance(exc, ForbiddenError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, UnauthorizedError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc
    if isinstance(exc, ConflictError):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
