"""Domain error kinds surfaced to the transport layer."""

from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for business rule failures raised by the service layer."""

    status_code: int = 400
    error: str = "Bad Request"

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationFailed(DomainError):
    status_code = 400
    error = "Validation Failed"


class BadRequestError(DomainError):
    status_code = 400
    error = "Bad Request"


class InvalidStateError(BadRequestError):
    """Entity exists but is not in a state that allows the operation."""


class UnauthenticatedError(DomainError):
    status_code = 401
    error = "Unauthorized"


class ForbiddenError(DomainError):
    status_code = 403
    error = "Forbidden"


class NotFoundError(DomainError):
    status_code = 404
    error = "Not Found"


__all__ = [
    "BadRequestError",
    "DomainError",
    "ForbiddenError",
    "InvalidStateError",
    "NotFoundError",
    "UnauthenticatedError",
    "ValidationFailed",
]
