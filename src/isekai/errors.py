"""Domain exceptions.

Every exception carries the HTTP status it maps to; the global error handler
renders them into the response envelope.
"""

from __future__ import annotations


class AwardsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 400
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class UnauthenticatedError(AwardsError):
    status_code = 401
    default_message = "Unauthorized"


class PermissionDeniedError(AwardsError):
    status_code = 403
    default_message = "You do not have permission to perform this action"


class NotFoundError(AwardsError):
    status_code = 404
    default_message = "Not found"


class VotingClosedError(AwardsError):
    status_code = 403
    default_message = "Voting has closed"


class ConflictError(AwardsError):
    status_code = 409
    default_message = "Conflict"


class ValidationFailedError(AwardsError):
    status_code = 400
    default_message = "Invalid request"


class PersistenceError(AwardsError):
    status_code = 500
    default_message = "Failed to save changes"
