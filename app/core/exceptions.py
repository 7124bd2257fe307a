"""
Domain exceptions for the key lifecycle.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller. Services raise these; the handler registered in
``app.main`` turns them into JSON responses.
"""
from fastapi import status


class KeyServiceError(Exception):
    """Base class for all key lifecycle errors."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Internal Server Error"

    def __init__(self, message=None):
        self.message = message or self.public_message
        super().__init__(self.message)


class ValidationError(KeyServiceError):
    """Missing or malformed input."""

    status_code = status.HTTP_400_BAD_REQUEST
    public_message = "Invalid request"


class NotFoundError(KeyServiceError):
    """Referenced entity does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    public_message = "Not found"


class UnauthorizedError(KeyServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    public_message = "Unauthorized"


class MissingKeyError(UnauthorizedError):
    public_message = "API key is required"


class InvalidKeyError(UnauthorizedError):
    # Same message for unknown and inactive keys
    public_message = "Invalid or inactive API key"


class ForbiddenError(KeyServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    public_message = "Admin access required"


class ConflictError(KeyServiceError):
    status_code = status.HTTP_409_CONFLICT
    public_message = "Conflict"


class AlreadyApprovedError(ConflictError):
    public_message = "Key request already approved"


class InvalidTransitionError(ConflictError):
    """A decided key request cannot move to the requested state."""

    public_message = "Key request has already been decided"


class PersistenceError(KeyServiceError):
    """Storage layer failure. The message returned to callers stays generic."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    public_message = "Storage operation failed"


class KeyCollisionError(PersistenceError):
    """The unique index on the key hash rejected a generated token."""


class NotificationError(KeyServiceError):
    """Email delivery failure. Never surfaced as the failure of a state transition."""

    public_message = "Notification delivery failed"
