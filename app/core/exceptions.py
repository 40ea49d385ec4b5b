"""Custom exceptions for the knowledge base.

Every error carries:
- a stable ``kind`` that API clients can switch on
- the HTTP status the API layer answers with
- an internal message for logs and a safe message for users
"""


class KnowledgeBaseError(Exception):
    """Base exception for knowledge base errors."""

    kind = "internal_error"
    status_code = 500
    default_user_message = "An error occurred while processing your request."

    def __init__(self, message: str, user_message: str | None = None):
        """
        Initialize knowledge base error.

        Args:
            message: Internal error message for logging/debugging
            user_message: Safe message to show to users (defaults to a per-kind message)
        """
        super().__init__(message)
        self.user_message = user_message or self.default_user_message


class ValidationError(KnowledgeBaseError):
    """Malformed or missing fields: title length, empty content, bad enum value."""

    kind = "validation_error"
    status_code = 400
    default_user_message = "The request contains invalid data."


class UnauthenticatedError(KnowledgeBaseError):
    """A private resource was requested without an identity."""

    kind = "unauthenticated"
    status_code = 401
    default_user_message = "Authentication required."


class ForbiddenError(KnowledgeBaseError):
    """Authenticated, but the permission level is insufficient."""

    kind = "forbidden"
    status_code = 403
    default_user_message = "Access denied."


class NotFoundError(KnowledgeBaseError):
    """Referenced document or user does not exist or is soft-deleted."""

    kind = "not_found"
    status_code = 404
    default_user_message = "Resource not found."


class ConflictError(KnowledgeBaseError):
    """Concurrent modification or duplicate resource."""

    kind = "conflict"
    status_code = 409
    default_user_message = "The resource was modified by someone else. Reload and try again."


class NotificationError(KnowledgeBaseError):
    """Email could not be delivered where delivery is the request's purpose."""

    kind = "notification_error"
    status_code = 502
    default_user_message = "Email could not be sent. Please try again later."


class StorageError(KnowledgeBaseError):
    """Persistence layer failure. Not retried here."""

    kind = "storage_error"
    status_code = 500
    default_user_message = "A storage error occurred. Please try again."
