"""
Domain exceptions raised by stores, services and dependencies.

Each exception carries the HTTP status it maps to; the handlers registered in
``main.create_app`` turn them into ``{"message": ...}`` JSON responses.
"""

from fastapi import status


class KanbanError(Exception):
    """Base class for all expected, client-facing failures."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(KanbanError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authorized"


class AccessDenied(KanbanError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFound(KanbanError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Resource not found"


class InvalidReference(KanbanError):
    """A referenced entity (project, user, ...) given in a request body does not exist."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Referenced resource does not exist"


class DuplicateResource(KanbanError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Resource already exists"


class ValidationFailure(KanbanError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ConcurrentModification(KanbanError):
    """The project changed underneath this request in another process."""

    status_code = status.HTTP_409_CONFLICT
    default_message = "Project was modified concurrently, please retry"


class ServerFault(KanbanError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
