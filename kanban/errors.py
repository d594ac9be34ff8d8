from __future__ import annotations


class KanbanError(Exception):
    """Base class for domain failures surfaced to callers as-is."""

    default_message = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailedError(KanbanError):
    default_message = "Invalid input"


class NotFoundError(KanbanError):
    default_message = "Not found"


class ForbiddenError(KanbanError):
    default_message = "Forbidden"


class InvalidStateError(KanbanError):
    default_message = "Invalid state"


class InternalError(KanbanError):
    default_message = "Internal error"
