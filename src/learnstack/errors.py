"""Engine error taxonomy.

Every error carries a stable ``kind`` string and a structured ``context`` dict.
The HTTP layer maps kinds to status codes (see ``middleware.error_handler``);
messages are for logs, not for end users.
"""

from __future__ import annotations

from typing import Any


class LearnStackError(Exception):
    """Base class for errors raised by the progress engine and its services."""

    kind = "error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.context: dict[str, Any] = context


class NotFoundError(LearnStackError, LookupError):
    """A user, topic, algorithm, or other entity id is unknown."""

    kind = "not_found"


class AccessDeniedError(LearnStackError, PermissionError):
    """A prerequisite or lock check failed for the requested content."""

    kind = "access_denied"


class InvalidStateError(LearnStackError, ValueError):
    """An attempt state machine rejected the requested transition."""

    kind = "invalid_state"


class ConcurrencyConflictError(LearnStackError):
    """Optimistic writes kept colliding after the bounded number of retries."""

    kind = "concurrency_conflict"


class CollaboratorError(LearnStackError):
    """An external collaborator (code runner) failed or timed out."""

    kind = "collaborator_unavailable"
