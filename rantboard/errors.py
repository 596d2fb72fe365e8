"""
Error taxonomy for board operations.

Every failure a service can report is one of these. The web layer turns
them into an Outcome and picks the view variant from the error's kind.
"""

from typing import Any, Dict, Optional


class BoardError(Exception):
    """Base class for all recoverable board failures."""

    kind = "error"
    default_message = "Something went wrong."

    def __init__(self, message: Optional[str] = None, **details: Any):
        self.message = message or self.default_message
        self.details: Dict[str, Any] = details
        super().__init__(self.message)


class ValidationError(BoardError):
    """Malformed or missing input. Shown inline with the submitted state."""

    kind = "validation"
    default_message = "Invalid input."


class ConflictError(BoardError):
    """Duplicate slug or repeated vote."""

    kind = "conflict"
    default_message = "That already exists."


class ForbiddenError(BoardError):
    """Ownership violation."""

    kind = "forbidden"
    default_message = "You are not allowed to do that."


class NotFoundError(BoardError):
    """Unknown post or comment."""

    kind = "not_found"
    default_message = "Not found."


class AuthenticationRequiredError(BoardError):
    """The action needs an authenticated identity."""

    kind = "auth_required"
    default_message = "You need to login first."

    def __init__(self, reason: str = "", message: Optional[str] = None):
        self.reason = reason
        super().__init__(message, reason=reason)


class StorageError(BoardError):
    """Backing store failure. The message never carries internal detail."""

    kind = "storage"
    default_message = "Oops, something went wrong."


class IdentityProviderError(Exception):
    """The hosted identity provider rejected a call or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
