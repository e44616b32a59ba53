from abc import ABC
from datetime import datetime
from typing import Any


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class AuthenticationError(UserError):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message)


class SessionInvalidError(AuthenticationError):
    """Raised when the bearer's session can no longer be used.

    `code` is one of NO_SESSION, DEVICE_MISMATCH, TIMEOUT. The session has already
    been cleared server-side when this is raised for a mismatch or a timeout.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code


class AccountLockedError(UserError):
    """Raised when too many failed login attempts locked the account."""

    def __init__(self, retry_after_minutes: int) -> None:
        super().__init__(f"Account temporarily locked. Try again in {retry_after_minutes} minutes.")
        self.retry_after_minutes = retry_after_minutes


class AccessDeniedError(UserError):
    """Raised when a user tries to access a resource they do not have permission for."""


class EntitlementExpiredError(AccessDeniedError):
    """Raised when course access has lapsed or was never granted."""

    def __init__(self, message: str, granted_at: datetime | None = None, expires_at: datetime | None = None) -> None:
        super().__init__(message)
        self.granted_at = granted_at
        self.expires_at = expires_at


class ConflictError(UserError):
    """Raised when the request collides with existing state (active session elsewhere, duplicate grant)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class ValidationError(UserError):
    """Raised when user input fails validation."""
