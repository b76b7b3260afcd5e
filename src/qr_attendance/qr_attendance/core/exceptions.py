from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base exception for business rule violations.

    ``kind`` and ``http_status`` are read once at the HTTP boundary.
    """

    kind = "internal-error"
    http_status = 500

    def __init__(self, message: str = "", *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    kind = "invalid-input"
    http_status = 400


class AuthenticationError(DomainError):
    """Raised when credentials or bearer tokens are missing or invalid."""

    kind = "unauthenticated"
    http_status = 401


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""

    kind = "forbidden"
    http_status = 403


class NotFoundError(DomainError):
    kind = "not-found"
    http_status = 404


class TooEarlyError(DomainError):
    """Check-in before the session window opens."""

    kind = "too-early"
    http_status = 400


class TooLateError(DomainError):
    """Check-in after the session window closed."""

    kind = "too-late"
    http_status = 400


class AlreadyRecordedError(DomainError):
    kind = "already-recorded"
    http_status = 409


class ConflictError(DomainError):
    kind = "conflict"
    http_status = 409


class StoreError(DomainError):
    """Persistence failure with no better classification."""

    retriable = False


class StoreUnavailableError(StoreError):
    """The database could not be reached; the caller may retry."""

    retriable = True


class AlreadyExistsError(StoreError):
    """A unique constraint rejected a write."""

    def __init__(self, constraint: str, message: str = ""):
        super().__init__(message or f"duplicate value violates {constraint}")
        self.constraint = constraint
