"""Custom exceptions for the match engine."""

from typing import Any, Dict, Optional


class MatchEngineError(Exception):
    """Base exception for all match engine errors."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the error with a message and optional details.

        Args:
            message (str): Error message describing what went wrong.
            status_code (int): HTTP status code associated with the error (default 500).
            details (Optional[Dict[str, Any]]): Additional context or debug information.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(MatchEngineError):
    """Raised when there's an issue with the application configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class DatabaseError(MatchEngineError):
    """Raised when there's an issue with the database operations."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, status_code: int = 500) -> None:
        super().__init__(message, status_code, details)


class ConcurrencyError(DatabaseError):
    """Raised when a concurrent writer changed a row between read and write.

    Callers re-read the current state and retry; the operation is keyed by the
    (viewer, target) pair and is safe to repeat.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details, status_code=409)


class ValidationError(MatchEngineError):
    """Raised when data validation fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 400, details)


class InvalidActionError(ValidationError):
    """Raised for a match action outside liked/disliked/passed."""


class SelfMatchError(ValidationError):
    """Raised when a profile tries to act on itself."""


class NotFoundError(MatchEngineError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 404, details)


class MatchingError(MatchEngineError):
    """Raised when there's an issue with the matching workflow."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class ActionError(MatchingError):
    """Raised when a match action could not be persisted."""
