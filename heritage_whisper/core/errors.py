"""Domain error types.

Purpose:
- Provide typed exceptions raised by services and API dependencies.
- Carry the HTTP status code the API layer should answer with, plus optional
  structured details for diagnosis.

Usage:
- Raise the most specific subclass from service code.
- ``setup_exception_handlers`` maps every ``HeritageWhisperError`` onto a JSON
  response ``{"detail": message}`` with its status code.
"""

from __future__ import annotations

from typing import Any, Optional


class HeritageWhisperError(Exception):
    """Base error for domain failures.

    Args:
        message: Human-readable error description.
        status_code: HTTP status code associated with the failure.
        details: Optional structured payload for the client.
    """

    status_code: int = 400

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationFailedError(HeritageWhisperError):
    status_code = 400


class AuthenticationError(HeritageWhisperError):
    status_code = 401


class PaymentRequiredError(HeritageWhisperError):
    status_code = 402


class PermissionDeniedError(HeritageWhisperError):
    status_code = 403


class NotFoundError(HeritageWhisperError):
    status_code = 404


class ConflictError(HeritageWhisperError):
    status_code = 409


class RateLimitExceededError(HeritageWhisperError):
    """Raised when a caller exceeds a rate limit window.

    Args:
        message: Human-readable error description.
        retry_after: Seconds until the caller may retry.
    """

    status_code = 429

    def __init__(self, message: str, *, retry_after: int) -> None:
        super().__init__(message, details={"retry_after": retry_after})
        self.retry_after = retry_after
