"""Error types raised by outbound integration clients.

Purpose:
- Provide typed exceptions thrown by the Supabase, OpenAI, Resend, Stripe and
  PDFShift clients.
- Expose HTTP-oriented context (status code, response body) for diagnosis.

Usage:
- Catch ``IntegrationError`` for any upstream failure and inspect
  ``status_code`` or ``details``.
- The API layer answers an uncaught ``IntegrationError`` with 502.
"""

from __future__ import annotations

from typing import Any, Optional


class IntegrationError(Exception):
    """Base error for third-party API failures.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code returned by the upstream service.
        details: Optional structured payload from the upstream service.
    """

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details


class SupabaseApiError(IntegrationError):
    pass


class ResendApiError(IntegrationError):
    pass


class PDFShiftApiError(IntegrationError):
    pass


class TranscriptionError(IntegrationError):
    pass


class BillingError(IntegrationError):
    """Raised when a Stripe call or webhook payload cannot be processed."""


class IntegrationNotConfiguredError(IntegrationError):
    """Raised when a client is used without its credentials configured.

    Args:
        service: Name of the unconfigured service.
    """

    def __init__(self, service: str) -> None:
        super().__init__(f"{service} is not configured", status_code=503)
        self.service = service
