"""Clients for third-party services: Supabase, OpenAI, Resend, Stripe and PDFShift."""

from .errors import (
    BillingError,
    IntegrationError,
    IntegrationNotConfiguredError,
    PDFShiftApiError,
    ResendApiError,
    SupabaseApiError,
    TranscriptionError,
)
from .openai_client import TranscriptionClient, create_text_model
from .pdfshift import PDFShiftClient
from .resend import EmailMessage, ResendClient
from .stripe_client import StripeBillingClient
from .supabase import SupabaseAuthUser, SupabaseClient, resolve_storage_url, storage_path_from_url

__all__ = [
    "BillingError",
    "EmailMessage",
    "IntegrationError",
    "IntegrationNotConfiguredError",
    "PDFShiftApiError",
    "PDFShiftClient",
    "ResendApiError",
    "ResendClient",
    "StripeBillingClient",
    "SupabaseApiError",
    "SupabaseAuthUser",
    "SupabaseClient",
    "TranscriptionClient",
    "TranscriptionError",
    "create_text_model",
    "resolve_storage_url",
    "storage_path_from_url",
]
