"""Outbound email content: Jinja2 templates and unsubscribe tokens."""

from .templates import EmailRenderError, RenderedEmail, first_sentence, render_email
from .unsubscribe import create_unsubscribe_token, unsubscribe_url, verify_unsubscribe_token

__all__ = [
    "EmailRenderError",
    "RenderedEmail",
    "create_unsubscribe_token",
    "first_sentence",
    "render_email",
    "unsubscribe_url",
    "verify_unsubscribe_token",
]
