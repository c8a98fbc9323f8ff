"""
Monitoring and Tracing Configuration Module.

This module provides integration with Pydantic Logfire for monitoring and
tracing the HeritageWhisper backend, including:
- API endpoint tracing
- Database operation monitoring
- LLM and transcription call tracking
- Outbound email tracking
- Error tracking

Instrumentation is opt-in through ``LOGFIRE_ENABLED`` and ``LOGFIRE_TOKEN``.
"""

import logging
import os
from typing import Any, Optional

import logfire
from fastapi import FastAPI

logger = logging.getLogger(__name__)

LOGFIRE_ENABLED = os.getenv("LOGFIRE_ENABLED", "false").lower() in ("true", "1", "yes")
LOGFIRE_TOKEN = os.getenv("LOGFIRE_TOKEN", "")
LOGFIRE_PROJECT_NAME = os.getenv("LOGFIRE_PROJECT_NAME", "heritage-whisper")
LOGFIRE_ENVIRONMENT = os.getenv("LOGFIRE_ENVIRONMENT", "development")
LOGFIRE_SERVICE_NAME = os.getenv("LOGFIRE_SERVICE_NAME", "heritage-whisper-api")
LOGFIRE_SERVICE_VERSION = os.getenv("LOGFIRE_SERVICE_VERSION", "0.1.0")

LOGFIRE_SAMPLE_RATE = float(os.getenv("LOGFIRE_SAMPLE_RATE", "1.0"))

LOGFIRE_TRACE_PYDANTIC_AI = os.getenv("LOGFIRE_TRACE_PYDANTIC_AI", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_SQLALCHEMY = os.getenv("LOGFIRE_TRACE_SQLALCHEMY", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_HTTPX = os.getenv("LOGFIRE_TRACE_HTTPX", "true").lower() in ("true", "1", "yes")
LOGFIRE_TRACE_FASTAPI = os.getenv("LOGFIRE_TRACE_FASTAPI", "true").lower() in ("true", "1", "yes")

_initialized = False


def initialize_logfire(app: FastAPI | None = None) -> bool:
    """
    Initialize Pydantic Logfire for monitoring and tracing.

    This function sets up Logfire with automatic instrumentation for:
    - Pydantic AI model calls
    - SQLAlchemy database operations
    - HTTPX HTTP requests (Supabase, Resend, PDFShift)
    - FastAPI endpoints

    Args:
        app: FastAPI application instance for FastAPI instrumentation (optional).

    Returns:
        True when Logfire was configured, False when monitoring stays disabled.
    """
    global _initialized

    if not LOGFIRE_ENABLED:
        logger.info("Logfire monitoring is disabled. Set LOGFIRE_ENABLED=true to enable.")
        return False

    if not LOGFIRE_TOKEN:
        logger.warning(
            "Logfire is enabled but LOGFIRE_TOKEN is not set. "
            "Monitoring will not work. Set LOGFIRE_TOKEN to enable Logfire."
        )
        return False

    try:
        logfire.configure(
            token=LOGFIRE_TOKEN,
            service_name=LOGFIRE_SERVICE_NAME,
            service_version=LOGFIRE_SERVICE_VERSION,
            environment=LOGFIRE_ENVIRONMENT,
            sampling=logfire.SamplingOptions(head=LOGFIRE_SAMPLE_RATE),
        )
    except Exception as e:
        logger.error(f"Failed to initialize Logfire: {e}", exc_info=True)
        return False

    instrumentations = [
        (LOGFIRE_TRACE_PYDANTIC_AI, "Pydantic AI", logfire.instrument_pydantic_ai, {}),
        (LOGFIRE_TRACE_SQLALCHEMY, "SQLAlchemy", logfire.instrument_sqlalchemy, {}),
        (LOGFIRE_TRACE_HTTPX, "HTTPX", logfire.instrument_httpx, {}),
    ]
    if app is not None:
        instrumentations.append((LOGFIRE_TRACE_FASTAPI, "FastAPI", logfire.instrument_fastapi, {"app": app}))
    else:
        logger.debug("FastAPI app instance not provided, skipping FastAPI instrumentation")

    for enabled, name, instrument, kwargs in instrumentations:
        if not enabled:
            continue
        try:
            instrument(**kwargs)
            logger.info(f"Logfire: {name} instrumentation enabled")
        except Exception as e:
            logger.warning(f"Failed to instrument {name}: {e}")

    _initialized = True
    logger.info(
        f"Logfire monitoring initialized: "
        f"project={LOGFIRE_PROJECT_NAME}, "
        f"environment={LOGFIRE_ENVIRONMENT}, "
        f"service={LOGFIRE_SERVICE_NAME}"
    )
    return True


def log_api_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """
    Log an API request with performance metrics.

    Args:
        method: HTTP method
        path: Request path
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    try:
        logfire.info(
            "API request completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
        )
    except Exception:
        logger.debug(f"Could not log API request to Logfire: {method} {path}")


def log_llm_call(model: str, purpose: str, tokens_used: Optional[int] = None) -> None:
    """
    Log an LLM or transcription call.

    Args:
        model: The model name
        purpose: What the call was for (transcription, formatting, tier3, ...)
        tokens_used: Total tokens used in the call when known
    """
    try:
        logfire.info("LLM call completed", model=model, purpose=purpose, tokens_used=tokens_used)
    except Exception:
        logger.debug(f"Could not log LLM call to Logfire: model={model}")


def log_email_sent(template: str, recipient_count: int, success: bool) -> None:
    """Log an outbound email batch."""
    try:
        logfire.info("Email sent", template=template, recipient_count=recipient_count, success=success)
    except Exception:
        logger.debug(f"Could not log email to Logfire: template={template}")


def log_error(error_type: str, error_message: str, context: Optional[dict[str, Any]] = None) -> None:
    """
    Log an error with context for debugging.

    Args:
        error_type: Type of error
        error_message: Error message
        context: Additional context dictionary
    """
    try:
        logfire.error(
            "{error_type}: {error_message}",
            error_type=error_type,
            error_message=error_message,
            **(context or {}),
        )
    except Exception:
        logger.debug(f"Could not log error to Logfire: {error_type}")
