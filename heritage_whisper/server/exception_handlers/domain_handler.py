"""
Handlers for typed domain and integration errors.

``HeritageWhisperError`` subclasses carry their own status code. Errors from
third-party services answer 502 unless the request itself was at fault or the
service is not configured.
"""

from fastapi import Request
from fastapi.responses import JSONResponse

from heritage_whisper.core.errors import HeritageWhisperError, RateLimitExceededError
from heritage_whisper.core.logging_config import get_logger
from heritage_whisper.integrations.errors import IntegrationError, IntegrationNotConfiguredError

logger = get_logger(__name__)

# Upstream statuses caused by the request itself, passed through unchanged.
CLIENT_FACING_STATUS_CODES = (400, 413, 503)


async def domain_exception_handler(request: Request, exc: HeritageWhisperError) -> JSONResponse:
    """Translate a domain error into ``{"detail": message}`` with the error's status code."""
    logger.info(f"{type(exc).__name__} in {request.method} {request.url.path}: {exc.message}")
    headers = {}
    if isinstance(exc, RateLimitExceededError):
        headers["Retry-After"] = str(exc.retry_after)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers or None)


async def integration_exception_handler(request: Request, exc: IntegrationError) -> JSONResponse:
    """Translate a third-party failure into a gateway error without leaking provider details."""
    if isinstance(exc, IntegrationNotConfiguredError):
        status_code = 503
    elif exc.status_code in CLIENT_FACING_STATUS_CODES:
        status_code = exc.status_code
    else:
        status_code = 502
    logger.warning(
        f"{type(exc).__name__} in {request.method} {request.url.path}: {exc.message}",
        extra={"status_code": exc.status_code, "details": exc.details},
    )
    return JSONResponse(status_code=status_code, content={"detail": exc.message})
