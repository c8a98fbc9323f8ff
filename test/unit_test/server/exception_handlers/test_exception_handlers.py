"""
Unit tests for server exception handlers.

Tests cover domain errors, third-party integration errors and the global
fallback handler.
"""

import json
from unittest.mock import Mock, patch

import pytest
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from heritage_whisper.core.errors import (
    NotFoundError,
    PaymentRequiredError,
    RateLimitExceededError,
    ValidationFailedError,
)
from heritage_whisper.integrations import (
    IntegrationNotConfiguredError,
    PDFShiftApiError,
    ResendApiError,
    TranscriptionError,
)
from heritage_whisper.server.exception_handlers import setup_exception_handlers
from heritage_whisper.server.exception_handlers.domain_handler import (
    domain_exception_handler,
    integration_exception_handler,
)
from heritage_whisper.server.exception_handlers.global_handler import global_exception_handler


@pytest.fixture
def mock_request():
    """Create a mock request object."""
    request = Mock(spec=Request)
    request.method = "GET"
    request.url.path = "/api/v1/test"
    request.query_params = {}
    request.client = Mock()
    request.client.host = "127.0.0.1"
    return request


def body_of(response: JSONResponse) -> dict:
    return json.loads(response.body.decode())


class TestDomainExceptionHandler:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "exc, status_code",
        [
            (ValidationFailedError("Bad input"), 400),
            (PaymentRequiredError("Upgrade to keep recording"), 402),
            (NotFoundError("Story not found"), 404),
        ],
    )
    async def test_status_and_detail(self, mock_request, exc, status_code):
        response = await domain_exception_handler(mock_request, exc)

        assert response.status_code == status_code
        assert body_of(response) == {"detail": exc.message}

    @pytest.mark.asyncio
    async def test_rate_limit_sets_retry_after(self, mock_request):
        response = await domain_exception_handler(mock_request, RateLimitExceededError("Slow down", retry_after=42))

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"


class TestIntegrationExceptionHandler:
    @pytest.mark.asyncio
    async def test_not_configured_is_503(self, mock_request):
        response = await integration_exception_handler(mock_request, IntegrationNotConfiguredError("Stripe"))

        assert response.status_code == 503

    @pytest.mark.asyncio
    @pytest.mark.parametrize("upstream", [400, 413, 503])
    async def test_client_facing_status_passes_through(self, mock_request, upstream):
        response = await integration_exception_handler(
            mock_request, TranscriptionError("Transcription failed", status_code=upstream)
        )

        assert response.status_code == upstream

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exc", [ResendApiError("Resend send failed: 500", status_code=500), PDFShiftApiError("x")])
    async def test_other_failures_are_bad_gateway(self, mock_request, exc):
        with patch("heritage_whisper.server.exception_handlers.domain_handler.logger") as mock_logger:
            response = await integration_exception_handler(mock_request, exc)

        assert response.status_code == 502
        assert body_of(response) == {"detail": exc.message}
        mock_logger.warning.assert_called_once()


class TestGlobalExceptionHandler:
    """Test suite for global exception handler."""

    @pytest.mark.asyncio
    async def test_exception_handler_logs_error(self, mock_request):
        """Test that exception handler logs errors."""
        exc = ValueError("Test error")

        with patch("heritage_whisper.server.exception_handlers.global_handler.logger") as mock_logger:
            await global_exception_handler(mock_request, exc)

            mock_logger.error.assert_called_once()
            call_args = mock_logger.error.call_args
            assert "Unhandled exception" in call_args[0][0]
            assert call_args[1]["extra"]["error_type"] == "ValueError"
            assert call_args[1]["extra"]["client"] == "127.0.0.1"

    @pytest.mark.asyncio
    async def test_response_body(self, mock_request):
        with patch("heritage_whisper.server.exception_handlers.global_handler.logger"):
            response = await global_exception_handler(mock_request, RuntimeError("Test error"))

        body = body_of(response)
        assert response.status_code == 500
        assert body["detail"] == "Internal server error"
        assert body["error_type"] == "RuntimeError"
        assert len(body["error_id"]) == 12

    @pytest.mark.asyncio
    async def test_error_is_reported_to_monitoring(self, mock_request):
        with patch("heritage_whisper.server.exception_handlers.global_handler.log_error") as mock_log_error:
            response = await global_exception_handler(mock_request, KeyError("story"))

        mock_log_error.assert_called_once()
        args = mock_log_error.call_args[0]
        assert args[0] == "KeyError"
        assert args[2]["error_id"] == body_of(response)["error_id"]

    @pytest.mark.asyncio
    async def test_missing_client(self, mock_request):
        mock_request.client = None

        with patch("heritage_whisper.server.exception_handlers.global_handler.logger") as mock_logger:
            await global_exception_handler(mock_request, RuntimeError("boom"))

        assert mock_logger.error.call_args[1]["extra"]["client"] == "unknown"


class TestSetupExceptionHandlers:
    @pytest.mark.asyncio
    async def test_registered_handlers_answer_requests(self):
        app = FastAPI()
        setup_exception_handlers(app)

        @app.get("/missing")
        async def missing():
            raise NotFoundError("Story not found")

        @app.get("/unconfigured")
        async def unconfigured():
            raise IntegrationNotConfiguredError("PDFShift")

        @app.get("/boom")
        async def boom():
            raise RuntimeError("boom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            assert (await client.get("/missing")).json() == {"detail": "Story not found"}
            assert (await client.get("/unconfigured")).status_code == 503
            response = await client.get("/boom")
            assert response.status_code == 500
            assert response.json()["error_type"] == "RuntimeError"
