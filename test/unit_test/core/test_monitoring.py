"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Environment variable parsing
- Opt-in initialization and instrumentation flags
- Custom logging functions (API requests, LLM calls, emails, errors)
- Graceful degradation when Logfire itself fails
"""

import importlib
import os
from unittest.mock import MagicMock, patch

import pytest

import heritage_whisper.core.monitoring as monitoring

MODULE = "heritage_whisper.core.monitoring"


@pytest.fixture
def reload_with_env():
    """Reload the module under a patched environment and restore it afterwards."""

    def _reload(env: dict[str, str]):
        with patch.dict(os.environ, env, clear=True):
            return importlib.reload(monitoring)

    yield _reload
    importlib.reload(monitoring)


class TestLogfireEnvironmentConfiguration:
    def test_disabled_by_default(self, reload_with_env):
        module = reload_with_env({})

        assert module.LOGFIRE_ENABLED is False
        assert module.LOGFIRE_TOKEN == ""
        assert module.LOGFIRE_SERVICE_NAME == "heritage-whisper-api"
        assert module.LOGFIRE_SAMPLE_RATE == 1.0

    @pytest.mark.parametrize("value", ["true", "TRUE", "1", "yes"])
    def test_enabled_values(self, reload_with_env, value):
        assert reload_with_env({"LOGFIRE_ENABLED": value}).LOGFIRE_ENABLED is True

    def test_trace_flags(self, reload_with_env):
        module = reload_with_env({"LOGFIRE_TRACE_SQLALCHEMY": "false", "LOGFIRE_SAMPLE_RATE": "0.25"})

        assert module.LOGFIRE_TRACE_SQLALCHEMY is False
        assert module.LOGFIRE_TRACE_HTTPX is True
        assert module.LOGFIRE_SAMPLE_RATE == 0.25


class TestInitializeLogfire:
    def test_disabled_does_not_configure(self):
        with patch(f"{MODULE}.LOGFIRE_ENABLED", False), patch(f"{MODULE}.logfire") as mock_logfire:
            assert monitoring.initialize_logfire() is False

        mock_logfire.configure.assert_not_called()

    def test_missing_token_warns(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", ""),
            patch(f"{MODULE}.logfire") as mock_logfire,
            patch(f"{MODULE}.logger") as mock_logger,
        ):
            assert monitoring.initialize_logfire() is False

        mock_logfire.configure.assert_not_called()
        mock_logger.warning.assert_called_once()

    def test_configure_failure_returns_false(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            mock_logfire.configure.side_effect = RuntimeError("bad token")

            assert monitoring.initialize_logfire() is False

        mock_logfire.instrument_httpx.assert_not_called()

    def test_instruments_enabled_integrations(self):
        app = MagicMock()

        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.LOGFIRE_TRACE_SQLALCHEMY", False),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            assert monitoring.initialize_logfire(app) is True

        assert mock_logfire.configure.call_args[1]["token"] == "token"
        mock_logfire.instrument_pydantic_ai.assert_called_once_with()
        mock_logfire.instrument_httpx.assert_called_once_with()
        mock_logfire.instrument_sqlalchemy.assert_not_called()
        mock_logfire.instrument_fastapi.assert_called_once_with(app=app)

    def test_instrumentation_failure_is_tolerated(self):
        with (
            patch(f"{MODULE}.LOGFIRE_ENABLED", True),
            patch(f"{MODULE}.LOGFIRE_TOKEN", "token"),
            patch(f"{MODULE}.logfire") as mock_logfire,
        ):
            mock_logfire.instrument_httpx.side_effect = RuntimeError("not installed")

            assert monitoring.initialize_logfire() is True

        mock_logfire.instrument_fastapi.assert_not_called()


class TestLoggingFunctions:
    def test_log_api_request(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            monitoring.log_api_request("GET", "/api/v1/stories", 200, 12.5)

        mock_logfire.info.assert_called_once_with(
            "API request completed", method="GET", path="/api/v1/stories", status_code=200, duration_ms=12.5
        )

    def test_log_llm_call(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            monitoring.log_llm_call("whisper-1", "transcription")

        assert mock_logfire.info.call_args[1] == {"model": "whisper-1", "purpose": "transcription", "tokens_used": None}

    def test_log_email_sent(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            monitoring.log_email_sent("weekly_digest", 3, True)

        assert mock_logfire.info.call_args[1]["recipient_count"] == 3

    def test_log_error_includes_context(self):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            monitoring.log_error("ValueError", "bad", {"error_id": "abc123", "path": "/api/v1/stories"})

        kwargs = mock_logfire.error.call_args[1]
        assert kwargs["error_type"] == "ValueError"
        assert kwargs["error_id"] == "abc123"
        assert kwargs["path"] == "/api/v1/stories"

    @pytest.mark.parametrize(
        "call",
        [
            lambda: monitoring.log_api_request("GET", "/", 200, 1.0),
            lambda: monitoring.log_llm_call("gpt-4o", "tier3"),
            lambda: monitoring.log_email_sent("invite", 1, False),
            lambda: monitoring.log_error("KeyError", "missing"),
        ],
    )
    def test_logfire_failures_are_swallowed(self, call):
        with patch(f"{MODULE}.logfire") as mock_logfire:
            mock_logfire.info.side_effect = RuntimeError("exporter down")
            mock_logfire.error.side_effect = RuntimeError("exporter down")

            call()
