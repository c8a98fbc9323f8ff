"""
Unit tests for the logging configuration module.
"""

import logging
from pathlib import Path
from unittest.mock import patch

import pytest

from heritage_whisper.core.logging_config import (
    DETAILED_FORMAT,
    EmailRedactionFilter,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_logger,
    setup_logging,
)

MODULE = "heritage_whisper.core.logging_config"


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Put the root logger back the way the test runner configured it."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def console_handler() -> logging.Handler:
    return next(h for h in logging.getLogger().handlers if not isinstance(h, logging.FileHandler))


class TestSetupLoggingLevels:
    @pytest.mark.parametrize(
        "log_level, expected",
        [("DEBUG", logging.DEBUG), ("info", logging.INFO), ("WARNING", logging.WARNING), ("ERROR", logging.ERROR)],
    )
    def test_console_level(self, log_level, expected):
        setup_logging(log_level=log_level, enable_file=False)

        assert console_handler().level == expected

    def test_root_logger_captures_everything(self):
        setup_logging(log_level="ERROR", enable_file=False)

        assert logging.getLogger().level == logging.DEBUG


class TestSetupLoggingFormats:
    @pytest.mark.parametrize(
        "log_format, expected",
        [("simple", SIMPLE_FORMAT), ("detailed", DETAILED_FORMAT), ("json", JSON_FORMAT), ("unknown", DETAILED_FORMAT)],
    )
    def test_formatter(self, log_format, expected):
        setup_logging(log_format=log_format, enable_file=False)

        assert console_handler().formatter._fmt == expected


class TestSetupLoggingHandlers:
    def test_existing_handlers_are_replaced(self):
        stale = logging.StreamHandler()
        logging.getLogger().addHandler(stale)

        setup_logging(enable_file=False)

        handlers = logging.getLogger().handlers
        assert stale not in handlers
        assert len(handlers) == 1

    def test_file_handler_requires_setting(self, tmp_path: Path):
        with patch(f"{MODULE}.ENABLE_FILE_LOGGING", False), patch(f"{MODULE}.LOG_FILE_DIR", str(tmp_path)):
            setup_logging(enable_file=True)

        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)

    def test_file_handler_logs_debug(self, tmp_path: Path):
        log_dir = tmp_path / "nested" / "logs"

        with patch(f"{MODULE}.ENABLE_FILE_LOGGING", True), patch(f"{MODULE}.LOG_FILE_DIR", str(log_dir)):
            setup_logging(log_level="WARNING", enable_file=True)

        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == logging.DEBUG
        assert (log_dir / "heritage_whisper.log").exists()


class TestModuleLevels:
    @pytest.mark.parametrize(
        "module_name, expected",
        [
            ("heritage_whisper.prompts", logging.DEBUG),
            ("heritage_whisper.server.api", logging.DEBUG),
            ("sqlalchemy.engine", logging.WARNING),
            ("stripe", logging.WARNING),
        ],
    )
    def test_module_levels_applied(self, module_name, expected):
        setup_logging(enable_file=False)

        assert logging.getLogger(module_name).level == expected

    def test_every_domain_package_is_listed(self):
        for package in ("storytelling", "prompts", "notifications", "integrations"):
            assert f"heritage_whisper.{package}" in MODULE_LOG_LEVELS


class TestGetLogger:
    def test_returns_named_logger(self):
        logger = get_logger("heritage_whisper.storytelling.timeline")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "heritage_whisper.storytelling.timeline"

    def test_same_name_same_instance(self):
        assert get_logger("heritage_whisper.test") is get_logger("heritage_whisper.test")


class TestEmailRedaction:
    def record(self, msg, *args) -> logging.LogRecord:
        return logging.LogRecord("heritage_whisper.test", logging.INFO, __file__, 1, msg, args, None)

    def test_addresses_in_arguments_are_masked(self):
        record = self.record("Invitation sent to %s", "jane.doe@example.com")

        assert EmailRedactionFilter().filter(record) is True
        assert record.getMessage() == "Invitation sent to j***@example.com"

    def test_message_without_address_is_untouched(self):
        record = self.record("Story %s saved", "story-1")

        EmailRedactionFilter().filter(record)

        assert record.msg == "Story %s saved"
        assert record.args == ("story-1",)

    def test_handlers_mask_addresses(self, tmp_path: Path):
        with patch(f"{MODULE}.ENABLE_FILE_LOGGING", True), patch(f"{MODULE}.LOG_FILE_DIR", str(tmp_path)):
            setup_logging(enable_file=True)

        logging.getLogger("heritage_whisper.server.services").info("Welcome email to margaret@example.com")
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_text = (tmp_path / "heritage_whisper.log").read_text()
        assert "m***@example.com" in log_text
        assert "margaret@example.com" not in log_text
