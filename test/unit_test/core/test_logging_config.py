"""Unit tests for logging configuration module.

Tests verify that the logging configuration functions work correctly with different
log levels and formats, and that the build channel is wired to its own file.
"""

import logging
from unittest.mock import patch

import pytest

from sitedeploy.core import logging_config
from sitedeploy.core.logging_config import (
    BUILD_CHANNEL,
    BUILD_LOG_FILE,
    DETAILED_FORMAT,
    JSON_FORMAT,
    MODULE_LOG_LEVELS,
    SIMPLE_FORMAT,
    get_build_logger,
    get_logger,
    setup_logging,
)


def _console_handler():
    root_logger = logging.getLogger()
    return next(
        (h for h in root_logger.handlers if type(h) is logging.StreamHandler),
        None,
    )


class TestSetupLoggingLogLevels:
    """Test setup_logging with different log levels."""

    @pytest.mark.parametrize(
        "log_level,expected_level",
        [
            ("DEBUG", logging.DEBUG),
            ("INFO", logging.INFO),
            ("WARNING", logging.WARNING),
            ("ERROR", logging.ERROR),
            ("debug", logging.DEBUG),
        ],
    )
    def test_setup_logging_with_different_levels(self, log_level, expected_level):
        setup_logging(log_level=log_level, enable_file=False)

        console_handler = _console_handler()
        assert console_handler is not None
        assert console_handler.level == expected_level

    def test_setup_logging_does_not_duplicate_handlers(self):
        setup_logging(enable_file=False)
        setup_logging(enable_file=False)

        stream_handlers = [h for h in logging.getLogger().handlers if type(h) is logging.StreamHandler]
        assert len(stream_handlers) == 1

    def test_module_levels_applied(self):
        setup_logging(enable_file=False)

        for module_name, level in MODULE_LOG_LEVELS.items():
            assert logging.getLogger(module_name).level == logging.getLevelName(level)


class TestSetupLoggingFormats:
    @pytest.mark.parametrize(
        "log_format,expected",
        [("simple", SIMPLE_FORMAT), ("detailed", DETAILED_FORMAT), ("json", JSON_FORMAT), ("unknown", DETAILED_FORMAT)],
    )
    def test_format_selection(self, log_format, expected):
        setup_logging(log_format=log_format, enable_file=False)

        assert _console_handler().formatter._fmt == expected


class TestFileLogging:
    def test_build_channel_gets_its_own_file(self, tmp_path):
        with (
            patch.object(logging_config, "LOG_FILE_DIR", str(tmp_path)),
            patch.object(logging_config, "ENABLE_FILE_LOGGING", True),
        ):
            setup_logging(enable_file=True)
            try:
                get_build_logger().info("build step")
                for handler in get_build_logger().handlers:
                    handler.flush()

                assert (tmp_path / "sitedeploy.log").exists()
                assert "build step" in (tmp_path / BUILD_LOG_FILE).read_text()
            finally:
                setup_logging(enable_file=False)

    def test_disabled_file_logging_leaves_build_channel_without_handlers(self):
        setup_logging(enable_file=False)

        assert get_build_logger().handlers == []
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)


class TestGetLogger:
    def test_get_logger_returns_named_logger(self):
        assert get_logger("sitedeploy.test").name == "sitedeploy.test"

    def test_build_logger_is_the_build_channel(self):
        assert get_build_logger().name == BUILD_CHANNEL
        assert get_build_logger().propagate is True
