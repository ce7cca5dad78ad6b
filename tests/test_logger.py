"""Tests for the session logger."""

import logging
import sys
from unittest.mock import patch

from assetguard.util.logger import (
    DATE_FORMAT,
    LOG_FORMAT,
    LOGS_DIR,
    ColorFormatter,
    get_log_filepath,
    get_logger,
    handle_exception,
    should_use_color,
)


def _record(level: int, msg: str) -> logging.LogRecord:
    return logging.LogRecord(
        name="test", level=level, pathname="test.py", lineno=10, msg=msg, args=(), exc_info=None, func="test_func"
    )


class TestShouldUseColor:
    @patch("sys.stderr.isatty")
    def test_tty(self, mock_isatty):
        mock_isatty.return_value = True
        assert should_use_color() is True

    @patch("sys.stderr.isatty")
    def test_isatty_failure_disables_color(self, mock_isatty):
        mock_isatty.side_effect = Exception("Error")
        assert should_use_color() is False


class TestColorFormatter:
    def test_error_is_red(self):
        formatted = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(_record(logging.ERROR, "Upload rejected"))

        assert formatted.startswith("\033[31m")
        assert "Upload rejected" in formatted

    def test_unknown_level_is_plain(self):
        record = _record(logging.INFO, "plain")
        record.levelname = "NOTICE"

        formatted = ColorFormatter(LOG_FORMAT, datefmt=DATE_FORMAT).format(record)

        assert "\033[" not in formatted


class TestGetLogger:
    def test_same_name_returns_same_logger(self):
        assert get_logger("assetguard_test_a") is get_logger("assetguard_test_a")

    def test_logger_is_configured_once(self):
        logger = get_logger("assetguard_test_b")
        handlers = list(logger.handlers)

        get_logger("assetguard_test_b")

        assert logger.handlers == handlers
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

    def test_session_log_file_lives_in_logs_dir(self):
        path = get_log_filepath()

        assert path.parent == LOGS_DIR
        assert get_log_filepath() == path


class TestHandleException:
    def test_keyboard_interrupt_goes_to_default_hook(self):
        with patch.object(sys, "__excepthook__") as default_hook:
            handle_exception(KeyboardInterrupt, KeyboardInterrupt(), None)

        default_hook.assert_called_once()

    def test_other_exceptions_are_logged(self):
        with patch("logging.error") as log_error:
            handle_exception(ValueError, ValueError("boom"), None)

        log_error.assert_called_once()
