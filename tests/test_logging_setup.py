"""Tests for structured logging setup."""

import logging

import structlog

from paper_backtester.logging import LoggerMixin, get_logger, log_context, setup_logging
from paper_backtester.logging.logger import ERROR_LOG_FILE, RUN_LOG_FILE


class Component(LoggerMixin):
    pass


class TestLogging:

    def test_file_handlers(self, tmp_path):
        setup_logging(log_level="DEBUG", log_dir=tmp_path, log_to_console=False, log_to_file=True)
        get_logger("tests").info("written to file", answer=42)
        for handler in logging.getLogger().handlers:
            handler.flush()

        assert "written to file" in (tmp_path / RUN_LOG_FILE).read_text()
        assert (tmp_path / ERROR_LOG_FILE).exists()

    def test_log_context_binds_and_unbinds(self):
        with log_context(run_id="abc123"):
            assert structlog.contextvars.get_contextvars()["run_id"] == "abc123"
        assert "run_id" not in structlog.contextvars.get_contextvars()

    def test_logger_mixin(self):
        assert Component().logger is not None

    def test_level_names_are_case_insensitive(self):
        setup_logging(log_level="warning", log_to_console=False)
        assert logging.getLogger().level == logging.WARNING
