"""Structured logging for the paper backtester."""

from paper_backtester.logging.logger import (
    LoggerMixin,
    get_logger,
    log_context,
    setup_logging,
)

__all__ = ["get_logger", "setup_logging", "LoggerMixin", "log_context"]
