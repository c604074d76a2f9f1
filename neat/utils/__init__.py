"""Utilities module for neat."""

from .logging_config import setup_logging, get_logger, LoggingConfig, Timer
from .exceptions import (
    ErrorCode,
    NeatError,
    ConfigurationError,
    ScanError,
    InputParseError,
    FileOperationError,
    DeduplicationError,
    HistoryError,
    OperationCancelledError,
)
from .parsing import parse_size, parse_date, parse_duration, format_size

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "Timer",
    "ErrorCode",
    "NeatError",
    "ConfigurationError",
    "ScanError",
    "InputParseError",
    "FileOperationError",
    "DeduplicationError",
    "HistoryError",
    "OperationCancelledError",
    "parse_size",
    "parse_date",
    "parse_duration",
    "format_size",
]
