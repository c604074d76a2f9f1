"""
Logging Configuration
=====================

Structured logging for neat. Console lines are human readable; the
rotating log file under ``~/.neat/logs`` holds one JSON object per line.

Every record carries a correlation ID so the lines of a single command
invocation can be grouped, including lines logged from the hashing
worker threads. ``LogContext`` attaches extra fields (such as the
command name) to everything logged inside a ``with`` block.
"""

import logging
import logging.handlers
import json
import sys
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from dataclasses import dataclass, field
import threading


ROOT_LOGGER_NAME = "neat"

# One command per process, so the ID and context are process-wide
_correlation_id: Optional[str] = None
_context_fields: Dict[str, Any] = {}
_context_lock = threading.Lock()


def get_correlation_id() -> str:
    """Get the correlation ID, creating one on first use."""
    global _correlation_id
    if _correlation_id is None:
        _correlation_id = uuid.uuid4().hex[:8]
    return _correlation_id


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID stamped on subsequent records."""
    global _correlation_id
    _correlation_id = correlation_id


class ContextFilter(logging.Filter):
    """Stamps records with the correlation ID and active LogContext fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        with _context_lock:
            fields = dict(_context_fields)
        for key, value in fields.items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for the log file."""

    EXTRA_FIELDS = ("file_path", "operation", "command", "duration_ms")

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in self.EXTRA_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_data[key] = value

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Short console lines, with the level coloured on a terminal."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_color: bool = True):
        super().__init__(
            fmt="[%(asctime)s] %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = get_correlation_id()
        level = f"{record.levelname:8}"
        if self.use_color and record.levelname in self.COLORS:
            level = f"{self.COLORS[record.levelname]}{level}{self.RESET}"
        values = dict(record.__dict__, levelname=level)
        return self._style._fmt % values


@dataclass
class LoggingConfig:
    """Configuration for the logging system.

    Attributes:
        level: Console log level name.
        log_dir: Directory for the rotating JSON log file.
        console_output: Log to stderr.
        file_output: Log to ``log_dir/neat.log`` at DEBUG regardless of ``level``.
        json_format: Use JSON on the console as well.
        max_file_size: Rotation threshold in bytes.
        backup_count: Rotated files kept.
    """
    level: str = "WARNING"
    log_dir: Path = field(default_factory=lambda: Path.home() / ".neat" / "logs")
    console_output: bool = True
    file_output: bool = True
    json_format: bool = False
    max_file_size: int = 5 * 1024 * 1024  # 5MB
    backup_count: int = 3


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """Set up the ``neat`` logger hierarchy.

    Safe to call more than once; previous handlers are closed and replaced.

    Args:
        config: Logging configuration. Uses defaults if not provided.
    """
    config = config or LoggingConfig()
    console_level = getattr(logging, config.level.upper(), logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    handlers = []
    if config.console_output:
        console = logging.StreamHandler(sys.stderr)
        console.setLevel(console_level)
        console.setFormatter(
            JSONFormatter() if config.json_format
            else ConsoleFormatter(use_color=sys.stderr.isatty())
        )
        handlers.append(console)

    if config.file_output:
        try:
            config.log_dir.mkdir(parents=True, exist_ok=True)
            log_file = logging.handlers.RotatingFileHandler(
                config.log_dir / "neat.log",
                maxBytes=config.max_file_size,
                backupCount=config.backup_count,
                encoding='utf-8'
            )
        except OSError as e:
            sys.stderr.write(f"neat: file logging disabled ({e})\n")
        else:
            log_file.setLevel(logging.DEBUG)
            log_file.setFormatter(JSONFormatter())
            handlers.append(log_file)

    context_filter = ContextFilter()
    for handler in handlers:
        handler.addFilter(context_filter)
        logger.addHandler(handler)

    # Handlers do the level filtering
    logger.setLevel(min([h.level for h in handlers], default=console_level))
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the ``neat`` namespace.

    Args:
        name: Module name, typically ``__name__``.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class LogContext:
    """Adds fields to every record logged inside the block.

    Example::

        with LogContext(logger, command="organize"):
            ...
    """

    def __init__(self, logger: logging.Logger, **context):
        self.logger = logger
        self.context = context
        self._previous: Dict[str, Any] = {}

    def __enter__(self):
        with _context_lock:
            self._previous = dict(_context_fields)
            _context_fields.update(self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        with _context_lock:
            _context_fields.clear()
            _context_fields.update(self._previous)
        return False


class Timer:
    """Context manager that logs how long a block took."""

    def __init__(self, logger: logging.Logger, operation: str):
        """Initialize timer.

        Args:
            logger: Logger to log the duration to.
            operation: Name of the operation being timed.
        """
        self.logger = logger
        self.operation = operation
        self.start_time = None
        self.duration_ms = 0.0

    def __enter__(self):
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_ms = round((time.perf_counter() - self.start_time) * 1000, 2)
        self.logger.info(
            f"Operation completed: {self.operation}",
            extra={"operation": self.operation, "duration_ms": self.duration_ms},
        )
        return False
