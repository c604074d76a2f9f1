"""
Exceptions
==========

Every error neat raises derives from ``NeatError`` and carries an
``ErrorCode``. Root-path and input errors are fatal to a command; per-file
errors are caught by the engines and reported in their summaries.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Numeric codes, grouped by the component that raises them."""

    # General (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    PATH_NOT_FOUND = 1002
    PERMISSION_DENIED = 1003
    NOT_A_DIRECTORY = 1004
    CANCELLED = 1005

    # User input (1100-1199)
    INVALID_DURATION = 1100
    INVALID_SIZE = 1101
    INVALID_DATE = 1102

    # Moves, copies and deletes (1200-1299)
    MOVE_FAILED = 1200
    CREATE_DIR_FAILED = 1201
    DELETE_FAILED = 1202
    COPY_FAILED = 1203

    # Hashing and comparison (1300-1399)
    READ_ERROR = 1300
    HASH_COMPUTATION_FAILED = 1301

    # History (1400-1499)
    NO_HISTORY = 1400


def _merge(details: Optional[Dict[str, Any]], **fields) -> Dict[str, Any]:
    """Copy ``details`` and add the fields that are set."""
    merged = dict(details or {})
    merged.update({key: value for key, value in fields.items() if value is not None})
    return merged


class NeatError(Exception):
    """Base class for neat errors.

    Attributes:
        message: What went wrong, suitable for showing to the user.
        error_code: Machine-readable code.
        details: Context such as the offending path or value.
        cause: The lower-level exception, if any.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.error_code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause is not None:
            parts.append(f"Caused by: {type(self.cause).__name__}: {self.cause}")
        return " | ".join(parts)

    def to_dict(self) -> dict:
        """Serializable form, for the JSON log."""
        return {
            "error_type": type(self).__name__,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "message": self.message,
            "details": self.details,
            "cause": None if self.cause is None else str(self.cause),
        }


class ConfigurationError(NeatError):
    """Bad configuration or option value.

    Raised for an unreadable config file, an invalid regular expression
    filter, or an unknown organize mode or conflict strategy.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message,
            ErrorCode.CONFIGURATION_ERROR,
            _merge(details, config_key=config_key, expected_type=expected_type),
            cause
        )


class ScanError(NeatError):
    """The scan root is missing, is not a directory, or cannot be read."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.PATH_NOT_FOUND,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, error_code, _merge(details, path=path), cause)


class InputParseError(NeatError):
    """A user-supplied size, date or duration is malformed."""

    def __init__(
        self,
        message: str,
        value: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_DURATION,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message, error_code, _merge(details, value=value), cause)


class FileOperationError(NeatError):
    """A move, copy, delete or directory creation failed.

    ``details`` holds ``from``, ``to`` and ``reason`` (the OS error text)
    when they are known.
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        destination: Optional[str] = None,
        reason: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.MOVE_FAILED,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        # "from" is a keyword, so the keys are set by hand
        merged = _merge(details, to=destination, reason=reason)
        if source is not None:
            merged["from"] = source
        super().__init__(message, error_code, merged, cause)


class DeduplicationError(NeatError):
    """A file could not be read while hashing or comparing."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        hash_type: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.READ_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(
            message,
            error_code,
            _merge(details, file_path=file_path, hash_type=hash_type),
            cause
        )


class HistoryError(NeatError):
    """There is nothing to undo."""

    def __init__(self, message: str = "No operations to undo", **kwargs):
        super().__init__(message, error_code=ErrorCode.NO_HISTORY, **kwargs)


class OperationCancelledError(NeatError):
    """The user answered no to a confirmation prompt."""

    def __init__(self, message: str = "Operation cancelled by user", **kwargs):
        super().__init__(message, error_code=ErrorCode.CANCELLED, **kwargs)
