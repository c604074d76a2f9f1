"""
Input Parsing
=============

Parses the human-friendly sizes, dates and durations accepted on the
command line, and formats byte counts for display.
"""

import math
import re
from datetime import datetime, timedelta

from .exceptions import ErrorCode, InputParseError


KB = 1024
MB = KB * 1024
GB = MB * 1024
TB = GB * 1024

# Longest suffixes first so "MB" is not read as "B"
_SIZE_SUFFIXES = (
    ("TB", TB),
    ("GB", GB),
    ("MB", MB),
    ("KB", KB),
    ("B", 1),
    ("T", TB),
    ("G", GB),
    ("M", MB),
    ("K", KB),
)

_SIZE_NUMBER = re.compile(r"^[0-9]+(\.[0-9]+)?$")
_DURATION_NUMBER = re.compile(r"^[0-9]+$")

_DURATION_UNITS = {
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def format_size(size_bytes: int) -> str:
    """Format a byte count as a human-readable string.

    Args:
        size_bytes: Number of bytes.

    Returns:
        String such as ``"512 B"`` or ``"1.50 KB"``.
    """
    if size_bytes >= GB:
        return f"{size_bytes / GB:.2f} GB"
    if size_bytes >= MB:
        return f"{size_bytes / MB:.2f} MB"
    if size_bytes >= KB:
        return f"{size_bytes / KB:.2f} KB"
    return f"{size_bytes} B"


def parse_size(value: str) -> int:
    """Parse a size such as ``"10MB"``, ``"1.5G"`` or ``"1024"`` into bytes.

    Units are binary (1 KB = 1024 bytes). A bare number is bytes.

    Raises:
        InputParseError: If the value is not a non-negative size.
    """
    text = value.strip().upper()

    number, multiplier = text, 1
    for suffix, factor in _SIZE_SUFFIXES:
        if text.endswith(suffix):
            number, multiplier = text[:-len(suffix)], factor
            break

    number = number.strip()
    if number.startswith("-") and _SIZE_NUMBER.match(number[1:]):
        raise InputParseError(
            "Size cannot be negative",
            value=value,
            error_code=ErrorCode.INVALID_SIZE,
        )

    # Plain decimals only: float() would also take "inf", "nan" and "1e400"
    if not _SIZE_NUMBER.match(number):
        raise InputParseError(
            f"Invalid size format: {value}",
            value=value,
            error_code=ErrorCode.INVALID_SIZE,
        )

    amount = float(number) * multiplier
    if not math.isfinite(amount):
        raise InputParseError(
            f"Size is too large: {value}",
            value=value,
            error_code=ErrorCode.INVALID_SIZE,
        )
    return int(amount)


def parse_date(value: str) -> datetime:
    """Parse ``YYYY-MM-DD`` or ``YYYY/MM/DD`` into a datetime at midnight.

    Raises:
        InputParseError: If the value matches neither format.
    """
    text = value.strip()
    if "-" in text:
        fmt = "%Y-%m-%d"
    elif "/" in text:
        fmt = "%Y/%m/%d"
    else:
        raise InputParseError(
            f"Invalid date format: {value}. Use YYYY-MM-DD or YYYY/MM/DD",
            value=value,
            error_code=ErrorCode.INVALID_DATE,
        )

    try:
        return datetime.strptime(text, fmt)
    except ValueError as e:
        raise InputParseError(
            f"Invalid date: {value}. Use YYYY-MM-DD or YYYY/MM/DD",
            value=value,
            error_code=ErrorCode.INVALID_DATE,
            cause=e,
        )


def parse_duration(value: str) -> timedelta:
    """Parse a duration such as ``"30d"``, ``"12h"`` or ``"1w"``.

    A number without a unit is read as days.

    Raises:
        InputParseError: If the value is empty or malformed.
    """
    text = value.strip().lower()
    if not text:
        raise InputParseError(
            "Duration cannot be empty",
            value=value,
            error_code=ErrorCode.INVALID_DURATION,
        )

    unit = text[-1]
    if unit in _DURATION_UNITS:
        number = text[:-1]
    else:
        number, unit = text, "d"

    if not _DURATION_NUMBER.match(number):
        raise InputParseError(
            f"Invalid duration format: {value}. Use formats like 30d, 7d, 1w",
            value=value,
            error_code=ErrorCode.INVALID_DURATION,
        )

    try:
        return timedelta(seconds=int(number) * _DURATION_UNITS[unit])
    except OverflowError as e:
        raise InputParseError(
            f"Duration is too large: {value}",
            value=value,
            error_code=ErrorCode.INVALID_DURATION,
            cause=e,
        )
