"""
Scan Filters
============

Predicates applied by the scanner: name prefix/suffix/substring, regular
expression, MIME type and ignore globs, plus ``.neatignore`` loading.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from fnmatch import fnmatchcase
from pathlib import Path
from typing import List, Optional, Pattern, Union

from neat.utils.exceptions import ConfigurationError
from neat.utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy import
magic = None
_mime_detector = None

IGNORE_FILE_NAME = ".neatignore"


@dataclass
class ScanFilters:
    """Which files a scan keeps.

    Every active filter must pass for a file to be kept. ``None`` means the
    bound is not applied. Size and date bounds are inclusive.

    Attributes:
        include_hidden: Keep dot-files and descend into dot-directories.
        max_depth: 1 keeps only the root's immediate children; None is unlimited.
        follow_symlinks: Follow links to files and directories.
        ignore_patterns: Globs matched against the base name or the full path.
        min_size: Smallest size in bytes to keep.
        max_size: Largest size in bytes to keep.
        after: Keep files modified at or after this time.
        before: Keep files modified at or before this time.
        name_startswith: Stem must start with this (case-insensitive).
        name_endswith: Stem must end with this (case-insensitive).
        name_contains: Full name must contain this (case-insensitive).
        regex: Regular expression searched for in the file name.
        mime: MIME type such as ``application/pdf`` or ``image/*``.
    """
    include_hidden: bool = False
    max_depth: Optional[int] = None
    follow_symlinks: bool = False
    ignore_patterns: List[str] = field(default_factory=list)
    min_size: Optional[int] = None
    max_size: Optional[int] = None
    after: Optional[datetime] = None
    before: Optional[datetime] = None
    name_startswith: Optional[str] = None
    name_endswith: Optional[str] = None
    name_contains: Optional[str] = None
    regex: Optional[str] = None
    mime: Optional[str] = None

    def name_filter(self) -> "NameFilter":
        return NameFilter(
            startswith=self.name_startswith,
            endswith=self.name_endswith,
            contains=self.name_contains,
        )

    def compiled_regex(self) -> Optional[Pattern]:
        """Compile the regex filter.

        Raises:
            ConfigurationError: If the expression is invalid.
        """
        if not self.regex:
            return None
        try:
            return re.compile(self.regex)
        except re.error as e:
            raise ConfigurationError(
                f"Invalid regular expression: {self.regex}",
                config_key="regex",
                cause=e
            )


@dataclass
class NameFilter:
    """Case-insensitive name filter.

    Prefix and suffix are checked against the name without its extension;
    the substring is checked against the full name.
    """
    startswith: Optional[str] = None
    endswith: Optional[str] = None
    contains: Optional[str] = None

    def is_empty(self) -> bool:
        return not (self.startswith or self.endswith or self.contains)

    def matches(self, filename: str) -> bool:
        name = filename.lower()
        stem = Path(name).stem or name

        if self.startswith and not stem.startswith(self.startswith.lower()):
            return False
        if self.endswith and not stem.endswith(self.endswith.lower()):
            return False
        if self.contains and self.contains.lower() not in name:
            return False
        return True


def matches_regex(filename: str, pattern: Union[str, Pattern]) -> bool:
    """Check whether ``pattern`` occurs anywhere in ``filename``."""
    if isinstance(pattern, str):
        pattern = re.compile(pattern)
    return pattern.search(filename) is not None


def _import_magic():
    """Lazy import python-magic."""
    global magic
    if magic is None:
        import magic as _magic
        magic = _magic
    return magic


def _get_mime_detector():
    """Shared ``magic.Magic(mime=True)`` instance, or False if unavailable."""
    global _mime_detector
    if _mime_detector is None:
        try:
            _mime_detector = _import_magic().Magic(mime=True)
        except Exception as e:
            logger.warning(f"python-magic not available, MIME filter matches nothing: {e}")
            _mime_detector = False
    return _mime_detector


def get_mime_type(path: Union[str, Path]) -> Optional[str]:
    """Detect the MIME type of a file from its content.

    Returns None if the file cannot be read or libmagic is missing.
    """
    detector = _get_mime_detector()
    if not detector:
        return None
    try:
        return detector.from_file(str(path))
    except Exception as e:
        logger.debug(f"Could not detect MIME type of {path}: {e}")
        return None


def matches_mime(path: Union[str, Path], mime_filter: str) -> bool:
    """Check a file against a MIME filter.

    Supports exact types (``application/pdf``) and wildcards (``image/*``).
    Files with no known type never match.
    """
    mime_type = get_mime_type(path)
    if mime_type is None:
        return False

    if mime_filter.endswith("/*"):
        return mime_type.startswith(mime_filter[:-1])
    return mime_type == mime_filter


def is_ignored(path: Union[str, Path], patterns: List[str]) -> bool:
    """Check if a path matches any ignore glob by base name or full path."""
    path_str = str(path)
    name = Path(path_str).name
    return any(
        fnmatchcase(name, pattern) or fnmatchcase(path_str, pattern)
        for pattern in patterns
    )


def load_ignore_patterns(directory: Union[str, Path]) -> List[str]:
    """Load ignore globs from a ``.neatignore`` file in ``directory``.

    Blank lines and lines starting with ``#`` are skipped. A missing or
    unreadable file yields no patterns.
    """
    ignore_file = Path(directory) / IGNORE_FILE_NAME
    if not ignore_file.is_file():
        return []

    try:
        with open(ignore_file, 'r', encoding='utf-8') as f:
            lines = [line.strip() for line in f]
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read {ignore_file}: {e}")
        return []

    patterns = [line for line in lines if line and not line.startswith('#')]
    logger.debug(f"Loaded {len(patterns)} ignore patterns from {ignore_file}")
    return patterns
