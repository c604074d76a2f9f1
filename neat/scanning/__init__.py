"""Directory scanning and file filters."""

from .scanner import (
    DirectoryStats,
    FileRecord,
    collect_stats,
    scan_directory,
    total_size,
    find_old_files,
)
from .filters import (
    ScanFilters,
    NameFilter,
    matches_regex,
    matches_mime,
    get_mime_type,
    is_ignored,
    load_ignore_patterns,
)

__all__ = [
    "FileRecord",
    "scan_directory",
    "total_size",
    "DirectoryStats",
    "collect_stats",
    "find_old_files",
    "ScanFilters",
    "NameFilter",
    "matches_regex",
    "matches_mime",
    "get_mime_type",
    "is_ignored",
    "load_ignore_patterns",
]
