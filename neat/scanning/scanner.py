"""
Directory Scanner
=================

Walks a directory tree and produces immutable FileRecord snapshots for
every regular file that passes the active ScanFilters.
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from neat.config.categories import classify
from neat.utils.exceptions import ErrorCode, ScanError
from neat.utils.logging_config import get_logger
from .filters import ScanFilters, is_ignored, matches_mime, matches_regex

logger = get_logger(__name__)


@dataclass(frozen=True)
class FileRecord:
    """Snapshot of one file taken at scan time.

    Attributes:
        path: Absolute path to the file.
        name: Base name including extension.
        extension: Lowercase extension without the dot, or None.
        size: Size in bytes.
        modified: Last modification time (local).
        created: Creation time where the platform reports one.
    """
    path: Path
    name: str
    extension: Optional[str]
    size: int
    modified: datetime
    created: Optional[datetime] = None

    @property
    def stem(self) -> str:
        return self.path.stem

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "FileRecord":
        """Build a record by stat-ing ``path`` (following links).

        Raises:
            OSError: If the file cannot be stat-ed.
        """
        path = Path(os.path.abspath(path))
        stat = path.stat()
        suffix = path.suffix
        birth = getattr(stat, "st_birthtime", None)
        return cls(
            path=path,
            name=path.name,
            extension=suffix[1:].lower() if suffix else None,
            size=stat.st_size,
            modified=datetime.fromtimestamp(stat.st_mtime),
            created=datetime.fromtimestamp(birth) if birth is not None else None,
        )


def _check_root(root: Path) -> None:
    if not root.exists():
        raise ScanError(
            f"Path does not exist: {root}",
            path=str(root),
            error_code=ErrorCode.PATH_NOT_FOUND
        )
    if not root.is_dir():
        raise ScanError(
            f"Not a directory: {root}",
            path=str(root),
            error_code=ErrorCode.NOT_A_DIRECTORY
        )
    if not os.access(root, os.R_OK | os.X_OK):
        raise ScanError(
            f"Permission denied: {root}",
            path=str(root),
            error_code=ErrorCode.PERMISSION_DENIED
        )


def _walk(root: Path, filters: ScanFilters) -> Iterable[Path]:
    """Yield candidate file paths under ``root`` honoring depth, hidden and link rules."""
    root_str = str(root)
    base_depth = root_str.rstrip(os.sep).count(os.sep)

    # Track visited directories by (device, inode) so followed links cannot loop
    visited: Set[Tuple[int, int]] = set()
    root_stat = root.stat()
    visited.add((root_stat.st_dev, root_stat.st_ino))

    def on_error(error: OSError) -> None:
        logger.debug(f"Skipping unreadable entry: {error}")

    for dirpath, dirnames, filenames in os.walk(
        root_str, onerror=on_error, followlinks=filters.follow_symlinks
    ):
        depth = dirpath.rstrip(os.sep).count(os.sep) - base_depth

        # Files here sit at depth + 1
        if filters.max_depth is not None and depth + 1 > filters.max_depth:
            dirnames[:] = []
            continue

        kept_dirs = []
        for dirname in sorted(dirnames):
            if not filters.include_hidden and dirname.startswith('.'):
                continue
            if filters.max_depth is not None and depth + 2 > filters.max_depth:
                continue
            full = os.path.join(dirpath, dirname)
            if os.path.islink(full) and not filters.follow_symlinks:
                continue
            try:
                st = os.stat(full)
            except OSError as e:
                logger.debug(f"Skipping directory {full}: {e}")
                continue
            dir_id = (st.st_dev, st.st_ino)
            if dir_id in visited:
                logger.debug(f"Skipping already visited directory: {full}")
                continue
            visited.add(dir_id)
            kept_dirs.append(dirname)
        dirnames[:] = kept_dirs

        for filename in sorted(filenames):
            if not filters.include_hidden and filename.startswith('.'):
                continue
            full = os.path.join(dirpath, filename)
            if os.path.islink(full) and not filters.follow_symlinks:
                continue
            yield Path(full)


def scan_directory(
    root: Union[str, Path],
    filters: Optional[ScanFilters] = None
) -> List[FileRecord]:
    """Scan a directory tree.

    Args:
        root: Directory to scan.
        filters: Filters to apply. Defaults keep every visible file.

    Returns:
        FileRecords in traversal order.

    Raises:
        ScanError: If the root is missing, not a directory or unreadable.
        ConfigurationError: If the regex filter does not compile.
    """
    filters = filters or ScanFilters()
    root = Path(os.path.abspath(Path(root).expanduser()))
    _check_root(root)

    regex = filters.compiled_regex()
    name_filter = filters.name_filter()

    records: List[FileRecord] = []
    for path in _walk(root, filters):
        if filters.ignore_patterns and is_ignored(path, filters.ignore_patterns):
            continue

        try:
            if not path.is_file():
                continue
            record = FileRecord.from_path(path)
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")
            continue

        if filters.min_size is not None and record.size < filters.min_size:
            continue
        if filters.max_size is not None and record.size > filters.max_size:
            continue
        if filters.after is not None and record.modified < filters.after:
            continue
        if filters.before is not None and record.modified > filters.before:
            continue
        if not name_filter.is_empty() and not name_filter.matches(record.name):
            continue
        if regex is not None and not matches_regex(record.name, regex):
            continue
        if filters.mime and not matches_mime(record.path, filters.mime):
            continue

        records.append(record)

    logger.debug(f"Scanned {root}: {len(records)} files kept")
    return records


def total_size(records: Iterable[FileRecord]) -> int:
    """Sum the sizes of the given records."""
    return sum(record.size for record in records)


def find_old_files(
    records: Iterable[FileRecord],
    max_age: timedelta,
    now: Optional[datetime] = None
) -> List[FileRecord]:
    """Return records last modified before ``now - max_age``."""
    cutoff = (now or datetime.now()) - max_age
    return [record for record in records if record.modified < cutoff]


@dataclass
class DirectoryStats:
    """Summary of a scan, as shown by ``neat stats``.

    Attributes:
        total_files: Number of records summarized.
        total_size: Sum of their sizes in bytes.
        categories: (folder name, file count, bytes) per category, most
            files first; equal counts are ordered by name.
        largest: Biggest records, largest first.
        oldest: Least recently modified records, oldest first.
    """
    total_files: int
    total_size: int
    categories: List[Tuple[str, int, int]]
    largest: List[FileRecord]
    oldest: List[FileRecord]


def collect_stats(records: Sequence[FileRecord], top: int = 10) -> DirectoryStats:
    """Group records by category and pick the largest and oldest files."""
    by_category: Dict[str, List[int]] = {}
    for record in records:
        entry = by_category.setdefault(classify(record.extension).folder_name, [0, 0])
        entry[0] += 1
        entry[1] += record.size

    categories = sorted(
        ((name, count, size) for name, (count, size) in by_category.items()),
        key=lambda item: (-item[1], item[0])
    )
    return DirectoryStats(
        total_files=len(records),
        total_size=total_size(records),
        categories=categories,
        largest=sorted(records, key=lambda r: (-r.size, str(r.path)))[:top],
        oldest=sorted(records, key=lambda r: (r.modified, str(r.path)))[:top],
    )
