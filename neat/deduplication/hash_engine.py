"""
Hash Engine
===========

Exact duplicate detection for scanned files.

Detection runs in three passes so that full-content reads are only spent
on real candidates:

1. Size bucketing (no I/O beyond the scan).
2. Partial hash of a bounded slice of each candidate.
3. Byte-for-byte comparison inside every partial-hash collision group.

The third pass is never skipped: two files are only reported as
duplicates once their contents have been compared directly.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass
from concurrent.futures import ThreadPoolExecutor, as_completed
import hashlib
import os
import threading

from neat.scanning.scanner import FileRecord
from neat.utils.logging_config import get_logger, Timer
from neat.utils.exceptions import DeduplicationError

logger = get_logger(__name__)


@dataclass
class DuplicateGroup:
    """Files with byte-identical content.

    Attributes:
        files: Two or more records, sorted by path.
        size: Size in bytes shared by every member.
        fingerprint: SHA-256 of the shared content.
    """
    files: List[FileRecord]
    size: int
    fingerprint: str

    @property
    def wasted_space(self) -> int:
        """Bytes that would be freed by keeping a single copy."""
        if len(self.files) < 2:
            return 0
        return self.size * (len(self.files) - 1)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "fingerprint": self.fingerprint,
            "size": self.size,
            "wasted_space": self.wasted_space,
            "files": [str(record.path) for record in self.files],
        }


class PartialHasher:
    """Cheap fingerprint used to split size buckets.

    Reads at most three chunks per file: the head, the chunk starting at
    the midpoint and the tail. The file size is appended to the digest so
    a collision also requires equal sizes.
    """

    def __init__(self, chunk_size: int = 4096):
        self.chunk_size = chunk_size

    def sample_offsets(self, file_size: int) -> List[int]:
        """Offsets of the chunks read for a file of ``file_size`` bytes.

        An empty list means the whole file is read.
        """
        if file_size <= self.chunk_size * 3:
            return []
        return [0, file_size // 2, file_size - self.chunk_size]

    def compute(self, file_path: Path) -> str:
        """Return ``<sha256 hex>_<size>`` for the sampled chunks.

        Raises:
            DeduplicationError: If the file cannot be read.
        """
        digest = hashlib.sha256()
        try:
            with open(file_path, 'rb') as f:
                size = os.fstat(f.fileno()).st_size
                offsets = self.sample_offsets(size)
                if not offsets:
                    digest.update(f.read())
                for offset in offsets:
                    f.seek(offset)
                    digest.update(f.read(self.chunk_size))
        except OSError as e:
            raise DeduplicationError(
                f"Cannot read file: {e}",
                file_path=str(file_path),
                hash_type="partial",
                cause=e
            )
        return f"{digest.hexdigest()}_{size}"


class FullHasher:
    """SHA-256 of the entire content, read in 64KB blocks."""

    BLOCK_SIZE = 64 * 1024

    def compute(self, file_path: Path) -> str:
        digest = hashlib.sha256()
        try:
            with open(file_path, 'rb') as f:
                for block in iter(lambda: f.read(self.BLOCK_SIZE), b""):
                    digest.update(block)
        except OSError as e:
            raise DeduplicationError(
                f"Cannot read file: {e}",
                file_path=str(file_path),
                hash_type="full",
                cause=e
            )
        return digest.hexdigest()


def files_are_equal(path1: Path, path2: Path, chunk_size: int = 65536) -> bool:
    """Compare two files byte for byte.

    Raises:
        DeduplicationError: If either file cannot be read.
    """
    try:
        with open(path1, 'rb') as f1, open(path2, 'rb') as f2:
            if os.fstat(f1.fileno()).st_size != os.fstat(f2.fileno()).st_size:
                return False
            while True:
                chunk1 = f1.read(chunk_size)
                chunk2 = f2.read(chunk_size)
                if chunk1 != chunk2:
                    return False
                if not chunk1:
                    return True
    except OSError as e:
        raise DeduplicationError(
            f"Cannot compare files: {e}",
            file_path=str(e.filename or path1),
            hash_type="compare",
            cause=e
        )


class DeduplicationEngine:
    """Finds groups of byte-identical files among scanned records.

    Args:
        chunk_size: Bytes per sampled chunk in the partial hash pass.
        max_workers: Worker threads for hashing and comparison.

    Files that cannot be read are left out of every group; each one is
    logged and described in ``errors``.
    """

    def __init__(self, chunk_size: int = 4096, max_workers: int = 4):
        self.partial_hasher = PartialHasher(chunk_size)
        self.full_hasher = FullHasher()
        self.max_workers = max(1, max_workers)
        self.errors: List[str] = []
        self._errors_lock = threading.Lock()

    def _record_error(self, error: DeduplicationError) -> None:
        logger.warning(f"Skipping file during duplicate scan: {error.message} ({error.details.get('file_path')})")
        with self._errors_lock:
            self.errors.append(f"{error.details.get('file_path')}: {error.message}")

    def group_by_size(self, records: Sequence[FileRecord]) -> List[List[FileRecord]]:
        """Bucket records by size, dropping empty files and singletons."""
        by_size: Dict[int, List[FileRecord]] = {}
        for record in records:
            if record.size > 0:
                by_size.setdefault(record.size, []).append(record)

        return [
            sorted(bucket, key=lambda r: str(r.path))
            for _, bucket in sorted(by_size.items())
            if len(bucket) > 1
        ]

    def group_by_partial_hash(
        self,
        buckets: List[List[FileRecord]]
    ) -> List[List[FileRecord]]:
        """Split size buckets by partial hash, in parallel.

        Returns:
            Candidate groups with more than one member, each sorted by path.
        """
        candidates = [record for bucket in buckets for record in bucket]
        by_hash: Dict[Tuple[int, str], List[FileRecord]] = {}
        lock = threading.Lock()

        def hash_one(record: FileRecord) -> None:
            try:
                digest = self.partial_hasher.compute(record.path)
            except DeduplicationError as e:
                self._record_error(e)
                return
            with lock:
                by_hash.setdefault((record.size, digest), []).append(record)

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(hash_one, record) for record in candidates]
            for future in as_completed(futures):
                future.result()

        return [
            sorted(group, key=lambda r: str(r.path))
            for group in by_hash.values()
            if len(group) > 1
        ]

    def verify_group(self, group: List[FileRecord]) -> List[DuplicateGroup]:
        """Cluster a candidate group by actual content.

        Each file is compared against the first member of every cluster
        found so far; content equality is transitive so one comparison per
        cluster is enough.
        """
        clusters: List[List[FileRecord]] = []
        unreadable = set()

        for record in group:
            if record.path in unreadable:
                continue
            placed = False
            for cluster in clusters:
                try:
                    if files_are_equal(cluster[0].path, record.path):
                        cluster.append(record)
                        placed = True
                        break
                except DeduplicationError as e:
                    self._record_error(e)
                    failed = Path(e.details.get("file_path", ""))
                    if failed == record.path:
                        unreadable.add(record.path)
                        placed = True
                        break
            if not placed:
                clusters.append([record])

        results = []
        for cluster in clusters:
            if len(cluster) < 2:
                continue
            try:
                fingerprint = self.full_hasher.compute(cluster[0].path)
            except DeduplicationError as e:
                self._record_error(e)
                fingerprint = "unknown"
            results.append(DuplicateGroup(
                files=cluster,
                size=cluster[0].size,
                fingerprint=fingerprint
            ))
        return results

    def find_duplicates(
        self,
        records: Sequence[FileRecord],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> List[DuplicateGroup]:
        """Find groups of byte-identical files.

        Args:
            records: Scanned files to examine.
            progress_callback: Called with (verified_groups, total_groups).

        Returns:
            Duplicate groups, largest wasted space first.
        """
        self.errors = []
        if not records:
            return []

        with Timer(logger, "find_duplicates"):
            buckets = self.group_by_size(records)
            if not buckets:
                return []
            logger.debug(f"{sum(len(b) for b in buckets)} files share a size with another file")

            candidates = self.group_by_partial_hash(buckets)
            if not candidates:
                return []
            logger.debug(f"{len(candidates)} partial-hash collision groups to verify")

            duplicates: List[DuplicateGroup] = []
            lock = threading.Lock()
            done = 0

            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(self.verify_group, group) for group in candidates]
                for future in as_completed(futures):
                    groups = future.result()
                    with lock:
                        duplicates.extend(groups)
                        done += 1
                    if progress_callback:
                        progress_callback(done, len(candidates))

        duplicates.sort(key=lambda g: (-g.wasted_space, str(g.files[0].path)))
        logger.info(
            f"Found {len(duplicates)} duplicate groups "
            f"({sum(g.wasted_space for g in duplicates)} bytes reclaimable)"
        )
        return duplicates


def find_duplicates(
    records: Sequence[FileRecord],
    chunk_size: int = 4096,
    max_workers: int = 4
) -> List[DuplicateGroup]:
    """Find exact duplicates among ``records`` with a fresh engine."""
    return DeduplicationEngine(chunk_size=chunk_size, max_workers=max_workers).find_duplicates(records)
