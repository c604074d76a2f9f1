"""
Perceptual Hashing
==================

Groups images that look alike, such as a photo and its resized or
re-encoded copy.

Images are hashed with a 16x16 DCT hash (256 bits), so Hamming distances
range from 0 (identical) to 256.
"""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from concurrent.futures import ThreadPoolExecutor, as_completed
import threading

from neat.scanning.scanner import FileRecord
from neat.utils.logging_config import get_logger, Timer
from neat.utils.exceptions import DeduplicationError

logger = get_logger(__name__)

# Lazy imports for heavy libraries
imagehash = None
Image = None


def _import_imagehash():
    """Lazy import imagehash and Pillow."""
    global imagehash, Image
    if imagehash is None:
        try:
            import imagehash as _imagehash
            from PIL import Image as _Image
        except ImportError as e:
            raise DeduplicationError(
                "imagehash and Pillow are required for similarity detection",
                hash_type="perceptual",
                cause=e
            )
        imagehash = _imagehash
        Image = _Image
    return imagehash, Image


@dataclass
class SimilarGroup:
    """A representative image and the images close to it.

    Attributes:
        representative: The image the group was formed around.
        similar: (record, distance) pairs, closest first.
    """
    representative: FileRecord
    similar: List[Tuple[FileRecord, int]] = field(default_factory=list)

    @property
    def files(self) -> List[FileRecord]:
        return [self.representative] + [record for record, _ in self.similar]

    def to_dict(self, max_distance: int = 256) -> dict:
        """Convert to dictionary."""
        return {
            "representative": str(self.representative.path),
            "similar": [
                {
                    "path": str(record.path),
                    "distance": distance,
                    "similarity": similarity_percent(distance, max_distance),
                }
                for record, distance in self.similar
            ],
        }


def similarity_percent(distance: int, max_distance: int = 256) -> int:
    """Turn a Hamming distance into a 0-100 similarity score."""
    if max_distance <= 0:
        return 100
    return 100 - min(distance * 100 // max_distance, 100)


class PerceptualHashEngine:
    """Hashes raster images and clusters them by Hamming distance.

    Args:
        threshold: Largest distance at which two images count as similar.
        hash_size: Side of the hash grid (16 produces a 256-bit hash).
        max_workers: Threads used to decode and hash images.
    """

    SUPPORTED_EXTENSIONS = {'jpg', 'jpeg', 'png', 'gif', 'bmp', 'webp'}

    def __init__(
        self,
        threshold: int = 10,
        hash_size: int = 16,
        max_workers: int = 4
    ):
        self.threshold = threshold
        self.hash_size = hash_size
        self.max_workers = max(1, max_workers)
        self.errors: List[str] = []

    @property
    def max_distance(self) -> int:
        """Largest possible distance between two hashes."""
        return self.hash_size * self.hash_size

    def is_supported(self, record: FileRecord) -> bool:
        """Check if a record is a supported raster image."""
        return (record.extension or "") in self.SUPPORTED_EXTENSIONS

    def compute_hash(self, image_path: Path):
        """Hash one image file.

        Returns:
            An ``imagehash.ImageHash``; subtracting two gives their distance.

        Raises:
            DeduplicationError: If the image cannot be opened or decoded.
        """
        imagehash_lib, PIL_Image = _import_imagehash()

        try:
            with PIL_Image.open(image_path) as img:
                return imagehash_lib.phash(img, hash_size=self.hash_size)

        except Exception as e:
            raise DeduplicationError(
                f"Failed to compute perceptual hash: {e}",
                file_path=str(image_path),
                hash_type="perceptual",
                cause=e
            )

    def hash_images(self, records: Sequence[FileRecord]) -> Dict[Path, object]:
        """Hash every supported image in parallel.

        Images that fail to decode are skipped and listed in ``errors``.
        """
        hashes: Dict[Path, object] = {}
        lock = threading.Lock()

        def hash_one(record: FileRecord) -> None:
            try:
                value = self.compute_hash(record.path)
            except DeduplicationError as e:
                logger.warning(f"Skipping image {record.path}: {e.message}")
                with lock:
                    self.errors.append(f"{record.path}: {e.message}")
                return
            with lock:
                hashes[record.path] = value

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(hash_one, record) for record in records]
            for future in as_completed(futures):
                future.result()

        return hashes

    def find_similar(
        self,
        records: Sequence[FileRecord],
        progress_callback: Optional[Callable[[int, int], None]] = None
    ) -> List[SimilarGroup]:
        """Group visually similar images.

        Images are visited in path order. An image becomes a representative
        unless it lies within ``threshold`` of an earlier representative.
        Every other image joins its nearest representative; ties go to the
        representative that comes first.

        Args:
            records: Scanned files; non-images are ignored.
            progress_callback: Called with (compared_images, total_images).

        Returns:
            Groups with at least one similar image, in representative order.
        """
        self.errors = []
        images = sorted(
            (record for record in records if self.is_supported(record)),
            key=lambda r: str(r.path)
        )
        if len(images) < 2:
            return []

        with Timer(logger, "find_similar"):
            hashes = self.hash_images(images)
            hashed = [record for record in images if record.path in hashes]

            representatives: List[FileRecord] = []
            members: Dict[Path, List[Tuple[FileRecord, int]]] = {}

            for index, record in enumerate(hashed, start=1):
                current = hashes[record.path]
                best: Optional[Tuple[int, FileRecord]] = None
                for rep in representatives:
                    distance = int(current - hashes[rep.path])  # Hamming distance
                    if distance <= self.threshold and (best is None or distance < best[0]):
                        best = (distance, rep)

                if best is None:
                    representatives.append(record)
                    members[record.path] = []
                else:
                    members[best[1].path].append((record, best[0]))

                if progress_callback:
                    progress_callback(index, len(hashed))

        groups = []
        for rep in representatives:
            similar = members[rep.path]
            if similar:
                similar.sort(key=lambda item: (item[1], str(item[0].path)))
                groups.append(SimilarGroup(representative=rep, similar=similar))

        logger.info(f"Found {len(groups)} groups of similar images among {len(hashed)} images")
        return groups

    def compare_images(self, image1: Path, image2: Path) -> Tuple[int, bool]:
        """Compare two images for similarity.

        Returns:
            Tuple of (distance, is_similar).
        """
        distance = int(self.compute_hash(image1) - self.compute_hash(image2))
        return distance, distance <= self.threshold


def find_similar(
    records: Sequence[FileRecord],
    threshold: int,
    hash_size: int = 16,
    max_workers: int = 4
) -> List[SimilarGroup]:
    """Group similar images among ``records`` with a fresh engine."""
    engine = PerceptualHashEngine(
        threshold=threshold,
        hash_size=hash_size,
        max_workers=max_workers
    )
    return engine.find_similar(records)
