"""
Metadata Reader
===============

Reads the media metadata used to build folder names: camera and
date-taken from image EXIF, artist and album from audio tags.

Every lookup is best-effort. A file that cannot be parsed yields empty
metadata and callers fall back to their defaults.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Union
import re

from neat.utils.logging_config import get_logger

logger = get_logger(__name__)

# Lazy imports
PIL_Image = None
PIL_ExifTags = None
MutagenFile = None

EXIF_EXTENSIONS = {'jpg', 'jpeg', 'tiff', 'tif', 'heic', 'heif'}
AUDIO_EXTENSIONS = {'mp3', 'flac', 'm4a', 'aac', 'ogg', 'wav', 'wma', 'opus'}

_UNSAFE_CHARS = re.compile(r'[/\\:*?<>|]')


def _import_pil():
    """Lazy import PIL."""
    global PIL_Image, PIL_ExifTags
    if PIL_Image is None:
        from PIL import Image, ExifTags
        PIL_Image = Image
        PIL_ExifTags = ExifTags
    return PIL_Image, PIL_ExifTags


def _import_mutagen():
    """Lazy import mutagen."""
    global MutagenFile
    if MutagenFile is None:
        from mutagen import File as _MutagenFile
        MutagenFile = _MutagenFile
    return MutagenFile


def sanitize_folder_name(value: Optional[str]) -> Optional[str]:
    """Make a metadata string safe to use as a single folder name.

    Surrounding quotes and whitespace are stripped and path-hostile
    characters become underscores. Returns None if nothing usable is left,
    including names made only of dots such as ``..``.
    """
    if value is None:
        return None
    clean = _UNSAFE_CHARS.sub('_', str(value).strip().strip('"')).strip()
    if not clean.strip('.'):
        return None
    return clean


def _extension(path: Path) -> str:
    return path.suffix.lower().lstrip('.')


def is_exif_supported(path: Union[str, Path]) -> bool:
    """Check if a file is an image format that may carry EXIF data."""
    return _extension(Path(path)) in EXIF_EXTENSIONS


def is_audio_supported(path: Union[str, Path]) -> bool:
    """Check if a file is an audio format with readable tags."""
    return _extension(Path(path)) in AUDIO_EXTENSIONS


@dataclass
class MediaMetadata:
    """Media metadata for one file.

    Attributes:
        camera_make: EXIF camera make, e.g. "Canon".
        camera_model: EXIF camera model, e.g. "Canon EOS 5D".
        date_taken: Raw EXIF date, usually "YYYY:MM:DD HH:MM:SS".
        artist: Audio artist tag.
        album: Audio album tag.
    """
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    date_taken: Optional[str] = None
    artist: Optional[str] = None
    album: Optional[str] = None

    @property
    def camera(self) -> Optional[str]:
        """Folder-safe camera name, preferring the model over the make."""
        return sanitize_folder_name(self.camera_model) or sanitize_folder_name(self.camera_make)

    @property
    def artist_folder(self) -> Optional[str]:
        return sanitize_folder_name(self.artist)

    @property
    def album_folder(self) -> Optional[str]:
        return sanitize_folder_name(self.album)

    def date_taken_parts(self) -> Optional[tuple]:
        """Return (year, month) strings parsed from the EXIF date."""
        if not self.date_taken:
            return None
        clean = self.date_taken.strip().strip('"')
        if len(clean) < 10:
            return None
        parts = re.split(r'[: \-]', clean)
        if len(parts) >= 2 and len(parts[0]) == 4 and len(parts[1]) == 2:
            if parts[0].isdigit() and parts[1].isdigit():
                return parts[0], parts[1]
        return None

    def date_taken_folder(self) -> Optional[str]:
        """Date taken as ``YYYY/MM`` for folder organization."""
        parts = self.date_taken_parts()
        if parts is None:
            return None
        return f"{parts[0]}/{parts[1]}"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "camera_make": self.camera_make,
            "camera_model": self.camera_model,
            "date_taken": self.date_taken,
            "artist": self.artist,
            "album": self.album,
        }


class MetadataReader:
    """Reads camera, date-taken, artist and album metadata.

    Results are cached per path for the lifetime of the reader, so a
    planner run touches each file at most once.
    """

    def __init__(self, extract_exif: bool = True, extract_audio: bool = True):
        """Initialize metadata reader.

        Args:
            extract_exif: Whether to read EXIF data from images.
            extract_audio: Whether to read tags from audio files.
        """
        self.extract_exif = extract_exif
        self.extract_audio = extract_audio
        self._cache = {}

    def __call__(self, file_path: Union[str, Path]) -> MediaMetadata:
        return self.read(file_path)

    def read(self, file_path: Union[str, Path]) -> MediaMetadata:
        """Read media metadata from a file.

        Args:
            file_path: Path to the file.

        Returns:
            MediaMetadata, empty when nothing could be read.
        """
        file_path = Path(file_path)
        if file_path in self._cache:
            return self._cache[file_path]

        metadata = MediaMetadata()
        if self.extract_exif and is_exif_supported(file_path):
            self._read_exif(file_path, metadata)
        elif self.extract_audio and is_audio_supported(file_path):
            self._read_audio_tags(file_path, metadata)

        self._cache[file_path] = metadata
        return metadata

    def _read_exif(self, file_path: Path, metadata: MediaMetadata) -> None:
        """Fill camera and date-taken fields from EXIF."""
        try:
            Image, ExifTags = _import_pil()
            with Image.open(file_path) as img:
                exif = img.getexif()
                if not exif:
                    return

                metadata.camera_make = self._exif_text(exif.get(ExifTags.Base.Make))
                metadata.camera_model = self._exif_text(exif.get(ExifTags.Base.Model))

                exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
                metadata.date_taken = (
                    self._exif_text(exif_ifd.get(ExifTags.Base.DateTimeOriginal))
                    or self._exif_text(exif.get(ExifTags.Base.DateTime))
                )

        except Exception as e:
            logger.debug(f"Could not extract EXIF data from {file_path}: {e}")

    @staticmethod
    def _exif_text(value) -> Optional[str]:
        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode('utf-8', errors='replace')
        text = str(value).replace('\x00', '').strip()
        return text or None

    def _read_audio_tags(self, file_path: Path, metadata: MediaMetadata) -> None:
        """Fill artist and album fields from audio tags."""
        try:
            mutagen_file = _import_mutagen()
            audio = mutagen_file(str(file_path), easy=True)
            if not audio:
                return

            artist = audio.get("artist")
            album = audio.get("album")
            metadata.artist = artist[0].strip() if artist else None
            metadata.album = album[0].strip() if album else None

        except Exception as e:
            logger.debug(f"Could not read audio tags from {file_path}: {e}")
