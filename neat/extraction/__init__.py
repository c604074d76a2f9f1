"""Media metadata extraction module."""

from .metadata_reader import (
    MetadataReader,
    MediaMetadata,
    sanitize_folder_name,
    is_exif_supported,
    is_audio_supported,
)

__all__ = [
    "MetadataReader",
    "MediaMetadata",
    "sanitize_folder_name",
    "is_exif_supported",
    "is_audio_supported",
]
