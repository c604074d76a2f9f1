"""
Category Definitions
====================

Defines file categories and the extension mapping used to classify files.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Optional, Set


class FileCategory(Enum):
    """Main file categories for organization.

    The value doubles as the folder name used by type-based organizing.
    """
    IMAGES = "Images"
    DOCUMENTS = "Documents"
    VIDEOS = "Videos"
    AUDIO = "Audio"
    ARCHIVES = "Archives"
    CODE = "Code"
    DATA = "Data"
    OTHER = "Other"

    @property
    def folder_name(self) -> str:
        return self.value


def _normalize(extension: Optional[str]) -> str:
    if not extension:
        return ""
    return extension.lower().lstrip(".")


@dataclass
class CategoryMapping:
    """Mapping of file extensions (without the dot) to categories."""

    IMAGE_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "jpg", "jpeg", "png", "gif", "bmp", "svg", "webp", "ico", "tiff",
        "heic", "raw",
    })

    DOCUMENT_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "pdf", "doc", "docx", "txt", "rtf", "odt", "xls", "xlsx", "ppt",
        "pptx", "csv", "md", "epub",
    })

    VIDEO_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "mp4", "avi", "mov", "mkv", "wmv", "flv", "webm", "m4v", "mpeg", "mpg",
    })

    AUDIO_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "mp3", "wav", "flac", "aac", "ogg", "wma", "m4a", "opus",
    })

    ARCHIVE_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "zip", "tar", "gz", "rar", "7z", "bz2", "xz", "tgz", "dmg", "iso",
    })

    CODE_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "rs", "py", "js", "ts", "go", "java", "c", "cpp", "h", "hpp", "cs",
        "rb", "php", "swift", "kt", "scala", "html", "css", "scss", "vue",
        "jsx", "tsx", "sh", "bash", "zsh", "fish",
    })

    DATA_EXTENSIONS: Set[str] = field(default_factory=lambda: {
        "json", "xml", "yaml", "yml", "toml", "sql", "db", "sqlite",
    })

    _lookup: Dict[str, FileCategory] = field(init=False, repr=False)

    def __post_init__(self):
        """Build the flat extension lookup table."""
        self._lookup = {}
        for category, extensions in (
            (FileCategory.IMAGES, self.IMAGE_EXTENSIONS),
            (FileCategory.DOCUMENTS, self.DOCUMENT_EXTENSIONS),
            (FileCategory.VIDEOS, self.VIDEO_EXTENSIONS),
            (FileCategory.AUDIO, self.AUDIO_EXTENSIONS),
            (FileCategory.ARCHIVES, self.ARCHIVE_EXTENSIONS),
            (FileCategory.CODE, self.CODE_EXTENSIONS),
            (FileCategory.DATA, self.DATA_EXTENSIONS),
        ):
            for ext in extensions:
                self._lookup[ext] = category

    def get_category(self, extension: Optional[str]) -> FileCategory:
        """Get the category for a file extension.

        Args:
            extension: Extension with or without the leading dot, any case.
                ``None`` or empty means the file has no extension.

        Returns:
            The matching FileCategory, or ``FileCategory.OTHER``.
        """
        return self._lookup.get(_normalize(extension), FileCategory.OTHER)

    def is_image(self, extension: Optional[str]) -> bool:
        """Check if extension is an image type."""
        return _normalize(extension) in self.IMAGE_EXTENSIONS

    def is_audio(self, extension: Optional[str]) -> bool:
        """Check if extension is an audio type."""
        return _normalize(extension) in self.AUDIO_EXTENSIONS


# Global category mapping instance
CATEGORY_MAPPING = CategoryMapping()


def classify(extension: Optional[str]) -> FileCategory:
    """Classify a file by extension using the global mapping."""
    return CATEGORY_MAPPING.get_category(extension)
