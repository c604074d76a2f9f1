"""
Template Engine
===============

Renders destination paths such as ``{year}/{month}/{category}/{filename}``
from per-file variables.

Available variables:
    filename, name, extension/ext, size, size_kb, size_mb,
    year, month, day, date (last modified, local time),
    now.year, now.month, now.day, now.date,
    category/type, camera, date_taken, taken.year, taken.month,
    artist, album

Placeholders that cannot be resolved for a file render as ``Unknown``.
"""

import re
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from neat.config.categories import classify
from neat.extraction.metadata_reader import MediaMetadata
from neat.scanning.scanner import FileRecord

UNKNOWN = "Unknown"

_PLACEHOLDER = re.compile(r"\{([^}]+)\}")
_REPEATED_SLASHES = re.compile(r"/{2,}")

METADATA_VARIABLES = {"camera", "date_taken", "taken.year", "taken.month", "artist", "album"}

PRESET_TEMPLATES: Dict[str, str] = {
    "by-type": "{category}/{filename}",
    "type": "{category}/{filename}",
    "by-date": "{year}/{month}/{filename}",
    "date": "{year}/{month}/{filename}",
    "by-extension": "{extension}/{filename}",
    "extension": "{extension}/{filename}",
    "ext": "{extension}/{filename}",
    "by-camera": "{camera}/{filename}",
    "camera": "{camera}/{filename}",
    "by-date-taken": "{taken.year}/{taken.month}/{filename}",
    "date-taken": "{taken.year}/{taken.month}/{filename}",
    "by-artist": "{artist}/{filename}",
    "artist": "{artist}/{filename}",
    "by-album": "{artist}/{album}/{filename}",
    "album": "{artist}/{album}/{filename}",
    "photos": "{taken.year}/{taken.month}/{filename}",
    "music": "{artist}/{album}/{filename}",
}


def get_preset_template(preset: str) -> Optional[str]:
    """Look up a built-in template by name (case-insensitive)."""
    return PRESET_TEMPLATES.get(preset.strip().lower())


def template_variables(template: str) -> List[str]:
    """List the placeholder names used in a template."""
    return _PLACEHOLDER.findall(template)


def needs_metadata(template: str) -> bool:
    """Check whether rendering a template requires a metadata lookup."""
    return any(name in METADATA_VARIABLES for name in template_variables(template))


class TemplateEngine:
    """Substitutes ``{variable}`` placeholders in a template string."""

    def __init__(self, variables: Optional[Dict[str, str]] = None):
        self.variables: Dict[str, str] = dict(variables or {})

    @classmethod
    def from_record(
        cls,
        record: FileRecord,
        metadata: Optional[MediaMetadata] = None,
        now: Optional[datetime] = None
    ) -> "TemplateEngine":
        """Build the variable set for one file.

        Args:
            record: The scanned file.
            metadata: Media metadata for the file, if it was looked up.
            now: Time used for the ``now.*`` variables.
        """
        now = now or datetime.now()
        extension = record.extension or "unknown"
        category = classify(record.extension).folder_name
        modified = record.modified

        variables = {
            "filename": record.path.stem or record.name,
            "name": record.name,
            "extension": extension,
            "ext": extension,
            "size": str(record.size),
            "size_kb": str(record.size // 1024),
            "size_mb": str(record.size // (1024 * 1024)),
            "year": f"{modified.year}",
            "month": f"{modified.month:02d}",
            "day": f"{modified.day:02d}",
            "date": modified.strftime("%Y-%m-%d"),
            "now.year": f"{now.year}",
            "now.month": f"{now.month:02d}",
            "now.day": f"{now.day:02d}",
            "now.date": now.strftime("%Y-%m-%d"),
            "category": category,
            "type": category,
        }

        if metadata is not None:
            if metadata.camera:
                variables["camera"] = metadata.camera
            taken = metadata.date_taken_parts()
            if taken:
                variables["date_taken"] = f"{taken[0]}/{taken[1]}"
                variables["taken.year"] = taken[0]
                variables["taken.month"] = taken[1]
            if metadata.artist_folder:
                variables["artist"] = metadata.artist_folder
            if metadata.album_folder:
                variables["album"] = metadata.album_folder

        return cls(variables)

    def get(self, key: str) -> Optional[str]:
        return self.variables.get(key)

    def set(self, key: str, value: str) -> None:
        self.variables[key] = value

    def list_variables(self) -> List[Tuple[str, str]]:
        return sorted(self.variables.items())

    def render(self, template: str) -> str:
        """Render a template into a relative path.

        Unresolved or empty placeholders become ``Unknown``; repeated
        slashes collapse and leading/trailing slashes are stripped.
        """
        def substitute(match: "re.Match") -> str:
            return self.variables.get(match.group(1)) or UNKNOWN

        result = _PLACEHOLDER.sub(substitute, template)
        result = _REPEATED_SLASHES.sub("/", result)
        return result.strip("/")
