"""
Move Planner
============

Computes where each scanned file should go without touching the disk.

A plan is a list of PlannedMove objects. Custom rules are consulted first;
files no rule claims are placed by the organize mode, which is either one
of the fixed OrganizeMode values or a Template string. Files that are
already where the plan would put them are left out.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Union

from neat.actions.rules_engine import RulesEngine
from neat.actions.template_engine import TemplateEngine, get_preset_template, needs_metadata
from neat.config.categories import classify
from neat.extraction.metadata_reader import (
    MediaMetadata,
    MetadataReader,
    is_audio_supported,
    is_exif_supported,
)
from neat.scanning.scanner import FileRecord
from neat.utils.exceptions import ConfigurationError
from neat.utils.logging_config import get_logger
from neat.utils.parsing import format_size

logger = get_logger(__name__)

MetadataLookup = Callable[[Path], MediaMetadata]

UNKNOWN_CAMERA = "Unknown"
UNKNOWN_ARTIST = "Unknown Artist"
UNKNOWN_ALBUM = "Unknown Album"
NO_EXTENSION = "NO_EXTENSION"


class OrganizeMode(Enum):
    """Fixed ways of choosing a destination folder."""
    BY_TYPE = "by-type"
    BY_DATE = "by-date"
    BY_EXTENSION = "by-extension"
    BY_CAMERA = "by-camera"
    BY_DATE_TAKEN = "by-date-taken"
    BY_ARTIST = "by-artist"
    BY_ALBUM = "by-album"

    @property
    def uses_metadata(self) -> bool:
        return self in (
            OrganizeMode.BY_CAMERA,
            OrganizeMode.BY_DATE_TAKEN,
            OrganizeMode.BY_ARTIST,
            OrganizeMode.BY_ALBUM,
        )


@dataclass(frozen=True)
class Template:
    """Organize by an arbitrary template such as ``{year}/{category}/{filename}``.

    The rendered template is the destination path relative to the base
    directory. The file's extension is appended unless the rendered path
    already ends with it.
    """
    pattern: str

    @property
    def uses_metadata(self) -> bool:
        return needs_metadata(self.pattern)


Mode = Union[OrganizeMode, Template]


def parse_mode(value: str) -> Mode:
    """Turn a mode name, preset name or template string into a Mode.

    Raises:
        ConfigurationError: If ``value`` is none of these.
    """
    text = value.strip()
    try:
        return OrganizeMode(text.lower())
    except ValueError:
        pass

    preset = get_preset_template(text)
    if preset is not None:
        return Template(preset)
    if "{" in text:
        return Template(text)

    raise ConfigurationError(
        f"Unknown organize mode: {value}",
        config_key="default_mode",
        details={"choices": [m.value for m in OrganizeMode]}
    )


@dataclass
class PlannedMove:
    """A move the executor will perform.

    Attributes:
        source: Current location.
        destination: Planned location; never equal to ``source``.
        size: File size in bytes.
    """
    source: Path
    destination: Path
    size: int

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "from": str(self.source),
            "to": str(self.destination),
            "size": self.size,
        }


def _modified_folder(record: FileRecord) -> str:
    return f"{record.modified.year}/{record.modified.month:02d}"


class Planner:
    """Plans destination paths for scanned files.

    Args:
        base_path: Directory the destinations are relative to.
        mode: Organize mode or template.
        rules_engine: Custom rules consulted before the mode.
        metadata_lookup: Returns media metadata for a path. Defaults to a
            MetadataReader, created only when a mode or rule needs one.
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        mode: Mode = OrganizeMode.BY_TYPE,
        rules_engine: Optional[RulesEngine] = None,
        metadata_lookup: Optional[MetadataLookup] = None,
    ):
        self.base_path = Path(os.path.abspath(Path(base_path).expanduser()))
        self.mode = mode
        self.rules_engine = rules_engine
        self._metadata_lookup = metadata_lookup

    def _metadata(self, record: FileRecord) -> MediaMetadata:
        if self._metadata_lookup is None:
            self._metadata_lookup = MetadataReader()
        return self._metadata_lookup(record.path)

    def resolve(self, record: FileRecord) -> Optional[Path]:
        """Destination of one file relative to the base path.

        Returns:
            The relative destination, or None if the mode does not apply
            to this kind of file.
        """
        mode = self.mode

        if isinstance(mode, Template):
            metadata = self._metadata(record) if mode.uses_metadata else None
            rendered = TemplateEngine.from_record(record, metadata).render(mode.pattern)
            suffix = record.path.suffix
            if suffix and not rendered.lower().endswith(suffix.lower()):
                rendered += suffix
            return Path(rendered)

        if mode == OrganizeMode.BY_TYPE:
            return Path(classify(record.extension).folder_name) / record.name

        if mode == OrganizeMode.BY_DATE:
            return Path(_modified_folder(record)) / record.name

        if mode == OrganizeMode.BY_EXTENSION:
            folder = record.extension.upper() if record.extension else NO_EXTENSION
            return Path(folder) / record.name

        if mode == OrganizeMode.BY_CAMERA:
            if not is_exif_supported(record.path):
                return None
            folder = self._metadata(record).camera or UNKNOWN_CAMERA
            return Path(folder) / record.name

        if mode == OrganizeMode.BY_DATE_TAKEN:
            folder = None
            if is_exif_supported(record.path):
                folder = self._metadata(record).date_taken_folder()
            return Path(folder or _modified_folder(record)) / record.name

        if mode in (OrganizeMode.BY_ARTIST, OrganizeMode.BY_ALBUM):
            if not is_audio_supported(record.path):
                return None
            metadata = self._metadata(record)
            artist = metadata.artist_folder or UNKNOWN_ARTIST
            if mode == OrganizeMode.BY_ARTIST:
                return Path(artist) / record.name
            return Path(artist) / (metadata.album_folder or UNKNOWN_ALBUM) / record.name

        raise ConfigurationError(f"Unsupported organize mode: {mode}")

    def _resolve_by_rule(self, record: FileRecord) -> Optional[Path]:
        if self.rules_engine is None:
            return None
        rule = self.rules_engine.find_matching_rule(record.name)
        if rule is None:
            return None
        metadata = self._metadata(record) if needs_metadata(rule.destination) else None
        folder = TemplateEngine.from_record(record, metadata).render(rule.destination)
        return Path(folder) / record.name

    def plan(self, records: Sequence[FileRecord]) -> List[PlannedMove]:
        """Plan moves for ``records``.

        Returns:
            Moves in input order, excluding files already in place and
            files whose destination would leave the base path.
        """
        moves = []
        for record in records:
            relative = self._resolve_by_rule(record) or self.resolve(record)
            if relative is None:
                continue

            destination = Path(os.path.normpath(self.base_path / relative))
            if self.base_path not in destination.parents:
                logger.warning(f"Skipping {record.path}: destination {destination} is outside {self.base_path}")
                continue
            if destination == Path(os.path.normpath(record.path)):
                continue

            moves.append(PlannedMove(source=record.path, destination=destination, size=record.size))

        logger.debug(f"Planned {len(moves)} moves for {len(records)} files")
        return moves


def plan_moves(
    records: Sequence[FileRecord],
    base_path: Union[str, Path],
    mode: Mode = OrganizeMode.BY_TYPE,
    rules_engine: Optional[RulesEngine] = None,
    metadata_lookup: Optional[MetadataLookup] = None,
) -> List[PlannedMove]:
    """Plan moves for ``records`` under ``base_path``."""
    planner = Planner(base_path, mode, rules_engine=rules_engine, metadata_lookup=metadata_lookup)
    return planner.plan(records)


@dataclass
class FolderPreview:
    """Planned moves into one destination folder."""
    folder: Path
    names: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.names)


@dataclass
class MovePreview:
    """Dry-run summary of a plan, grouped by destination folder."""
    folders: List[FolderPreview]
    total_files: int
    total_size: int

    SHOWN_PER_FOLDER = 5

    def format(self) -> str:
        """Render the preview as plain text."""
        if not self.total_files:
            return "No files to move."

        lines = ["Preview:", "-" * 60]
        for folder in self.folders:
            lines.append("")
            lines.append(f"  {folder.folder} ({folder.count} files)")
            for name in folder.names[:self.SHOWN_PER_FOLDER]:
                lines.append(f"    -> {name}")
            if folder.count > self.SHOWN_PER_FOLDER:
                lines.append(f"    -> ... and {folder.count - self.SHOWN_PER_FOLDER} more")
        lines.append("-" * 60)
        lines.append(f"Summary: {self.total_files} files to move ({format_size(self.total_size)})")
        return "\n".join(lines)


def preview_moves(moves: Sequence[PlannedMove], base_path: Union[str, Path]) -> MovePreview:
    """Group planned moves by destination folder, relative to ``base_path``."""
    base_path = Path(os.path.abspath(base_path))
    by_folder: Dict[Path, List[str]] = {}
    for move in moves:
        by_folder.setdefault(move.destination.parent, []).append(move.source.name)

    folders: List[FolderPreview] = []
    for folder in sorted(by_folder):
        try:
            shown = folder.relative_to(base_path)
        except ValueError:
            shown = folder
        folders.append(FolderPreview(folder=shown, names=by_folder[folder]))

    return MovePreview(
        folders=folders,
        total_files=len(moves),
        total_size=sum(move.size for move in moves),
    )
