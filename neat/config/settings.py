"""
Settings
========

One dataclass per config section, each with a ``from_dict`` that fills
in defaults for missing keys. The YAML file lives at
``~/.neat/config.yaml`` and is optional.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Any, Dict
import yaml

from neat.utils.exceptions import ConfigurationError
from neat.utils.logging_config import get_logger

logger = get_logger(__name__)

NEAT_HOME = Path.home() / ".neat"
DEFAULT_CONFIG_PATH = NEAT_HOME / "config.yaml"


@dataclass
class ScanConfig:
    """Directory scanning defaults.

    Attributes:
        include_hidden: Include dot-files and descend into dot-directories.
        follow_symlinks: Follow symbolic links to files and directories.
        ignore_patterns: Glob patterns for files to ignore.
    """
    include_hidden: bool = False
    follow_symlinks: bool = False
    ignore_patterns: List[str] = field(default_factory=lambda: [
        ".DS_Store", "Thumbs.db", "*.tmp", "*.part", "*.crdownload"
    ])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScanConfig":
        """Create ScanConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            include_hidden=bool(data.get("include_hidden", cls.include_hidden)),
            follow_symlinks=bool(data.get("follow_symlinks", cls.follow_symlinks)),
            ignore_patterns=list(data.get("ignore_patterns", cls().ignore_patterns))
        )


@dataclass
class OrganizationConfig:
    """File organization settings.

    Attributes:
        default_mode: Organize mode used when none is given on the command line.
        conflict_strategy: What to do when a destination already exists.
    """
    default_mode: str = "by-type"
    conflict_strategy: str = "rename"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrganizationConfig":
        """Create OrganizationConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            default_mode=data.get("default_mode", cls.default_mode),
            conflict_strategy=data.get("conflict_strategy", cls.conflict_strategy)
        )


@dataclass
class DeduplicationConfig:
    """Deduplication settings.

    Attributes:
        quick_hash_size: Bytes read from each end of a file for the quick hash.
        max_workers: Worker threads used for hashing and comparison.
        similarity_threshold: Max perceptual-hash distance for similar images.
        perceptual_hash_size: Side length of the perceptual hash grid.
    """
    quick_hash_size: int = 4096
    max_workers: int = 4
    similarity_threshold: int = 10
    perceptual_hash_size: int = 16

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeduplicationConfig":
        """Create DeduplicationConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            quick_hash_size=int(data.get("quick_hash_size", cls.quick_hash_size)),
            max_workers=int(data.get("max_workers", cls.max_workers)),
            similarity_threshold=int(data.get("similarity_threshold", cls.similarity_threshold)),
            perceptual_hash_size=int(data.get("perceptual_hash_size", cls.perceptual_hash_size))
        )


@dataclass
class HistoryConfig:
    """Undo history settings.

    Attributes:
        history_file: JSON file holding the operation batches.
        max_batches: Number of batches retained; the oldest are evicted.
    """
    history_file: Path = field(default_factory=lambda: NEAT_HOME / "history.json")
    max_batches: int = 50

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryConfig":
        """Create HistoryConfig from dictionary."""
        if not data:
            return cls()
        history_file = data.get("history_file")
        return cls(
            history_file=Path(history_file).expanduser() if history_file else cls().history_file,
            max_batches=int(data.get("max_batches", cls.max_batches))
        )


@dataclass
class Config:
    """All config sections plus the custom rules.

    Custom rules are kept as plain mappings and turned into rule objects
    by the rules engine.
    """
    scan: ScanConfig = field(default_factory=ScanConfig)
    organization: OrganizationConfig = field(default_factory=OrganizationConfig)
    deduplication: DeduplicationConfig = field(default_factory=DeduplicationConfig)
    history: HistoryConfig = field(default_factory=HistoryConfig)
    rules: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file. If None, uses
                ``~/.neat/config.yaml``.

        Returns:
            Config instance with loaded settings.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds
                values of the wrong type.
        """
        if config_path is None:
            config_path = DEFAULT_CONFIG_PATH

        if not config_path.exists():
            logger.debug(f"Config file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise ConfigurationError(
                f"Failed to parse config file {config_path}",
                cause=e
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Config file {config_path} must contain a mapping",
                expected_type="mapping"
            )

        try:
            config = cls._from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value in config file {config_path}",
                cause=e
            )

        logger.info(f"Loaded configuration from {config_path}")
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        rules = data.get("rules") or []
        if not isinstance(rules, list):
            raise ConfigurationError("'rules' must be a list", config_key="rules", expected_type="list")
        return cls(
            scan=ScanConfig.from_dict(data.get("scan", {})),
            organization=OrganizationConfig.from_dict(data.get("organization", {})),
            deduplication=DeduplicationConfig.from_dict(data.get("deduplication", {})),
            history=HistoryConfig.from_dict(data.get("history", {})),
            rules=[dict(rule) for rule in rules]
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        data = {
            "scan": {
                "include_hidden": self.scan.include_hidden,
                "follow_symlinks": self.scan.follow_symlinks,
                "ignore_patterns": self.scan.ignore_patterns
            },
            "organization": {
                "default_mode": self.organization.default_mode,
                "conflict_strategy": self.organization.conflict_strategy
            },
            "deduplication": {
                "quick_hash_size": self.deduplication.quick_hash_size,
                "max_workers": self.deduplication.max_workers,
                "similarity_threshold": self.deduplication.similarity_threshold,
                "perceptual_hash_size": self.deduplication.perceptual_hash_size
            },
            "history": {
                "history_file": str(self.history.history_file),
                "max_batches": self.history.max_batches
            },
            "rules": self.rules
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
