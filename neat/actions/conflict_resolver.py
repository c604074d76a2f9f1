"""
Conflict Resolver
=================

Decides what happens when a planned destination is already occupied.

    rename     write to ``<stem>_<n><suffix>`` with the first free n
    skip       leave the source where it is
    overwrite  replace the existing file
    ask        put a yes/no question to a callback (yes = overwrite)
"""

import os
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

from neat.utils.exceptions import ConfigurationError
from neat.utils.logging_config import get_logger

logger = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]


class ConflictStrategy(Enum):
    """Policy applied when a destination exists."""

    RENAME = "rename"
    SKIP = "skip"
    OVERWRITE = "overwrite"
    ASK = "ask"

    @classmethod
    def from_string(cls, value: str) -> "ConflictStrategy":
        """Parse a strategy name such as ``"rename"``.

        Raises:
            ConfigurationError: If the name is unknown.
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigurationError(
                f"Unknown conflict strategy: {value}",
                config_key="conflict_strategy",
                details={"choices": [s.value for s in cls]}
            )


class ConflictAction(Enum):
    """What the executor should do with one planned move."""
    PROCEED = "proceed"
    SKIP = "skip"
    OVERWRITE = "overwrite"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one destination.

    Attributes:
        action: How to carry out the move.
        path: Where to write; None when skipping.
    """
    action: ConflictAction
    path: Optional[Path]


@dataclass
class ConflictInfo:
    """A conflict that was encountered and how it was settled."""
    source: Path
    existing: Path
    resolution: ConflictStrategy
    result_path: Optional[Path] = None


def destination_exists(path: Path) -> bool:
    """True if anything, including a dangling link, occupies ``path``."""
    return os.path.lexists(path)


def unique_path(path: Path, max_attempts: int = 9999) -> Path:
    """First free ``<stem>_<n><suffix>`` next to ``path``.

    Falls back to a timestamp suffix if every counter is taken.
    """
    for counter in range(1, max_attempts + 1):
        candidate = path.with_name(f"{path.stem}_{counter}{path.suffix}")
        if not destination_exists(candidate):
            return candidate
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    return path.with_name(f"{path.stem}_{stamp}{path.suffix}")


class ConflictResolver:
    """Applies a ConflictStrategy to planned destinations.

    Args:
        strategy: Policy for every conflict.
        confirm: Yes/no callback used by ``ASK``. Without one, ``ASK``
            behaves like ``RENAME``.
    """

    def __init__(
        self,
        strategy: ConflictStrategy = ConflictStrategy.RENAME,
        confirm: Optional[ConfirmCallback] = None,
    ):
        self.strategy = strategy
        self.confirm = confirm
        self._conflicts: List[ConflictInfo] = []

    def _decide(self, source: Path, destination: Path, strategy: ConflictStrategy) -> ConflictStrategy:
        if strategy != ConflictStrategy.ASK:
            return strategy
        if self.confirm is None:
            return ConflictStrategy.RENAME
        question = f"{destination} already exists. Overwrite it with {source}?"
        return ConflictStrategy.OVERWRITE if self.confirm(question) else ConflictStrategy.SKIP

    def resolve(
        self, source: Path, destination: Path, strategy: Optional[ConflictStrategy] = None
    ) -> Resolution:
        """Resolve the destination for moving ``source``.

        Args:
            source: File about to be moved or copied.
            destination: Planned destination.
            strategy: Overrides the resolver's strategy for this call.
        """
        if not destination_exists(destination):
            return Resolution(ConflictAction.PROCEED, destination)

        decided = self._decide(source, destination, strategy or self.strategy)

        if decided == ConflictStrategy.SKIP:
            logger.info(f"Skipping (exists): {source.name}")
            self._conflicts.append(ConflictInfo(source, destination, decided))
            return Resolution(ConflictAction.SKIP, None)

        if decided == ConflictStrategy.OVERWRITE:
            logger.info(f"Overwriting: {destination}")
            self._conflicts.append(ConflictInfo(source, destination, decided, destination))
            return Resolution(ConflictAction.OVERWRITE, destination)

        renamed = unique_path(destination)
        logger.debug(f"Renaming {source.name} -> {renamed.name}")
        self._conflicts.append(ConflictInfo(source, destination, ConflictStrategy.RENAME, renamed))
        return Resolution(ConflictAction.PROCEED, renamed)

    def get_conflict_history(self) -> List[ConflictInfo]:
        return list(self._conflicts)

    def get_stats(self) -> dict:
        """Count conflicts by how they were settled."""
        by_strategy: Dict[str, int] = {}
        for conflict in self._conflicts:
            key = conflict.resolution.value
            by_strategy[key] = by_strategy.get(key, 0) + 1
        return {"total": len(self._conflicts), "by_strategy": by_strategy}
