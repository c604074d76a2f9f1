"""
History Tracker
================

Records every executed move and delete in batches and provides undo.

One batch corresponds to one user command. History keeps the most recent
50 batches (oldest evicted first) and is undone most-recent-first; within
a batch operations are reversed last-to-first because later moves may
depend on directories created by earlier ones.

History is persisted through a HistoryStore. The default JsonHistoryStore
writes ``~/.neat/history.json``; InMemoryHistoryStore keeps everything in
process for tests and dry runs.
"""

import json
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from neat.utils.exceptions import HistoryError
from neat.utils.logging_config import get_logger

logger = get_logger(__name__)

MAX_BATCHES = 50
DEFAULT_HISTORY_FILE = Path.home() / ".neat" / "history.json"


class OperationType(Enum):
    """Kind of recorded mutation."""
    MOVE = "Move"
    DELETE = "Delete"


@dataclass
class OperationRecord:
    """One executed mutation.

    Attributes:
        source: Where the file was before the operation.
        destination: Where it went; None for deletes.
        operation_type: Move or Delete.
    """
    source: Path
    destination: Optional[Path]
    operation_type: OperationType

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "from": str(self.source),
            "to": str(self.destination) if self.destination is not None else "",
            "operation_type": self.operation_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OperationRecord":
        """Create from dictionary."""
        destination = data.get("to") or None
        return cls(
            source=Path(data["from"]),
            destination=Path(destination) if destination else None,
            operation_type=OperationType(data["operation_type"]),
        )


@dataclass
class OperationBatch:
    """The operations performed by one command."""
    timestamp: datetime
    command: str
    operations: List[OperationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "command": self.command,
            "operations": [op.to_dict() for op in self.operations],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OperationBatch":
        """Create from dictionary."""
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            command=data["command"],
            operations=[OperationRecord.from_dict(op) for op in data.get("operations", [])],
        )


@dataclass
class History:
    """Bounded list of operation batches, oldest first."""
    batches: List[OperationBatch] = field(default_factory=list)
    max_batches: int = MAX_BATCHES

    def add_batch(self, command: str, operations: Iterable[OperationRecord]) -> OperationBatch:
        """Append a batch, evicting the oldest beyond ``max_batches``."""
        batch = OperationBatch(
            timestamp=datetime.now(timezone.utc),
            command=command,
            operations=list(operations),
        )
        self.batches.append(batch)
        if len(self.batches) > self.max_batches:
            del self.batches[:len(self.batches) - self.max_batches]
        return batch

    def pop_last(self) -> Optional[OperationBatch]:
        """Remove and return the most recent batch."""
        if not self.batches:
            return None
        return self.batches.pop()

    def is_empty(self) -> bool:
        return not self.batches

    def __len__(self) -> int:
        return len(self.batches)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"batches": [batch.to_dict() for batch in self.batches]}

    @classmethod
    def from_dict(cls, data: dict, max_batches: int = MAX_BATCHES) -> "History":
        """Create from dictionary."""
        history = cls(
            batches=[OperationBatch.from_dict(b) for b in data.get("batches", [])],
            max_batches=max_batches,
        )
        if len(history.batches) > max_batches:
            del history.batches[:len(history.batches) - max_batches]
        return history


class HistoryStore(ABC):
    """Where history is loaded from and saved to."""

    max_batches: int = MAX_BATCHES

    @abstractmethod
    def load(self) -> History:
        """Load the current history. Never fails on corrupted data."""

    @abstractmethod
    def save(self, history: History) -> None:
        """Persist ``history``, replacing what was stored."""

    def append(self, command: str, operations: Iterable[OperationRecord]) -> OperationBatch:
        """Load, add one batch and save."""
        history = self.load()
        batch = history.add_batch(command, operations)
        self.save(history)
        return batch


class JsonHistoryStore(HistoryStore):
    """History persisted as a JSON document."""

    def __init__(self, history_file: Optional[Path] = None, max_batches: int = MAX_BATCHES):
        """Initialize the store.

        Args:
            history_file: Path to history JSON file.
            max_batches: Number of batches retained.
        """
        self.history_file = Path(history_file or DEFAULT_HISTORY_FILE)
        self.max_batches = max_batches

    def load(self) -> History:
        """Load history from file.

        A missing file is empty history. A corrupted file is logged and
        treated as empty history.
        """
        if not self.history_file.exists():
            return History(max_batches=self.max_batches)

        try:
            with open(self.history_file, "r", encoding="utf-8") as f:
                data = json.load(f)
            history = History.from_dict(data, max_batches=self.max_batches)
            logger.debug(f"Loaded {len(history)} history batches")
            return history
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"History file corrupted ({e}), starting fresh")
            return History(max_batches=self.max_batches)

    def save(self, history: History) -> None:
        """Save history to file."""
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.history_file.with_suffix(".json.tmp")

        with open(tmp_file, "w", encoding="utf-8") as f:
            json.dump(history.to_dict(), f, indent=2)
        os.replace(tmp_file, self.history_file)


class InMemoryHistoryStore(HistoryStore):
    """History kept in process memory."""

    def __init__(self, max_batches: int = MAX_BATCHES):
        self.max_batches = max_batches
        self._data = History(max_batches=max_batches).to_dict()

    def load(self) -> History:
        return History.from_dict(self._data, max_batches=self.max_batches)

    def save(self, history: History) -> None:
        self._data = history.to_dict()


class BatchLogger:
    """Collects the operations of one command before they are persisted."""

    def __init__(self, command: str):
        self.command = command
        self.operations: List[OperationRecord] = []

    def log_move(self, source: Path, destination: Path) -> None:
        self.operations.append(OperationRecord(Path(source), Path(destination), OperationType.MOVE))

    def log_delete(self, path: Path) -> None:
        self.operations.append(OperationRecord(Path(path), None, OperationType.DELETE))

    def count(self) -> int:
        return len(self.operations)

    def save(self, store: HistoryStore) -> Optional[OperationBatch]:
        """Persist the collected operations as one batch.

        Returns:
            The stored batch, or None when nothing was logged.
        """
        if not self.operations:
            return None
        batch = store.append(self.command, self.operations)
        logger.debug(f"Logged {len(self.operations)} operations for '{self.command}'")
        return batch


@dataclass
class UndoResult:
    """Outcome of undoing one batch.

    Attributes:
        command: The command whose batch was undone.
        restored: Files moved back to their original location.
        missing: Moves skipped because the destination no longer exists.
        errors: Operations that could not be undone, as messages.
        removed_dirs: Directories removed because they became empty.
    """
    command: str
    restored: int = 0
    missing: int = 0
    errors: List[str] = field(default_factory=list)
    removed_dirs: List[Path] = field(default_factory=list)


class HistoryTracker:
    """Reads history and undoes the most recent batch."""

    def __init__(self, store: Optional[HistoryStore] = None):
        """Initialize history tracker.

        Args:
            store: Where history lives. Defaults to ``~/.neat/history.json``.
        """
        self.store = store or JsonHistoryStore()

    def undo_last(self) -> UndoResult:
        """Undo the most recent batch.

        Moves are reversed last-to-first, recreating the original parent
        directory where needed. A move whose destination has disappeared
        is skipped. Deletes cannot be reversed and are reported as errors.
        The batch is removed from history whatever the outcome.

        Raises:
            HistoryError: If there is nothing to undo.
        """
        history = self.store.load()
        batch = history.pop_last()
        if batch is None:
            raise HistoryError()

        result = UndoResult(command=batch.command)
        logger.info(f"Undoing '{batch.command}' ({len(batch.operations)} operations)")

        for op in reversed(batch.operations):
            if op.operation_type == OperationType.DELETE:
                logger.warning(f"Cannot restore deleted file: {op.source}")
                result.errors.append(f"{op.source}: deleted files cannot be restored")
                continue

            if op.destination is None or not op.destination.exists():
                logger.debug(f"Skipping undo, file no longer at {op.destination}")
                result.missing += 1
                continue

            try:
                op.source.parent.mkdir(parents=True, exist_ok=True)
                os.rename(op.destination, op.source)
            except OSError as e:
                logger.warning(f"Failed to restore {op.source}: {e}")
                result.errors.append(f"{op.source}: {e}")
                continue

            result.restored += 1
            result.removed_dirs.extend(self._remove_empty_parents(op.destination.parent, op.source))

        self.store.save(history)
        logger.info(f"Restored {result.restored} files, {len(result.errors)} errors")
        return result

    @staticmethod
    def _remove_empty_parents(directory: Path, restored: Path) -> List[Path]:
        """Remove ``directory`` and its ancestors while they are empty.

        Stops at any directory that contains the restored file's location.
        """
        removed = []
        restored_parent = restored.parent
        current = directory
        while current != current.parent:
            if current == restored_parent or current in restored_parent.parents:
                break
            try:
                current.rmdir()
            except OSError:
                break
            removed.append(current)
            current = current.parent
        return removed

    def get_recent(self, count: int = 10) -> List[OperationBatch]:
        """Get recent batches, newest first."""
        if count <= 0:
            return []
        return list(reversed(self.store.load().batches[-count:]))

    def is_empty(self) -> bool:
        return self.store.load().is_empty()

    def clear_history(self) -> None:
        """Clear all history."""
        self.store.save(History(max_batches=self.store.max_batches))
        logger.info("History cleared")
