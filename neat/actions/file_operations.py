"""
File Operations
===============

The only component that mutates the filesystem. Executes planned moves,
copies and deletes as a best-effort batch: a failure on one file is
recorded and the batch carries on.

Every executed move and delete is collected in a BatchLogger and written
to history as one batch once the whole batch has run. A process killed
mid-batch therefore leaves the already-moved files without an undo record.
"""

import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from neat.actions.conflict_resolver import ConfirmCallback, ConflictAction, ConflictResolver, ConflictStrategy
from neat.actions.history_tracker import BatchLogger, HistoryStore, JsonHistoryStore, OperationBatch
from neat.actions.planner import PlannedMove
from neat.utils.exceptions import ErrorCode, FileOperationError, OperationCancelledError
from neat.utils.logging_config import get_logger
from neat.utils.parsing import format_size

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int, Path], None]


@dataclass
class ExecutionSummary:
    """Outcome of one executed batch.

    Attributes:
        moved: Files moved (or copied, in copy mode).
        skipped: Files left untouched, by conflict policy or failure.
        deleted: Files deleted.
        total_size: Bytes moved, copied or deleted.
        errors: One ``"<path>: <reason>"`` message per failed file.
        batch: The history batch written, if any.
    """
    moved: int = 0
    skipped: int = 0
    deleted: int = 0
    total_size: int = 0
    errors: List[str] = field(default_factory=list)
    batch: Optional[OperationBatch] = None

    def describe(self, max_errors: int = 10) -> str:
        """Human-readable summary with at most ``max_errors`` error lines."""
        parts = []
        if self.moved:
            parts.append(f"{self.moved} files moved ({format_size(self.total_size)})")
        if self.deleted:
            parts.append(f"{self.deleted} files deleted ({format_size(self.total_size)})")
        if self.skipped:
            parts.append(f"{self.skipped} skipped")
        lines = [", ".join(parts) if parts else "Nothing to do."]
        for error in self.errors[:max_errors]:
            lines.append(f"  ! {error}")
        if len(self.errors) > max_errors:
            lines.append(f"  ... and {len(self.errors) - max_errors} more errors")
        return "\n".join(lines)


class FileOperations:
    """Executes planned moves and deletes and records them in history.

    Args:
        history_store: Where executed batches are logged. Defaults to
            ``~/.neat/history.json``.
    """

    def __init__(self, history_store: Optional[HistoryStore] = None):
        self.history_store = history_store or JsonHistoryStore()

    @staticmethod
    def _ensure_parent(destination: Path) -> None:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationError(
                f"Failed to create directory {destination.parent}: {e.strerror or e}",
                destination=str(destination.parent),
                reason=str(e),
                error_code=ErrorCode.CREATE_DIR_FAILED,
                cause=e
            )

    def move_file(self, source: Path, destination: Path, overwrite: bool = False) -> Path:
        """Rename ``source`` to ``destination``.

        Cross-device moves are not emulated with copy+delete; they fail
        like any other rename error.

        Raises:
            FileOperationError: If the rename fails.
        """
        try:
            if overwrite:
                os.replace(source, destination)
            else:
                os.rename(source, destination)
        except OSError as e:
            raise FileOperationError(
                f"Failed to move file: {e.strerror or e}",
                source=str(source),
                destination=str(destination),
                reason=str(e),
                error_code=ErrorCode.MOVE_FAILED,
                cause=e
            )
        logger.debug(f"Moved: {source} -> {destination}", extra={"file_path": str(destination)})
        return destination

    def copy_file(self, source: Path, destination: Path) -> Path:
        """Copy ``source`` to ``destination`` keeping timestamps.

        Raises:
            FileOperationError: If the copy fails.
        """
        try:
            shutil.copy2(source, destination)
        except OSError as e:
            raise FileOperationError(
                f"Failed to copy file: {e.strerror or e}",
                source=str(source),
                destination=str(destination),
                reason=str(e),
                error_code=ErrorCode.COPY_FAILED,
                cause=e
            )
        logger.debug(f"Copied: {source} -> {destination}", extra={"file_path": str(destination)})
        return destination

    def delete_file(self, path: Path) -> None:
        """Delete one file.

        Raises:
            FileOperationError: If the file cannot be removed.
        """
        try:
            os.remove(path)
        except OSError as e:
            raise FileOperationError(
                f"Failed to delete file: {e.strerror or e}",
                source=str(path),
                reason=str(e),
                error_code=ErrorCode.DELETE_FAILED,
                cause=e
            )
        logger.debug(f"Deleted: {path}", extra={"file_path": str(path)})

    def execute(
        self,
        moves: Sequence[PlannedMove],
        command_label: str,
        conflict_strategy: ConflictStrategy = ConflictStrategy.RENAME,
        is_copy: bool = False,
        confirm: Optional[ConfirmCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ExecutionSummary:
        """Execute planned moves (or copies).

        Args:
            moves: The plan to carry out.
            command_label: Command string stored with the history batch.
            conflict_strategy: What to do when a destination exists.
            is_copy: Copy instead of move. Copies are not logged for undo.
            confirm: Yes/no callback for ``ConflictStrategy.ASK``.
            progress_callback: Called with (done, total, source) per file.

        Returns:
            ExecutionSummary for the batch.
        """
        summary = ExecutionSummary()
        if not moves:
            return summary

        resolver = ConflictResolver(strategy=conflict_strategy, confirm=confirm)
        batch_logger = BatchLogger(command_label)
        total = len(moves)

        for index, move in enumerate(moves, start=1):
            try:
                self._ensure_parent(move.destination)
                resolution = resolver.resolve(move.source, move.destination)
                destination = resolution.path

                if resolution.action == ConflictAction.SKIP:
                    summary.skipped += 1
                elif is_copy:
                    self.copy_file(move.source, destination)
                    summary.moved += 1
                    summary.total_size += move.size
                else:
                    self.move_file(move.source, destination, overwrite=(resolution.action == ConflictAction.OVERWRITE))
                    batch_logger.log_move(move.source, destination)
                    summary.moved += 1
                    summary.total_size += move.size

            except FileOperationError as e:
                logger.warning(f"Skipping {move.source}: {e.message}")
                summary.skipped += 1
                summary.errors.append(f"{move.source}: {e.details.get('reason', e.message)}")

            if progress_callback:
                progress_callback(index, total, move.source)

        summary.batch = self._save_batch(batch_logger, summary)
        logger.info(
            f"{command_label}: {summary.moved} {'copied' if is_copy else 'moved'}, "
            f"{summary.skipped} skipped, {len(summary.errors)} errors"
        )
        return summary

    def delete_files(
        self,
        paths: Iterable[Path],
        command_label: str,
        confirm: Optional[ConfirmCallback] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> ExecutionSummary:
        """Delete files as one logged batch.

        Args:
            paths: Files to delete.
            command_label: Command string stored with the history batch.
            confirm: Asked once before anything is deleted.
            progress_callback: Called with (done, total, path) per file.

        Returns:
            ExecutionSummary for the batch.

        Raises:
            OperationCancelledError: If ``confirm`` declines.
        """
        paths = [Path(p) for p in paths]
        summary = ExecutionSummary()
        if not paths:
            return summary

        if confirm is not None and not confirm(f"Permanently delete {len(paths)} files?"):
            raise OperationCancelledError()

        batch_logger = BatchLogger(command_label)
        total = len(paths)

        for index, path in enumerate(paths, start=1):
            try:
                size = path.stat().st_size
            except OSError:
                size = 0

            try:
                self.delete_file(path)
            except FileOperationError as e:
                logger.warning(f"Skipping {path}: {e.message}")
                summary.skipped += 1
                summary.errors.append(f"{path}: {e.details.get('reason', e.message)}")
            else:
                batch_logger.log_delete(path)
                summary.deleted += 1
                summary.total_size += size

            if progress_callback:
                progress_callback(index, total, path)

        summary.batch = self._save_batch(batch_logger, summary)
        logger.info(f"{command_label}: {summary.deleted} deleted, {summary.skipped} skipped")
        return summary

    def _save_batch(self, batch_logger: BatchLogger, summary: ExecutionSummary) -> Optional[OperationBatch]:
        """Write the batch to history; a failure is reported, not raised."""
        try:
            return batch_logger.save(self.history_store)
        except OSError as e:
            logger.error(f"Failed to write history for '{batch_logger.command}': {e}")
            summary.errors.append(f"history: {e}")
            return None
