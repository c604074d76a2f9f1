"""
Unit tests for executing planned moves and deletes.
"""

import os
from pathlib import Path

import pytest

from neat.actions.conflict_resolver import (
    ConflictAction,
    ConflictResolver,
    ConflictStrategy,
    Resolution,
    unique_path,
)
from neat.actions.file_operations import ExecutionSummary, FileOperations
from neat.actions.history_tracker import OperationType
from neat.actions.planner import PlannedMove
from neat.utils.exceptions import ConfigurationError, OperationCancelledError


def _move(source: Path, destination: Path) -> PlannedMove:
    return PlannedMove(source, destination, source.stat().st_size)


class TestConflictResolver:
    """Tests for ConflictResolver."""

    def test_no_conflict(self, tmp_path):
        resolver = ConflictResolver()

        assert resolver.resolve(tmp_path / "a", tmp_path / "b") == Resolution(ConflictAction.PROCEED, tmp_path / "b")

    def test_rename_finds_free_name(self, make_file):
        existing = make_file("dest/report.pdf")
        make_file("dest/report_1.pdf")

        resolution = ConflictResolver().resolve(Path("report.pdf"), existing)

        assert resolution.action == ConflictAction.PROCEED
        assert resolution.path == existing.parent / "report_2.pdf"
        assert not resolution.path.exists()

    def test_skip_and_overwrite(self, make_file):
        existing = make_file("dest/a.txt")

        assert ConflictResolver(ConflictStrategy.SKIP).resolve(Path("a.txt"), existing) == Resolution(
            ConflictAction.SKIP, None
        )
        assert ConflictResolver(ConflictStrategy.OVERWRITE).resolve(Path("a.txt"), existing) == Resolution(
            ConflictAction.OVERWRITE, existing
        )

    def test_ask(self, make_file):
        existing = make_file("dest/a.txt")
        questions = []

        def answer_yes(question):
            questions.append(question)
            return True

        yes = ConflictResolver(ConflictStrategy.ASK, answer_yes).resolve(Path("a.txt"), existing)
        no = ConflictResolver(ConflictStrategy.ASK, lambda q: False).resolve(Path("a.txt"), existing)

        assert yes.action == ConflictAction.OVERWRITE
        assert no.action == ConflictAction.SKIP
        assert str(existing) in questions[0]

    def test_ask_without_callback_renames(self, make_file):
        existing = make_file("dest/a.txt")

        assert ConflictResolver(ConflictStrategy.ASK).resolve(Path("a.txt"), existing) == Resolution(
            ConflictAction.PROCEED, existing.parent / "a_1.txt"
        )

    def test_unique_path_without_suffix(self, make_file):
        existing = make_file("dest/README")

        assert unique_path(existing) == existing.parent / "README_1"

    def test_stats(self, make_file):
        existing = make_file("dest/a.txt")
        resolver = ConflictResolver(ConflictStrategy.SKIP)
        resolver.resolve(Path("a.txt"), existing)
        resolver.resolve(Path("a.txt"), existing, strategy=ConflictStrategy.RENAME)

        assert resolver.get_stats() == {"total": 2, "by_strategy": {"skip": 1, "rename": 1}}

    def test_from_string(self):
        assert ConflictStrategy.from_string(" Overwrite ") == ConflictStrategy.OVERWRITE
        with pytest.raises(ConfigurationError):
            ConflictStrategy.from_string("merge")


class TestExecute:
    """Tests for FileOperations.execute."""

    def test_moves_and_logs(self, tmp_path, make_file, history_store):
        a = make_file("a.txt", b"aaa")
        b = make_file("b.jpg", b"bb")
        moves = [_move(a, tmp_path / "Documents" / "a.txt"), _move(b, tmp_path / "Images" / "b.jpg")]

        summary = FileOperations(history_store).execute(moves, "neat organize .")

        assert summary.moved == 2
        assert summary.total_size == 5
        assert summary.errors == []
        assert (tmp_path / "Documents" / "a.txt").read_bytes() == b"aaa"
        assert not a.exists()

        batch = history_store.load().batches[-1]
        assert batch.command == "neat organize ."
        assert [(op.source, op.operation_type) for op in batch.operations] == [
            (a, OperationType.MOVE), (b, OperationType.MOVE)
        ]

    def test_rename_never_overwrites(self, tmp_path, make_file, history_store):
        source = make_file("a.txt", b"new")
        existing = make_file("Documents/a.txt", b"old")

        summary = FileOperations(history_store).execute([_move(source, existing)], "cmd")

        assert summary.moved == 1
        assert existing.read_bytes() == b"old"
        assert (tmp_path / "Documents" / "a_1.txt").read_bytes() == b"new"
        assert history_store.load().batches[-1].operations[0].destination == tmp_path / "Documents" / "a_1.txt"

    def test_skip(self, make_file, history_store):
        source = make_file("a.txt", b"new")
        existing = make_file("Documents/a.txt", b"old")

        summary = FileOperations(history_store).execute(
            [_move(source, existing)], "cmd", conflict_strategy=ConflictStrategy.SKIP
        )

        assert (summary.moved, summary.skipped) == (0, 1)
        assert source.exists()
        assert history_store.load().is_empty()

    def test_overwrite(self, make_file, history_store):
        source = make_file("a.txt", b"new")
        existing = make_file("Documents/a.txt", b"old")

        summary = FileOperations(history_store).execute(
            [_move(source, existing)], "cmd", conflict_strategy=ConflictStrategy.OVERWRITE
        )

        assert summary.moved == 1
        assert existing.read_bytes() == b"new"

    def test_failure_does_not_abort_batch(self, tmp_path, make_file, history_store):
        """Test one failing move is reported and the rest still run."""
        gone = make_file("gone.txt", b"x")
        kept = make_file("kept.txt", b"y")
        moves = [_move(gone, tmp_path / "out" / "gone.txt"), _move(kept, tmp_path / "out" / "kept.txt")]
        os.unlink(gone)

        summary = FileOperations(history_store).execute(moves, "cmd")

        assert (summary.moved, summary.skipped) == (1, 1)
        assert len(summary.errors) == 1
        assert summary.errors[0].startswith(str(gone))
        assert len(history_store.load().batches[-1].operations) == 1

    def test_copy_is_not_logged(self, tmp_path, make_file, history_store):
        source = make_file("a.txt", b"aaa")

        summary = FileOperations(history_store).execute(
            [_move(source, tmp_path / "copy" / "a.txt")], "cmd", is_copy=True
        )

        assert summary.moved == 1
        assert source.exists()
        assert (tmp_path / "copy" / "a.txt").read_bytes() == b"aaa"
        assert history_store.load().is_empty()

    def test_progress(self, tmp_path, make_file, history_store):
        calls = []
        source = make_file("a.txt")

        FileOperations(history_store).execute(
            [_move(source, tmp_path / "x" / "a.txt")], "cmd",
            progress_callback=lambda done, total, path: calls.append((done, total))
        )

        assert calls == [(1, 1)]

    def test_empty_plan(self, history_store):
        summary = FileOperations(history_store).execute([], "cmd")

        assert summary.describe() == "Nothing to do."
        assert history_store.load().is_empty()


class TestDeleteFiles:
    """Tests for FileOperations.delete_files."""

    def test_deletes_after_one_confirmation(self, make_file, history_store):
        paths = [make_file("a.txt", b"12"), make_file("b.txt", b"345")]
        questions = []

        def confirm(question):
            questions.append(question)
            return True

        summary = FileOperations(history_store).delete_files(paths, "neat clean", confirm=confirm)

        assert len(questions) == 1
        assert (summary.deleted, summary.total_size) == (2, 5)
        assert not any(path.exists() for path in paths)
        ops = history_store.load().batches[-1].operations
        assert [op.operation_type for op in ops] == [OperationType.DELETE, OperationType.DELETE]
        assert ops[0].destination is None

    def test_declined(self, make_file, history_store):
        path = make_file("a.txt")

        with pytest.raises(OperationCancelledError):
            FileOperations(history_store).delete_files([path], "cmd", confirm=lambda q: False)

        assert path.exists()
        assert history_store.load().is_empty()

    def test_missing_file_reported(self, tmp_path, make_file, history_store):
        path = make_file("a.txt")

        summary = FileOperations(history_store).delete_files([tmp_path / "missing", path], "cmd")

        assert (summary.deleted, summary.skipped) == (1, 1)
        assert len(summary.errors) == 1


class TestExecutionSummary:
    """Tests for ExecutionSummary.describe."""

    def test_caps_error_lines(self):
        summary = ExecutionSummary(moved=1, skipped=12, total_size=2048,
                                   errors=[f"f{i}: boom" for i in range(12)])

        text = summary.describe(max_errors=10)

        assert text.splitlines()[0] == "1 files moved (2.00 KB), 12 skipped"
        assert "f9: boom" in text
        assert "f10: boom" not in text
        assert "and 2 more errors" in text
        assert len(summary.errors) == 12
