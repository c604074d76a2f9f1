"""
Unit tests for the directory scanner and its filters.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from neat.scanning.filters import (
    NameFilter,
    ScanFilters,
    get_mime_type,
    is_ignored,
    load_ignore_patterns,
    matches_mime,
)
from neat.scanning import filters
from neat.scanning.scanner import (
    FileRecord,
    collect_stats,
    find_old_files,
    scan_directory,
    total_size,
)
from neat.utils.exceptions import ConfigurationError, ErrorCode, ScanError


PDF_BYTES = b"%PDF-1.4\n1 0 obj\n<< /Type /Catalog >>\nendobj\ntrailer\n<< /Root 1 0 R >>\n%%EOF\n"


def _names(records):
    return sorted(record.name for record in records)


class TestFileRecord:
    """Tests for FileRecord."""

    def test_from_path(self, make_file):
        path = make_file("Photo.JPG", b"abc")

        record = FileRecord.from_path(path)

        assert record.path == path
        assert record.name == "Photo.JPG"
        assert record.extension == "jpg"
        assert record.size == 3
        assert record.stem == "Photo"

    def test_no_extension(self, make_file):
        record = FileRecord.from_path(make_file("Makefile"))

        assert record.extension is None

    def test_is_immutable(self, make_record):
        record = make_record("a.txt")

        with pytest.raises(AttributeError):
            record.size = 10


class TestScanRoot:
    """Tests for root path validation."""

    def test_missing_root(self, tmp_path):
        with pytest.raises(ScanError) as exc_info:
            scan_directory(tmp_path / "missing")

        assert exc_info.value.error_code == ErrorCode.PATH_NOT_FOUND

    def test_root_is_file(self, make_file):
        path = make_file("a.txt")

        with pytest.raises(ScanError) as exc_info:
            scan_directory(path)

        assert exc_info.value.error_code == ErrorCode.NOT_A_DIRECTORY


class TestTraversal:
    """Tests for depth, hidden and symlink handling."""

    def test_recursive_by_default(self, tmp_path, make_file):
        make_file("a.txt")
        make_file("sub/b.txt")
        make_file("sub/deeper/c.txt")

        assert _names(scan_directory(tmp_path)) == ["a.txt", "b.txt", "c.txt"]

    def test_max_depth_one_is_immediate_children(self, tmp_path, make_file):
        make_file("a.txt")
        make_file("sub/b.txt")

        records = scan_directory(tmp_path, ScanFilters(max_depth=1))

        assert _names(records) == ["a.txt"]

    def test_max_depth_two(self, tmp_path, make_file):
        make_file("a.txt")
        make_file("sub/b.txt")
        make_file("sub/deeper/c.txt")

        records = scan_directory(tmp_path, ScanFilters(max_depth=2))

        assert _names(records) == ["a.txt", "b.txt"]

    def test_hidden_skipped(self, tmp_path, make_file):
        make_file("visible.txt")
        make_file(".hidden.txt")
        make_file(".git/config")

        assert _names(scan_directory(tmp_path)) == ["visible.txt"]

    def test_hidden_included(self, tmp_path, make_file):
        make_file("visible.txt")
        make_file(".hidden.txt")
        make_file(".git/config")

        records = scan_directory(tmp_path, ScanFilters(include_hidden=True))

        assert _names(records) == [".hidden.txt", "config", "visible.txt"]

    def test_symlinks_skipped_unless_followed(self, tmp_path, make_file):
        target = make_file("real/a.txt", b"x")
        os.symlink(target, tmp_path / "link.txt")
        os.symlink(target.parent, tmp_path / "linked_dir")

        assert _names(scan_directory(tmp_path)) == ["a.txt"]

        # The linked directory and the real one are the same inode: walked once
        followed = scan_directory(tmp_path, ScanFilters(follow_symlinks=True))
        assert _names(followed) == ["a.txt", "link.txt"]

    def test_symlink_loop_terminates(self, tmp_path, make_file):
        make_file("dir/a.txt")
        os.symlink(tmp_path / "dir", tmp_path / "dir" / "loop")

        records = scan_directory(tmp_path, ScanFilters(follow_symlinks=True))

        assert _names(records) == ["a.txt"]

    def test_broken_symlink_skipped(self, tmp_path, make_file):
        make_file("a.txt")
        os.symlink(tmp_path / "gone.txt", tmp_path / "dangling.txt")

        records = scan_directory(tmp_path, ScanFilters(follow_symlinks=True))

        assert _names(records) == ["a.txt"]


class TestFilters:
    """Tests for the scan predicates."""

    def test_size_bounds_inclusive(self, tmp_path, make_file):
        make_file("small.bin", b"x" * 10)
        make_file("medium.bin", b"x" * 100)
        make_file("large.bin", b"x" * 1000)

        records = scan_directory(tmp_path, ScanFilters(min_size=100, max_size=1000))

        assert _names(records) == ["large.bin", "medium.bin"]

    def test_date_bounds(self, tmp_path, make_file):
        make_file("old.txt", modified=datetime(2020, 1, 1, 12))
        make_file("new.txt", modified=datetime(2024, 6, 1, 12))

        records = scan_directory(tmp_path, ScanFilters(after=datetime(2023, 1, 1)))
        assert _names(records) == ["new.txt"]

        records = scan_directory(tmp_path, ScanFilters(before=datetime(2023, 1, 1)))
        assert _names(records) == ["old.txt"]

    def test_name_filters(self, tmp_path, make_file):
        make_file("Report_2024.pdf")
        make_file("report_draft.pdf")
        make_file("notes.txt")

        assert _names(scan_directory(tmp_path, ScanFilters(name_startswith="report"))) == [
            "Report_2024.pdf", "report_draft.pdf"
        ]
        assert _names(scan_directory(tmp_path, ScanFilters(name_endswith="draft"))) == ["report_draft.pdf"]
        assert _names(scan_directory(tmp_path, ScanFilters(name_contains=".TXT"))) == ["notes.txt"]

    def test_regex(self, tmp_path, make_file):
        make_file("IMG_0001.jpg")
        make_file("holiday.jpg")

        records = scan_directory(tmp_path, ScanFilters(regex=r"^IMG_\d+"))

        assert _names(records) == ["IMG_0001.jpg"]

    def test_invalid_regex_raises(self, tmp_path, make_file):
        make_file("a.txt")

        with pytest.raises(ConfigurationError):
            scan_directory(tmp_path, ScanFilters(regex="("))

    def test_mime_from_content(self, tmp_path, make_file):
        """Test MIME filtering looks at file content, not the extension."""
        pytest.importorskip("magic")
        Image = pytest.importorskip("PIL.Image")
        make_file("doc.pdf", PDF_BYTES)
        make_file("fake.pdf", b"just some notes\n")
        Image.new("RGB", (8, 8), "red").save(tmp_path / "pic.png", format="PNG")
        Image.new("RGB", (8, 8), "blue").save(tmp_path / "scan.txt", format="JPEG")

        assert _names(scan_directory(tmp_path, ScanFilters(mime="application/pdf"))) == ["doc.pdf"]
        assert _names(scan_directory(tmp_path, ScanFilters(mime="image/*"))) == ["pic.png", "scan.txt"]
        assert _names(scan_directory(tmp_path, ScanFilters(mime="image/jpeg"))) == ["scan.txt"]

    def test_ignore_patterns(self, tmp_path, make_file):
        make_file("keep.txt")
        make_file("skip.tmp")
        make_file("build/out.txt")

        records = scan_directory(tmp_path, ScanFilters(ignore_patterns=["*.tmp", "*/build/*"]))

        assert _names(records) == ["keep.txt"]


class TestFilterHelpers:
    """Tests for the standalone filter helpers."""

    def test_name_filter_uses_stem_for_suffix(self):
        name_filter = NameFilter(endswith="final")

        assert name_filter.matches("essay_FINAL.docx")
        assert not name_filter.matches("final_essay.docx")

    def test_is_ignored(self):
        assert is_ignored(Path("/x/Thumbs.db"), ["Thumbs.db"])
        assert not is_ignored(Path("/x/thumbs.db"), ["Thumbs.db"])

    def test_unreadable_file_never_matches(self, tmp_path):
        assert get_mime_type(tmp_path / "missing.pdf") is None
        assert not matches_mime(tmp_path / "missing.pdf", "application/*")

    def test_without_libmagic_nothing_matches(self, make_file, monkeypatch):
        monkeypatch.setattr(filters, "_mime_detector", False)

        assert not matches_mime(make_file("doc.pdf", PDF_BYTES), "application/pdf")

    def test_load_ignore_patterns(self, tmp_path):
        (tmp_path / ".neatignore").write_text("# comment\n\n*.log\nnode_modules\n")

        assert load_ignore_patterns(tmp_path) == ["*.log", "node_modules"]

    def test_missing_ignore_file(self, tmp_path):
        assert load_ignore_patterns(tmp_path) == []


class TestOldFiles:
    """Tests for find_old_files and total_size."""

    def test_find_old_files(self, make_record):
        now = datetime(2024, 6, 1)
        old = make_record("old.txt", b"12345", modified=now - timedelta(days=40))
        recent = make_record("recent.txt", b"1", modified=now - timedelta(days=2))

        result = find_old_files([old, recent], timedelta(days=30), now=now)

        assert result == [old]
        assert total_size([old, recent]) == 6


class TestCollectStats:
    """Tests for collect_stats."""

    def test_groups_by_category(self, make_record):
        records = [
            make_record("report.pdf", b"x" * 100),
            make_record("a.jpg", b"x" * 10),
            make_record("b.png", b"x" * 30),
            make_record("notes", b"x"),
        ]

        stats = collect_stats(records)

        assert stats.total_files == 4
        assert stats.total_size == 141
        assert stats.categories == [("Images", 2, 40), ("Documents", 1, 100), ("Other", 1, 1)]

    def test_largest_and_oldest(self, make_record):
        base = datetime(2024, 1, 1)
        records = [
            make_record(f"file{i}.txt", b"x" * i, modified=base + timedelta(days=i))
            for i in range(1, 6)
        ]

        stats = collect_stats(records, top=2)

        assert [r.name for r in stats.largest] == ["file5.txt", "file4.txt"]
        assert [r.name for r in stats.oldest] == ["file1.txt", "file2.txt"]

    def test_empty(self):
        stats = collect_stats([])

        assert stats.total_files == 0
        assert stats.categories == []
        assert stats.largest == []
