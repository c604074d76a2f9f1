"""
Unit tests for move planning, templates and custom rules.
"""

from datetime import datetime
from pathlib import Path

import pytest

from neat.actions.planner import (
    OrganizeMode,
    Planner,
    PlannedMove,
    Template,
    parse_mode,
    plan_moves,
    preview_moves,
)
from neat.actions.rules_engine import CustomRule, RulesEngine
from neat.actions.template_engine import (
    TemplateEngine,
    get_preset_template,
    needs_metadata,
    template_variables,
)
from neat.extraction.metadata_reader import MediaMetadata
from neat.utils.exceptions import ConfigurationError

MODIFIED = datetime(2023, 4, 9, 12, 0, 0)


def _lookup(table):
    """Metadata lookup backed by a {file name: MediaMetadata} table."""
    return lambda path: table.get(Path(path).name, MediaMetadata())


def _relative(moves, base):
    return {move.source.name: str(move.destination.relative_to(base)) for move in moves}


class TestParseMode:
    """Tests for parse_mode."""

    def test_mode_names(self):
        assert parse_mode("by-type") == OrganizeMode.BY_TYPE
        assert parse_mode("BY-ALBUM") == OrganizeMode.BY_ALBUM

    def test_preset(self):
        assert parse_mode("music") == Template("{artist}/{album}/{filename}")

    def test_template(self):
        assert parse_mode("{year}/{filename}") == Template("{year}/{filename}")

    def test_unknown(self):
        with pytest.raises(ConfigurationError):
            parse_mode("by-colour")


class TestFixedModes:
    """Tests for the fixed organize modes."""

    def test_by_extension_report(self, tmp_path, make_record):
        """Test report.pdf is planned into PDF/report.pdf."""
        record = make_record("report.pdf", b"%PDF")

        moves = plan_moves([record], tmp_path, OrganizeMode.BY_EXTENSION)

        assert moves == [PlannedMove(record.path, tmp_path / "PDF" / "report.pdf", 4)]

    def test_by_extension_without_extension(self, tmp_path, make_record):
        moves = plan_moves([make_record("README")], tmp_path, OrganizeMode.BY_EXTENSION)

        assert _relative(moves, tmp_path) == {"README": "NO_EXTENSION/README"}

    def test_by_type(self, tmp_path, make_record):
        records = [make_record("a.JPG"), make_record("b.mp3"), make_record("c.weird")]

        moves = plan_moves(records, tmp_path, OrganizeMode.BY_TYPE)

        assert _relative(moves, tmp_path) == {
            "a.JPG": "Images/a.JPG",
            "b.mp3": "Audio/b.mp3",
            "c.weird": "Other/c.weird",
        }

    def test_by_date(self, tmp_path, make_record):
        record = make_record("a.txt", modified=MODIFIED)

        moves = plan_moves([record], tmp_path, OrganizeMode.BY_DATE)

        assert _relative(moves, tmp_path) == {"a.txt": "2023/04/a.txt"}

    def test_by_camera(self, tmp_path, make_record):
        records = [make_record("a.jpg"), make_record("b.jpg"), make_record("c.png")]
        lookup = _lookup({"a.jpg": MediaMetadata(camera_model="iPhone 12")})

        moves = plan_moves(records, tmp_path, OrganizeMode.BY_CAMERA, metadata_lookup=lookup)

        # PNG carries no EXIF and is left alone
        assert _relative(moves, tmp_path) == {
            "a.jpg": "iPhone 12/a.jpg",
            "b.jpg": "Unknown/b.jpg",
        }

    def test_by_date_taken_falls_back_to_modified(self, tmp_path, make_record):
        records = [make_record("a.jpg", modified=MODIFIED), make_record("b.jpg", modified=MODIFIED)]
        lookup = _lookup({"a.jpg": MediaMetadata(date_taken="2019:12:31 23:59:00")})

        moves = plan_moves(records, tmp_path, OrganizeMode.BY_DATE_TAKEN, metadata_lookup=lookup)

        assert _relative(moves, tmp_path) == {
            "a.jpg": "2019/12/a.jpg",
            "b.jpg": "2023/04/b.jpg",
        }

    def test_by_artist_and_album(self, tmp_path, make_record):
        records = [make_record("song.mp3"), make_record("untagged.flac"), make_record("notes.txt")]
        lookup = _lookup({"song.mp3": MediaMetadata(artist="AC/DC", album="Back in Black")})

        by_artist = plan_moves(records, tmp_path, OrganizeMode.BY_ARTIST, metadata_lookup=lookup)
        by_album = plan_moves(records, tmp_path, OrganizeMode.BY_ALBUM, metadata_lookup=lookup)

        assert _relative(by_artist, tmp_path) == {
            "song.mp3": "AC_DC/song.mp3",
            "untagged.flac": "Unknown Artist/untagged.flac",
        }
        assert _relative(by_album, tmp_path) == {
            "song.mp3": "AC_DC/Back in Black/song.mp3",
            "untagged.flac": "Unknown Artist/Unknown Album/untagged.flac",
        }

    def test_dot_tags_stay_inside_base(self, tmp_path, make_record):
        """Test tags such as ".." fall back to Unknown instead of climbing out of the base."""
        base = tmp_path / "music"
        records = [make_record("music/song.mp3"), make_record("music/photo.jpg")]
        lookup = _lookup({
            "song.mp3": MediaMetadata(artist="..", album="."),
            "photo.jpg": MediaMetadata(camera_model=".."),
        })

        by_album = plan_moves(records, base, OrganizeMode.BY_ALBUM, metadata_lookup=lookup)
        by_camera = plan_moves(records, base, OrganizeMode.BY_CAMERA, metadata_lookup=lookup)

        assert _relative(by_album, base) == {"song.mp3": "Unknown Artist/Unknown Album/song.mp3"}
        assert _relative(by_camera, base) == {"photo.jpg": "Unknown/photo.jpg"}

    def test_already_organized_is_skipped(self, tmp_path, make_record):
        """Test files already at their destination produce no move."""
        in_place = make_record("Documents/notes.txt")
        stray = make_record("todo.txt")

        moves = plan_moves([in_place, stray], tmp_path, OrganizeMode.BY_TYPE)

        assert [move.source for move in moves] == [stray.path]
        for move in moves:
            assert move.source != move.destination

    def test_metadata_not_read_for_plain_modes(self, tmp_path, make_record):
        def explode(path):
            raise AssertionError("metadata lookup should not run")

        moves = Planner(tmp_path, OrganizeMode.BY_TYPE, metadata_lookup=explode).plan([make_record("a.jpg")])

        assert len(moves) == 1


class TestTemplates:
    """Tests for template-based organizing."""

    def test_template_appends_extension(self, tmp_path, make_record):
        record = make_record("report.pdf", modified=MODIFIED)

        moves = plan_moves([record], tmp_path, Template("{year}/{category}/{filename}"))

        assert _relative(moves, tmp_path) == {"report.pdf": "2023/Documents/report.pdf"}

    def test_template_with_full_name(self, tmp_path, make_record):
        record = make_record("report.pdf")

        moves = plan_moves([record], tmp_path, Template("{ext}/{name}"))

        assert _relative(moves, tmp_path) == {"report.pdf": "pdf/report.pdf"}

    def test_unresolved_placeholders(self, tmp_path, make_record):
        record = make_record("photo.jpg")

        moves = plan_moves([record], tmp_path, Template("{camera}/{nonsense}/{filename}"),
                           metadata_lookup=_lookup({}))

        assert _relative(moves, tmp_path) == {"photo.jpg": "Unknown/Unknown/photo.jpg"}

    @pytest.mark.parametrize("pattern", ["../{filename}", "../../elsewhere/{filename}"])
    def test_destination_outside_base_is_skipped(self, tmp_path, make_record, pattern):
        base = tmp_path / "inbox"
        record = make_record("inbox/report.pdf")

        assert plan_moves([record], base, Template(pattern)) == []

    def test_preset(self, tmp_path, make_record):
        record = make_record("track.mp3")
        lookup = _lookup({"track.mp3": MediaMetadata(artist="Miles Davis", album="Kind of Blue")})

        moves = plan_moves([record], tmp_path, parse_mode("music"), metadata_lookup=lookup)

        assert _relative(moves, tmp_path) == {"track.mp3": "Miles Davis/Kind of Blue/track.mp3"}


class TestTemplateEngine:
    """Tests for TemplateEngine."""

    def test_variables(self, make_record):
        record = make_record("Holiday.JPG", b"x" * 2048, modified=MODIFIED)

        engine = TemplateEngine.from_record(record, now=datetime(2025, 1, 2))

        assert engine.get("filename") == "Holiday"
        assert engine.get("extension") == "jpg"
        assert engine.get("size_kb") == "2"
        assert engine.get("date") == "2023-04-09"
        assert engine.get("now.date") == "2025-01-02"
        assert engine.get("category") == "Images"
        assert engine.get("camera") is None

    def test_render_collapses_slashes(self):
        engine = TemplateEngine({"a": "x", "empty": ""})

        assert engine.render("/{a}//{empty}/{a}/") == "x/Unknown/x"

    def test_helpers(self):
        assert template_variables("{year}/{taken.month}") == ["year", "taken.month"]
        assert needs_metadata("{taken.year}/{filename}")
        assert not needs_metadata("{year}/{filename}")
        assert get_preset_template("Photos") == "{taken.year}/{taken.month}/{filename}"
        assert get_preset_template("nope") is None


class TestRulesEngine:
    """Tests for custom rules."""

    def test_priority_order(self):
        engine = RulesEngine([
            CustomRule("Low", "*.pdf", "PDFs", priority=1),
            CustomRule("High", "*invoice*.pdf", "Invoices", priority=10),
        ])

        assert engine.find_matching_rule("invoice_march.pdf").name == "High"
        assert engine.find_matching_rule("manual.pdf").name == "Low"
        assert engine.find_matching_rule("photo.jpg") is None

    def test_equal_priority_keeps_order(self):
        engine = RulesEngine([
            CustomRule("First", "*.txt", "A"),
            CustomRule("Second", "*.txt", "B"),
        ])

        assert engine.find_matching_rule("x.txt").name == "First"

    def test_disabled_rule_ignored(self):
        engine = RulesEngine([CustomRule("Off", "*", "X", enabled=False)])

        assert engine.find_matching_rule("anything") is None

    def test_from_config(self):
        engine = RulesEngine.from_config([
            {"name": "Invoices", "pattern": "*invoice*", "destination": "Invoices/{year}", "priority": "5"},
        ])

        assert len(engine) == 1
        assert engine.get_rules()[0].priority == 5

    def test_from_config_missing_keys(self):
        with pytest.raises(ConfigurationError):
            RulesEngine.from_config([{"name": "Broken"}])

    def test_add_and_remove(self):
        engine = RulesEngine()
        engine.add_rule(CustomRule("Temp", "*.tmp", "Trash"))

        assert engine.remove_rule("Temp") is True
        assert engine.remove_rule("Temp") is False
        assert len(engine) == 0

    def test_rule_overrides_mode(self, tmp_path, make_record):
        """Test a matching rule decides the folder before the organize mode."""
        invoice = make_record("invoice_01.pdf", modified=MODIFIED)
        other = make_record("manual.pdf")
        rules = RulesEngine([CustomRule("Invoices", "invoice*", "Finance/{year}")])

        moves = plan_moves([invoice, other], tmp_path, OrganizeMode.BY_TYPE, rules_engine=rules)

        assert _relative(moves, tmp_path) == {
            "invoice_01.pdf": "Finance/2023/invoice_01.pdf",
            "manual.pdf": "Documents/manual.pdf",
        }


class TestPreview:
    """Tests for preview_moves."""

    def test_groups_by_folder(self, tmp_path):
        moves = [
            PlannedMove(tmp_path / f"{i}.jpg", tmp_path / "Images" / f"{i}.jpg", 1024)
            for i in range(7)
        ] + [PlannedMove(tmp_path / "a.pdf", tmp_path / "Documents" / "a.pdf", 1024)]

        preview = preview_moves(moves, tmp_path)

        assert [str(f.folder) for f in preview.folders] == ["Documents", "Images"]
        assert preview.total_files == 8
        assert preview.total_size == 8192

        text = preview.format()
        assert "Images (7 files)" in text
        assert "... and 2 more" in text
        assert "8.00 KB" in text

    def test_empty(self, tmp_path):
        assert preview_moves([], tmp_path).format() == "No files to move."
