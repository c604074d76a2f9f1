"""
neat - Main Application
=======================

Command-line entry point. Wires the scanner, engines, planner, executor
and history together for each subcommand:

    neat organize PATH [--by-date | --template T ...] [--execute]
    neat duplicates PATH [--delete --execute]
    neat similar PATH [--threshold N] [--delete --execute]
    neat clean PATH --older-than 30d [--execute]
    neat undo
    neat history [N]
    neat stats PATH

Without ``--execute`` every mutating command only prints a preview.
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from neat.actions import (
    ConflictStrategy,
    ExecutionSummary,
    FileOperations,
    HistoryStore,
    HistoryTracker,
    JsonHistoryStore,
    OrganizeMode,
    PlannedMove,
    Planner,
    RulesEngine,
    Template,
    parse_mode,
    preview_moves,
)
from neat.actions.planner import Mode, MetadataLookup
from neat.config import Config
from neat.deduplication import (
    DeduplicationEngine,
    DuplicateGroup,
    PerceptualHashEngine,
    SimilarGroup,
    similarity_percent,
)
from neat.scanning import (
    FileRecord,
    ScanFilters,
    collect_stats,
    find_old_files,
    load_ignore_patterns,
    scan_directory,
)
from neat.utils.exceptions import NeatError, OperationCancelledError
from neat.utils.logging_config import (
    LogContext,
    LoggingConfig,
    get_logger,
    set_correlation_id,
    setup_logging,
)
from neat.utils.parsing import format_size, parse_date, parse_duration, parse_size

logger = get_logger(__name__)

ConfirmCallback = Callable[[str], bool]


def prompt_confirm(question: str) -> bool:
    """Ask a yes/no question on the terminal. Defaults to no."""
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


class NeatOrganizer:
    """Runs neat's workflows against the filesystem.

    Args:
        config: Loaded configuration. Defaults are used when omitted.
        history_store: Where executed batches are logged.
        confirm: Yes/no callback for conflicts and irreversible deletes.
        metadata_lookup: Media metadata source for camera/artist modes.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        history_store: Optional[HistoryStore] = None,
        confirm: Optional[ConfirmCallback] = None,
        metadata_lookup: Optional[MetadataLookup] = None,
    ):
        self.config = config or Config()
        self.history_store = history_store or JsonHistoryStore(
            self.config.history.history_file,
            max_batches=self.config.history.max_batches,
        )
        self.confirm = confirm
        self.metadata_lookup = metadata_lookup
        self.file_ops = FileOperations(self.history_store)
        self.history = HistoryTracker(self.history_store)
        self.rules_engine = RulesEngine.from_config(self.config.rules)

    # =====================
    # Scanning
    # =====================

    def build_filters(self, path: Path, **options) -> ScanFilters:
        """Merge config defaults, ``.neatignore`` and per-call options."""
        ignore = list(self.config.scan.ignore_patterns)
        ignore.extend(load_ignore_patterns(path))
        ignore.extend(options.pop("ignore_patterns", None) or [])
        options.setdefault("include_hidden", self.config.scan.include_hidden)
        options.setdefault("follow_symlinks", self.config.scan.follow_symlinks)
        return ScanFilters(ignore_patterns=ignore, **options)

    def scan(self, path: Path, filters: Optional[ScanFilters] = None) -> List[FileRecord]:
        return scan_directory(path, filters or self.build_filters(path))

    # =====================
    # Workflows
    # =====================

    def plan_organize(
        self,
        path: Path,
        mode: Mode,
        filters: Optional[ScanFilters] = None,
    ) -> List[PlannedMove]:
        """Scan ``path`` and plan where every file should go."""
        records = self.scan(path, filters or self.build_filters(path, max_depth=1))
        planner = Planner(
            path,
            mode,
            rules_engine=self.rules_engine,
            metadata_lookup=self.metadata_lookup,
        )
        return planner.plan(records)

    def organize(
        self,
        moves: Sequence[PlannedMove],
        command_label: str,
        conflict_strategy: ConflictStrategy = ConflictStrategy.RENAME,
        is_copy: bool = False,
    ) -> ExecutionSummary:
        return self.file_ops.execute(
            moves,
            command_label,
            conflict_strategy=conflict_strategy,
            is_copy=is_copy,
            confirm=self.confirm,
        )

    def find_duplicates(self, records: Sequence[FileRecord]) -> List[DuplicateGroup]:
        engine = DeduplicationEngine(
            chunk_size=self.config.deduplication.quick_hash_size,
            max_workers=self.config.deduplication.max_workers,
        )
        return engine.find_duplicates(records)

    def find_similar(self, records: Sequence[FileRecord], threshold: Optional[int] = None) -> List[SimilarGroup]:
        engine = PerceptualHashEngine(
            threshold=self.config.deduplication.similarity_threshold if threshold is None else threshold,
            hash_size=self.config.deduplication.perceptual_hash_size,
            max_workers=self.config.deduplication.max_workers,
        )
        return engine.find_similar(records)

    def delete(self, paths: Sequence[Path], command_label: str) -> ExecutionSummary:
        """Delete files after one confirmation, logging them to history."""
        return self.file_ops.delete_files(paths, command_label, confirm=self.confirm)


# =====================
# CLI
# =====================

def _add_filter_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("filters")
    group.add_argument('--ignore', action='append', default=[], metavar='GLOB',
                       help='Ignore files matching this glob (repeatable)')
    group.add_argument('--min-size', help='Only files at least this large (e.g. 10MB)')
    group.add_argument('--max-size', help='Only files at most this large')
    group.add_argument('--after', help='Only files modified on or after YYYY-MM-DD')
    group.add_argument('--before', help='Only files modified before the start of YYYY-MM-DD')
    group.add_argument('--startswith', help='Name (without extension) starts with')
    group.add_argument('--endswith', help='Name (without extension) ends with')
    group.add_argument('--contains', help='Name contains')
    group.add_argument('--regex', help='Regular expression searched in the name')
    group.add_argument('--mime', help='MIME type, e.g. application/pdf or image/*')
    group.add_argument('--hidden', action='store_true', default=None,
                       help='Include hidden files and directories')


def _filter_options(args: argparse.Namespace, recursive: bool) -> dict:
    options = dict(
        max_depth=None if recursive else 1,
        ignore_patterns=args.ignore,
        min_size=parse_size(args.min_size) if args.min_size else None,
        max_size=parse_size(args.max_size) if args.max_size else None,
        after=parse_date(args.after) if args.after else None,
        before=parse_date(args.before) if args.before else None,
        name_startswith=args.startswith,
        name_endswith=args.endswith,
        name_contains=args.contains,
        regex=args.regex,
        mime=args.mime,
    )
    if args.hidden:
        options["include_hidden"] = True
    return options


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="neat",
        description="neat - organize, deduplicate and clean up directories"
    )
    parser.add_argument('--config', type=Path, help='Config file (default: ~/.neat/config.yaml)')
    parser.add_argument('--verbose', '-v', action='count', default=0, help='More log output')
    parser.add_argument('--yes', '-y', action='store_true', help='Answer yes to every prompt')

    subparsers = parser.add_subparsers(dest='command', required=True)

    organize = subparsers.add_parser('organize', help='Sort files into folders')
    organize.add_argument('path', type=Path)
    modes = organize.add_mutually_exclusive_group()
    for mode in OrganizeMode:
        modes.add_argument(f'--{mode.value}', dest='mode', action='store_const', const=mode.value,
                           help=f'Organize {mode.value.replace("-", " ")}')
    modes.add_argument('--template', dest='mode', metavar='TEMPLATE',
                       help='Template such as "{year}/{category}/{filename}" or a preset name')
    organize.add_argument('--execute', action='store_true', help='Perform the moves')
    organize.add_argument('--copy', action='store_true', help='Copy instead of move')
    organize.add_argument('--recursive', '-r', action='store_true', help='Include subdirectories')
    organize.add_argument('--on-conflict', choices=[s.value for s in ConflictStrategy],
                          help='What to do when a destination exists')
    _add_filter_arguments(organize)

    duplicates = subparsers.add_parser('duplicates', help='Find byte-identical files')
    duplicates.add_argument('path', type=Path)
    duplicates.add_argument('--delete', action='store_true', help='Delete all but the first file per group')
    duplicates.add_argument('--execute', action='store_true', help='Perform the deletes')
    _add_filter_arguments(duplicates)

    similar = subparsers.add_parser('similar', help='Find visually similar images')
    similar.add_argument('path', type=Path)
    similar.add_argument('--threshold', type=int, help='Max hash distance (0-256)')
    similar.add_argument('--delete', action='store_true', help='Delete all but the representative per group')
    similar.add_argument('--execute', action='store_true', help='Perform the deletes')
    _add_filter_arguments(similar)

    clean = subparsers.add_parser('clean', help='Delete files older than a given age')
    clean.add_argument('path', type=Path)
    clean.add_argument('--older-than', required=True, help='Age such as 30d, 12h or 2w')
    clean.add_argument('--execute', action='store_true', help='Perform the deletes')
    _add_filter_arguments(clean)

    subparsers.add_parser('undo', help='Undo the last batch of moves')

    history = subparsers.add_parser('history', help='Show recent batches')
    history.add_argument('count', type=int, nargs='?', default=10)

    stats = subparsers.add_parser('stats', help='Summarize a directory by file type')
    stats.add_argument('path', type=Path)
    _add_filter_arguments(stats)

    return parser


def _print_summary(summary: ExecutionSummary) -> None:
    print(f"\n✓ {summary.describe()}")


def _delete_or_preview(organizer: NeatOrganizer, paths: Sequence[Path], label: str, execute: bool) -> int:
    """List the files to delete and delete them when ``execute`` is set."""
    total = 0
    for path in paths:
        print(f"  ✗ {path}")
        try:
            total += path.stat().st_size
        except OSError:
            pass
    print(f"\n{len(paths)} files ({format_size(total)}) {'will be' if execute else 'would be'} deleted")
    if not execute:
        print("ℹ Use --execute to delete them.")
        return 0

    summary = organizer.delete(paths, label)
    _print_summary(summary)
    return 0 if not summary.errors else 1


def cmd_organize(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    mode = parse_mode(args.mode or organizer.config.organization.default_mode)
    strategy = ConflictStrategy.from_string(args.on_conflict or organizer.config.organization.conflict_strategy)
    filters = organizer.build_filters(args.path, **_filter_options(args, args.recursive))

    mode_name = mode.pattern if isinstance(mode, Template) else mode.value
    print(f"→ Scanning {args.path} ({'copying' if args.copy else 'organizing'} by {mode_name})...")

    moves = organizer.plan_organize(args.path, mode, filters)
    if not args.execute:
        print(preview_moves(moves, args.path).format())
        if moves:
            print("\nℹ Use --execute to apply these changes.")
        return 0

    summary = organizer.organize(moves, label, conflict_strategy=strategy, is_copy=args.copy)
    _print_summary(summary)
    return 0 if not summary.errors else 1


def cmd_duplicates(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    records = organizer.scan(args.path, organizer.build_filters(args.path, **_filter_options(args, True)))
    print(f"→ Checking {len(records)} files for duplicates...")
    groups = organizer.find_duplicates(records)

    if not groups:
        print("✓ No duplicates found.")
        return 0

    for i, group in enumerate(groups, start=1):
        print(f"\nGroup {i} ({format_size(group.size)} each, {format_size(group.wasted_space)} wasted):")
        for record in group.files:
            print(f"  {record.path}")
    wasted = sum(group.wasted_space for group in groups)
    print(f"\n{len(groups)} duplicate groups, {format_size(wasted)} reclaimable")

    if not args.delete:
        return 0
    victims = [record.path for group in groups for record in group.files[1:]]
    return _delete_or_preview(organizer, victims, label, args.execute)


def cmd_similar(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    records = organizer.scan(args.path, organizer.build_filters(args.path, **_filter_options(args, True)))
    groups = organizer.find_similar(records, args.threshold)

    if not groups:
        print("✓ No similar images found.")
        return 0

    max_distance = organizer.config.deduplication.perceptual_hash_size ** 2
    for i, group in enumerate(groups, start=1):
        print(f"\nGroup {i}: {group.representative.path}")
        for record, distance in group.similar:
            print(f"  ~ {record.path} ({similarity_percent(distance, max_distance)}% similar)")

    if not args.delete:
        return 0
    victims = [record.path for group in groups for record, _ in group.similar]
    return _delete_or_preview(organizer, victims, label, args.execute)


def cmd_clean(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    max_age = parse_duration(args.older_than)
    records = organizer.scan(args.path, organizer.build_filters(args.path, **_filter_options(args, True)))
    old = find_old_files(records, max_age)

    if not old:
        print(f"✓ No files older than {args.older_than} found.")
        return 0

    return _delete_or_preview(organizer, [record.path for record in old], label, args.execute)


def _format_age(modified: datetime, now: datetime) -> str:
    days = max((now - modified).days, 0)
    if days > 365:
        return f"{days // 365}y ago"
    if days > 30:
        return f"{days // 30}mo ago"
    return f"{days}d ago"


def cmd_stats(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    records = organizer.scan(args.path, organizer.build_filters(args.path, **_filter_options(args, True)))
    if not records:
        print("No files found.")
        return 0

    stats = collect_stats(records)
    rule = "─" * 50

    print("\n📊 Files by Type:")
    print(rule)
    for name, count, size in stats.categories:
        bar = "█" * int(count / stats.total_files * 30)
        print(f"  {name:12} {count:>5} files {format_size(size):>10}  {bar}")

    print("\nLargest Files:")
    print(rule)
    for record in stats.largest:
        print(f"  {format_size(record.size):>10}  {record.name}")

    now = datetime.now()
    print("\nOldest Files:")
    print(rule)
    for record in stats.oldest:
        print(f"  {_format_age(record.modified, now):>10}  {record.name}")

    print(rule)
    print(f"Total: {stats.total_files} files, {format_size(stats.total_size)}")
    return 0


def cmd_undo(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    result = organizer.history.undo_last()
    print(f"✓ Undid '{result.command}': restored {result.restored} files")
    if result.missing:
        print(f"  {result.missing} files were no longer at their destination")
    for error in result.errors:
        print(f"  ⚠ {error}")
    return 0 if not result.errors else 1


def cmd_history(organizer: NeatOrganizer, args: argparse.Namespace, label: str) -> int:
    batches = organizer.history.get_recent(args.count)
    if not batches:
        print("No history yet.")
        return 0

    print(f"\n📋 Recent History ({len(batches)} batches):\n")
    for batch in batches:
        print(f"  [{batch.timestamp.strftime('%Y-%m-%d %H:%M')}] {batch.command} "
              f"({len(batch.operations)} operations)")
    return 0


COMMANDS = {
    'organize': cmd_organize,
    'duplicates': cmd_duplicates,
    'similar': cmd_similar,
    'clean': cmd_clean,
    'undo': cmd_undo,
    'history': cmd_history,
    'stats': cmd_stats,
}


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point with CLI support."""
    argv = list(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(argv)

    level = ("WARNING", "INFO", "DEBUG")[min(args.verbose, 2)]
    setup_logging(LoggingConfig(level=level))
    set_correlation_id(args.command)

    confirm = (lambda question: True) if args.yes else prompt_confirm
    label = "neat " + " ".join(argv)

    try:
        organizer = NeatOrganizer(Config.load(args.config), confirm=confirm)
        with LogContext(logger, command=args.command):
            return COMMANDS[args.command](organizer, args, label)
    except OperationCancelledError:
        print("Cancelled.")
        return 1
    except NeatError as e:
        logger.debug(f"Command failed: {e}")
        print(f"✗ {e.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
