"""Command-line interface for famtree."""

import argparse
import json
import logging
import sys
from typing import Optional, Tuple

from ..config import FamTreeConfig, default_config, load_config
from ..data.snapshot import TreeSnapshot, load_snapshot
from ..errors import FamTreeError, InvalidParameter
from ..merge.preview import MergePreview
from ..service import FamilyTreeService, ImportReport
from ..storage.memory import InMemoryStore
from ..storage.sqlite import SQLiteStore

logger = logging.getLogger(__name__)


def resolve_owner(snapshot: TreeSnapshot, owner: Optional[int]) -> int:
    """Pick the owner to work on: the given one, or the snapshot's only owner."""
    if owner is not None:
        return owner
    owners = snapshot.owners()
    if len(owners) != 1:
        raise InvalidParameter('owner', None, f"set with --owner, the file has owners {owners}")
    return owners[0]


def load_service(path: str, config: FamTreeConfig) -> Tuple[FamilyTreeService, TreeSnapshot, ImportReport]:
    """Load a snapshot file into a fresh in-memory store."""
    snapshot = load_snapshot(path)
    service = FamilyTreeService(InMemoryStore(), config)
    report = service.import_snapshot(snapshot)
    return service, snapshot, report


def print_rejections(report: ImportReport, stream=None) -> None:
    """Print every relationship the replay refused."""
    stream = stream or sys.stdout
    for record, error in report.rejected:
        print(
            f"  [{error.kind}] {record.person1_id} -{record.type}-> {record.person2_id}"
            f" (owner {record.owner_id}): {error.message}",
            file=stream
        )


def print_preview(preview: MergePreview) -> None:
    """Print a merge preview as a table."""
    print("\n" + "=" * 60)
    print(f"MERGE PREVIEW: {preview.source} -> {preview.target}")
    print("=" * 60)
    print(f"{'Field':<16}{'Source':<16}{'Target':<16}{'Merged':<16}")
    for name, comparison in preview.per_field_comparison.items():
        flag = ' *' if comparison.conflict else ''
        print(f"{name:<16}{str(comparison.source or ''):<16}"
              f"{str(comparison.target or ''):<16}{str(comparison.merged or ''):<16}{flag}")

    print()
    print(f"Relationships to transfer: {len(preview.relationships_to_transfer)}")
    for entry in preview.relationships_to_transfer:
        clash = f" (collides with {entry.collides_with})" if entry.collides_with else ''
        print(f"  {entry.transferred!r}{clash}")

    for error in preview.validation_errors:
        print(f"ERROR: {error}")
    for warning in preview.validation_warnings:
        print(f"WARNING: {warning}")

    print(f"\nCan merge: {'yes' if preview.can_merge else 'no'}")
    print("=" * 60 + "\n")


def duplicates_command(args: argparse.Namespace, config: FamTreeConfig) -> int:
    """Execute the duplicates command."""
    service, snapshot, _ = load_service(args.file, config)
    owner_id = resolve_owner(snapshot, args.owner)

    if args.person is not None:
        candidates = service.list_duplicates_for_person(owner_id, args.person,
                                                        args.threshold, args.limit)
    else:
        candidates = service.list_duplicates(owner_id, args.threshold, args.limit)

    if args.json:
        print(json.dumps([c.to_dict() for c in candidates], indent=2))
        return 0

    if not candidates:
        print("No duplicate candidates found.")
        return 0

    print(f"\nDUPLICATE CANDIDATES ({len(candidates)}):")
    print("-" * 60)
    for i, candidate in enumerate(candidates, 1):
        marker = "  [likely duplicate]" if candidate.is_high_confidence else ""
        print(f"{i}. {candidate.person_a} <-> {candidate.person_b}{marker}")
        print(f"   Confidence: {candidate.confidence}%  "
              f"Matching: {', '.join(candidate.matching_fields)}")
    print("-" * 60 + "\n")
    return 0


def preview_merge_command(args: argparse.Namespace, config: FamTreeConfig) -> int:
    """Execute the preview-merge command."""
    service, snapshot, _ = load_service(args.file, config)
    owner_id = resolve_owner(snapshot, args.owner)
    preview = service.preview_merge(owner_id, args.source, args.target)

    if args.json:
        print(json.dumps(preview.to_dict(), indent=2))
    else:
        print_preview(preview)
    return 0


def check_command(args: argparse.Namespace, config: FamTreeConfig) -> int:
    """Execute the check command.

    Returns:
        0 if every relationship is valid, 1 otherwise
    """
    _, _, report = load_service(args.file, config)

    if not report.rejected:
        print(f"OK: {report.relationships_added} relationships valid")
        return 0

    print(f"Found {len(report.rejected)} invalid relationship(s):")
    print_rejections(report)
    return 1


def import_command(args: argparse.Namespace, config: FamTreeConfig) -> int:
    """Execute the import command."""
    db_path = args.db or config.database_path
    if db_path is None:
        print("Error: no database given (use --db or database_path in the config)",
              file=sys.stderr)
        return 1

    snapshot = load_snapshot(args.file)
    with SQLiteStore(db_path) as store:
        report = FamilyTreeService(store, config).import_snapshot(snapshot)

    print(report)
    if report.rejected:
        print_rejections(report, stream=sys.stderr)
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog='famtree',
        description='Check family tree relationships and find duplicate people.',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--version',
        action='version',
        version='%(prog)s 0.1.0'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    parser.add_argument(
        '--config',
        help='Path to a JSON configuration file'
    )

    subparsers = parser.add_subparsers(
        dest='command',
        help='Available commands'
    )

    # Duplicates command
    dup_parser = subparsers.add_parser(
        'duplicates',
        help='List likely duplicate people in a snapshot'
    )
    dup_parser.add_argument('file', help='Path to the snapshot JSON file')
    dup_parser.add_argument('--owner', type=int, help='Owner whose records to scan')
    dup_parser.add_argument('--person', type=int, help='Only find duplicates of this person')
    dup_parser.add_argument(
        '-t', '--threshold',
        type=float,
        help='Minimum confidence 0-100 (default: from config, 70)'
    )
    dup_parser.add_argument('-n', '--limit', type=int, help='Maximum number of candidates')
    dup_parser.add_argument('--json', action='store_true', help='Print JSON')

    # Preview merge command
    merge_parser = subparsers.add_parser(
        'preview-merge',
        help='Preview merging one person into another'
    )
    merge_parser.add_argument('file', help='Path to the snapshot JSON file')
    merge_parser.add_argument('source', type=int, help='Person that would be removed')
    merge_parser.add_argument('target', type=int, help='Person that would be kept')
    merge_parser.add_argument('--owner', type=int, help='Owner of both people')
    merge_parser.add_argument('--json', action='store_true', help='Print JSON')

    # Check command
    check_parser = subparsers.add_parser(
        'check',
        help='Validate every relationship in a snapshot'
    )
    check_parser.add_argument('file', help='Path to the snapshot JSON file')

    # Import command
    import_parser = subparsers.add_parser(
        'import',
        help='Load a snapshot into a SQLite database'
    )
    import_parser.add_argument('file', help='Path to the snapshot JSON file')
    import_parser.add_argument('--db', help='SQLite database path')

    return parser


COMMANDS = {
    'duplicates': duplicates_command,
    'preview-merge': preview_merge_command,
    'check': check_command,
    'import': import_command,
}


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # If no command specified, print help
    if not args.command:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config) if args.config else default_config
    except (OSError, ValueError) as e:
        print(f"Error: cannot load config {args.config}: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger.debug(f"Running '{args.command}' with {vars(args)}")

    try:
        return COMMANDS[args.command](args, config)
    except FamTreeError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
