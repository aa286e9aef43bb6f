#!/usr/bin/env python3
"""
Daily Cylinder Ledger - Command Line

Imports daily update workbooks, matches their rows to team members, saves
them as daily update batches and exports saved batches back to Excel.

Usage:
    python main.py import <file.xlsx> [--save] [--status STATUS]
    python main.py export <update_id> [--output PATH]
    python main.py list
    python main.py show <update_id>

Examples:
    python main.py import Daily_Updates_2025_01_15.xlsx
    python main.py import Daily_Updates_2025_01_15.xlsx --save --status pending
    python main.py export 3f9c2a... --output jan15.xlsx
"""
import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

from config import UPDATE_STATUSES, get_config
from ledger.engine import ReconciliationEngine
from ledger.models import SIZE_KEYS, DailyLedgerEntry
from normalizer.amount_parser import format_indian_currency
from parsers.xlsx_parser import ImportFormatError
from storage.document_store import JSONFileDocumentStore, PersistenceError
from storage.repositories import DailyUpdateRepository, MemberRepository


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Import, save and export daily cylinder and cash updates.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Environment Variables:
  LEDGER_STORE_PATH      - JSON file holding members and daily updates
  DEFAULT_UPDATE_STATUS  - Status for saved updates (default: completed)
  LOG_LEVEL              - Logging level (default: INFO)
        """
    )
    parser.add_argument(
        '--store',
        default=None,
        help='Path to the document store file (overrides LEDGER_STORE_PATH)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose output'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    import_cmd = commands.add_parser('import', help='Import a daily update workbook')
    import_cmd.add_argument('input', help='Path to the .xlsx file')
    import_cmd.add_argument(
        '--save',
        action='store_true',
        help='Save the imported rows as a new daily update'
    )
    import_cmd.add_argument(
        '--status',
        choices=UPDATE_STATUSES,
        default=None,
        help='Status of the saved update'
    )

    export_cmd = commands.add_parser('export', help='Export a saved daily update to Excel')
    export_cmd.add_argument('update_id', help='Id of the daily update')
    export_cmd.add_argument(
        '--output', '-o',
        default=None,
        help='Output path (default: Daily_Updates_<date>.xlsx)'
    )

    commands.add_parser('list', help='List saved daily updates')

    show_cmd = commands.add_parser('show', help='Show the entries of a saved daily update')
    show_cmd.add_argument('update_id', help='Id of the daily update')

    return parser.parse_args(argv)


def print_entries(entries: Dict[str, DailyLedgerEntry]) -> None:
    """Print one line per member followed by a totals line."""
    engine = ReconciliationEngine()
    engine.load_entries(entries)

    print(f"{'D MAN':<24}{'Date':<12}{'Cylinders':>14}{'Online':>12}{'Cash':>12}{'Notes':>12}{'Grand':>14}")
    print("-" * 100)
    for entry in entries.values():
        print(
            f"{entry.member_name[:23]:<24}{entry.date:<12}"
            f"{entry.cylinder_total:>14,.2f}{entry.online_payment:>12,.2f}"
            f"{entry.cash:>12,.2f}{entry.denomination_total:>12,.2f}{entry.grand_total:>14,.2f}"
        )
    print("-" * 100)

    summary = engine.get_summary()
    for size in SIZE_KEYS:
        bucket = summary['cylinders'][size]
        print(f"  {size:>7}: {bucket['quantity']:>5} cylinders  {format_indian_currency(bucket['total'])}")
    print(f"Members: {summary['member_count']}")
    print(f"Cylinder total: {format_indian_currency(summary['cylinder_total'])}")
    print(f"Online payment: {format_indian_currency(summary['online_payment'])}")
    print(f"Cash: {format_indian_currency(summary['cash'])}")
    print(f"Cash by denomination: {format_indian_currency(summary['denomination_total'])}")
    print(f"Grand total: {format_indian_currency(summary['grand_total'])}")


def _import(args: argparse.Namespace, updates: DailyUpdateRepository, members: MemberRepository) -> int:
    if not os.path.exists(args.input):
        print(f"Error: Input file not found: {args.input}")
        return 1

    engine = ReconciliationEngine(roster=members.list_active())
    with open(args.input, 'rb') as f:
        data = f.read()

    try:
        imported = engine.import_batch(data)
    except ImportFormatError as e:
        print(f"Error: {e}")
        return 1

    if not imported:
        print("Error: No member rows found in the file")
        return 1

    engine.load_entries(engine.reconcile_imported_with_roster(imported))
    result = engine.last_match

    issues = engine.last_import_issues
    if issues:
        print(f"\nValidation notes ({len(issues)}):")
        for issue in issues[:10]:
            print(f"  - [{issue.severity}] Row {issue.row_numbers}: {issue.message}")
        if len(issues) > 10:
            print(f"  ... and {len(issues) - 10} more")

    if result.unmatched:
        print(f"\n{result.unmatched_count} row(s) did not match an active member:")
        for name in result.unmatched:
            print(f"  - {name}")

    print()
    print_entries(engine.entries)

    if args.save:
        update_id = updates.save_batch(engine.entries, status=args.status)
        print(f"\nSaved daily update: {update_id}")

    return 0


def _export(args: argparse.Namespace, updates: DailyUpdateRepository) -> int:
    update = updates.get(args.update_id)
    if update is None:
        print(f"Error: No daily update {args.update_id}")
        return 1

    entries = update.entries()
    if not entries:
        print("Error: No data to export")
        return 1

    engine = ReconciliationEngine()
    engine.load_entries(entries)
    output_path = args.output or engine.export_filename()
    with open(output_path, 'wb') as f:
        f.write(engine.export_batch())

    print(f"Output saved to: {output_path}")
    return 0


def _list(updates: DailyUpdateRepository) -> int:
    rows = updates.list_updates()
    if not rows:
        print("No daily updates saved yet")
        return 0

    for update in rows:
        print(f"{update.id}  {update.date:<12}{update.status:<13}{update.title}")
    return 0


def _show(args: argparse.Namespace, updates: DailyUpdateRepository) -> int:
    update = updates.get(args.update_id)
    if update is None:
        print(f"Error: No daily update {args.update_id}")
        return 1

    print(f"{update.title} [{update.status}]")
    print_entries(update.entries())
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = parse_arguments(argv)
    config = get_config()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.get('log_level', 'INFO'),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        store = JSONFileDocumentStore(args.store or config.store_path)
        updates = DailyUpdateRepository(store, default_status=config.default_status)
        members = MemberRepository(store)

        if args.command == 'import':
            return _import(args, updates, members)
        if args.command == 'export':
            return _export(args, updates)
        if args.command == 'list':
            return _list(updates)
        return _show(args, updates)
    except PersistenceError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
