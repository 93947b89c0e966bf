"""
Command-line interface for the import engine.

Usage:
    python -m logistics_sync.cli.import_cli run <kind> [--windowed] [--dry-run] [options]
    python -m logistics_sync.cli.import_cli run-all [--windowed] [options]
    python -m logistics_sync.cli.import_cli schedule [--interval <seconds>] [options]
    python -m logistics_sync.cli.import_cli status [--kind <kind>]
    python -m logistics_sync.cli.import_cli load-clients [--input <file_path>]
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

from logistics_sync.batch import ImportPipeline, ImportScheduler, RunCoordinator, load_clients
from logistics_sync.batch.clients import CLIENTS_FILE_NAME
from logistics_sync.config import ImportSettings
from logistics_sync.core.exceptions import SyncError
from logistics_sync.core.kinds import load_kinds
from logistics_sync.core.models import RunReport
from logistics_sync.observability.logger import get_logger, setup_logger
from logistics_sync.observability.metrics import start_metrics_server
from logistics_sync.utils.validation import (
    ValidationError,
    validate_file_path,
    validate_kind_name,
    validate_limit,
)
from logistics_sync.warehouse.connection import DatabaseConnectionPool
from logistics_sync.warehouse.memory_store import InMemoryRecordStore
from logistics_sync.warehouse.postgres_store import PostgresRecordStore

logger = get_logger(__name__)


def build_settings(args: argparse.Namespace) -> ImportSettings:
    """
    Build import settings from the environment and command-line overrides.

    Args:
        args: Parsed command-line arguments

    Returns:
        ImportSettings
    """
    return ImportSettings.from_env(
        data_dir=getattr(args, "data_dir", None),
        kinds_config=getattr(args, "kinds_config", None),
        windowed=True if getattr(args, "windowed", False) else None,
        interval_seconds=getattr(args, "interval", None),
    )


def create_pool(args: argparse.Namespace) -> DatabaseConnectionPool:
    """Create and open the connection pool from the database arguments."""
    pool = DatabaseConnectionPool(
        host=args.db_host,
        port=args.db_port,
        database=args.db_name,
        user=args.db_user,
        password=args.db_password,
    )
    pool.open()
    return pool


def print_report(report: RunReport) -> None:
    """Print the counters of a finished run."""
    print(f"\n{'=' * 60}")
    print(f"IMPORT {report.kind.upper()} ({report.mode.value}): {report.status.upper()}")
    print(f"{'=' * 60}")
    print(f"Created:   {report.created}")
    print(f"Updated:   {report.updated}")
    print(f"Unchanged: {report.unchanged}")
    print(f"Skipped:   {report.skipped}")
    print(f"Deleted:   {report.deleted}")
    print(f"Errors:    {report.errors}")
    print(f"Duration:  {report.duration_seconds}s")

    if report.skipped_rows:
        print(f"\nFirst {len(report.skipped_rows)} skipped rows:")
        for skipped in report.skipped_rows:
            print(f"  line {skipped.line_number}: {skipped.reason}")
    print()


def run_command(args: argparse.Namespace) -> int:
    """
    Import one record kind.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    settings = build_settings(args)
    kinds = load_kinds(settings.kinds_config)
    kind_name = validate_kind_name(args.kind)

    if args.dry_run:
        # Nothing is written: an empty in-memory store stands in for the database
        logger.info("DRY RUN MODE: records are imported into an in-memory store")
        store = InMemoryRecordStore()
        pipeline = ImportPipeline(store, settings, check_references=False)
        kind = kinds.get(kind_name)
        if kind is None:
            logger.error(f"Unknown record kind: {kind_name}")
            return 1
        report = RunReport(kind=kind.name, mode=settings.mode)
        try:
            pipeline.run(kind, report=report, source=args.input)
        except SyncError as e:
            report.finish(error=e)
            logger.error(f"Dry run failed: {e}")
            print_report(report)
            return 1
        print_report(report)
        return 0

    pool = create_pool(args)
    try:
        store = PostgresRecordStore(pool)
        coordinator = RunCoordinator(ImportPipeline(store, settings), store, kinds, settings)
        report = coordinator.trigger(kind_name, source=args.input)
        if report is None:
            print(f"Import of {kind_name} is already running")
            return 1
        print_report(report)
        return 0
    except (SyncError, KeyError) as e:
        logger.error(f"Import of {kind_name} failed: {e}")
        return 1
    finally:
        pool.close()


def run_all_command(args: argparse.Namespace) -> int:
    """
    Import every record kind once.

    Returns:
        Exit code (0 when every kind succeeded)
    """
    settings = build_settings(args)
    kinds = load_kinds(settings.kinds_config)
    pool = create_pool(args)
    try:
        store = PostgresRecordStore(pool)
        coordinator = RunCoordinator(ImportPipeline(store, settings), store, kinds, settings)
        results = coordinator.run_all()
    finally:
        pool.close()

    failed = [name for name, report in results.items() if report is None]
    for report in results.values():
        if report is not None:
            print_report(report)
    if failed:
        print(f"Failed kinds: {', '.join(failed)}")
        return 1
    return 0


def schedule_command(args: argparse.Namespace) -> int:
    """
    Run import cycles periodically until SIGINT/SIGTERM.

    Returns:
        Exit code (0 for success)
    """
    settings = build_settings(args)
    kinds = load_kinds(settings.kinds_config)
    max_cycles = None
    if args.max_cycles is not None:
        max_cycles = validate_limit(args.max_cycles, "max_cycles")

    pool = create_pool(args)
    try:
        store = PostgresRecordStore(pool)
        coordinator = RunCoordinator(ImportPipeline(store, settings), store, kinds, settings)
        scheduler = ImportScheduler(coordinator, settings.interval_seconds)
        scheduler.install_signal_handlers()
        scheduler.run_forever(max_cycles=max_cycles)
        return 0
    finally:
        pool.close()


def status_command(args: argparse.Namespace) -> int:
    """
    Show the last run of every record kind.

    Returns:
        Exit code (0 for success)
    """
    pool = create_pool(args)
    try:
        store = PostgresRecordStore(pool)
        rows = store.get_import_metadata(args.kind)
    finally:
        pool.close()

    if not rows:
        print("\nNo imports recorded yet.")
        return 0

    print(f"\n{'Kind':<18} {'Last import':<20} {'Status':<8} {'Created':>8} {'Updated':>8} "
          f"{'Deleted':>8} {'Skipped':>8} {'Errors':>7}")
    print(f"{'-' * 92}")
    for meta in rows:
        print(
            f"{meta.import_type:<18} {meta.last_import_at:%Y-%m-%d %H:%M:%S}  {meta.status:<8} "
            f"{meta.records_imported:>8} {meta.records_updated:>8} {meta.records_deleted:>8} "
            f"{meta.records_skipped:>8} {meta.errors:>7}"
        )
        if meta.error_message:
            print(f"    error: {meta.error_message}")
    print()
    return 0


def load_clients_command(args: argparse.Namespace) -> int:
    """
    Load the clients reference extract.

    Returns:
        Exit code (0 for success)
    """
    settings = build_settings(args)
    path = Path(args.input) if args.input else settings.extract_path(CLIENTS_FILE_NAME)
    try:
        path = Path(validate_file_path(str(path)))
    except ValidationError as e:
        logger.error(str(e))
        return 1

    pool = create_pool(args)
    try:
        report = load_clients(PostgresRecordStore(pool), path)
    except SyncError as e:
        logger.error(f"Loading clients failed: {e}")
        return 1
    finally:
        pool.close()

    print_report(report)
    return 0


def add_db_arguments(parser: argparse.ArgumentParser) -> None:
    """Database connection arguments (environment variables when omitted)."""
    parser.add_argument("--db-host", default=None, help="Database host (default: $DB_HOST or localhost)")
    parser.add_argument("--db-port", type=int, default=None, help="Database port (default: $DB_PORT or 5432)")
    parser.add_argument("--db-name", default=None, help="Database name (default: $DB_NAME or logistics)")
    parser.add_argument("--db-user", default=None, help="Database user (default: $DB_USER or logistics)")
    parser.add_argument("--db-password", default=None, help="Database password (default: $DB_PASSWORD)")


def add_import_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding the extracts")
    parser.add_argument("--kinds-config", type=Path, default=None, help="YAML file with extra/overridden kinds")
    parser.add_argument(
        "--windowed",
        action="store_true",
        help="Windowed run: recent rows only, nothing is removed",
    )


def main():
    """Main CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Import and reconcile logistics extracts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Import the stock extract
  %(prog)s run stock

  # Validate the orders extract without writing
  %(prog)s run orders --dry-run --input table_data/orders.csv

  # Import every kind, last 90 days only
  %(prog)s run-all --windowed

  # Import every 10 minutes until stopped
  %(prog)s schedule --interval 600 --metrics-port 8000
        """
    )
    parser.add_argument("--metrics-port", type=int, default=None, help="Expose Prometheus metrics on this port")
    parser.add_argument("--log-level", default=None, help="Log level (default: $LOG_LEVEL or INFO)")
    parser.add_argument("--log-format", choices=["json", "text"], default=None, help="Log format (default: $LOG_FORMAT or json)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Import one record kind")
    run_parser.add_argument("kind", help="Record kind name (e.g. stock, orders)")
    run_parser.add_argument("--input", default=None, help="Extract path (default: <data-dir>/<kind file>)")
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Parse and reconcile against an empty in-memory store, write nothing",
    )
    add_import_arguments(run_parser)
    add_db_arguments(run_parser)

    # Run-all command
    run_all_parser = subparsers.add_parser("run-all", help="Import every record kind once")
    add_import_arguments(run_all_parser)
    add_db_arguments(run_all_parser)

    # Schedule command
    schedule_parser = subparsers.add_parser("schedule", help="Import every kind periodically")
    schedule_parser.add_argument("--interval", type=float, default=None, help="Seconds between cycles")
    schedule_parser.add_argument("--max-cycles", type=int, default=None, help="Stop after this many cycles")
    add_import_arguments(schedule_parser)
    add_db_arguments(schedule_parser)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show the last run of every kind")
    status_parser.add_argument("--kind", default=None, help="Only this record kind")
    add_db_arguments(status_parser)

    # Load-clients command
    clients_parser = subparsers.add_parser("load-clients", help="Load the clients reference extract")
    clients_parser.add_argument("--input", default=None, help="Path to the clients extract")
    clients_parser.add_argument("--data-dir", type=Path, default=None, help="Directory holding the extracts")
    add_db_arguments(clients_parser)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logger(args.log_level, args.log_format)

    if args.metrics_port:
        start_metrics_server(args.metrics_port)
        logger.info(f"Metrics exposed on port {args.metrics_port}")

    commands = {
        "run": run_command,
        "run-all": run_all_command,
        "schedule": schedule_command,
        "status": status_command,
        "load-clients": load_clients_command,
    }

    try:
        exit_code = commands[args.command](args)
    except SyncError as e:
        logger.error(f"{args.command} failed: {e}")
        exit_code = 1
    except ValidationError as e:
        logger.error(f"Invalid argument: {e}")
        exit_code = 2
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
