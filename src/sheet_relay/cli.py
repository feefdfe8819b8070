"""Command-line entry point for sheet-relay."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import NamedTuple

from dotenv import load_dotenv

from . import __version__
from .config import RuntimeConfig
from .config_loader import ensure_config, load_hierarchical_config
from .config_schema import (
    RetrySettings,
    UnifiedConfig,
    build_config,
    to_runtime_config,
)
from .core.lock import FileLockProvider
from .core.table import JsonFileWorkbook, TableAccessor
from .logger import setup_logging
from .relay import (
    AuditResult,
    ColumnTimestampTracker,
    EditEvent,
    EditRouter,
    JsonlAuditLog,
    LoggingNotifier,
    OutcomePublisher,
    SyncGuard,
    TransferEngine,
    format_audit_entry,
    format_result,
    result_to_json,
)
from .validators import validate_position, validate_table_name

logger = logging.getLogger(__name__)


class Relay(NamedTuple):
    router: EditRouter
    engine: TransferEngine
    guard: SyncGuard
    audit_log: JsonlAuditLog


def build_relay(unified: UnifiedConfig, runtime: RuntimeConfig) -> Relay:
    """Wire the file-backed workbook, lock, audit log and components."""
    workbook = JsonFileWorkbook(runtime.workbook)
    lock = FileLockProvider(runtime.lock_file)
    audit_log = JsonlAuditLog(runtime.audit_log)
    publisher = OutcomePublisher(audit_log, LoggingNotifier())
    tracker = ColumnTimestampTracker(
        workbook,
        {name: t.timestamp_column for name, t in unified.tracked_tables.items()},
    )
    common = dict(
        lock_timeout=runtime.lock_timeout,
        retry=RetrySettings(
            max_attempts=runtime.max_attempts,
            initial_delay=runtime.initial_delay,
        ),
        user=runtime.user,
    )
    engine = TransferEngine(
        workbook,
        lock,
        publisher,
        tracker=tracker,
        **common,
    )
    guard = SyncGuard(workbook, lock, publisher, **common)
    return Relay(EditRouter(unified, engine, guard), engine, guard, audit_log)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sheet-relay",
        description="Propagate rows and mirrored fields between workflow tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create a starter config in ./.sheet_relay/config.yml
  sheet-relay init

  # Replay an edit: Forecast row 5, column 2 set to "approved"
  sheet-relay edit Forecast 5 2 --new approved

  # Run one transfer directly for a source row
  sheet-relay transfer forecast_to_upcoming --row 5

  # Show the last 20 audit entries
  sheet-relay audit --limit 20
        """,
    )
    parser.add_argument("--config", type=Path, help="Use only this config file")
    parser.add_argument(
        "--workbook",
        help="Workbook path (takes precedence over SHEET_RELAY_WORKBOOK and config files)",
    )
    parser.add_argument("--user", help="Acting user recorded in audit entries")
    parser.add_argument(
        "--lock-timeout", type=float, help="Seconds to wait for the relay lock"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sheet-relay version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create a starter config file")

    edit = sub.add_parser("edit", help="Route one cell edit")
    edit.add_argument("table")
    edit.add_argument("row", type=int)
    edit.add_argument("column", type=int)
    edit.add_argument("--new", dest="new_value", help="Value after the edit")
    edit.add_argument("--old", dest="old_value", help="Value before the edit")

    transfer = sub.add_parser("transfer", help="Run one configured transfer")
    transfer.add_argument("name")
    transfer.add_argument("--row", type=int, required=True)
    transfer.add_argument(
        "--table", help="Source table (default: the transfer's source_table)"
    )

    audit = sub.add_parser("audit", help="Show recent audit entries")
    audit.add_argument("--limit", type=int, default=20)

    return parser


def _check_location(
    accessor: TableAccessor, table: str, row: int, column: int = 1
) -> None:
    first_row = 1
    if validate_table_name(table)[0] and accessor.has_table(table):
        first_row = accessor.header_rows(table) + 1
    for ok, message in (
        validate_table_name(table),
        validate_position(row, "Row", minimum=first_row),
        validate_position(column, "Column"),
    ):
        if not ok:
            raise ValueError(message)


def _print_results(results: list, as_json: bool) -> int:
    if as_json:
        print(json.dumps([result_to_json(r) for r in results], indent=2))
    elif not results:
        print("No transfer or sync matched this edit.")
    else:
        print("\n\n".join(format_result(r) for r in results))
    return 1 if any(r.result is AuditResult.ERROR for r in results) else 0


def main(argv: list[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = _build_parser().parse_args(argv)
    load_dotenv()

    if args.command == "init":
        setup_logging(mode="cli", debug=args.debug, log_file=args.log_file)
        print(f"Config: {ensure_config(args.config)}")
        return 0

    try:
        unified = build_config(load_hierarchical_config(args.config))
        runtime = to_runtime_config(
            unified,
            cli_overrides={
                "workbook": args.workbook,
                "user": args.user,
                "lock_timeout": args.lock_timeout,
                "debug": args.debug,
            },
        )
    except (ValueError, FileNotFoundError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    setup_logging(
        mode="cli",
        debug=runtime.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )
    relay = build_relay(unified, runtime)

    if args.command == "audit":
        entries = relay.audit_log.read()[-args.limit :] if args.limit > 0 else []
        for entry in entries:
            print(format_audit_entry(entry))
        return 0

    try:
        if args.command == "edit":
            _check_location(relay.engine.accessor, args.table, args.row, args.column)
            event = EditEvent(
                table=args.table,
                row=args.row,
                column=args.column,
                old_value=args.old_value,
                new_value=args.new_value,
                user=runtime.user,
            )
            return _print_results(relay.router.handle(event), args.json)

        spec = unified.transfers.get(args.name)
        if spec is None:
            raise ValueError(
                f"Unknown transfer '{args.name}'. "
                f"Configured: {', '.join(sorted(unified.transfers)) or 'none'}"
            )
        table = args.table or spec.source_table
        if not table:
            raise ValueError(
                f"Transfer '{args.name}' has no source_table; pass --table"
            )
        _check_location(relay.engine.accessor, table, args.row)
        event = EditEvent(table=table, row=args.row, user=runtime.user)
        return _print_results(
            [relay.engine.execute_transfer(event, spec)], args.json
        )
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2


def run() -> None:
    """Console-script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
