"""
Database Initialization Runner

Usage:
    python -m campus.database              # Create schema and seed data
    python -m campus.database --no-seed    # Create schema only
    python -m campus.database --status     # Show backend and row counts

Environment:
    POSTGRES_URL / DATABASE_URL   - PostgreSQL DSN; without one the local
                                    SQLite file database.sqlite is used
    OTEL_EXPORTER_OTLP_ENDPOINT   - export db spans and metrics over OTLP
    OTEL_CONSOLE_EXPORT=true      - print db spans and metrics to stdout
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import List, Optional

from ..observability import configure_logging, init_metrics, init_tracing
from .adapter import DatabaseAdapter
from .errors import DatabaseError
from .factory import create_database, open_database
from .results import coerce_count
from .schema import TABLE_NAMES, initialize_schema


async def show_status(db: DatabaseAdapter) -> None:
    """Print the active backend and the row count of every table."""
    print("=" * 60)
    print("Database Status")
    print("=" * 60)
    print(f"\n{db.config!r}\n")

    await initialize_schema(db)

    print("Tables:")
    print("-" * 50)
    for table in TABLE_NAMES:
        row = await db.fetch_one(f"SELECT COUNT(*) AS count FROM {table}")
        count = coerce_count(row["count"]) if row else 0
        print(f"  • {table:<12} {count:>8} row(s)")


def init_telemetry(args: argparse.Namespace) -> bool:
    """Install the tracing and metrics providers when an exporter is wanted."""
    if not (args.otlp_endpoint or args.console_telemetry):
        return False

    init_tracing(otlp_endpoint=args.otlp_endpoint, console_export=args.console_telemetry)
    init_metrics(otlp_endpoint=args.otlp_endpoint, console_export=args.console_telemetry)
    return True


async def run(args: argparse.Namespace) -> int:
    if args.status:
        db = create_database()
        await db.connect()
        try:
            await show_status(db)
        finally:
            await db.disconnect()
        return 0

    db = await open_database(seed=not args.no_seed)
    try:
        print(f"Database ready: {db.config!r}")
    finally:
        await db.disconnect()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Campus database initialization",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m campus.database              # Create schema and seed data
  python -m campus.database --status     # Show row counts
        """
    )
    parser.add_argument("--status", action="store_true", help="Show backend and row counts")
    parser.add_argument("--no-seed", action="store_true", help="Create schema without seed data")
    parser.add_argument(
        "--log-level",
        default="INFO",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit structured JSON logs")
    parser.add_argument(
        "--otlp-endpoint",
        default=os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"),
        help="OTLP collector for db spans and metrics (default: $OTEL_EXPORTER_OTLP_ENDPOINT)",
    )
    parser.add_argument(
        "--console-telemetry",
        action="store_true",
        default=os.getenv("OTEL_CONSOLE_EXPORT", "false").lower() == "true",
        help="Print db spans and metrics to stdout",
    )
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, structured=args.json_logs)
    init_telemetry(args)

    try:
        return asyncio.run(run(args))
    except DatabaseError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
