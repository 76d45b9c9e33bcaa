"""
Database abstraction layer supporting SQLite and PostgreSQL.

One query interface for both engines: statements are written in SQLite
syntax with ``?`` placeholders and rewritten for PostgreSQL when a DSN is
configured.

Usage:
    from campus.database import open_database

    db = await open_database()

    row = await db.fetch_one("SELECT value FROM settings WHERE key = ?", ["membership_price"])
    rows = await db.fetch_all("SELECT * FROM courses WHERE status = ?", ["active"])
    summary = await db.execute(
        "INSERT INTO coupons (code, discount) VALUES (?, ?)", ["WELCOME", 10]
    )
"""

from .adapter import DatabaseAdapter
from .config import DatabaseBackend, DatabaseConfig, select_backend
from .dialect import StatementKind, classify, count_placeholders, translate_placeholders
from .errors import (
    ConfigurationError,
    ConnectivityError,
    DatabaseError,
    IntegrityViolation,
    NotConnectedError,
    ParameterCountError,
    StatementError,
)
from .factory import create_database, open_database
from .results import MutationSummary, Row, coerce_count
from .schema import initialize_schema
from .seed import SeedReport, run_seeds

__all__ = [
    "DatabaseAdapter",
    "DatabaseBackend",
    "DatabaseConfig",
    "select_backend",
    "StatementKind",
    "classify",
    "count_placeholders",
    "translate_placeholders",
    "ConfigurationError",
    "ConnectivityError",
    "DatabaseError",
    "IntegrityViolation",
    "NotConnectedError",
    "ParameterCountError",
    "StatementError",
    "create_database",
    "open_database",
    "MutationSummary",
    "Row",
    "coerce_count",
    "initialize_schema",
    "SeedReport",
    "run_seeds",
]
