"""
Schema Initializer

Table and column declarations for the platform, written in SQLite syntax
and rewritten by the adapter for PostgreSQL. Every statement is safe to
re-issue: tables use IF NOT EXISTS, and later column additions rely on the
adapter treating "column already exists" as success.

camelCase and reserved column names are double-quoted so that both engines
report identical column names (PostgreSQL folds unquoted names to lower
case).

Money and progress columns are DOUBLE PRECISION: PostgreSQL's REAL is a
4-byte float, SQLite's is 8 bytes, and DOUBLE PRECISION means 8 bytes on
both. ``DATETIME DEFAULT CURRENT_TIMESTAMP`` is UTC on SQLite; the
PostgreSQL pool pins its sessions to UTC so the rewritten TIMESTAMP
columns are filled the same way.
"""

from __future__ import annotations

import logging
from typing import List, Tuple

from .adapter import DatabaseAdapter

logger = logging.getLogger(__name__)


# (table, statement) in dependency order
TABLES: List[Tuple[str, str]] = [
    ("users", """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT UNIQUE,
            password TEXT,
            "firstName" TEXT,
            "lastName" TEXT,
            role TEXT DEFAULT 'user',
            status TEXT DEFAULT 'active',
            "createdAt" DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """),
    ("courses", """
        CREATE TABLE IF NOT EXISTS courses (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            title TEXT,
            "desc" TEXT,
            price DOUBLE PRECISION,
            "priceOffer" DOUBLE PRECISION,
            image TEXT,
            "videoPromo" TEXT,
            category TEXT,
            status TEXT DEFAULT 'active',
            "modulesCount" INTEGER DEFAULT 0,
            "modulesData" TEXT,
            "createdAt" DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """),
    ("orders", """
        CREATE TABLE IF NOT EXISTS orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            "userId" INTEGER,
            total DOUBLE PRECISION,
            status TEXT DEFAULT 'completed',
            "createdAt" DATETIME DEFAULT CURRENT_TIMESTAMP,
            items TEXT
        )
    """),
    ("coupons", """
        CREATE TABLE IF NOT EXISTS coupons (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            code TEXT UNIQUE,
            discount DOUBLE PRECISION,
            type TEXT DEFAULT 'percentage',
            status TEXT DEFAULT 'active',
            "usedCount" INTEGER DEFAULT 0
        )
    """),
    ("resources", """
        CREATE TABLE IF NOT EXISTS resources (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT,
            description TEXT,
            type TEXT,
            url TEXT,
            "dataUrl" TEXT,
            "createdAt" DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """),
    ("settings", """
        CREATE TABLE IF NOT EXISTS settings (
            key TEXT PRIMARY KEY,
            value TEXT
        )
    """),
    ("enrollments", """
        CREATE TABLE IF NOT EXISTS enrollments (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            "userId" INTEGER REFERENCES users(id),
            "courseId" INTEGER REFERENCES courses(id),
            progress DOUBLE PRECISION DEFAULT 0,
            "lastAccess" DATETIME DEFAULT CURRENT_TIMESTAMP,
            "totalHoursSpent" DOUBLE PRECISION DEFAULT 0,
            "createdAt" DATETIME DEFAULT CURRENT_TIMESTAMP
        )
    """),
]

# Columns added after the first release. Fresh databases already have them
# from TABLES, so on those these always hit the duplicate-column path.
COLUMN_ADDITIONS: List[Tuple[str, str, str]] = [
    ("courses", '"modulesData"', "TEXT"),
    ("orders", "items", "TEXT"),
    ("resources", "description", "TEXT"),
]

TABLE_NAMES: List[str] = [name for name, _ in TABLES]


def column_addition(table: str, column: str, column_type: str) -> str:
    return f"ALTER TABLE {table} ADD COLUMN {column} {column_type}"


def schema_statements() -> List[str]:
    """Every schema statement, tables first, then column additions."""
    statements = [sql for _, sql in TABLES]
    statements.extend(column_addition(*addition) for addition in COLUMN_ADDITIONS)
    return statements


async def initialize_schema(db: DatabaseAdapter) -> List[str]:
    """
    Create all tables and apply column additions.

    Safe to run on every start: objects that already exist are left alone.
    Any other failure propagates.

    Returns:
        The table names, in creation order
    """
    logger.info(f"Initializing schema on {db.backend.value} ({len(TABLES)} tables)")

    for name, sql in TABLES:
        await db.execute(sql)
        logger.debug(f"Table ready: {name}")

    for table, column, column_type in COLUMN_ADDITIONS:
        await db.execute(column_addition(table, column, column_type))
        logger.debug(f"Column ready: {table}.{column}")

    logger.info("Schema initialized")
    return list(TABLE_NAMES)
