"""
SQL Dialect Helpers

Statements are written once in SQLite syntax (positional ``?`` markers,
``INTEGER PRIMARY KEY AUTOINCREMENT``, ``DATETIME``). The helpers here
classify a statement and rewrite it for PostgreSQL:

- ``?`` markers become ``$1, $2, ...`` in left-to-right order
- a small, fixed table of DDL tokens is swapped for PostgreSQL types
- INSERTs get a RETURNING clause so the generated id can be read back

This is token rewriting, not parsing. Markers inside quoted literals or
identifiers are skipped; nothing else about the statement is interpreted.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import List, Tuple


class StatementKind(Enum):
    """Classification of a statement by its leading keyword."""
    SCHEMA = "schema"
    INSERT = "insert"
    OTHER = "other"


_SCHEMA_KEYWORDS = {"CREATE", "ALTER"}
_INSERT_KEYWORDS = {"INSERT"}

_LEADING_KEYWORD = re.compile(r"[A-Za-z]+")

# Quoted spans and comments first so that a '?' inside them is consumed as
# part of the span
_MARKER_SCAN = re.compile(
    r"'(?:[^']|'')*'"
    r"|\"(?:[^\"]|\"\")*\""
    r"|--[^\n]*"
    r"|/\*.*?\*/"
    r"|\?",
    re.DOTALL,
)

# (pattern, replacement) applied in order to schema statements for PostgreSQL
DDL_REWRITES: List[Tuple[re.Pattern, str]] = [
    (
        re.compile(r"\bINTEGER\s+PRIMARY\s+KEY\s+AUTOINCREMENT\b", re.IGNORECASE),
        "SERIAL PRIMARY KEY",
    ),
    (re.compile(r"\bDATETIME\b", re.IGNORECASE), "TIMESTAMP"),
]

_RETURNING = re.compile(r"\bRETURNING\b", re.IGNORECASE)

IDENTITY_COLUMN = "id"


def classify(sql: str) -> StatementKind:
    """Classify a statement as schema, insert or other."""
    match = _LEADING_KEYWORD.match(sql.strip())
    if not match:
        return StatementKind.OTHER
    keyword = match.group(0).upper()
    if keyword in _SCHEMA_KEYWORDS:
        return StatementKind.SCHEMA
    if keyword in _INSERT_KEYWORDS:
        return StatementKind.INSERT
    return StatementKind.OTHER


def count_placeholders(sql: str) -> int:
    """Count positional ``?`` markers outside quoted spans."""
    return sum(1 for m in _MARKER_SCAN.finditer(sql) if m.group(0) == "?")


def translate_placeholders(sql: str) -> str:
    """Convert ``?`` markers to PostgreSQL ``$n`` placeholders (1-indexed)."""
    counter = 0

    def _replace(match: re.Match) -> str:
        nonlocal counter
        token = match.group(0)
        if token != "?":
            return token
        counter += 1
        return f"${counter}"

    return _MARKER_SCAN.sub(_replace, sql)


def rewrite_ddl(sql: str) -> str:
    """Swap SQLite-only DDL tokens for their PostgreSQL equivalents."""
    for pattern, replacement in DDL_REWRITES:
        sql = pattern.sub(replacement, sql)
    return sql


def has_returning(sql: str) -> bool:
    return bool(_RETURNING.search(sql))


def ensure_returning(sql: str) -> str:
    """
    Append a RETURNING clause to an INSERT that does not already have one.

    ``RETURNING *`` is used instead of ``RETURNING id`` so that inserts into
    tables keyed by a natural key (settings) still run; the adapter reads
    the ``id`` column from the returned row when the table has one.
    """
    if has_returning(sql):
        return sql
    return sql.rstrip().rstrip(";").rstrip() + " RETURNING *"


def to_postgres(sql: str, kind: StatementKind) -> str:
    """Full SQLite → PostgreSQL rewrite for a statement of the given kind."""
    if kind is StatementKind.SCHEMA:
        sql = rewrite_ddl(sql)
    elif kind is StatementKind.INSERT:
        sql = ensure_returning(sql)
    return translate_placeholders(sql)
