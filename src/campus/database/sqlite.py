"""
SQLite backend.

A single aiosqlite connection to a local file. aiosqlite runs every call on
its own worker thread, one at a time; writes additionally hold a lock
across statement + commit so concurrent coroutines cannot commit each
other's half-finished work.
"""

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from pathlib import Path
from typing import Any, List, Optional, Tuple

import aiosqlite

from .adapter import DatabaseAdapter
from .config import DatabaseBackend, DatabaseConfig
from .dialect import IDENTITY_COLUMN, StatementKind
from .errors import ConnectivityError, DatabaseError, IntegrityViolation, StatementError
from .results import MutationSummary, Row, coerce_count, normalize_row

logger = logging.getLogger(__name__)

_DUPLICATE_OBJECT = re.compile(r"already exists|duplicate column name", re.IGNORECASE)
_UNREACHABLE = re.compile(r"unable to open database|disk i/o error", re.IGNORECASE)

MEMORY_PATH = ":memory:"


def _generated_id(cursor: aiosqlite.Cursor, returned: Optional[List[sqlite3.Row]]) -> Any:
    """Returned ``id`` when the statement projects one, else the rowid."""
    if returned and IDENTITY_COLUMN in returned[0].keys():
        return returned[0][IDENTITY_COLUMN]
    return cursor.lastrowid


class SQLiteAdapter(DatabaseAdapter):
    """Embedded engine binding: one file opened by path."""

    backend = DatabaseBackend.SQLITE
    native_errors = (sqlite3.Error,)

    def __init__(self, config: Optional[DatabaseConfig] = None, path: Optional[str] = None):
        super().__init__(config)
        self.path = str(path or self.config.sqlite_path)
        self._conn: Optional[aiosqlite.Connection] = None
        self._write_lock = asyncio.Lock()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def connect(self) -> None:
        if self._conn is not None:
            return

        if self.path != MEMORY_PATH:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = await aiosqlite.connect(self.path)
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as exc:
            raise ConnectivityError(f"<connect {self.path}>", str(exc)) from exc

        self._conn = conn
        logger.info(f"Connected to SQLite: {self.path}")

    async def disconnect(self) -> None:
        if self._conn is None:
            return
        await self._conn.close()
        self._conn = None
        logger.info("Disconnected from SQLite")

    async def _execute(self, sql: str, params: Tuple[Any, ...], kind: StatementKind) -> MutationSummary:
        async with self._write_lock:
            try:
                cursor = await self._conn.execute(sql, params)
                # A RETURNING statement is still in progress until drained;
                # SQLite refuses to commit under it
                returned = await cursor.fetchall() if cursor.description else None
                await self._conn.commit()
            except sqlite3.Error:
                await self._conn.rollback()
                raise
            try:
                generated_id = _generated_id(cursor, returned) if kind is StatementKind.INSERT else 0
                affected = len(returned) if returned is not None else cursor.rowcount
            finally:
                await cursor.close()

        return MutationSummary(
            generated_id=coerce_count(generated_id),
            affected_row_count=coerce_count(affected),
        )

    async def _fetch_one(self, sql: str, params: Tuple[Any, ...]) -> Optional[Row]:
        async with self._conn.execute(sql, params) as cursor:
            record = await cursor.fetchone()
        return normalize_row(dict(record)) if record is not None else None

    async def _fetch_all(self, sql: str, params: Tuple[Any, ...]) -> List[Row]:
        async with self._conn.execute(sql, params) as cursor:
            records = await cursor.fetchall()
        return [normalize_row(dict(record)) for record in records]

    def _is_duplicate_object(self, exc: BaseException) -> bool:
        return isinstance(exc, sqlite3.OperationalError) and bool(_DUPLICATE_OBJECT.search(str(exc)))

    def _wrap_error(self, sql: str, exc: BaseException) -> DatabaseError:
        code = getattr(exc, "sqlite_errorname", None)
        if isinstance(exc, sqlite3.IntegrityError):
            return IntegrityViolation(sql, str(exc), code)
        if isinstance(exc, sqlite3.OperationalError) and _UNREACHABLE.search(str(exc)):
            return ConnectivityError(sql, str(exc), code)
        return StatementError(sql, str(exc), code)
