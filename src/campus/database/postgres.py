"""
PostgreSQL backend.

An asyncpg connection pool opened from a DSN. Every call borrows one
connection for one statement and gives it back, so there is never a
transaction spanning two calls.

Statements arrive in SQLite syntax and are rewritten on the way in (see
``dialect.to_postgres``). INSERTs get a RETURNING clause; the returned
``id`` stands in for SQLite's lastrowid and the command status tag
("INSERT 0 1", "UPDATE 3") supplies the affected-row count.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, List, Optional, Sequence, Tuple

import asyncpg

from .adapter import DatabaseAdapter
from .config import DatabaseBackend, DatabaseConfig
from .dialect import IDENTITY_COLUMN, StatementKind, to_postgres, translate_placeholders
from .errors import (
    ConfigurationError,
    ConnectivityError,
    DatabaseError,
    IntegrityViolation,
    StatementError,
)
from .results import MutationSummary, Row, coerce_count, normalize_row

logger = logging.getLogger(__name__)

# duplicate_table, duplicate_column
DUPLICATE_OBJECT_SQLSTATES = frozenset({"42P07", "42701"})

# CURRENT_TIMESTAMP defaults land in TIMESTAMP columns as session-local
# time; SQLite writes UTC
SESSION_SETTINGS = {"timezone": "UTC"}

# Class 08 SQLSTATEs (connection_exception) are matched by code
_CONNECTIVITY_ERRORS = (OSError, asyncio.TimeoutError)


def status_rowcount(status: Optional[str]) -> int:
    """Affected-row count from a command status tag ("INSERT 0 1" -> 1)."""
    if not status:
        return 0
    token = status.split()[-1]
    return coerce_count(token) if token.isdigit() else 0


def _generated_id(records: Sequence[asyncpg.Record]) -> int:
    if not records:
        return 0
    value = records[0].get(IDENTITY_COLUMN)
    return coerce_count(value) if value is not None else 0


class PostgresAdapter(DatabaseAdapter):
    """Networked engine binding: a connection pool opened by DSN."""

    backend = DatabaseBackend.POSTGRESQL
    native_errors = (
        asyncpg.exceptions.PostgresError,
        asyncpg.exceptions.InterfaceError,
        OSError,
        asyncio.TimeoutError,
    )

    def __init__(self, config: Optional[DatabaseConfig] = None):
        super().__init__(config)
        if not self.config.postgres_url:
            raise ConfigurationError("PostgresAdapter requires POSTGRES_URL or DATABASE_URL")
        self._pool: Optional[asyncpg.Pool] = None

    @property
    def connected(self) -> bool:
        return self._pool is not None

    async def connect(self) -> None:
        if self._pool is not None:
            return

        logger.info(f"Connecting to database: {self.config}")
        try:
            self._pool = await asyncpg.create_pool(
                self.config.postgres_url,
                min_size=self.config.pool_min_size,
                max_size=self.config.pool_max_size,
                command_timeout=self.config.command_timeout,
                ssl=self.config.ssl,
                server_settings=SESSION_SETTINGS,
            )
        except self.native_errors as exc:
            logger.error(f"Failed to connect to PostgreSQL: {exc}")
            raise ConnectivityError("<connect>", str(exc), getattr(exc, "sqlstate", None)) from exc

        logger.info("Connected to PostgreSQL")

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        await self._pool.close()
        self._pool = None
        logger.info("Disconnected from PostgreSQL")

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[asyncpg.Connection]:
        async with self._pool.acquire(timeout=self.config.acquire_timeout) as conn:
            yield conn

    async def _execute(self, sql: str, params: Tuple[Any, ...], kind: StatementKind) -> MutationSummary:
        pg_sql = to_postgres(sql, kind)

        async with self._acquire() as conn:
            if kind is StatementKind.SCHEMA and not params:
                # Simple protocol; DDL has nothing to bind
                status = await conn.execute(pg_sql)
                records: List[asyncpg.Record] = []
            else:
                statement = await conn.prepare(pg_sql)
                records = await statement.fetch(*params)
                status = statement.get_statusmsg()

        generated_id = _generated_id(records) if kind is StatementKind.INSERT else 0
        return MutationSummary(
            generated_id=generated_id,
            affected_row_count=status_rowcount(status),
        )

    async def _fetch_one(self, sql: str, params: Tuple[Any, ...]) -> Optional[Row]:
        async with self._acquire() as conn:
            record = await conn.fetchrow(translate_placeholders(sql), *params)
        return normalize_row(record) if record is not None else None

    async def _fetch_all(self, sql: str, params: Tuple[Any, ...]) -> List[Row]:
        async with self._acquire() as conn:
            records = await conn.fetch(translate_placeholders(sql), *params)
        return [normalize_row(record) for record in records]

    def _is_duplicate_object(self, exc: BaseException) -> bool:
        return getattr(exc, "sqlstate", None) in DUPLICATE_OBJECT_SQLSTATES

    def _wrap_error(self, sql: str, exc: BaseException) -> DatabaseError:
        sqlstate = getattr(exc, "sqlstate", None)
        message = str(exc) or type(exc).__name__
        if sqlstate and sqlstate.startswith("23"):
            return IntegrityViolation(sql, message, sqlstate)
        if (sqlstate and sqlstate.startswith("08")) or isinstance(exc, _CONNECTIVITY_ERRORS):
            return ConnectivityError(sql, message, sqlstate)
        return StatementError(sql, message, sqlstate)
