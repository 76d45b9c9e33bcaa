"""
Database Adapter - Compatibility Layer

One query interface over SQLite (embedded, local file) and PostgreSQL
(networked, pooled). Callers write statements in SQLite syntax with
positional ``?`` markers and get back engine-independent results:

- ``execute``   -> MutationSummary(generated_id, affected_row_count)
- ``fetch_one`` -> Optional[Row]
- ``fetch_all`` -> List[Row]

Schema statements (CREATE / ALTER) that hit an object which already exists
succeed with a zero summary, so the whole schema can be re-issued on every
start. Every other engine failure is raised as a StatementError carrying
the statement that caused it.

Usage:
    db = SQLiteAdapter(DatabaseConfig())
    await db.connect()

    summary = await db.execute(
        "INSERT INTO coupons (code, discount) VALUES (?, ?)", ["WELCOME", 10]
    )
    row = await db.fetch_one("SELECT * FROM coupons WHERE id = ?", [summary.generated_id])

    await db.disconnect()
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, List, Optional, Sequence, Tuple

from ..observability import create_span, record_counter, record_histogram
from .config import DatabaseBackend, DatabaseConfig
from .dialect import StatementKind, classify, count_placeholders
from .errors import DatabaseError, NotConnectedError, ParameterCountError
from .results import MutationSummary, Row

logger = logging.getLogger(__name__)

Params = Optional[Sequence[Any]]


class DatabaseAdapter(ABC):
    """
    Engine-independent query interface.

    Subclasses bind exactly one native engine for their lifetime and
    implement the ``_execute`` / ``_fetch_one`` / ``_fetch_all`` primitives,
    raising native driver errors. Classification, parameter checks,
    duplicate-object tolerance, error wrapping and instrumentation live here.
    """

    backend: DatabaseBackend
    # Native exception types the subclass lets escape from its primitives
    native_errors: Tuple[type, ...] = ()

    def __init__(self, config: Optional[DatabaseConfig] = None):
        self.config = config or DatabaseConfig.from_env()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    @abstractmethod
    def connected(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def connect(self) -> None:
        """Open the engine binding. Calling it twice is a no-op."""
        raise NotImplementedError

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the engine binding."""
        raise NotImplementedError

    async def __aenter__(self) -> "DatabaseAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    async def execute(self, sql: str, params: Params = None) -> MutationSummary:
        """
        Run a write (schema, insert, update, delete).

        Args:
            sql: Statement with positional ``?`` markers
            params: One value per marker, in order

        Returns:
            MutationSummary with the generated id (inserts) and affected rows
        """
        kind = classify(sql)
        values = self._prepare(sql, params)

        with self._instrument("execute", kind) as span:
            try:
                summary = await self._execute(sql, values, kind)
            except self.native_errors as exc:
                if kind is StatementKind.SCHEMA and self._is_duplicate_object(exc):
                    logger.debug(f"Schema object already exists, skipping: {_first_line(sql)}")
                    record_counter("db_schema_noops_total", 1, {"db.system": self.backend.value})
                    span.set_attribute("db.schema_noop", True)
                    return MutationSummary.noop()
                raise self._failed(sql, exc) from exc

            span.set_attribute("db.rows_affected", summary.affected_row_count)
            return summary

    async def fetch_one(self, sql: str, params: Params = None) -> Optional[Row]:
        """Return the first matching row, or None when nothing matches."""
        kind = classify(sql)
        values = self._prepare(sql, params)

        with self._instrument("fetch_one", kind):
            try:
                return await self._fetch_one(sql, values)
            except self.native_errors as exc:
                raise self._failed(sql, exc) from exc

    async def fetch_all(self, sql: str, params: Params = None) -> List[Row]:
        """Return every matching row in engine order."""
        kind = classify(sql)
        values = self._prepare(sql, params)

        with self._instrument("fetch_all", kind) as span:
            try:
                rows = await self._fetch_all(sql, values)
            except self.native_errors as exc:
                raise self._failed(sql, exc) from exc
            span.set_attribute("db.rows_returned", len(rows))
            return rows

    # ------------------------------------------------------------------
    # Engine primitives
    # ------------------------------------------------------------------

    @abstractmethod
    async def _execute(self, sql: str, params: Tuple[Any, ...], kind: StatementKind) -> MutationSummary:
        raise NotImplementedError

    @abstractmethod
    async def _fetch_one(self, sql: str, params: Tuple[Any, ...]) -> Optional[Row]:
        raise NotImplementedError

    @abstractmethod
    async def _fetch_all(self, sql: str, params: Tuple[Any, ...]) -> List[Row]:
        raise NotImplementedError

    @abstractmethod
    def _is_duplicate_object(self, exc: BaseException) -> bool:
        """True if ``exc`` reports that a table or column already exists."""
        raise NotImplementedError

    @abstractmethod
    def _wrap_error(self, sql: str, exc: BaseException) -> DatabaseError:
        """Map a native error onto the StatementError hierarchy."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _prepare(self, sql: str, params: Params) -> Tuple[Any, ...]:
        if not self.connected:
            raise NotConnectedError(f"{type(self).__name__} is not connected")
        values = tuple(params) if params is not None else ()
        expected = count_placeholders(sql)
        if expected != len(values):
            raise ParameterCountError(sql, expected, len(values))
        return values

    def _failed(self, sql: str, exc: BaseException) -> DatabaseError:
        error = self._wrap_error(sql, exc)
        logger.warning(
            f"Statement failed on {self.backend.value}: {exc}",
            extra={
                "backend": self.backend.value,
                "statement": sql,
                "error_type": type(error).__name__,
                "sqlstate": getattr(error, "sqlstate", None),
            },
        )
        return error

    @contextmanager
    def _instrument(self, operation: str, kind: StatementKind) -> Iterator[Any]:
        attributes = {
            "db.system": self.backend.value,
            "db.operation": operation,
            "db.statement.kind": kind.value,
        }
        started = time.perf_counter()
        outcome = "error"
        with create_span(f"db.{operation}", attributes) as span:
            try:
                yield span
                outcome = "ok"
            finally:
                elapsed = time.perf_counter() - started
                metric_attrs = {**attributes, "outcome": outcome}
                record_counter("db_statements_total", 1, metric_attrs)
                record_histogram("db_query_duration_seconds", elapsed, metric_attrs)
                logger.debug(f"db.{operation} {kind.value} {outcome} in {elapsed * 1000:.1f}ms")


def _first_line(sql: str) -> str:
    stripped = sql.strip()
    return stripped.splitlines()[0] if stripped else stripped
