"""
Backend Selector

Builds the adapter for the configured backend. The choice is made once,
when the adapter is constructed; an adapter never changes engine.

There is no module-level handle: the process's composition root calls
``open_database()`` at startup and passes the returned adapter to whatever
needs it.
"""

from __future__ import annotations

import logging
from typing import Optional

from .adapter import DatabaseAdapter
from .config import DatabaseBackend, DatabaseConfig, select_backend
from .schema import initialize_schema
from .seed import run_seeds

logger = logging.getLogger(__name__)


def create_database(config: Optional[DatabaseConfig] = None) -> DatabaseAdapter:
    """
    Construct (but do not connect) the adapter for the configured backend.

    Args:
        config: Explicit configuration; defaults to DatabaseConfig.from_env()

    Returns:
        SQLiteAdapter or PostgresAdapter
    """
    config = config or DatabaseConfig.from_env()
    backend = select_backend(config)

    if backend is DatabaseBackend.POSTGRESQL:
        # asyncpg is only imported when a DSN is configured
        from .postgres import PostgresAdapter

        logger.info("Using PostgreSQL database")
        return PostgresAdapter(config)

    from .sqlite import SQLiteAdapter

    logger.info(f"Using SQLite database: {config.sqlite_path}")
    return SQLiteAdapter(config)


async def open_database(
    config: Optional[DatabaseConfig] = None,
    *,
    seed: bool = True,
) -> DatabaseAdapter:
    """
    Startup sequence: select backend, connect, create schema, seed.

    Schema and seeding run sequentially before the adapter is returned, so
    request handlers only ever see an initialized database. On failure the
    adapter is disconnected and the error propagates.
    """
    db = create_database(config)
    await db.connect()
    try:
        await initialize_schema(db)
        if seed:
            await run_seeds(db)
    except Exception:
        await db.disconnect()
        raise
    return db
