"""
Database configuration and backend selection.

The backend is decided by a single input: a PostgreSQL DSN in the
environment (POSTGRES_URL, then DATABASE_URL). Without one, the embedded
SQLite file at DEFAULT_SQLITE_PATH is used.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import urlsplit

from .errors import ConfigurationError


class DatabaseBackend(Enum):
    """Supported database backends."""
    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"


DEFAULT_SQLITE_PATH = "database.sqlite"

DSN_VARIABLES = ("POSTGRES_URL", "DATABASE_URL")

_SSL_MODES = {"disable", "allow", "prefer", "require", "verify-ca", "verify-full"}


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value}")
    return value


class DatabaseConfig:
    """Database configuration from environment variables."""

    def __init__(
        self,
        postgres_url: Optional[str] = None,
        sqlite_path: str = DEFAULT_SQLITE_PATH,
        pool_min_size: int = 1,
        pool_max_size: int = 10,
        command_timeout: float = 60,
        acquire_timeout: float = 30,
        ssl_mode: str = "prefer",
    ):
        self.postgres_url = postgres_url or None
        self.sqlite_path = sqlite_path
        self.pool_min_size = pool_min_size
        self.pool_max_size = pool_max_size
        self.command_timeout = command_timeout
        self.acquire_timeout = acquire_timeout
        self.ssl_mode = ssl_mode.lower()
        self._validate()

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "DatabaseConfig":
        """Build a config from the process environment (or a given mapping)."""
        env = os.environ if env is None else env
        postgres_url = None
        for name in DSN_VARIABLES:
            if env.get(name):
                postgres_url = env[name]
                break
        return cls(
            postgres_url=postgres_url,
            pool_min_size=_int_setting(env, "DATABASE_POOL_MIN", 1),
            pool_max_size=_int_setting(env, "DATABASE_POOL_MAX", 10),
            command_timeout=_int_setting(env, "DATABASE_COMMAND_TIMEOUT", 60),
            acquire_timeout=_int_setting(env, "DATABASE_ACQUIRE_TIMEOUT", 30),
            ssl_mode=env.get("DATABASE_SSLMODE", "prefer"),
        )

    @property
    def backend(self) -> DatabaseBackend:
        return select_backend(self)

    @property
    def ssl(self) -> Optional[str]:
        """Value for asyncpg's ``ssl`` argument."""
        return None if self.ssl_mode == "disable" else self.ssl_mode

    def _validate(self) -> None:
        if self.pool_max_size < 1:
            raise ConfigurationError("DATABASE_POOL_MAX must be at least 1")
        if self.pool_min_size > self.pool_max_size:
            raise ConfigurationError(
                f"DATABASE_POOL_MIN ({self.pool_min_size}) exceeds "
                f"DATABASE_POOL_MAX ({self.pool_max_size})"
            )
        if self.ssl_mode not in _SSL_MODES:
            raise ConfigurationError(f"Unsupported DATABASE_SSLMODE: {self.ssl_mode}")

    def __repr__(self) -> str:
        if self.postgres_url:
            # Never log credentials
            parts = urlsplit(self.postgres_url)
            target = f"{parts.hostname or 'localhost'}:{parts.port or 5432}{parts.path}"
            return (
                f"DatabaseConfig(backend=postgresql, target={target}, "
                f"pool={self.pool_min_size}..{self.pool_max_size})"
            )
        return f"DatabaseConfig(backend=sqlite, path={self.sqlite_path})"


def select_backend(config: DatabaseConfig) -> DatabaseBackend:
    """A configured PostgreSQL DSN selects PostgreSQL; anything else is SQLite."""
    if config.postgres_url:
        return DatabaseBackend.POSTGRESQL
    return DatabaseBackend.SQLITE
