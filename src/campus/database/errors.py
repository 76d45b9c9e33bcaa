"""
Database Errors

Exception hierarchy raised by the database adapters. Native driver errors
are wrapped so callers can tell which statement failed without knowing
which engine is active; the driver exception stays available as __cause__.
"""

from typing import Optional


class DatabaseError(Exception):
    """Base class for all persistence errors."""


class ConfigurationError(DatabaseError):
    """Invalid database configuration."""


class NotConnectedError(DatabaseError):
    """Operation attempted on an adapter that is not connected."""


class ParameterCountError(DatabaseError):
    """Number of placeholders does not match the number of parameters."""

    def __init__(self, statement: str, expected: int, received: int):
        self.statement = statement
        self.expected = expected
        self.received = received
        super().__init__(
            f"Statement expects {expected} parameter(s), got {received}: {statement.strip()}"
        )


class StatementError(DatabaseError):
    """
    A statement failed inside the native engine.

    Attributes:
        statement: The statement as submitted by the caller
        sqlstate: Native error code where the engine has one
    """

    def __init__(self, statement: str, message: str, sqlstate: Optional[str] = None):
        self.statement = statement
        self.sqlstate = sqlstate
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return f"{self.message} [statement: {self.statement.strip()}]"


class IntegrityViolation(StatementError):
    """Constraint violation (unique key, foreign key, not null...)."""


class ConnectivityError(StatementError):
    """The engine could not be reached or did not answer in time."""
