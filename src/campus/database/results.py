"""
Normalized result shapes shared by every backend.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

Row = Dict[str, Any]


@dataclass(frozen=True)
class MutationSummary:
    """Result of a write: generated identity (0 if none) and rows affected."""

    generated_id: int = 0
    affected_row_count: int = 0

    @classmethod
    def noop(cls) -> "MutationSummary":
        return cls(0, 0)


def coerce_count(value: Any) -> int:
    """
    Coerce a numeric-like count to int.

    Drivers return counts as int, Decimal, float or numeric text ("3",
    "3.0"); None and negative counts (DDL on SQLite) collapse to 0. Whole
    status tags such as "INSERT 0 1" are not counts; split them first
    (``postgres.status_rowcount``).

    Raises:
        ValueError: ``value`` is not numeric
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, Decimal, float)):
        count = int(value)
    else:
        text = str(value).strip()
        try:
            count = int(text)
        except ValueError:
            try:
                count = int(Decimal(text))
            except (InvalidOperation, ValueError) as exc:
                raise ValueError(f"Not a row count: {value!r}") from exc
    return max(count, 0)


def normalize_row(record: Mapping[str, Any]) -> Row:
    """Copy a native row into a plain dict with engine-neutral values."""
    row: Row = {}
    for key, value in record.items():
        if isinstance(value, datetime):
            # SQLite stores CURRENT_TIMESTAMP as 'YYYY-MM-DD HH:MM:SS'
            value = value.isoformat(sep=" ", timespec="seconds")
        elif isinstance(value, date):
            value = value.isoformat()
        row[key] = value
    return row
