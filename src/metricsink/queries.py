"""SQL generation for metric tables.

Every table has a `TIME` column, one column per tag, and a `VALUE` column.
Values are always bound through `?` placeholders; only identifiers are placed in
the SQL text, and those are validated first.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

from .errors import InvalidIdentifierError
from .stores.base import Dialect
from .values import bind, classify, column_type_of

TIME_COLUMN = "TIME"
VALUE_COLUMN = "VALUE"
RESERVED_COLUMNS = frozenset({TIME_COLUMN, VALUE_COLUMN})

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class InsertQuery:
    """An INSERT statement and its positional parameters."""

    sql: str
    params: tuple[Any, ...]


def validate_identifier(name: str) -> str:
    """Return `name` if it is a plain SQL identifier, else raise."""
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise InvalidIdentifierError(f"Invalid identifier [{name!r}]")
    return name


def validate_tag_names(tags: Mapping[str, Any]) -> list[str]:
    """Validate tag names as column names and return them in order.

    Tag names must be identifiers, must not shadow `TIME`/`VALUE`, and must be
    unique ignoring case.
    """
    seen: set[str] = set()
    names: list[str] = []
    for name in tags:
        validate_identifier(name)
        folded = name.upper()
        if folded in RESERVED_COLUMNS:
            raise InvalidIdentifierError(f"Tag name [{name}] is reserved")
        if folded in seen:
            raise InvalidIdentifierError(f"Tag name [{name}] is duplicated (names are case-insensitive)")
        seen.add(folded)
        names.append(name)
    return names


def to_instant(timestamp: datetime | int) -> datetime:
    """Normalize a sample timestamp (datetime or epoch milliseconds) to an aware UTC datetime."""
    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            return timestamp.replace(tzinfo=timezone.utc)
        return timestamp.astimezone(timezone.utc)
    if isinstance(timestamp, int) and not isinstance(timestamp, bool):
        return _EPOCH + timedelta(milliseconds=timestamp)
    raise TypeError(f"timestamp must be a datetime or epoch milliseconds. Got: {type(timestamp).__name__}")


def build_insert(
    table: str,
    tags: Mapping[str, Any],
    value: Any,
    timestamp: datetime | int,
    dialect: Dialect,
) -> InsertQuery:
    """Build the INSERT for one sample: `TIME`, tags in order, then `VALUE`.

    Raises:
    - `InvalidIdentifierError` for unusable table/tag names.
    - `UnsupportedValueTypeError` when the value or a tag value has no storage type.
    """
    validate_identifier(table)
    names = validate_tag_names(tags)

    columns = [TIME_COLUMN, *names, VALUE_COLUMN]
    params: list[Any] = [dialect.bind_timestamp(to_instant(timestamp))]
    params.extend(bind(classify(tags[name]), dialect) for name in names)
    params.append(bind(classify(value), dialect))

    placeholders = ", ".join("?" for _ in columns)
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
    return InsertQuery(sql=sql, params=tuple(params))


def build_create_table(table: str, tags: Mapping[str, Any], value: Any, dialect: Dialect) -> str:
    """Build CREATE TABLE typed from the sample that revealed the table was missing."""
    validate_identifier(table)
    names = validate_tag_names(tags)

    columns = [f"{TIME_COLUMN} TIMESTAMP"]
    columns.extend(f"{name} {column_type_of(tags[name], dialect.text_type)}" for name in names)
    columns.append(f"{VALUE_COLUMN} {column_type_of(value, dialect.text_type)}")
    return f"{dialect.create_table} {table} ({', '.join(columns)})"


def index_name(table: str) -> str:
    return f"idx_{table}_time"


def build_create_index(table: str) -> str:
    """Build the ascending index on `TIME` created right after the table."""
    validate_identifier(table)
    return f"CREATE INDEX {index_name(table)} ON {table} ({TIME_COLUMN} ASC)"


def build_add_column(table: str, column: str, type_name: str) -> str:
    validate_identifier(table)
    validate_identifier(column)
    return f"ALTER TABLE {table} ADD COLUMN {column} {type_name}"
