"""Live schema inspection.

Nothing about table layout is cached locally; every question is answered from
the store's catalog at the time it is asked.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog

from .stores.base import StoreConnection
from .values import column_type_of

log = structlog.get_logger()


def missing_columns(
    connection: StoreConnection,
    table: str,
    tags: Mapping[str, Any],
    text_type: str,
) -> dict[str, str]:
    """Return tag columns absent from `table`, as name -> column type.

    Names are compared case-insensitively and the result keeps tag order. Types
    come from the tag values of the sample that revealed the gap.

    Raises:
    - `StoreError` when the catalog cannot be read.
    - `UnsupportedValueTypeError` when a missing tag's value has no storage type.
    """
    existing = {name.upper() for name in connection.column_names(table)}
    missing = {
        name: column_type_of(value, text_type)
        for name, value in tags.items()
        if name.upper() not in existing
    }
    log.debug("metric_schema.missing_columns", table=table, missing=missing)
    return missing


def describe_tables(connection: StoreConnection) -> list[str]:
    """Return the tables present in the store (for diagnostics)."""
    return connection.table_names()
