"""Store drivers.

A driver is selected by `MetricStoreConfig.driver` and provides a dialect plus a
`connect(config)` factory returning a `StoreConnection`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace

from config import MetricStoreConfig

from .base import Dialect, PreparedStatement, StoreConnection
from .duckdb_store import DUCKDB_DIALECT, DuckDBConnection
from .sqlite_store import SQLITE_DIALECT, SQLiteConnection

StoreConnector = Callable[[], StoreConnection]

DRIVERS: dict[str, tuple[Dialect, Callable[[MetricStoreConfig, Dialect], StoreConnection]]] = {
    "duckdb": (DUCKDB_DIALECT, DuckDBConnection.connect),
    "sqlite": (SQLITE_DIALECT, SQLiteConnection.connect),
}


def dialect_for(config: MetricStoreConfig) -> Dialect:
    """Return the driver dialect, with the configured text type applied."""
    try:
        dialect, _ = DRIVERS[config.driver]
    except KeyError as exc:
        raise ValueError(f"Unknown metric store driver {config.driver!r}. Expected one of: {sorted(DRIVERS)}") from exc
    if config.text_type:
        dialect = replace(dialect, text_type=config.text_type)
    return dialect


def connector_for(config: MetricStoreConfig) -> StoreConnector:
    """Build a zero-argument connect function for the configured driver."""
    dialect = dialect_for(config)
    _, connect = DRIVERS[config.driver]

    def _connect() -> StoreConnection:
        return connect(config, dialect)

    return _connect


__all__ = [
    "DRIVERS",
    "Dialect",
    "DuckDBConnection",
    "PreparedStatement",
    "SQLiteConnection",
    "StoreConnection",
    "StoreConnector",
    "connector_for",
    "dialect_for",
]
