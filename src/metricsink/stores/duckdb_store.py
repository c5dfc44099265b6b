"""DuckDB store connection (default driver)."""

from __future__ import annotations

import duckdb
import structlog

from config import MetricStoreConfig

from ..errors import (
    ColumnNotFoundError,
    DuplicateObjectError,
    StoreConnectError,
    StoreConnectionLostError,
    StoreError,
    TableNotFoundError,
)
from .base import Dialect, LockedConnection

log = structlog.get_logger()

# REAL is a 4-byte float in DuckDB; 64-bit floats are rounded to single precision.
DUCKDB_DIALECT = Dialect(name="duckdb", text_type="VARCHAR")


class DuckDBConnection(LockedConnection):
    """A single DuckDB connection shared by all reporting threads."""

    _driver_errors = (duckdb.Error,)

    @classmethod
    def connect(cls, config: MetricStoreConfig, dialect: Dialect = DUCKDB_DIALECT) -> DuckDBConnection:
        """Open the database at `config.url`.

        `IOException` (typically the file lock being held by another process) is
        reported as transient; anything else as permanent.
        """
        if config.username or config.password:
            log.debug("metric_store.credentials_ignored", driver="duckdb")
        try:
            raw = duckdb.connect(config.url)
        except duckdb.IOException as exc:
            raise StoreConnectError(str(exc), transient=True) from exc
        except duckdb.Error as exc:
            raise StoreConnectError(str(exc), transient=False) from exc
        return cls(raw, dialect=dialect, statement_timeout_s=config.statement_timeout_s)

    def _translate(self, exc: BaseException, sql: str) -> StoreError:
        message = str(exc)
        if isinstance(exc, duckdb.ConnectionException):
            return StoreConnectionLostError(message, sql=sql)
        if "already exists" in message:
            return DuplicateObjectError(message, sql=sql)
        if isinstance(exc, duckdb.CatalogException) and "Table with name" in message and "does not exist" in message:
            return TableNotFoundError(message, sql=sql)
        if isinstance(exc, duckdb.BinderException) and "does not have a column" in message:
            return ColumnNotFoundError(message, sql=sql)
        return StoreError(message, sql=sql)

    def table_names(self) -> list[str]:
        rows = self._query(
            "SELECT table_name FROM information_schema.tables "
            "WHERE table_schema = current_schema() AND table_type = 'BASE TABLE' "
            "ORDER BY table_name"
        )
        return [str(r[0]) for r in rows]

    def column_names(self, table: str) -> list[str]:
        rows = self._query(
            "SELECT column_name FROM information_schema.columns "
            "WHERE table_schema = current_schema() AND lower(table_name) = lower(?) "
            "ORDER BY ordinal_position",
            [table],
        )
        return [str(r[0]) for r in rows]
