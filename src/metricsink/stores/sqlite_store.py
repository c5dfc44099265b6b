"""SQLite store connection (stdlib `sqlite3`)."""

from __future__ import annotations

import sqlite3

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

# sqlite3's default datetime adapter is deprecated; bind timestamps/decimals as text.
SQLITE_DIALECT = Dialect(name="sqlite", text_type="TEXT", native_types=False)


class SQLiteConnection(LockedConnection):
    """A single autocommit SQLite connection shared by all reporting threads."""

    _driver_errors = (sqlite3.Error,)

    @classmethod
    def connect(cls, config: MetricStoreConfig, dialect: Dialect = SQLITE_DIALECT) -> SQLiteConnection:
        """Open the database at `config.url`, waiting up to `connect_timeout_s` on locks."""
        if config.username or config.password:
            log.debug("metric_store.credentials_ignored", driver="sqlite")
        try:
            raw = sqlite3.connect(
                config.url,
                timeout=config.connect_timeout_s,
                check_same_thread=False,
                isolation_level=None,
            )
        except sqlite3.OperationalError as exc:
            message = str(exc).lower()
            raise StoreConnectError(str(exc), transient=("locked" in message or "busy" in message)) from exc
        except sqlite3.Error as exc:
            raise StoreConnectError(str(exc), transient=False) from exc
        return cls(raw, dialect=dialect, statement_timeout_s=config.statement_timeout_s)

    def _translate(self, exc: BaseException, sql: str) -> StoreError:
        message = str(exc)
        lowered = message.lower()
        if isinstance(exc, sqlite3.ProgrammingError) and "closed" in lowered:
            return StoreConnectionLostError(message, sql=sql)
        if "duplicate column name" in lowered or "already exists" in lowered:
            return DuplicateObjectError(message, sql=sql)
        if "no such table" in lowered:
            return TableNotFoundError(message, sql=sql)
        if "has no column named" in lowered or "no such column" in lowered:
            return ColumnNotFoundError(message, sql=sql)
        return StoreError(message, sql=sql)

    def table_names(self) -> list[str]:
        rows = self._query(
            "SELECT name FROM sqlite_master WHERE type = 'table' AND name NOT LIKE 'sqlite_%' ORDER BY name"
        )
        return [str(r[0]) for r in rows]

    def column_names(self, table: str) -> list[str]:
        rows = self._query("SELECT name FROM pragma_table_info(?) ORDER BY cid", [table])
        return [str(r[0]) for r in rows]
