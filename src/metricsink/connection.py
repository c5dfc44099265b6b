"""Lazy, shared store connection.

The manager owns at most one live connection. It connects on first use, does
not remember failures (the next caller simply tries again), and hands out the
connection together with the statement cache that belongs to it.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

import structlog

from .errors import StoreConnectError, StoreError
from .schema import describe_tables
from .statements import StatementCache
from .stores import StoreConnector
from .stores.base import StoreConnection

log = structlog.get_logger()


@dataclass
class ManagedConnection:
    """A live store connection and its statement cache."""

    store: StoreConnection
    statements: StatementCache = field(init=False)

    def __post_init__(self) -> None:
        self.statements = StatementCache(self.store)


class ConnectionManager:
    """Double-checked lazy connect around a single shared connection."""

    def __init__(self, connect: StoreConnector, *, description: str = "") -> None:
        """Create a manager that opens connections with `connect`.

        Args:
            connect: Zero-argument factory returning a new store connection.
            description: Human-readable target used in log lines (e.g. the URL).
        """
        self._connect = connect
        self._description = description
        self._lock = threading.Lock()
        self._current: ManagedConnection | None = None

    @property
    def connected(self) -> bool:
        return self._current is not None

    def acquire(self) -> ManagedConnection | None:
        """Return the live connection, connecting if needed; `None` when unavailable."""
        current = self._current
        if current is not None:
            return current
        with self._lock:
            if self._current is None:
                self._current = self._open()
            return self._current

    def _open(self) -> ManagedConnection | None:
        log.debug("metric_store.connecting", target=self._description)
        try:
            store = self._connect()
        except StoreConnectError as exc:
            if exc.transient:
                log.warning("metric_store.connect_failed", target=self._description, error=str(exc))
            else:
                log.error("metric_store.connect_failed", target=self._description, error=str(exc), exc_info=True)
            return None
        except Exception:  # noqa: BLE001 - an unreachable store must not break the host
            log.error("metric_store.connect_failed", target=self._description, exc_info=True)
            return None

        log.info("metric_store.connected", target=self._description, driver=store.dialect.name)
        try:
            log.debug("metric_store.existing_tables", tables=describe_tables(store))
        except StoreError as exc:
            log.warning("metric_store.list_tables_failed", error=str(exc))
        return ManagedConnection(store)

    def invalidate(self, connection: ManagedConnection) -> None:
        """Forget `connection` if it is still current so the next caller reconnects."""
        with self._lock:
            if self._current is not connection:
                return
            self._current = None
        self._dispose(connection)

    def close(self) -> None:
        """Close the connection (if any) and drop its cached statements."""
        with self._lock:
            connection, self._current = self._current, None
        if connection is not None:
            self._dispose(connection)

    def _dispose(self, connection: ManagedConnection) -> None:
        connection.statements.clear()
        try:
            connection.store.close()
        except Exception as exc:  # noqa: BLE001 - closing is best-effort
            log.warning("metric_store.close_failed", target=self._description, error=str(exc))
