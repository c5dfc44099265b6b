"""Prepared statement cache scoped to one store connection."""

from __future__ import annotations

import threading

from .stores.base import PreparedStatement, StoreConnection


class StatementCache:
    """Memoizes prepared statements by their exact SQL text.

    Different tag-set shapes produce textually different INSERTs, so the SQL
    text is the key. Entries are never evicted; the cache lives as long as its
    connection and is dropped wholesale when the connection is closed or replaced.
    """

    def __init__(self, connection: StoreConnection) -> None:
        """Create an empty cache bound to `connection`."""
        self._connection = connection
        self._lock = threading.Lock()
        self._statements: dict[str, PreparedStatement] = {}

    def get(self, sql: str) -> PreparedStatement:
        """Return the cached statement for `sql`, preparing it on first use.

        Preparation happens under the lock so concurrent callers never prepare the
        same text twice. A failed prepare is not cached.
        """
        with self._lock:
            statement = self._statements.get(sql)
            if statement is None:
                statement = self._connection.prepare(sql)
                self._statements[sql] = statement
            return statement

    def clear(self) -> None:
        """Drop every cached statement."""
        with self._lock:
            self._statements.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._statements)
