"""Store connection interface.

The report pipeline depends on this small interface so stores can be swapped
without changing pipeline code. Implementations are responsible for turning
driver exceptions into the structured errors in `metricsink.errors`.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager, nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Protocol

from ..errors import StoreError


@dataclass(frozen=True)
class Dialect:
    """Per-driver SQL details used by the query builder and value binder."""

    name: str
    text_type: str
    # Keyword(s) used to create a durable table.
    create_table: str = "CREATE TABLE"
    # Whether the driver binds datetime/Decimal natively.
    native_types: bool = True

    def bind_timestamp(self, value: datetime) -> Any:
        """Convert an instant to the driver's TIMESTAMP parameter (UTC, naive)."""
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        if self.native_types:
            return value
        return value.isoformat(sep=" ")

    def bind_decimal(self, value: Decimal) -> Any:
        """Convert an arbitrary-precision number to the driver's NUMERIC parameter."""
        if self.native_types:
            return value
        return str(value)


class PreparedStatement(Protocol):
    sql: str

    def execute(self, params: Sequence[Any]) -> None:
        """Execute with positional parameters."""


class StoreConnection(Protocol):
    dialect: Dialect

    def prepare(self, sql: str) -> PreparedStatement:
        """Prepare a parameterized statement for repeated execution."""

    def execute(self, sql: str) -> None:
        """Execute a parameterless statement (DDL)."""

    def table_names(self) -> list[str]:
        """Return the names of tables in the current schema."""

    def column_names(self, table: str) -> list[str]:
        """Return the column names of `table` (empty when it does not exist)."""

    def close(self) -> None:
        """Close the underlying connection."""


class StatementWatchdog:
    """Interrupts a statement that outlives its deadline.

    One daemon thread per connection, started on first use. Statements arm it
    with a deadline and disarm it when they finish; nothing is spawned per
    statement.
    """

    def __init__(self, interrupt: Callable[[], None], timeout_s: float) -> None:
        self._interrupt = interrupt
        self._timeout_s = timeout_s
        self._cond = threading.Condition()
        self._deadline: float | None = None
        self._closed = False
        self._thread: threading.Thread | None = None

    @contextmanager
    def armed(self) -> Iterator[None]:
        with self._cond:
            if self._thread is None and not self._closed:
                self._thread = threading.Thread(target=self._run, name="metricsink-statement-watchdog", daemon=True)
                self._thread.start()
            self._deadline = time.monotonic() + self._timeout_s
            self._cond.notify()
        try:
            yield
        finally:
            with self._cond:
                self._deadline = None

    def _run(self) -> None:
        with self._cond:
            while not self._closed:
                if self._deadline is None:
                    self._cond.wait()
                    continue
                remaining = self._deadline - time.monotonic()
                if remaining > 0:
                    self._cond.wait(remaining)
                    continue
                self._deadline = None
                self._interrupt()

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify()
        if self._thread is not None:
            self._thread.join(timeout=1.0)


class LockedConnection:
    """Shared plumbing for embedded drivers.

    Driver connections are not safe to use from several threads at once, so
    every call is serialized with a per-connection lock. A statement timeout is
    enforced by a per-connection watchdog that interrupts the driver connection.
    """

    dialect: Dialect
    _driver_errors: tuple[type[BaseException], ...] = ()

    def __init__(self, raw: Any, *, dialect: Dialect, statement_timeout_s: float | None) -> None:
        self._raw = raw
        self.dialect = dialect
        self._lock = threading.RLock()
        self._watchdog: StatementWatchdog | None = None
        if statement_timeout_s is not None:
            self._watchdog = StatementWatchdog(raw.interrupt, statement_timeout_s)

    def _translate(self, exc: BaseException, sql: str) -> StoreError:
        """Map a driver exception to a structured store error."""
        return StoreError(str(exc), sql=sql)

    @contextmanager
    def _guarded(self, sql: str) -> Iterator[Any]:
        """Hold the connection lock, arm the statement timeout and translate errors."""
        with self._lock:
            deadline = self._watchdog.armed() if self._watchdog is not None else nullcontext()
            try:
                with deadline:
                    yield self._raw
            except self._driver_errors as exc:
                raise self._translate(exc, sql) from exc

    def prepare(self, sql: str) -> PreparedStatement:
        return BoundStatement(sql=sql, connection=self)

    def run(self, sql: str, params: Sequence[Any]) -> None:
        """Execute `sql` with positional parameters."""
        with self._guarded(sql) as raw:
            raw.execute(sql, list(params))

    def execute(self, sql: str) -> None:
        with self._guarded(sql) as raw:
            raw.execute(sql)

    def _query(self, sql: str, params: Sequence[Any] = ()) -> list[tuple[Any, ...]]:
        with self._guarded(sql) as raw:
            return list(raw.execute(sql, list(params)).fetchall())

    def close(self) -> None:
        with self._lock:
            if self._watchdog is not None:
                self._watchdog.close()
            self._raw.close()


@dataclass
class BoundStatement:
    """A statement bound to one connection; executed through that connection."""

    sql: str
    connection: Any

    def execute(self, params: Sequence[Any]) -> None:
        self.connection.run(self.sql, params)
