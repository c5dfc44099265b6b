"""Metric reporter: persists samples into self-healing tables.

One sample flows through:

1. table name resolution (filtered keys stop here, no SQL),
2. connection acquisition (unavailable store: sample dropped),
3. INSERT through the statement cache,
4. on a missing table, CREATE TABLE + CREATE INDEX; on a missing column,
   one ALTER TABLE per missing tag column.

A sample that triggers a schema fix is not retried: it is dropped and the next
sample with the same shape is written against the repaired schema. Nothing
raised inside the pipeline reaches the caller.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import structlog

from config import MetricStoreConfig

from .connection import ConnectionManager, ManagedConnection
from .errors import (
    ColumnNotFoundError,
    DuplicateObjectError,
    InvalidSampleError,
    StoreConnectionLostError,
    StoreError,
    TableNotFoundError,
)
from .models import MetricSample
from .queries import build_add_column, build_create_index, build_create_table, build_insert
from .schema import missing_columns
from .stores import connector_for, dialect_for
from .stores.base import Dialect
from .table_names import TableNameFilter

log = structlog.get_logger()

TableNameFn = Callable[[str], str | None]

_STAT_KEYS = ("inserted", "filtered", "unavailable", "invalid", "tables_created", "columns_added", "failed")


class MetricReporter:
    """Writes metric samples to a relational store, creating schema on demand.

    Safe to call from many producer threads at once.
    """

    def __init__(
        self,
        config: MetricStoreConfig,
        *,
        table_name_for: TableNameFn | None = None,
        connections: ConnectionManager | None = None,
    ) -> None:
        """Create a reporter for the configured store.

        Args:
            config: Store settings; the driver must be known (`ValueError` otherwise).
            table_name_for: Pure key -> table name function; defaults to the
                system-metrics allow-list honoring `config.record_all_metrics`.
            connections: Override the connection manager (e.g. a custom connector).
        """
        self._config = config
        self._dialect: Dialect = dialect_for(config)
        self._table_name_for = table_name_for or TableNameFilter(record_all=config.record_all_metrics)
        self._connections = connections or ConnectionManager(connector_for(config), description=config.url)

        self._stats_lock = threading.Lock()
        self._stats: dict[str, int] = dict.fromkeys(_STAT_KEYS, 0)

        if self._connections.acquire() is None:
            log.warning("metric_report.connection_pending", target=config.url)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def report(self, timestamp: datetime | int, tags: Mapping[str, Any], key: str, value: Any) -> None:
        """Persist one sample (best-effort; never raises)."""
        try:
            self._report(timestamp, tags, key, value)
        except Exception:  # noqa: BLE001 - reporting must never break the host
            self._count("failed")
            log.error("metric_report.unexpected_error", key=key, exc_info=True)

    def report_sample(self, sample: MetricSample) -> None:
        """Persist a `MetricSample` (best-effort; never raises)."""
        self.report(sample.timestamp, sample.tags, sample.key, sample.value)

    def _report(self, timestamp: datetime | int, tags: Mapping[str, Any], key: str, value: Any) -> None:
        table = self._table_name_for(key)
        if table is None:
            self._count("filtered")
            log.debug("metric_report.filtered", timestamp=timestamp, key=key)
            return

        conn = self._connections.acquire()
        if conn is None:
            self._count("unavailable")
            log.warning("metric_report.skipped_unavailable", timestamp=timestamp, key=key)
            return

        try:
            query = build_insert(table, tags, value, timestamp, self._dialect)
        except InvalidSampleError as exc:
            self._count("invalid")
            log.warning("metric_report.invalid_sample", key=key, table=table, error=str(exc))
            return

        try:
            statement = conn.statements.get(query.sql)
            statement.execute(query.params)
        except TableNotFoundError as exc:
            log.debug("metric_report.table_missing", table=table, error=str(exc))
            self._create_table(conn, table, tags, value)
        except ColumnNotFoundError as exc:
            log.debug("metric_report.column_missing", table=table, error=str(exc))
            self._add_missing_columns(conn, table, tags)
        except StoreConnectionLostError:
            self._count("failed")
            log.error("metric_report.connection_lost", sql=query.sql, exc_info=True)
            self._connections.invalidate(conn)
        except StoreError:
            self._count("failed")
            log.error("metric_report.insert_failed", sql=query.sql, exc_info=True)
        else:
            self._count("inserted")

    def _create_table(self, conn: ManagedConnection, table: str, tags: Mapping[str, Any], value: Any) -> None:
        create_sql = build_create_table(table, tags, value, self._dialect)
        log.debug("metric_schema.create_table", sql=create_sql)
        try:
            conn.store.execute(create_sql)
        except DuplicateObjectError as exc:
            # Another writer created it first.
            log.debug("metric_schema.create_table_raced", table=table, error=str(exc))
            return
        except StoreError:
            log.warning("metric_schema.create_table_failed", table=table, exc_info=True)
            return
        self._count("tables_created")
        log.info("metric_schema.table_created", table=table)

        index_sql = build_create_index(table)
        try:
            conn.store.execute(index_sql)
        except DuplicateObjectError as exc:
            log.debug("metric_schema.create_index_raced", table=table, error=str(exc))
        except StoreError:
            log.warning("metric_schema.create_index_failed", table=table, sql=index_sql, exc_info=True)
        else:
            log.debug("metric_schema.index_created", table=table, sql=index_sql)

    def _add_missing_columns(self, conn: ManagedConnection, table: str, tags: Mapping[str, Any]) -> None:
        try:
            missing = missing_columns(conn.store, table, tags, self._dialect.text_type)
        except StoreError:
            log.error("metric_schema.add_columns_failed", table=table, exc_info=True)
            return

        for column, type_name in missing.items():
            sql = build_add_column(table, column, type_name)
            log.debug("metric_schema.add_column", sql=sql)
            try:
                conn.store.execute(sql)
            except DuplicateObjectError:
                # Concurrent writers may add the same column at the same time.
                log.debug("metric_schema.add_column_raced", table=table, column=column)
            except StoreError:
                log.error("metric_schema.add_column_failed", sql=sql, exc_info=True)
            else:
                self._count("columns_added")
                log.debug("metric_schema.column_added", table=table, column=column, type=type_name)

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self._stats[name] += 1

    def stats(self) -> dict[str, int]:
        """Return a point-in-time copy of the outcome counters."""
        with self._stats_lock:
            return dict(self._stats)

    def close(self) -> None:
        """Close the store connection. The reporter reconnects if used again."""
        self._connections.close()

    def __enter__(self) -> MetricReporter:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()


class AsyncMetricReporter:
    """Asyncio front-end that runs the blocking pipeline in a worker thread."""

    def __init__(self, reporter: MetricReporter) -> None:
        self._reporter = reporter
        self._closed = False

    @property
    def reporter(self) -> MetricReporter:
        return self._reporter

    async def report(self, timestamp: datetime | int, tags: Mapping[str, Any], key: str, value: Any) -> None:
        """Persist one sample without blocking the event loop (never raises)."""
        if self._closed:
            return
        await asyncio.to_thread(self._reporter.report, timestamp, tags, key, value)

    async def report_sample(self, sample: MetricSample) -> None:
        await self.report(sample.timestamp, sample.tags, sample.key, sample.value)

    async def aclose(self) -> None:
        """Close the underlying reporter.

        Safe to call multiple times.
        """
        if self._closed:
            return
        self._closed = True
        await asyncio.to_thread(self._reporter.close)
