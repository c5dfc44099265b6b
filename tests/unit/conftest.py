from __future__ import annotations

import threading
from pathlib import Path

import pytest

from config import MetricStoreConfig
from metricsink.errors import StoreConnectError
from metricsink.stores import connector_for


@pytest.fixture(autouse=True)
def _no_threads_in_unit_tests(monkeypatch: pytest.MonkeyPatch):
    """Run `asyncio.to_thread` inline for unit tests.

    The async reporter uses `asyncio.to_thread` to keep store I/O off the event
    loop. In unit tests, this can create threadpool workers that keep the
    Python process alive longer than expected under some runtimes.
    """

    async def _to_thread(func, /, *args, **kwargs):  # noqa: ANN001, D401
        return func(*args, **kwargs)

    monkeypatch.setattr("metricsink.reporter.asyncio.to_thread", _to_thread)
    yield


@pytest.fixture()
def duckdb_config(tmp_path: Path) -> MetricStoreConfig:
    return MetricStoreConfig(driver="duckdb", url=str(tmp_path / "metrics.duckdb"), record_all_metrics=True)


@pytest.fixture()
def sqlite_config(tmp_path: Path) -> MetricStoreConfig:
    return MetricStoreConfig(driver="sqlite", url=str(tmp_path / "metrics.sqlite"), record_all_metrics=True)


class FlakyConnector:
    """Connects through the real driver only while `available` is set."""

    def __init__(self, config: MetricStoreConfig, *, available: bool = True, transient: bool = True) -> None:
        self._connect = connector_for(config)
        self.available = available
        self.transient = transient
        self.attempts = 0
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            self.attempts += 1
        if not self.available:
            raise StoreConnectError("store is down", transient=self.transient)
        return self._connect()


class RecordingStore:
    """Wraps a store connection and records every statement it runs."""

    def __init__(self, inner) -> None:  # noqa: ANN001
        self.inner = inner
        self.dialect = inner.dialect
        self.executed: list[str] = []
        self.hidden_columns: set[str] = set()
        self._lock = threading.Lock()

    def _record(self, sql: str) -> None:
        with self._lock:
            self.executed.append(sql)

    def prepare(self, sql: str):
        inner = self.inner.prepare(sql)
        store = self

        class _Statement:
            def __init__(self) -> None:
                self.sql = sql

            def execute(self, params) -> None:  # noqa: ANN001
                store._record(sql)
                inner.execute(params)

        return _Statement()

    def execute(self, sql: str) -> None:
        self._record(sql)
        self.inner.execute(sql)

    def table_names(self) -> list[str]:
        return self.inner.table_names()

    def column_names(self, table: str) -> list[str]:
        # Simulates a catalog read that raced with another writer's ALTER.
        return [c for c in self.inner.column_names(table) if c.upper() not in self.hidden_columns]

    def close(self) -> None:
        self.inner.close()


@pytest.fixture()
def flaky_connector():
    return FlakyConnector


@pytest.fixture()
def recording_store():
    return RecordingStore
