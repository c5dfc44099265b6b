from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from metricsink.errors import InvalidIdentifierError, UnsupportedValueTypeError
from metricsink.queries import (
    build_add_column,
    build_create_index,
    build_create_table,
    build_insert,
    index_name,
    to_instant,
)
from metricsink.stores.duckdb_store import DUCKDB_DIALECT
from metricsink.stores.sqlite_store import SQLITE_DIALECT
from metricsink.values import Int16Value, Int32Value

TS = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_build_insert_orders_time_tags_value():
    query = build_insert("CPU", {"host": "a", "pid": 12}, 0.5, TS, DUCKDB_DIALECT)
    assert query.sql == "INSERT INTO CPU (TIME, host, pid, VALUE) VALUES (?, ?, ?, ?)"
    assert query.params == (datetime(2024, 1, 2, 3, 4, 5), "a", 12, 0.5)


def test_build_insert_shape_depends_on_tag_order():
    a = build_insert("CPU", {"host": "a", "pid": 1}, 1, TS, DUCKDB_DIALECT)
    b = build_insert("CPU", {"pid": 1, "host": "a"}, 1, TS, DUCKDB_DIALECT)
    assert a.sql != b.sql


def test_build_insert_without_tags():
    query = build_insert("UPTIME", {}, 7, TS, SQLITE_DIALECT)
    assert query.sql == "INSERT INTO UPTIME (TIME, VALUE) VALUES (?, ?)"
    assert query.params == ("2024-01-02 03:04:05", 7)


def test_build_insert_accepts_epoch_millis():
    query = build_insert("CPU", {}, 1, 1_700_000_000_123, DUCKDB_DIALECT)
    assert query.params[0] == datetime(2023, 11, 14, 22, 13, 20, 123000)


@pytest.mark.parametrize(
    "tags",
    [
        {"bad name": "x"},
        {"1st": "x"},
        {"time": "x"},
        {"Value": "x"},
        {"host": "a", "HOST": "b"},
        {"host;--": "x"},
    ],
)
def test_build_insert_rejects_unusable_tag_names(tags):
    with pytest.raises(InvalidIdentifierError):
        build_insert("CPU", tags, 1, TS, DUCKDB_DIALECT)


def test_build_insert_rejects_unusable_table_name():
    with pytest.raises(InvalidIdentifierError):
        build_insert("cpu; DROP TABLE x", {}, 1, TS, DUCKDB_DIALECT)


def test_build_insert_rejects_unsupported_values():
    with pytest.raises(UnsupportedValueTypeError):
        build_insert("CPU", {}, [1, 2], TS, DUCKDB_DIALECT)
    with pytest.raises(UnsupportedValueTypeError):
        build_insert("CPU", {"host": object()}, 1, TS, DUCKDB_DIALECT)


def test_build_create_table_types_columns_from_sample():
    sql = build_create_table(
        "CPU",
        {"host": "a", "pid": 12, "up": True, "core": Int16Value(1), "load": 0.5, "seen": TS},
        Int32Value(3),
        replace(DUCKDB_DIALECT, text_type="VARCHAR(128)"),
    )
    assert sql == (
        "CREATE TABLE CPU (TIME TIMESTAMP, host VARCHAR(128), pid BIGINT, up BOOLEAN, "
        "core SMALLINT, load REAL, seen TIMESTAMP, VALUE INTEGER)"
    )


def test_build_create_index_is_named_from_table():
    assert index_name("CPU") == "idx_CPU_time"
    assert build_create_index("CPU") == "CREATE INDEX idx_CPU_time ON CPU (TIME ASC)"
    with pytest.raises(InvalidIdentifierError):
        build_create_index("CPU TIME")


def test_build_add_column():
    assert build_add_column("CPU", "zone", "TEXT") == "ALTER TABLE CPU ADD COLUMN zone TEXT"
    with pytest.raises(InvalidIdentifierError):
        build_add_column("CPU", "zone text", "TEXT")


def test_to_instant_treats_naive_as_utc():
    assert to_instant(datetime(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(TypeError):
        to_instant("2024-01-01")  # type: ignore[arg-type]
