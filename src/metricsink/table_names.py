"""Metric key -> table name mapping.

The reporter accepts any pure `(key) -> table name | None` function. This module
provides the default: an explicit allow-list of known system metrics, optionally
extended to every key when recording of all metrics is enabled.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping

_NON_IDENTIFIER_RE = re.compile(r"[^A-Za-z0-9_]+")

SYSTEM_METRICS: tuple[str, ...] = (
    "process_cpu_used-percent",
    "process_cpu_time-total",
    "jvm_memory_heap_used-bytes",
    "jvm_memory_heap_used-percent",
    "jvm_memory_gc_count",
    "jvm_memory_gc_time",
    "jvm_threads_count",
    "os_cpu_used-percent",
    "os_memory_used-percent",
    "space_operations_read-tp",
    "space_operations_write-tp",
    "space_operations_take-tp",
    "space_data_read-count",
    "space_data_data-types",
)


def to_table_name(key: str) -> str:
    """Derive a table name from a metric key.

    Runs of characters that are not valid in an identifier become `_`, the result
    is upper-cased, and a leading digit is prefixed with `_`.
    """
    name = _NON_IDENTIFIER_RE.sub("_", key.strip()).strip("_").upper()
    if not name:
        raise ValueError(f"Metric key {key!r} does not yield a table name")
    if name[0].isdigit():
        name = f"_{name}"
    return name


class TableNameFilter:
    """Allow-list filter mapping metric keys to table names.

    Keys in the allow-list always map to their table. Other keys map through
    `to_table_name()` when `record_all` is set, and are filtered out (`None`)
    otherwise.
    """

    def __init__(self, allow_list: Mapping[str, str] | Iterable[str] = SYSTEM_METRICS, *, record_all: bool = False) -> None:
        if isinstance(allow_list, Mapping):
            self._tables = dict(allow_list)
        else:
            self._tables = {key: to_table_name(key) for key in allow_list}
        self._record_all = record_all

    @property
    def record_all(self) -> bool:
        return self._record_all

    def __call__(self, key: str) -> str | None:
        table = self._tables.get(key)
        if table is not None:
            return table
        if not self._record_all:
            return None
        try:
            return to_table_name(key)
        except ValueError:
            return None
