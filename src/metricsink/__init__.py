"""Self-healing relational sink for time-series metric samples.

This package persists `(timestamp, key, tags, value)` samples into relational
tables derived from the metric key and tag set:

- Tables and columns are created on demand as new sample shapes appear.
- Concurrent writers racing on the same schema change are tolerated.
- Reporting is best-effort: store failures are logged, never raised to the host.
"""

from .connection import ConnectionManager, ManagedConnection
from .models import MetricSample
from .reporter import AsyncMetricReporter, MetricReporter
from .statements import StatementCache
from .table_names import SYSTEM_METRICS, TableNameFilter, to_table_name

__all__ = [
    "AsyncMetricReporter",
    "ConnectionManager",
    "ManagedConnection",
    "MetricReporter",
    "MetricSample",
    "SYSTEM_METRICS",
    "StatementCache",
    "TableNameFilter",
    "to_table_name",
]
