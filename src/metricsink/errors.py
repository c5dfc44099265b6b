"""Error taxonomy for the metric sink.

Store implementations translate driver exceptions into these classes so the
report pipeline can pick a self-heal path without knowing driver wording.
"""

from __future__ import annotations


class MetricSinkError(Exception):
    """Base class for all metric sink errors."""


class StoreError(MetricSinkError):
    """A store operation failed for a reason with no dedicated recovery path."""

    def __init__(self, message: str, *, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class TableNotFoundError(StoreError):
    """The statement referenced a table that does not exist."""


class ColumnNotFoundError(StoreError):
    """The statement referenced a column that does not exist."""


class DuplicateObjectError(StoreError):
    """A table, index or column being created already exists."""


class StoreConnectionLostError(StoreError):
    """The connection was closed or broken underneath the caller."""


class StoreConnectError(StoreError):
    """Opening a connection failed.

    `transient` marks failures expected to recover on their own (e.g. the
    database file is locked by another process).
    """

    def __init__(self, message: str, *, transient: bool) -> None:
        super().__init__(message)
        self.transient = transient


class InvalidSampleError(MetricSinkError):
    """A sample cannot be written as given."""


class UnsupportedValueTypeError(InvalidSampleError):
    """A value's runtime type has no storage column type."""

    def __init__(self, value: object) -> None:
        self.type_name = f"{type(value).__module__}.{type(value).__qualname__}"
        super().__init__(f"Unsupported value type [{self.type_name}]")


class InvalidIdentifierError(InvalidSampleError):
    """A table or column name is not usable as a SQL identifier."""
